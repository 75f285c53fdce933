"""
Adaptive trailing stop driven by the selected performance tier.

The synthesizer keeps three pieces of state across bars:

* the target factor and performance index from the last successful
  clustering pass (held while clustering is skipped),
* an EMA of the absolute bar-to-bar price change, which normalises the
  tier's mean score into the performance index,
* its own ``AdaptiveState``: a trailing stop using the target factor plus
  an adaptive moving average (AMA) whose step size is the performance index.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Optional

import numpy as np

from ..config_structured import ClusterTier, TargetWeighting
from .clustering import ClusterAssignment, ClusterBucket
from .scoring import ExponentialSmoother
from .tracker import advance_trailing_stop, valid_volatility
from .types import AdaptiveOutput, AdaptiveState

logger = logging.getLogger(__name__)


def target_factor(bucket: ClusterBucket, weighting: TargetWeighting) -> float:
    """Collapse a tier to one multiplier.

    ``MEAN`` is the arithmetic mean of the member factors.  ``PERFORMANCE``
    weights each factor by ``max(score, 0)`` and falls back to the plain
    mean when no member has a positive score.
    """
    if bucket.size == 0:
        return float("nan")
    factors = np.asarray(bucket.factors, dtype=np.float64)
    if weighting is TargetWeighting.PERFORMANCE:
        weights = np.maximum(np.asarray(bucket.scores, dtype=np.float64), 0.0)
        total = weights.sum()
        if total > 0:
            return float((factors * weights).sum() / total)
    return float(factors.mean())


class AdaptiveSynthesizer:
    """Turns the selected tier into one trailing stop and its AMA overlay.

    Parameters
    ----------
    tier : ClusterTier
        Which bucket drives the target factor.
    weighting : TargetWeighting
        How the bucket's factors are averaged.
    alpha : float
        Smoothing constant of the absolute-price-change denominator.
    """

    def __init__(self, tier: ClusterTier, weighting: TargetWeighting, alpha: float):
        self.tier = tier
        self.weighting = weighting
        self._denominator = ExponentialSmoother(alpha)
        self.target_factor = float("nan")
        self.performance_index = float("nan")
        self.state: Optional[AdaptiveState] = None

    @property
    def denominator(self) -> float:
        return self._denominator.value

    def observe_price_change(self, close: float, prev_close: Optional[float]) -> None:
        """Feed ``|close - prev_close|`` into the denominator EMA."""
        if prev_close is None:
            return
        self._denominator.update(abs(close - prev_close))

    def select(self, assignment: ClusterAssignment) -> bool:
        """Adopt the configured tier of a fresh clustering pass.

        An empty tier leaves the previous target factor and performance
        index in place.  Returns True when they were updated.

        The performance index is clamped to [0, 1] so the AMA step stays a
        convex combination of its previous value and the trailing stop.
        """
        bucket = assignment.bucket(self.tier)
        if bucket.size == 0:
            logger.debug("Selected tier %s is empty; holding target factor", self.tier.value)
            return False

        self.target_factor = target_factor(bucket, self.weighting)
        den = self._denominator.value
        if math.isfinite(den) and den > 0:
            self.performance_index = min(max(bucket.mean_score, 0.0) / den, 1.0)
        else:
            self.performance_index = 0.0
        return True

    def advance(
        self,
        timestamp: Any,
        high: float,
        low: float,
        close: float,
        prev_close: Optional[float],
        volatility: Optional[float],
    ) -> AdaptiveOutput:
        """Advance the adaptive trailing stop and AMA by one bar.

        Nothing moves while the target factor is undefined or the bar's
        volatility is missing; the current values are reported unchanged.
        """
        if math.isfinite(self.target_factor) and valid_volatility(volatility):
            mid = (high + low) / 2.0
            if self.state is None:
                self.state = AdaptiveState.seed(mid)
                self.state.ama = self.state.output
            elif prev_close is not None:
                advance_trailing_stop(
                    self.state, mid, close, prev_close, float(volatility), self.target_factor
                )
                self.state.ama += self.performance_index * (self.state.output - self.state.ama)
        return self.output(timestamp)

    def output(self, timestamp: Any) -> AdaptiveOutput:
        """Current externally visible values."""
        if self.state is None:
            return AdaptiveOutput(
                timestamp=timestamp,
                trailing_stop=float("nan"),
                trend=None,
                ama=float("nan"),
                performance_index=self.performance_index,
                target_factor=self.target_factor,
            )
        return AdaptiveOutput(
            timestamp=timestamp,
            trailing_stop=self.state.output,
            trend=self.state.trend,
            ama=self.state.ama,
            performance_index=self.performance_index,
            target_factor=self.target_factor,
            upper=self.state.upper,
            lower=self.state.lower,
        )
