"""
SuperTrend AI engine: per-factor trackers, performance clustering and the
adaptive trailing stop, wired together bar by bar.

Per bar, in order:

1. every factor's trailing stop and score advances,
2. the absolute-price-change denominator advances,
3. when the bar is eligible, the current scores are re-clustered and the
   configured tier refreshes the target factor and performance index,
4. the adaptive trailing stop and its AMA advance,
5. a direction flip of the adaptive trend is recorded as a signal.

Batch runs (``run``) only cluster the last ``max_data`` bars.  Streaming
updates (``update``) treat every bar as the most recent one.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..config_structured import SupertrendAIConfig, config_to_dict, get_config
from ..data.loader import REQUIRED_OHLC, normalize_ohlcv_columns
from ..data.quality import require_strictly_increasing
from .clustering import N_CLUSTERS, ClusterAssignment, ClusterBucket, cluster_scores
from .factor_grid import FactorGrid
from .signals import SignalEmitter, TrendSignal, signals_to_frame
from .synthesizer import AdaptiveSynthesizer
from .tracker import FactorTracker
from .types import AdaptiveOutput, Bar, is_missing, to_timestamp
from .volatility import average_true_range

logger = logging.getLogger(__name__)

OUTPUT_COLUMNS = [
    "trailing_stop",
    "trend",
    "ama",
    "performance_index",
    "target_factor",
    "upper",
    "lower",
]


@dataclass(frozen=True)
class ClusterSnapshot:
    """State of the most recent successful clustering pass.

    Carries what a dashboard table shows: per-tier size, centroid,
    dispersion and member factors, plus the target factor and performance
    index in effect after the pass.
    """

    bar_index: int
    timestamp: Any
    buckets: Tuple[ClusterBucket, ...]
    target_factor: float
    performance_index: float
    n_iter: int
    converged: bool

    def to_dict(self) -> Dict[str, Any]:
        ts = self.timestamp
        if isinstance(ts, pd.Timestamp):
            ts = ts.isoformat()
        return {
            "bar_index": self.bar_index,
            "timestamp": ts,
            "buckets": [b.to_dict() for b in self.buckets],
            "target_factor": self.target_factor,
            "performance_index": self.performance_index,
            "n_iter": self.n_iter,
            "converged": self.converged,
        }


@dataclass
class SupertrendAIResult:
    """Output of a batch run.

    Attributes
    ----------
    frame : pd.DataFrame
        One row per input bar with ``OUTPUT_COLUMNS``.  ``trend`` is 1 (up),
        0 (down) or NaN before the adaptive stop starts.
    signals : list of TrendSignal
        Direction flips of the adaptive trend.
    snapshot : ClusterSnapshot or None
        Last successful clustering pass, None if clustering never ran.
    factor_outputs, factor_scores : pd.DataFrame
        Per-factor trailing stops and performance scores, one column per
        grid factor.
    """

    frame: pd.DataFrame
    signals: List[TrendSignal]
    snapshot: Optional[ClusterSnapshot]
    factor_outputs: pd.DataFrame
    factor_scores: pd.DataFrame
    grid: FactorGrid
    n_clustered: int
    n_skipped: int

    def signals_frame(self) -> pd.DataFrame:
        return signals_to_frame(self.signals)


class SupertrendAIEngine:
    """Adaptive multi-factor SuperTrend with online performance clustering.

    Parameters
    ----------
    config : SupertrendAIConfig, optional
        Engine parameters; defaults to the package configuration.
    **overrides
        Individual ``SupertrendAIConfig`` fields replacing those of
        ``config``.  The combined configuration is validated before any
        state is created.

    Raises
    ------
    ValueError
        If the configuration is invalid or an override names an unknown
        field.
    """

    def __init__(self, config: Optional[SupertrendAIConfig] = None, **overrides):
        cfg = config if config is not None else get_config().supertrend_ai
        if overrides:
            allowed = {f.name for f in fields(SupertrendAIConfig)}
            unknown = sorted(set(overrides) - allowed)
            if unknown:
                raise ValueError(f"Unknown SupertrendAIConfig fields: {unknown}")
            cfg = replace(cfg, **overrides)
        self.config = cfg
        self.grid = FactorGrid.from_config(cfg)
        if len(self.grid) < N_CLUSTERS:
            logger.warning(
                "Factor grid has %d factor(s); clustering needs %d and will always be skipped",
                len(self.grid), N_CLUSTERS,
            )
        self.reset()

    def reset(self) -> None:
        """Drop all per-run state."""
        alpha = self.config.smoothing_alpha
        self.tracker = FactorTracker(self.grid, alpha)
        self.synthesizer = AdaptiveSynthesizer(
            self.config.from_cluster, self.config.weighting, alpha,
        )
        self.emitter = SignalEmitter()
        self.snapshot: Optional[ClusterSnapshot] = None
        self.n_bars = 0
        self.n_clustered = 0
        self.n_skipped = 0
        self._prev_close: Optional[float] = None
        self._last_timestamp: Any = None

    @property
    def signals(self) -> List[TrendSignal]:
        return self.emitter.signals

    def update(self, bar: Bar, volatility: Optional[float]) -> AdaptiveOutput:
        """Advance the engine by one streamed bar.

        Every streamed bar is the most recent bar, so it is clustered
        whenever ``max_data > 0``.

        Raises
        ------
        ValueError
            If ``bar.timestamp`` is not strictly after the previous bar's.
        """
        ts = to_timestamp(bar.timestamp)
        if self._last_timestamp is not None:
            try:
                in_order = ts > self._last_timestamp
            except TypeError as exc:
                raise ValueError(
                    f"Cannot order timestamp {bar.timestamp!r} after {self._last_timestamp!r}"
                ) from exc
            if not in_order:
                raise ValueError(
                    f"Bar timestamp {bar.timestamp!r} is not after {self._last_timestamp!r}"
                )
        self._last_timestamp = ts
        return self._step(
            bar.timestamp, bar.high, bar.low, bar.close, volatility,
            eligible=self.config.max_data > 0,
        )

    def _step(
        self,
        timestamp: Any,
        high: float,
        low: float,
        close: float,
        volatility: Optional[float],
        eligible: bool,
    ) -> AdaptiveOutput:
        index = self.n_bars
        self.n_bars += 1

        if is_missing(high) or is_missing(low) or is_missing(close):
            out = self.synthesizer.output(timestamp)
            self.emitter.observe(index, timestamp, out.trend, close, out.performance_index)
            return out

        prev_close = self._prev_close
        # Scores and the price-change denominator advance on the same bars.
        advanced = self.tracker.update(high, low, close, prev_close, volatility)
        if advanced:
            self.synthesizer.observe_price_change(close, prev_close)

        if eligible and advanced:
            assignment = cluster_scores(
                self.grid.as_array(), self.tracker.scores(), self.config.max_iter,
            )
            if assignment is None:
                self.n_skipped += 1
            else:
                self.n_clustered += 1
                self.synthesizer.select(assignment)
                self._record_snapshot(index, timestamp, assignment)

        out = self.synthesizer.advance(timestamp, high, low, close, prev_close, volatility)
        self.emitter.observe(index, timestamp, out.trend, close, out.performance_index)
        self._prev_close = close
        return out

    def _record_snapshot(self, index: int, timestamp: Any, assignment: ClusterAssignment) -> None:
        self.snapshot = ClusterSnapshot(
            bar_index=index,
            timestamp=timestamp,
            buckets=assignment.buckets,
            target_factor=self.synthesizer.target_factor,
            performance_index=self.synthesizer.performance_index,
            n_iter=assignment.n_iter,
            converged=assignment.converged,
        )

    def run(
        self,
        df: pd.DataFrame,
        volatility: Optional[Sequence[float]] = None,
    ) -> SupertrendAIResult:
        """Process a whole bar series from a fresh state.

        Parameters
        ----------
        df : pd.DataFrame
            Bars with Open/High/Low/Close columns (any case) over a
            strictly increasing index.
        volatility : array-like, optional
            Per-bar volatility aligned with ``df``.  Defaults to the ATR
            over ``atr_length`` bars.

        Raises
        ------
        ValueError
            On missing columns, non-increasing timestamps, or a volatility
            series of the wrong length.  Nothing is processed in that case.
        """
        frame = normalize_ohlcv_columns(df)
        missing = [c for c in REQUIRED_OHLC if c not in frame.columns]
        if missing:
            raise ValueError(f"Bar data is missing required columns: {missing}")
        require_strictly_increasing(frame.index)

        high = frame["High"].to_numpy(dtype=np.float64)
        low = frame["Low"].to_numpy(dtype=np.float64)
        close = frame["Close"].to_numpy(dtype=np.float64)
        n = len(frame)

        if volatility is None:
            vol = average_true_range(
                high, low, close,
                length=self.config.atr_length,
                method=self.config.volatility_method,
            )
        else:
            vol = np.asarray(volatility, dtype=np.float64)
            if vol.shape != (n,):
                raise ValueError(
                    f"volatility must have one value per bar ({n}), got shape {vol.shape}"
                )

        self.reset()
        k = len(self.grid)
        values = np.full((n, len(OUTPUT_COLUMNS)), np.nan)
        factor_outputs = np.full((n, k), np.nan)
        factor_scores = np.full((n, k), np.nan)

        for i, ts in enumerate(frame.index):
            eligible = (n - 1 - i) < self.config.max_data
            out = self._step(ts, high[i], low[i], close[i], vol[i], eligible)
            values[i] = (
                out.trailing_stop,
                np.nan if out.trend is None else out.trend,
                out.ama,
                out.performance_index,
                out.target_factor,
                out.upper,
                out.lower,
            )
            factor_outputs[i] = self.tracker.outputs()
            factor_scores[i] = self.tracker.scores()

        if n:
            self._last_timestamp = to_timestamp(frame.index[-1])

        labels = list(self.grid.labels())
        result = SupertrendAIResult(
            frame=pd.DataFrame(values, index=frame.index, columns=OUTPUT_COLUMNS),
            signals=list(self.emitter.signals),
            snapshot=self.snapshot,
            factor_outputs=pd.DataFrame(factor_outputs, index=frame.index, columns=labels),
            factor_scores=pd.DataFrame(factor_scores, index=frame.index, columns=labels),
            grid=self.grid,
            n_clustered=self.n_clustered,
            n_skipped=self.n_skipped,
        )
        logger.info(
            "SuperTrend AI: %d bars, %d factors, %d clustering passes (%d skipped), %d signals",
            n, k, self.n_clustered, self.n_skipped, len(result.signals),
        )
        return result

    def describe(self) -> Dict[str, Any]:
        """Configuration and grid as a JSON-safe dict."""
        return {
            "config": config_to_dict(self.config),
            "factors": list(self.grid.factors),
        }
