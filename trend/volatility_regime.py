"""
SuperTrend whose multiplier follows a volatility regime.

Each bar past the warm-up clusters the previous ``train_len`` ATR values
into low / medium / high volatility with the same 1-D k-means used for
performance clustering (seeded at the minimum, upper-middle and maximum
values), classifies the current ATR to the nearest centroid and picks the
factor for that regime: quiet markets get the widest band, volatile markets
the tightest.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from ..config_structured import VolatilityRegimeConfig, get_config
from ..data.loader import REQUIRED_OHLC, normalize_ohlcv_columns
from ..data.quality import require_strictly_increasing
from .clustering import kmeans_1d
from .signals import SignalEmitter, TrendSignal, signals_to_frame
from .tracker import advance_trailing_stop, valid_volatility
from .types import TrailingState
from .volatility import average_true_range

logger = logging.getLogger(__name__)

LOW_VOLATILITY = 0
MEDIUM_VOLATILITY = 1
HIGH_VOLATILITY = 2

MIN_TRAINING_VALUES = 3


def regime_seeds(values: np.ndarray) -> np.ndarray:
    """Minimum, upper-middle and maximum of the sorted values.

    The middle seed is ``sorted[n // 2]`` rather than an interpolated
    median, so an even-length window seeds on an observed value.
    """
    ordered = np.sort(np.asarray(values, dtype=np.float64))
    n = len(ordered)
    return ordered[[0, n // 2, n - 1]]


def regime_centroids(training: np.ndarray, max_iter: int) -> Optional[np.ndarray]:
    """Sorted low / medium / high volatility centroids, or None.

    Non-finite training values are ignored; fewer than three finite values
    yield None.
    """
    x = np.asarray(training, dtype=np.float64)
    x = x[np.isfinite(x)]
    if len(x) < MIN_TRAINING_VALUES:
        return None
    seeds = regime_seeds(x)
    centroids, _, _, _ = kmeans_1d(x, seeds, max_iter)
    return np.sort(centroids)


def classify_volatility(value: float, centroids: np.ndarray) -> int:
    """Index of the nearest centroid; equidistant values go to the lower one."""
    return int(np.argmin(np.abs(np.asarray(centroids) - value)))


@dataclass
class VolatilityRegimeResult:
    """Output of ``VolatilityRegimeSupertrend.run``.

    ``frame`` has ``trailing_stop``, ``trend``, ``factor`` and ``regime``
    columns; all NaN during warm-up.  ``centroids`` are the sorted
    volatility centroids of the last classified bar.
    """

    frame: pd.DataFrame
    signals: List[TrendSignal]
    centroids: Optional[np.ndarray]

    def signals_frame(self) -> pd.DataFrame:
        return signals_to_frame(self.signals)


class VolatilityRegimeSupertrend:
    """Single trailing stop whose factor is set by a k-means volatility regime.

    Parameters
    ----------
    config : VolatilityRegimeConfig, optional
        Defaults to the package configuration.
    **overrides
        Individual ``VolatilityRegimeConfig`` fields.
    """

    def __init__(self, config: Optional[VolatilityRegimeConfig] = None, **overrides):
        cfg = config if config is not None else get_config().volatility_regime
        if overrides:
            allowed = {f.name for f in fields(VolatilityRegimeConfig)}
            unknown = sorted(set(overrides) - allowed)
            if unknown:
                raise ValueError(f"Unknown VolatilityRegimeConfig fields: {unknown}")
            cfg = replace(cfg, **overrides)
        self.config = cfg

    @property
    def warmup(self) -> int:
        return self.config.atr_length + self.config.train_len

    def factor_for_regime(self, regime: int) -> float:
        cfg = self.config
        return {
            LOW_VOLATILITY: cfg.max_factor,
            MEDIUM_VOLATILITY: cfg.mid_factor,
            HIGH_VOLATILITY: cfg.min_factor,
        }[regime]

    def run(
        self,
        df: pd.DataFrame,
        volatility: Optional[Sequence[float]] = None,
    ) -> VolatilityRegimeResult:
        """Process a whole bar series.

        Raises
        ------
        ValueError
            On missing columns, non-increasing timestamps, or a volatility
            series of the wrong length.
        """
        frame = normalize_ohlcv_columns(df)
        missing = [c for c in REQUIRED_OHLC if c not in frame.columns]
        if missing:
            raise ValueError(f"Bar data is missing required columns: {missing}")
        require_strictly_increasing(frame.index)

        cfg = self.config
        high = frame["High"].to_numpy(dtype=np.float64)
        low = frame["Low"].to_numpy(dtype=np.float64)
        close = frame["Close"].to_numpy(dtype=np.float64)
        n = len(frame)
        if volatility is None:
            vol = average_true_range(high, low, close, length=cfg.atr_length)
        else:
            vol = np.asarray(volatility, dtype=np.float64)
            if vol.shape != (n,):
                raise ValueError(
                    f"volatility must have one value per bar ({n}), got shape {vol.shape}"
                )

        out = np.full((n, 4), np.nan)
        emitter = SignalEmitter()
        state: Optional[TrailingState] = None
        centroids: Optional[np.ndarray] = None
        n_classified = 0

        for i in range(n):
            if i >= self.warmup and valid_volatility(vol[i]) and np.isfinite(close[i]):
                fitted = regime_centroids(vol[i - cfg.train_len:i], cfg.max_iter)
                if fitted is not None:
                    centroids = fitted
                    regime = classify_volatility(vol[i], centroids)
                    factor = self.factor_for_regime(regime)
                    mid = (high[i] + low[i]) / 2.0
                    if state is None:
                        state = TrailingState.seed(mid)
                    else:
                        advance_trailing_stop(state, mid, close[i], close[i - 1], vol[i], factor)
                    out[i, 2] = factor
                    out[i, 3] = regime
                    n_classified += 1

            trend = None
            if state is not None:
                out[i, 0] = state.output
                out[i, 1] = state.trend
                trend = state.trend
            emitter.observe(i, frame.index[i], trend, close[i])

        logger.info(
            "Volatility-regime SuperTrend: %d bars, %d classified, %d signals",
            n, n_classified, len(emitter.signals),
        )
        return VolatilityRegimeResult(
            frame=pd.DataFrame(
                out, index=frame.index, columns=["trailing_stop", "trend", "factor", "regime"],
            ),
            signals=list(emitter.signals),
            centroids=centroids,
        )
