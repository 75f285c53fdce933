"""
Adaptive SuperTrend indicators.

Thin ``Indicator`` wrappers over the clustering engine and the
volatility-regime SuperTrend, one output series each, so that adaptive
columns can be requested by name alongside the plain indicators.
"""

import pandas as pd

from ..config import (
    ATR_LENGTH, MIN_FACTOR, MAX_FACTOR, FACTOR_STEP, PERF_ALPHA,
    FROM_CLUSTER, MAX_ITER, MAX_DATA, REGIME_ATR_LENGTH, REGIME_TRAIN_LEN,
)
from ..config_structured import SupertrendAIConfig, VolatilityRegimeConfig
from ..trend.engine import SupertrendAIEngine
from ..trend.volatility_regime import VolatilityRegimeSupertrend
from .indicators import Indicator


class SuperTrendAI(Indicator):
    """
    Adaptive SuperTrend trailing stop.
    Factor chosen each bar from the best-performing cluster of a factor grid.
    """

    _column = "trailing_stop"
    _prefix = "SuperTrendAI"

    def __init__(
        self,
        atr_length: int = ATR_LENGTH,
        min_factor: float = MIN_FACTOR,
        max_factor: float = MAX_FACTOR,
        factor_step: float = FACTOR_STEP,
        perf_alpha: float = PERF_ALPHA,
        from_cluster: str = FROM_CLUSTER,
        max_iter: int = MAX_ITER,
        max_data: int = MAX_DATA,
    ):
        """Initialize SuperTrendAI."""
        self.config = SupertrendAIConfig(
            atr_length=atr_length,
            min_factor=min_factor,
            max_factor=max_factor,
            factor_step=factor_step,
            perf_alpha=perf_alpha,
            from_cluster=from_cluster,
            max_iter=max_iter,
            max_data=max_data,
        )

    @property
    def name(self) -> str:
        """Return the indicator's output column name."""
        cfg = self.config
        return f"{self._prefix}_{cfg.atr_length}_{cfg.from_cluster.value}"

    def calculate(self, df: pd.DataFrame) -> pd.Series:
        """Compute indicator values from the provided OHLCV dataframe."""
        result = SupertrendAIEngine(self.config).run(df)
        return result.frame[self._column].rename(self.name)


class SuperTrendAIDirection(SuperTrendAI):
    """
    Adaptive SuperTrend trend flag.
    1 = uptrend, 0 = downtrend, NaN before the first clustering pass.
    """

    _column = "trend"
    _prefix = "SuperTrendAIDir"


class SuperTrendAIAMA(SuperTrendAI):
    """
    Adaptive moving average of the trailing stop.
    Step size per bar is the performance index, so the line hugs the stop
    while the selected cluster performs well and flattens when it does not.
    """

    _column = "ama"
    _prefix = "SuperTrendAIAMA"


class SuperTrendAIPerformance(SuperTrendAI):
    """Performance index of the selected cluster, in [0, 1]."""

    _column = "performance_index"
    _prefix = "SuperTrendAIPerf"


class SuperTrendAIFactor(SuperTrendAI):
    """Target factor in effect on each bar."""

    _column = "target_factor"
    _prefix = "SuperTrendAIFactor"


class MLAdaptiveSuperTrend(Indicator):
    """
    SuperTrend with a volatility-regime factor.
    Low volatility uses max_factor, medium mid_factor, high min_factor.
    NaN for the first atr_length + train_len bars.
    """

    def __init__(
        self,
        atr_length: int = REGIME_ATR_LENGTH,
        min_factor: float = 1.0,
        mid_factor: float = 2.0,
        max_factor: float = 3.0,
        train_len: int = REGIME_TRAIN_LEN,
    ):
        """Initialize MLAdaptiveSuperTrend."""
        self.config = VolatilityRegimeConfig(
            atr_length=atr_length,
            min_factor=min_factor,
            mid_factor=mid_factor,
            max_factor=max_factor,
            train_len=train_len,
        )

    @property
    def name(self) -> str:
        """Return the indicator's output column name."""
        return f"MLAdaptiveST_{self.config.atr_length}_{self.config.train_len}"

    def calculate(self, df: pd.DataFrame) -> pd.Series:
        """Compute indicator values from the provided OHLCV dataframe."""
        result = VolatilityRegimeSupertrend(self.config).run(df)
        return result.frame["trailing_stop"].rename(self.name)
