"""
Technical Indicator Library

Volatility and trailing-stop indicators sharing one interface so that they
can be computed by name over any OHLC dataframe.
"""

import pandas as pd
from abc import ABC, abstractmethod

from ..config_structured import VolatilityMethod
from ..trend.tracker import supertrend
from ..trend.volatility import average_true_range


class Indicator(ABC):
    """Base class for all indicators."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the indicator's output column name."""
        pass

    @abstractmethod
    def calculate(self, df: pd.DataFrame) -> pd.Series:
        """Calculate indicator values. Returns a Series."""
        pass


# =============================================================================
# VOLATILITY INDICATORS
# =============================================================================

class ATR(Indicator):
    """Average True Range - measures volatility.

    Wilder smoothing by default (seeded with the simple mean of the first
    ``period`` true ranges); ``method="sma"`` gives a plain rolling mean.
    """

    def __init__(self, period: int = 14, method: str = "wilder"):
        """Initialize ATR."""
        if period < 1:
            raise ValueError(f"period must be >= 1, got {period}")
        self.period = period
        self.method = VolatilityMethod(method)

    @property
    def name(self) -> str:
        """Return the indicator's output column name."""
        return f"ATR_{self.period}"

    def calculate(self, df: pd.DataFrame) -> pd.Series:
        """Compute indicator values from the provided OHLCV dataframe."""
        atr = average_true_range(
            df['High'].to_numpy(dtype=float),
            df['Low'].to_numpy(dtype=float),
            df['Close'].to_numpy(dtype=float),
            length=self.period,
            method=self.method,
        )
        return pd.Series(atr, index=df.index, name=self.name)


# =============================================================================
# TREND INDICATORS
# =============================================================================

class SuperTrend(Indicator):
    """
    Single-factor SuperTrend trailing stop.
    Sits below price in an uptrend and above it in a downtrend; the bands
    only tighten while price stays on the trend side.
    """

    def __init__(self, period: int = 10, multiplier: float = 3.0):
        """Initialize SuperTrend."""
        if multiplier <= 0:
            raise ValueError(f"multiplier must be > 0, got {multiplier}")
        self.period = period
        self.multiplier = multiplier
        self._atr = ATR(period)

    @property
    def name(self) -> str:
        """Return the indicator's output column name."""
        return f"SuperTrend_{self.period}_{self.multiplier}"

    def _compute(self, df: pd.DataFrame):
        atr = self._atr.calculate(df).to_numpy()
        return supertrend(
            df['High'].to_numpy(dtype=float),
            df['Low'].to_numpy(dtype=float),
            df['Close'].to_numpy(dtype=float),
            atr,
            self.multiplier,
        )

    def calculate(self, df: pd.DataFrame) -> pd.Series:
        """Compute indicator values from the provided OHLCV dataframe."""
        output, _, _, _ = self._compute(df)
        return pd.Series(output, index=df.index, name=self.name)


class SuperTrendDirection(SuperTrend):
    """
    SuperTrend trend flag.
    1 = uptrend, 0 = downtrend, NaN during ATR warm-up.
    """

    @property
    def name(self) -> str:
        """Return the indicator's output column name."""
        return f"SuperTrendDir_{self.period}_{self.multiplier}"

    def calculate(self, df: pd.DataFrame) -> pd.Series:
        """Compute indicator values from the provided OHLCV dataframe."""
        _, trend, _, _ = self._compute(df)
        return pd.Series(trend, index=df.index, name=self.name)


# =============================================================================
# INDICATOR REGISTRY
# =============================================================================

def get_all_indicators() -> dict:
    """Return dictionary of all available indicators."""
    # supertrend_ai subclasses Indicator, so it cannot be imported at module level.
    from .supertrend_ai import (
        MLAdaptiveSuperTrend,
        SuperTrendAI,
        SuperTrendAIAMA,
        SuperTrendAIDirection,
        SuperTrendAIFactor,
        SuperTrendAIPerformance,
    )

    return {
        # Volatility
        'ATR': ATR,

        # Trend
        'SuperTrend': SuperTrend,
        'SuperTrendDir': SuperTrendDirection,

        # Adaptive
        'SuperTrendAI': SuperTrendAI,
        'SuperTrendAIDir': SuperTrendAIDirection,
        'SuperTrendAIAMA': SuperTrendAIAMA,
        'SuperTrendAIPerf': SuperTrendAIPerformance,
        'SuperTrendAIFactor': SuperTrendAIFactor,
        'MLAdaptiveST': MLAdaptiveSuperTrend,
    }


def create_indicator(name: str, **kwargs) -> Indicator:
    """Create an indicator by name with given parameters."""
    indicators = get_all_indicators()
    if name not in indicators:
        raise ValueError(f"Unknown indicator: {name}")
    return indicators[name](**kwargs)
