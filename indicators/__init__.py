"""
SuperTrend AI Indicators: the volatility estimator, the single-factor
SuperTrend and the adaptive variants behind one ``Indicator`` interface.
"""
from .indicators import (
    # Base
    Indicator,
    # Volatility
    ATR,
    # Trend
    SuperTrend, SuperTrendDirection,
    # Registry
    get_all_indicators, create_indicator,
)
from .supertrend_ai import (
    SuperTrendAI, SuperTrendAIDirection, SuperTrendAIAMA,
    SuperTrendAIPerformance, SuperTrendAIFactor,
    MLAdaptiveSuperTrend,
)

__all__ = [
    "Indicator",
    "ATR",
    "SuperTrend",
    "SuperTrendDirection",
    "SuperTrendAI",
    "SuperTrendAIDirection",
    "SuperTrendAIAMA",
    "SuperTrendAIPerformance",
    "SuperTrendAIFactor",
    "MLAdaptiveSuperTrend",
    "get_all_indicators",
    "create_indicator",
]
