"""
Core record types shared by the trend engine components.

``Bar`` is immutable input.  ``FactorState`` and ``AdaptiveState`` are
mutable, owned by exactly one component each, and updated in place once
per bar.
"""
from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from typing import Any, Optional

import pandas as pd

UP = 1
DOWN = 0


@dataclass(frozen=True)
class Bar:
    """One OHLCV observation."""

    timestamp: Any
    open: float
    high: float
    low: float
    close: float
    volume: Optional[float] = None

    @property
    def mid(self) -> float:
        """Midpoint of the bar's range (hl2)."""
        return (self.high + self.low) / 2.0


@dataclass
class TrailingState:
    """Ratcheting band pair and the trend flag it implies.

    ``output`` is the band on the side the trend currently favours:
    the lower band while the trend is up, the upper band otherwise.
    """

    upper: float
    lower: float
    output: float
    trend: int = DOWN

    @classmethod
    def seed(cls, mid: float) -> "TrailingState":
        """First-bar state: both bands at the midpoint, trend down."""
        return cls(upper=mid, lower=mid, output=mid, trend=DOWN)


@dataclass
class FactorState(TrailingState):
    """Trailing stop for one grid factor plus its running performance score."""

    factor: float = float("nan")
    score: float = 0.0


@dataclass
class AdaptiveState(TrailingState):
    """Trailing stop driven by the synthesised target factor, with AMA overlay."""

    ama: float = float("nan")


@dataclass(frozen=True)
class AdaptiveOutput:
    """Externally visible result of one bar.

    All fields are NaN (``trend`` is ``None``) until the adaptive trailing
    stop has started, i.e. until the first successful clustering pass on a
    bar with valid volatility.
    """

    timestamp: Any
    trailing_stop: float
    trend: Optional[int]
    ama: float
    performance_index: float
    target_factor: float
    upper: float = float("nan")
    lower: float = float("nan")

    @property
    def is_valid(self) -> bool:
        """True once the adaptive trailing stop produces values."""
        return self.trend is not None and not math.isnan(self.trailing_stop)


def is_missing(value: Optional[float]) -> bool:
    """None / NaN / inf all count as missing input."""
    if value is None:
        return True
    try:
        return not math.isfinite(float(value))
    except (TypeError, ValueError):
        return True


def to_timestamp(value: Any) -> Any:
    """Normalise timestamps so that ordering comparisons are well defined."""
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        return value
    return pd.Timestamp(value)
