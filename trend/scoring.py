"""
Performance attribution for trailing stops.

A factor's score is an exponentially smoothed product of the bar's price
change and the side of the previous trailing stop the previous close sat
on.  Stops that were below price before a rise (or above price before a
fall) earn positive contributions.
"""
from __future__ import annotations

import math
from typing import Optional

from .types import FactorState, is_missing


def sign(x: float) -> float:
    """-1.0, 0.0 or 1.0."""
    if x > 0:
        return 1.0
    if x < 0:
        return -1.0
    return 0.0


def update_score(
    state: FactorState,
    close: float,
    prev_close: float,
    prev_output: float,
    alpha: float,
) -> float:
    """Apply one exponential-smoothing step to ``state.score`` in place."""
    agreement = sign(prev_close - prev_output)
    state.score += alpha * ((close - prev_close) * agreement - state.score)
    return state.score


class ExponentialSmoother:
    """EMA seeded with its first finite observation.

    Missing observations leave the value unchanged.
    """

    def __init__(self, alpha: float):
        if not 0 < alpha <= 1:
            raise ValueError(f"alpha must be in (0, 1], got {alpha}")
        self.alpha = alpha
        self.value = float("nan")

    def update(self, x: Optional[float]) -> float:
        if is_missing(x):
            return self.value
        if math.isnan(self.value):
            self.value = float(x)
        else:
            self.value += self.alpha * (float(x) - self.value)
        return self.value

    def reset(self) -> None:
        self.value = float("nan")
