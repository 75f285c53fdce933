"""
Per-factor ratcheting trailing stops.

One ``FactorState`` per grid factor, held in a list indexed by grid
position.  All states advance together, once per bar, and never share
mutable data.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as np

from .factor_grid import FactorGrid
from .scoring import update_score
from .types import DOWN, UP, FactorState, TrailingState, is_missing

logger = logging.getLogger(__name__)


def valid_volatility(volatility: Optional[float]) -> bool:
    """Finite and non-negative."""
    return not is_missing(volatility) and float(volatility) >= 0.0


def advance_trailing_stop(
    state: TrailingState,
    mid: float,
    close: float,
    prev_close: float,
    volatility: float,
    factor: float,
) -> float:
    """Advance one trailing stop by one bar in place.

    The trend flag is evaluated against the bands *before* they move:
    a close above the upper band turns the trend up, a close below the
    lower band turns it down, anything else holds.  The bands then ratchet:
    the upper band may only tighten (``min``) while the previous close sat
    below it, otherwise it is recomputed from scratch; the lower band is
    the mirror image.

    Returns
    -------
    float
        The output (trailing stop) the state held before this bar, which
        the performance score compares against.
    """
    band = volatility * factor
    up = mid + band
    dn = mid - band
    prev_output = state.output

    if close > state.upper:
        state.trend = UP
    elif close < state.lower:
        state.trend = DOWN

    state.upper = min(up, state.upper) if prev_close < state.upper else up
    state.lower = max(dn, state.lower) if prev_close > state.lower else dn
    state.output = state.lower if state.trend == UP else state.upper
    return prev_output


class FactorTracker:
    """Owns the ``FactorState`` of every factor in a grid.

    States are created on the first bar with valid volatility and updated
    in place afterwards.  A bar with missing or negative volatility leaves
    every state untouched.

    Parameters
    ----------
    grid : FactorGrid
        Multipliers to track, one state each.
    alpha : float
        Smoothing constant of the performance score, ``2 / (perf_alpha + 1)``.
    """

    def __init__(self, grid: FactorGrid, alpha: float):
        if not 0 < alpha <= 1:
            raise ValueError(f"alpha must be in (0, 1], got {alpha}")
        self.grid = grid
        self.alpha = alpha
        self.states: Optional[List[FactorState]] = None

    @property
    def initialized(self) -> bool:
        return self.states is not None

    def update(
        self,
        high: float,
        low: float,
        close: float,
        prev_close: Optional[float],
        volatility: Optional[float],
    ) -> bool:
        """Advance every factor by one bar.

        Returns True when the states changed, False when the bar was held.
        """
        if not valid_volatility(volatility):
            return False
        mid = (high + low) / 2.0

        if self.states is None:
            self.states = []
            for factor in self.grid:
                state = FactorState.seed(mid)
                state.factor = factor
                self.states.append(state)
            return True

        if prev_close is None:
            # Only reachable if a caller resets prices without resetting states.
            return False

        vol = float(volatility)
        for state in self.states:
            prev_output = advance_trailing_stop(state, mid, close, prev_close, vol, state.factor)
            update_score(state, close, prev_close, prev_output, self.alpha)
        return True

    def scores(self) -> np.ndarray:
        """Current performance scores in grid order."""
        if self.states is None:
            return np.full(len(self.grid), np.nan)
        return np.array([s.score for s in self.states], dtype=np.float64)

    def outputs(self) -> np.ndarray:
        """Current trailing-stop outputs in grid order."""
        if self.states is None:
            return np.full(len(self.grid), np.nan)
        return np.array([s.output for s in self.states], dtype=np.float64)

    def trends(self) -> np.ndarray:
        """Current trend flags in grid order (1 up, 0 down)."""
        if self.states is None:
            return np.full(len(self.grid), np.nan)
        return np.array([s.trend for s in self.states], dtype=np.float64)


def supertrend(
    high: np.ndarray,
    low: np.ndarray,
    close: np.ndarray,
    volatility: np.ndarray,
    factor: float,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Single-factor trailing stop over whole arrays.

    Returns
    -------
    output, trend, upper, lower : np.ndarray
        NaN until the first bar with valid volatility; held through later
        bars whose volatility is missing.
    """
    high = np.asarray(high, dtype=np.float64)
    low = np.asarray(low, dtype=np.float64)
    close = np.asarray(close, dtype=np.float64)
    volatility = np.asarray(volatility, dtype=np.float64)
    n = len(close)
    output = np.full(n, np.nan)
    trend = np.full(n, np.nan)
    upper = np.full(n, np.nan)
    lower = np.full(n, np.nan)

    state: Optional[TrailingState] = None
    for i in range(n):
        if valid_volatility(volatility[i]):
            mid = (high[i] + low[i]) / 2.0
            if state is None:
                state = TrailingState.seed(mid)
            else:
                advance_trailing_stop(state, mid, close[i], close[i - 1], volatility[i], factor)
        if state is not None:
            output[i] = state.output
            trend[i] = state.trend
            upper[i] = state.upper
            lower[i] = state.lower
    return output, trend, upper, lower
