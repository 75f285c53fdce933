"""
Average true range, the volatility input of every trailing stop.

The engine accepts any caller-supplied volatility series; these functions
are the default estimator used when none is given.
"""
from __future__ import annotations

import numpy as np
import pandas as pd

from ..config_structured import VolatilityMethod


def true_range(high: np.ndarray, low: np.ndarray, close: np.ndarray) -> np.ndarray:
    """Max of the bar range and the gaps to the previous close.

    The first bar has no previous close, so its true range is ``high - low``.
    """
    high = np.asarray(high, dtype=np.float64)
    low = np.asarray(low, dtype=np.float64)
    close = np.asarray(close, dtype=np.float64)
    n = len(close)
    tr = np.full(n, np.nan)
    if n == 0:
        return tr
    prev_close = np.empty(n)
    prev_close[0] = np.nan
    prev_close[1:] = close[:-1]
    with np.errstate(invalid="ignore"):
        tr = np.maximum(
            high - low,
            np.maximum(np.abs(high - prev_close), np.abs(low - prev_close)),
        )
    tr[0] = high[0] - low[0]
    return tr


def rma(values: np.ndarray, length: int) -> np.ndarray:
    """Wilder's running moving average, alpha = 1 / length.

    Seeded with the simple mean of the first ``length`` finite values.
    Non-finite inputs after the seed yield NaN for that bar and leave the
    running value untouched.
    """
    values = pd.Series(np.asarray(values, dtype=np.float64))
    out = np.full(len(values), np.nan)
    finite = values[np.isfinite(values)]
    if len(finite) < length:
        return out
    # Replace the warm-up with its SMA so the EWM starts from the seed.
    seeded = finite.copy()
    seeded.iloc[: length - 1] = np.nan
    seeded.iloc[length - 1] = finite.iloc[:length].mean()
    smoothed = seeded.ewm(alpha=1.0 / length, adjust=False).mean()
    out[finite.index.to_numpy()] = smoothed.to_numpy()
    return out


def average_true_range(
    high: np.ndarray,
    low: np.ndarray,
    close: np.ndarray,
    length: int = 14,
    method: VolatilityMethod = VolatilityMethod.WILDER,
) -> np.ndarray:
    """ATR over ``length`` bars, NaN during warm-up.

    Parameters
    ----------
    high, low, close : np.ndarray
        Aligned price arrays.
    length : int
        Smoothing window.
    method : VolatilityMethod
        ``WILDER`` (RMA, the charting convention) or ``SMA`` (rolling mean).
    """
    if length < 1:
        raise ValueError(f"length must be >= 1, got {length}")
    tr = true_range(high, low, close)
    if VolatilityMethod(method) is VolatilityMethod.SMA:
        return pd.Series(tr).rolling(window=length).mean().to_numpy()
    return rma(tr, length)
