"""
Data quality checks for bar series.

``assess_bar_quality`` inspects a canonical OHLC(V) frame and reports
problems that would make trend output misleading: broken OHLC ranges,
duplicate or out-of-order timestamps, non-positive prices and extreme
single-bar moves.
"""
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from ..config import MAX_ABS_BAR_RETURN, REQUIRE_VOLUME
from .loader import REQUIRED_OHLC, normalize_ohlcv_columns


@dataclass
class DataQualityReport:
    """Structured result of bar quality checks with metrics and warning tags."""
    passed: bool
    metrics: Dict[str, float]
    warnings: List[str]

    def to_dict(self) -> Dict:
        """Serialize DataQualityReport to a dictionary."""
        return asdict(self)


def assess_bar_quality(
    df: pd.DataFrame,
    max_abs_bar_return: float = MAX_ABS_BAR_RETURN,
    require_volume: bool = REQUIRE_VOLUME,
    fail_on_error: bool = False,
) -> DataQualityReport:
    """Assess bar-series quality and optionally raise on failure.

    Parameters
    ----------
    df : pd.DataFrame
        Frame with Open/High/Low/Close (Volume optional).
    max_abs_bar_return : float
        Maximum allowed absolute close-to-close return.
    require_volume : bool
        When True, a missing Volume column or NaN volumes are a failure.
    fail_on_error : bool
        When True, raise ``ValueError`` if any check fails.

    Returns
    -------
    DataQualityReport
        Structured quality assessment result.

    Raises
    ------
    ValueError
        If ``fail_on_error=True`` and any quality check fails.
    """
    warnings: List[str] = []
    if df is None or len(df) == 0:
        report = DataQualityReport(passed=False, metrics={}, warnings=["empty_dataframe"])
        if fail_on_error:
            raise ValueError("Bar data quality check failed: empty_dataframe")
        return report

    frame = normalize_ohlcv_columns(df)
    missing_cols = [c for c in REQUIRED_OHLC if c not in frame.columns]
    if missing_cols:
        report = DataQualityReport(
            passed=False, metrics={}, warnings=[f"missing_columns:{','.join(missing_cols)}"],
        )
        if fail_on_error:
            raise ValueError(f"Bar data quality check failed: {report.warnings}")
        return report

    o = frame["Open"].astype(float).to_numpy()
    h = frame["High"].astype(float).to_numpy()
    l = frame["Low"].astype(float).to_numpy()
    c = frame["Close"].astype(float).to_numpy()

    with np.errstate(invalid="ignore"):
        bad_range = (h < np.maximum(o, c)) | (l > np.minimum(o, c)) | (h < l)
        non_positive = (np.minimum.reduce([o, h, l, c]) <= 0)
    nan_close = np.isnan(c)
    with np.errstate(divide="ignore", invalid="ignore"):
        ret = c[1:] / c[:-1] - 1.0
    ret = ret[np.isfinite(ret)]
    max_abs_ret = float(np.abs(ret).max()) if len(ret) > 0 else 0.0

    idx = pd.Index(frame.index)
    dup_idx = int(idx.duplicated().sum())
    non_monotonic = not idx.is_monotonic_increasing

    metrics = {
        "n_bars": float(len(frame)),
        "bad_range_bars": float(bad_range.sum()),
        "non_positive_bars": float(non_positive.sum()),
        "nan_close_bars": float(nan_close.sum()),
        "max_abs_bar_return": max_abs_ret,
        "duplicate_timestamps": float(dup_idx),
        "non_monotonic_index": float(non_monotonic),
    }

    if bad_range.any():
        warnings.append("ohlc_range_inconsistent")
    if non_positive.any():
        warnings.append("non_positive_prices")
    if nan_close.any():
        warnings.append("nan_close")
    if max_abs_ret > max_abs_bar_return:
        warnings.append(f"max_abs_return>{max_abs_bar_return:.2f}")
    if dup_idx > 0:
        warnings.append("duplicate_timestamps")
    if non_monotonic:
        warnings.append("non_monotonic_index")
    if require_volume:
        if "Volume" not in frame.columns:
            warnings.append("missing_volume")
        elif frame["Volume"].isna().any():
            warnings.append("nan_volume")

    passed = len(warnings) == 0
    if fail_on_error and not passed:
        raise ValueError(f"Bar data quality check failed: {warnings}")
    return DataQualityReport(passed=passed, metrics=metrics, warnings=warnings)


def require_strictly_increasing(index: pd.Index, what: Optional[str] = "bars") -> None:
    """Raise ``ValueError`` unless ``index`` is strictly increasing."""
    idx = pd.Index(index)
    if not (idx.is_monotonic_increasing and idx.is_unique):
        raise ValueError(f"{what} timestamps must be strictly increasing")
