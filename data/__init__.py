"""
Data subpackage: bar loading, column normalisation and quality checks.
"""
from .loader import frame_to_bars, load_ohlcv, load_ohlcv_csv, normalize_ohlcv_columns
from .quality import DataQualityReport, assess_bar_quality, require_strictly_increasing

__all__ = [
    "load_ohlcv",
    "load_ohlcv_csv",
    "normalize_ohlcv_columns",
    "frame_to_bars",
    "DataQualityReport",
    "assess_bar_quality",
    "require_strictly_increasing",
]
