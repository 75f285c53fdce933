"""
Tests for bar-series quality checks.

Covers:
    - assess_bar_quality() on clean and corrupted frames
    - fail_on_error behaviour
    - require_strictly_increasing()
"""
from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from supertrend_ai.data.quality import assess_bar_quality, require_strictly_increasing


# ── Helpers ───────────────────────────────────────────────────────────


def _inject(df: pd.DataFrame, position: int, **values) -> pd.DataFrame:
    """Overwrite columns at one integer position."""
    df = df.copy()
    for col, value in values.items():
        df.iloc[position, df.columns.get_loc(col)] = value
    return df


class TestAssessBarQuality:
    def test_clean_data_passes(self, synthetic_bars):
        report = assess_bar_quality(synthetic_bars)
        assert report.passed
        assert report.warnings == []
        assert report.metrics["n_bars"] == 400.0
        assert report.to_dict()["passed"] is True

    def test_lowercase_columns(self, synthetic_bars):
        report = assess_bar_quality(synthetic_bars.rename(columns=str.lower))
        assert report.passed

    def test_high_below_close(self, synthetic_bars):
        close = synthetic_bars["Close"].iloc[10]
        report = assess_bar_quality(_inject(synthetic_bars, 10, High=close - 1.0))
        assert not report.passed
        assert "ohlc_range_inconsistent" in report.warnings
        assert report.metrics["bad_range_bars"] >= 1.0

    def test_non_positive_prices(self, synthetic_bars):
        report = assess_bar_quality(_inject(synthetic_bars, 5, Low=0.0))
        assert "non_positive_prices" in report.warnings

    def test_nan_close(self, synthetic_bars):
        report = assess_bar_quality(_inject(synthetic_bars, 20, Close=np.nan))
        assert "nan_close" in report.warnings
        assert report.metrics["nan_close_bars"] == 1.0

    def test_extreme_return(self, synthetic_bars):
        df = synthetic_bars.copy()
        df.iloc[100:, :4] *= 2.0
        report = assess_bar_quality(df)
        assert any(w.startswith("max_abs_return>") for w in report.warnings)
        assert report.metrics["max_abs_bar_return"] > 0.5

    def test_duplicate_and_unsorted_index(self, synthetic_bars):
        df = pd.concat([synthetic_bars.iloc[:50], synthetic_bars.iloc[40:60]])
        report = assess_bar_quality(df)
        assert "duplicate_timestamps" in report.warnings
        assert "non_monotonic_index" in report.warnings
        assert report.metrics["duplicate_timestamps"] == 10.0

    def test_volume_requirement(self, flat_bars):
        assert assess_bar_quality(flat_bars).passed
        report = assess_bar_quality(flat_bars, require_volume=True)
        assert report.warnings == ["missing_volume"]

    def test_missing_columns(self, synthetic_bars):
        report = assess_bar_quality(synthetic_bars.drop(columns=["Low"]))
        assert not report.passed
        assert report.warnings == ["missing_columns:Low"]

    def test_empty(self):
        report = assess_bar_quality(pd.DataFrame())
        assert report.warnings == ["empty_dataframe"]

    def test_fail_on_error(self, synthetic_bars):
        bad = _inject(synthetic_bars, 5, Low=-1.0)
        with pytest.raises(ValueError, match="quality check failed"):
            assess_bar_quality(bad, fail_on_error=True)
        assess_bar_quality(synthetic_bars, fail_on_error=True)


class TestStrictlyIncreasing:
    def test_accepts_sorted_unique(self, synthetic_bars):
        require_strictly_increasing(synthetic_bars.index)

    def test_rejects_duplicates(self):
        with pytest.raises(ValueError, match="strictly increasing"):
            require_strictly_increasing(pd.Index([1, 2, 2, 3]))

    def test_rejects_unsorted(self):
        with pytest.raises(ValueError, match="signal timestamps"):
            require_strictly_increasing(pd.Index([3, 1, 2]), what="signal")
