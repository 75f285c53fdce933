"""Tests for bar loading, column normalisation and Bar conversion."""
from __future__ import annotations

import math

import numpy as np
import pandas as pd
import pytest

from supertrend_ai.data.loader import (
    frame_to_bars,
    load_ohlcv,
    load_ohlcv_csv,
    normalize_ohlcv_columns,
)


class TestNormalizeColumns:
    def test_common_spellings(self):
        df = pd.DataFrame(columns=["open", "HIGH", "3. low", "Adj Close", "volume", "symbol"])
        out = normalize_ohlcv_columns(df)
        assert list(out.columns) == ["Open", "High", "Low", "Close", "Volume", "symbol"]

    def test_first_match_wins(self):
        df = pd.DataFrame(columns=["Close", "adj_close"])
        out = normalize_ohlcv_columns(df)
        assert list(out.columns) == ["Close", "adj_close"]

    def test_lookalike_is_not_renamed(self):
        df = pd.DataFrame(columns=["following", "Close"])
        assert list(normalize_ohlcv_columns(df).columns) == ["following", "Close"]


class TestLoadCsv:
    def test_round_trip(self, bars_csv, synthetic_bars):
        loaded = load_ohlcv(bars_csv)
        assert isinstance(loaded.index, pd.DatetimeIndex)
        assert loaded.index.name == "timestamp"
        assert list(loaded.columns) == ["Open", "High", "Low", "Close", "Volume"]
        np.testing.assert_allclose(loaded["Close"].to_numpy(), synthetic_bars["Close"].to_numpy())

    def test_sorts_dedupes_and_drops_bad_rows(self, tmp_path):
        path = tmp_path / "messy.csv"
        path.write_text(
            "date,open,high,low,close\n"
            "2024-01-03,10,11,9,10.5\n"
            "2024-01-02,9,10,8,9.5\n"
            "2024-01-03,10,12,9,11.0\n"
            "not-a-date,1,1,1,1\n"
            "2024-01-04,11,12,10,\n"
        )
        loaded = load_ohlcv_csv(path)
        assert list(loaded.index) == [pd.Timestamp("2024-01-02"), pd.Timestamp("2024-01-03")]
        # Duplicate timestamps keep the last row.
        assert loaded.loc[pd.Timestamp("2024-01-03"), "Close"] == 11.0
        assert "Volume" not in loaded.columns

    def test_missing_column(self, tmp_path):
        path = tmp_path / "no_low.csv"
        path.write_text("Date,Open,High,Close\n2024-01-02,1,2,1.5\n")
        with pytest.raises(ValueError, match="missing required columns"):
            load_ohlcv(path)

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "bars.json"
        path.write_text("{}")
        with pytest.raises(ValueError, match="Unsupported"):
            load_ohlcv(path)


class TestFrameToBars:
    def test_bars_carry_values(self, short_bars):
        bars = frame_to_bars(short_bars)
        assert len(bars) == len(short_bars)
        first = bars[0]
        assert first.timestamp == short_bars.index[0]
        assert first.close == short_bars["Close"].iloc[0]
        assert first.volume == short_bars["Volume"].iloc[0]

    def test_volume_optional(self, flat_bars):
        bars = frame_to_bars(flat_bars)
        assert bars[0].volume is None
        assert bars[-1].high == 100.0

    def test_nan_prices_survive(self, short_bars):
        df = short_bars.copy()
        df.iloc[3, df.columns.get_loc("High")] = np.nan
        assert math.isnan(frame_to_bars(df)[3].high)
