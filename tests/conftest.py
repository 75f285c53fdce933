"""Shared test fixtures for the supertrend_ai test suite."""
from __future__ import annotations

import numpy as np
import pandas as pd
import pytest


def make_ohlcv(
    n: int = 400,
    seed: int = 42,
    drift: float = 0.0005,
    sigma: float = 0.015,
    start: str = "2022-01-03",
) -> pd.DataFrame:
    """Synthetic daily bars with valid OHLC relationships."""
    rng = np.random.default_rng(seed)
    dates = pd.bdate_range(start, periods=n)
    close = 100.0 * np.exp(np.cumsum(rng.normal(drift, sigma, n)))
    opn = close * (1 + rng.normal(0, 0.003, n))
    # Ensure High >= max(Open, Close) and Low <= min(Open, Close)
    high = np.maximum(close, opn) * (1 + rng.uniform(0.001, 0.015, n))
    low = np.minimum(close, opn) * (1 - rng.uniform(0.001, 0.015, n))
    vol = rng.integers(100_000, 10_000_000, n).astype(float)
    return pd.DataFrame(
        {"Open": opn, "High": high, "Low": low, "Close": close, "Volume": vol},
        index=dates,
    )


def make_linear_bars(n: int = 60, start_price: float = 100.0, step: float = 1.0) -> pd.DataFrame:
    """Close moves by ``step`` every bar; high/low straddle it by 0.5."""
    close = start_price + step * np.arange(n, dtype=float)
    dates = pd.bdate_range("2023-01-02", periods=n)
    return pd.DataFrame(
        {"Open": close, "High": close + 0.5, "Low": close - 0.5, "Close": close},
        index=dates,
    )


# ── Data fixtures ────────────────────────────────────────────────────


@pytest.fixture
def synthetic_bars() -> pd.DataFrame:
    """400 synthetic daily bars from a seeded random walk."""
    return make_ohlcv()


@pytest.fixture
def short_bars() -> pd.DataFrame:
    """120 synthetic bars for tests that replay bar by bar."""
    return make_ohlcv(n=120, seed=7)


@pytest.fixture
def flat_bars() -> pd.DataFrame:
    """H == L == O == C == 100 on every bar."""
    n = 80
    dates = pd.bdate_range("2023-01-02", periods=n)
    price = np.full(n, 100.0)
    return pd.DataFrame(
        {"Open": price, "High": price, "Low": price, "Close": price},
        index=dates,
    )


@pytest.fixture
def uptrend_bars() -> pd.DataFrame:
    """Close rises by exactly 1.0 per bar."""
    return make_linear_bars()


@pytest.fixture
def bars_csv(tmp_path, synthetic_bars):
    """Synthetic bars written to CSV with a ``Date`` column."""
    path = tmp_path / "bars.csv"
    synthetic_bars.to_csv(path, index_label="Date")
    return path


@pytest.fixture
def tmp_results_dir(tmp_path):
    """Temporary results directory."""
    d = tmp_path / "results"
    d.mkdir()
    return d
