"""
Bar-series loading.

Reads OHLCV data from CSV or parquet into the canonical frame used across
the package: ``Open/High/Low/Close[/Volume]`` columns over a sorted,
duplicate-free index.
"""
import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np
import pandas as pd

from ..trend.types import Bar

logger = logging.getLogger(__name__)

REQUIRED_OHLC = ["Open", "High", "Low", "Close"]
OPTIONAL_COLUMNS = ["Volume"]
DATE_COLUMNS = ["Date", "date", "Datetime", "datetime", "Timestamp", "timestamp", "time", "Time"]

# Anchored patterns so that e.g. "following" is never mistaken for "low".
_OHLCV_PATTERNS = {
    "Open": [
        re.compile(r"^(1\.\s*)?open$", re.I),
        re.compile(r"^adj[\._\s]?open$", re.I),
    ],
    "High": [
        re.compile(r"^(2\.\s*)?high$", re.I),
        re.compile(r"^adj[\._\s]?high$", re.I),
    ],
    "Low": [
        re.compile(r"^(3\.\s*)?low$", re.I),
        re.compile(r"^adj[\._\s]?low$", re.I),
    ],
    "Close": [
        re.compile(r"^(4\.\s*)?close$", re.I),
        re.compile(r"^adj[\._\s]?close$", re.I),
    ],
    "Volume": [
        re.compile(r"^(5\.\s*|6\.\s*)?volume$", re.I),
    ],
}

_OHLCV_LIKE = re.compile(r"(open|high|low|close|volume)", re.I)


def normalize_ohlcv_columns(df: pd.DataFrame) -> pd.DataFrame:
    """Rename OHLCV-like columns to the canonical capitalised names.

    The first column matching each target wins; later matches are left
    alone and logged.
    """
    column_map: Dict[str, str] = {}
    used: set = set()
    for col in df.columns:
        col_stripped = str(col).strip()
        target = None
        for ohlcv_target, patterns in _OHLCV_PATTERNS.items():
            if any(p.match(col_stripped) for p in patterns):
                target = ohlcv_target
                break

        if target and target not in used:
            column_map[col] = target
            used.add(target)
        elif target is None and _OHLCV_LIKE.search(col_stripped):
            logger.warning(
                "Column %r looks OHLCV-like but did not match any known pattern, skipping",
                col_stripped,
            )
        elif target is not None:
            logger.warning("Duplicate %s column %r ignored", target, col_stripped)
    return df.rename(columns=column_map)


def _to_bar_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Canonical columns, sorted unique index, rows with a close only.

    The sort is stable so that of two rows with the same timestamp the one
    appearing later in the file is kept.
    """
    out = normalize_ohlcv_columns(df)
    missing = [c for c in REQUIRED_OHLC if c not in out.columns]
    if missing:
        raise ValueError(f"Bar data is missing required columns: {missing}")
    keep = REQUIRED_OHLC + [c for c in OPTIONAL_COLUMNS if c in out.columns]
    out = out[keep].apply(pd.to_numeric, errors="coerce")
    out = out.sort_index(kind="mergesort")
    dup = out.index.duplicated(keep="last")
    if dup.any():
        logger.warning("Dropping %d duplicate timestamps", int(dup.sum()))
        out = out[~dup]
    return out.dropna(subset=["Close"])


def load_ohlcv_csv(path: Union[str, Path]) -> pd.DataFrame:
    """Read a CSV of bars.

    The index comes from the first recognised date column (or the first
    column when none is recognised).  Rows whose date cannot be parsed are
    dropped.
    """
    path = Path(path)
    raw = pd.read_csv(path)
    if len(raw.columns) == 0:
        raise ValueError(f"{path} has no columns")
    date_col = next((c for c in DATE_COLUMNS if c in raw.columns), raw.columns[0])
    raw[date_col] = pd.to_datetime(raw[date_col], errors="coerce")
    bad = raw[date_col].isna()
    if bad.any():
        logger.warning("%s: dropping %d rows with unparsable dates", path.name, int(bad.sum()))
        raw = raw[~bad]
    raw.index = pd.DatetimeIndex(raw.pop(date_col))
    raw.index.name = "timestamp"
    return _to_bar_frame(raw)


def load_ohlcv(path: Union[str, Path]) -> pd.DataFrame:
    """Load bars from ``.csv`` or ``.parquet`` based on the file suffix."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return load_ohlcv_csv(path)
    if suffix in (".parquet", ".pq"):
        df = pd.read_parquet(path)
        if not isinstance(df.index, pd.DatetimeIndex):
            date_col = next((c for c in DATE_COLUMNS if c in df.columns), None)
            if date_col is not None:
                df.index = pd.DatetimeIndex(pd.to_datetime(df.pop(date_col)))
        return _to_bar_frame(df)
    raise ValueError(f"Unsupported bar file type {suffix!r} for {path}")


def frame_to_bars(df: pd.DataFrame) -> List[Bar]:
    """Convert a canonical frame to immutable ``Bar`` records."""
    frame = normalize_ohlcv_columns(df)
    volume: Optional[np.ndarray] = (
        frame["Volume"].to_numpy(dtype=float) if "Volume" in frame.columns else None
    )
    bars = []
    for i, (ts, row) in enumerate(zip(frame.index, frame[REQUIRED_OHLC].itertuples(index=False))):
        bars.append(Bar(
            timestamp=ts,
            open=float(row[0]),
            high=float(row[1]),
            low=float(row[2]),
            close=float(row[3]),
            volume=float(volume[i]) if volume is not None else None,
        ))
    return bars
