"""Direction-flip events of a trailing stop, for buy/sell markers."""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

import pandas as pd

from .types import UP

BUY = "buy"
SELL = "sell"


@dataclass(frozen=True)
class TrendSignal:
    """One trend flip.

    ``score`` is ``int(performance_index * 10)``, the integer shown next to
    the marker; 0 when no performance index is available.
    """

    timestamp: Any
    index: int
    direction: str
    price: float
    score: int

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        if isinstance(self.timestamp, pd.Timestamp):
            out["timestamp"] = self.timestamp.isoformat()
        return out


def performance_score(performance_index: float) -> int:
    """Truncate ``performance_index * 10`` toward zero; NaN maps to 0."""
    if performance_index is None or not math.isfinite(performance_index):
        return 0
    return int(performance_index * 10)


class SignalEmitter:
    """Watches a trend flag bar by bar and records each flip.

    A flip is only reported between two consecutive bars that both carry
    a trend; bars without one break the chain.
    """

    def __init__(self):
        self.signals: List[TrendSignal] = []
        self._prev_trend: Optional[int] = None

    def reset(self) -> None:
        self.signals = []
        self._prev_trend = None

    def observe(
        self,
        index: int,
        timestamp: Any,
        trend: Optional[int],
        price: float,
        performance_index: float = float("nan"),
    ) -> Optional[TrendSignal]:
        signal = None
        if trend is not None and self._prev_trend is not None and trend != self._prev_trend:
            signal = TrendSignal(
                timestamp=timestamp,
                index=index,
                direction=BUY if trend == UP else SELL,
                price=float(price),
                score=performance_score(performance_index),
            )
            self.signals.append(signal)
        self._prev_trend = trend
        return signal


def signals_to_frame(signals: List[TrendSignal]) -> pd.DataFrame:
    """Tabular view of signals, one row per flip."""
    columns = ["timestamp", "index", "direction", "price", "score"]
    if not signals:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame([asdict(s) for s in signals], columns=columns)

