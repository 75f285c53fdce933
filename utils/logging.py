"""
Structured logging for the SuperTrend AI package.

Provides:
    - StructuredFormatter: JSON formatter for machine-parseable log output.
    - get_logger: Factory for structured loggers.
    - RunMetrics: Emit a one-line summary of an engine run.
"""
from __future__ import annotations

import json
import logging
import math
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class StructuredFormatter(logging.Formatter):
    """JSON formatter for machine-parseable log output.

    Each log record is serialised as a single JSON line containing at minimum:
        timestamp, level, module, message.
    If the record carries a ``metrics`` attribute (set via ``extra={"metrics": {...}}``),
    those key-value pairs are included under the ``"metrics"`` key.
    """

    def format(self, record: logging.LogRecord) -> str:
        """format."""
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.module,
            "message": record.getMessage(),
        }
        if hasattr(record, "metrics"):
            log_entry["metrics"] = record.metrics
        if record.exc_info and record.exc_info[1] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def get_logger(name: str, level: str = "INFO", structured: bool = True) -> logging.Logger:
    """Get a logger with a stderr handler.

    Parameters
    ----------
    name : str
        Logger name.  Passing the package name (``"supertrend_ai"``)
        configures every module logger below it.
    level : str
        Minimum log level.  One of DEBUG, INFO, WARNING, ERROR, CRITICAL.
    structured : bool
        JSON lines when True, a plain text format otherwise.

    Returns
    -------
    logging.Logger
        Configured logger.  If the logger already has handlers (e.g. from a
        previous call), no duplicate handler is added.
    """
    logger = logging.getLogger(name)
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(numeric_level)

    # Avoid adding duplicate handlers on repeated calls
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(numeric_level)
        if structured:
            handler.setFormatter(StructuredFormatter())
        else:
            handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
        logger.addHandler(handler)

    return logger


def _round(value: Optional[float], digits: int) -> Optional[float]:
    if value is None or not math.isfinite(value):
        return None
    return round(float(value), digits)


class RunMetrics:
    """Emit the key numbers of a run as one structured log record.

    Usage::

        metrics = RunMetrics()
        metrics.emit(
            mode="ai",
            n_bars=5000,
            n_signals=42,
            n_clustered=5000,
            n_skipped=3,
            target_factor=3.25,
            performance_index=0.41,
        )
    """

    def __init__(self, logger_name: str = "supertrend_ai.metrics") -> None:
        """Initialize RunMetrics."""
        self.logger = logging.getLogger(logger_name)
        self.last: Dict[str, Any] = {}

    def emit(
        self,
        mode: str,
        n_bars: int,
        n_signals: int,
        n_clustered: int = 0,
        n_skipped: int = 0,
        target_factor: Optional[float] = None,
        performance_index: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Log a structured metrics payload for a finished run.

        Parameters
        ----------
        mode : str
            ``"ai"`` for the clustering engine, ``"regime"`` for the
            volatility-regime SuperTrend.
        n_bars : int
            Bars processed.
        n_signals : int
            Trend flips emitted.
        n_clustered, n_skipped : int
            Clustering passes that succeeded / were skipped.
        target_factor, performance_index : float, optional
            Values in effect on the final bar; NaN is reported as null.

        Returns
        -------
        dict
            The payload that was logged.
        """
        metrics: Dict[str, Any] = {
            "mode": mode,
            "n_bars": int(n_bars),
            "n_signals": int(n_signals),
            "n_clustered": int(n_clustered),
            "n_skipped": int(n_skipped),
            "target_factor": _round(target_factor, 6),
            "performance_index": _round(performance_index, 6),
        }
        self.logger.info("run_metrics", extra={"metrics": metrics})
        self.last = metrics
        return metrics
