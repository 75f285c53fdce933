"""Tests for structured logging and run metrics."""
from __future__ import annotations

import json
import logging

from supertrend_ai.utils.logging import RunMetrics, StructuredFormatter, get_logger


def _record(msg: str = "hello %s", args=("world",), **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="supertrend_ai.test", level=logging.WARNING, pathname=__file__,
        lineno=1, msg=msg, args=args, exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_json_line(self):
        payload = json.loads(StructuredFormatter().format(_record()))
        assert payload["level"] == "WARNING"
        assert payload["message"] == "hello world"
        assert payload["module"] == "test_logging"
        assert "timestamp" in payload
        assert "metrics" not in payload

    def test_metrics_are_nested(self):
        payload = json.loads(StructuredFormatter().format(_record(metrics={"n_bars": 3})))
        assert payload["metrics"] == {"n_bars": 3}


class TestGetLogger:
    def test_no_duplicate_handlers(self):
        name = "supertrend_ai.test_no_duplicates"
        first = get_logger(name, level="DEBUG")
        second = get_logger(name, level="WARNING")
        assert first is second
        assert len(second.handlers) == 1
        assert second.level == logging.WARNING
        assert isinstance(second.handlers[0].formatter, StructuredFormatter)

    def test_plain_format(self):
        logger = get_logger("supertrend_ai.test_plain", structured=False)
        assert not isinstance(logger.handlers[0].formatter, StructuredFormatter)


class TestRunMetrics:
    def test_emit_logs_payload(self, caplog):
        metrics = RunMetrics()
        with caplog.at_level(logging.INFO, logger="supertrend_ai.metrics"):
            payload = metrics.emit(
                mode="ai", n_bars=400, n_signals=12, n_clustered=391, n_skipped=0,
                target_factor=3.1234567891, performance_index=0.25,
            )
        assert payload["target_factor"] == 3.123457
        assert metrics.last == payload
        records = [r for r in caplog.records if r.getMessage() == "run_metrics"]
        assert len(records) == 1
        assert records[0].metrics["n_signals"] == 12

    def test_nan_becomes_null(self):
        payload = RunMetrics().emit(
            mode="ai", n_bars=5, n_signals=0,
            target_factor=float("nan"), performance_index=None,
        )
        assert payload["target_factor"] is None
        assert payload["performance_index"] is None
        json.dumps(payload)
