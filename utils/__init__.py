"""Shared utilities."""
from .logging import RunMetrics, StructuredFormatter, get_logger

__all__ = ["RunMetrics", "StructuredFormatter", "get_logger"]
