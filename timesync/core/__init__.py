"""Structured logging helpers and in-memory metrics."""

from timesync.core.metrics import Metrics, get_metrics

__all__ = ["Metrics", "get_metrics"]
