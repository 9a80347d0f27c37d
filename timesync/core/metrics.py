"""Simple in-memory metrics for reconcile cycles, worker restarts and status writes."""

import logging
import threading
from typing import Optional

logger = logging.getLogger(__name__)


class Metrics:
    """In-memory counters; log on demand via log_snapshot()."""

    def __init__(self):
        self._lock = threading.Lock()
        self._cycles = 0
        self._skipped_cycles = 0
        self._worker_starts = 0
        self._worker_stops = 0
        self._status_writes = 0
        self._last_epoch: Optional[int] = None

    def inc_cycles(self) -> int:
        with self._lock:
            self._cycles += 1
            return self._cycles

    def inc_skipped_cycles(self) -> int:
        with self._lock:
            self._skipped_cycles += 1
            return self._skipped_cycles

    def inc_worker_starts(self) -> int:
        with self._lock:
            self._worker_starts += 1
            return self._worker_starts

    def inc_worker_stops(self) -> int:
        with self._lock:
            self._worker_stops += 1
            return self._worker_stops

    def record_status_write(self, epoch: int) -> None:
        with self._lock:
            self._status_writes += 1
            self._last_epoch = epoch

    @property
    def cycles(self) -> int:
        with self._lock:
            return self._cycles

    @property
    def skipped_cycles(self) -> int:
        with self._lock:
            return self._skipped_cycles

    @property
    def worker_starts(self) -> int:
        with self._lock:
            return self._worker_starts

    @property
    def worker_stops(self) -> int:
        with self._lock:
            return self._worker_stops

    @property
    def status_writes(self) -> int:
        with self._lock:
            return self._status_writes

    def log_snapshot(self) -> None:
        """Log current metrics snapshot."""
        with self._lock:
            parts = [
                f"cycles={self._cycles}",
                f"skipped_cycles={self._skipped_cycles}",
                f"worker_starts={self._worker_starts}",
                f"worker_stops={self._worker_stops}",
                f"status_writes={self._status_writes}",
            ]
            if self._last_epoch is not None:
                parts.append(f"epoch={self._last_epoch}")
        logger.info("metrics " + " ".join(parts))


_global_metrics: Optional[Metrics] = None


def get_metrics() -> Metrics:
    global _global_metrics
    if _global_metrics is None:
        _global_metrics = Metrics()
    return _global_metrics
