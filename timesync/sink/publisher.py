"""StatusSink interface and StatusPublisher, which upserts runtime/TimeStatus through the controller runtime."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from timesync.core.logging_utils import log_time_status
from timesync.core.metrics import Metrics, get_metrics
from timesync.errors import StatusWriteError
from timesync.resources.time_status import TimeStatus
from timesync.state.resource import Resource
from timesync.state.runtime import ControllerRuntime

logger = logging.getLogger(__name__)


class StatusSink(ABC):
    """Abstract sink for the aggregated time status."""

    @abstractmethod
    def publish(self, status: TimeStatus) -> None:
        """Write the full status. Raises StatusWriteError on failure; callers must not retry."""
        ...


class StatusPublisher(StatusSink):
    """Writes TimeStatus as a whole (every key from STATUS_KEYS), never merged with the previous spec."""

    def __init__(self, runtime: ControllerRuntime, metrics: Optional[Metrics] = None):
        self._runtime = runtime
        self._metrics = metrics or get_metrics()

    def publish(self, status: TimeStatus) -> None:
        try:
            r: Resource = self._runtime.modify(TimeStatus.metadata(), lambda _spec: status.to_spec())
        except Exception as e:
            raise StatusWriteError(f"error updating objects: {e}") from e
        self._metrics.record_status_write(status.epoch)
        log_time_status(status.epoch, status.synced, status.sync_disabled, version=r.version)
