"""Exception types shared by the store, the controller and the worker supervisor."""


class TimeSyncError(Exception):
    """Base class for timesync errors."""


class StoreError(TimeSyncError):
    """Resource store access failed."""


class NotFoundError(StoreError):
    """Resource does not exist (yet). Recoverable: callers skip or fall back to defaults."""

    def __init__(self, namespace: str, type_: str, id_: str):
        super().__init__(f"resource {namespace}/{type_}/{id_} not found")
        self.namespace = namespace
        self.type = type_
        self.id = id_


class ConflictError(StoreError):
    """Write rejected: version mismatch or output owned by another controller."""


class StatusWriteError(TimeSyncError):
    """Publishing TimeStatus failed. Fatal to the reconcile loop."""


class WorkerLifecycleError(TimeSyncError):
    """Worker start/stop requested in a state that does not allow it (programming error)."""


class ConfigError(TimeSyncError):
    """Invalid agent configuration value."""


def is_not_found(err: BaseException) -> bool:
    """True if err means the resource does not exist yet."""
    return isinstance(err, NotFoundError)


__all__ = [
    "TimeSyncError",
    "StoreError",
    "NotFoundError",
    "ConflictError",
    "StatusWriteError",
    "WorkerLifecycleError",
    "ConfigError",
    "is_not_found",
]
