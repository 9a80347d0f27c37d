"""Events consumed by the sync controller's single wait point."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SyncEvent(str, Enum):
    """What woke the reconcile loop."""

    CANCEL = "cancel"
    INPUT_CHANGED = "input_changed"
    SYNCED = "synced"
    EPOCH_CHANGED = "epoch_changed"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class LoopEvent:
    """One wake-up of the reconcile loop.

    generation: worker generation for SYNCED / EPOCH_CHANGED, timer generation for TIMEOUT;
    events whose generation is no longer current are dropped by the controller.
    """

    kind: SyncEvent
    generation: Optional[int] = None

    @classmethod
    def cancel(cls) -> "LoopEvent":
        return cls(SyncEvent.CANCEL)

    @classmethod
    def input_changed(cls) -> "LoopEvent":
        return cls(SyncEvent.INPUT_CHANGED)

    @classmethod
    def synced(cls, generation: int) -> "LoopEvent":
        return cls(SyncEvent.SYNCED, generation)

    @classmethod
    def epoch_changed(cls, generation: int) -> "LoopEvent":
        return cls(SyncEvent.EPOCH_CHANGED, generation)

    @classmethod
    def timeout(cls, generation: int) -> "LoopEvent":
        return cls(SyncEvent.TIMEOUT, generation)
