"""FSM package: reconcile loop events and worker lifecycle states."""

from timesync.fsm.events import LoopEvent, SyncEvent
from timesync.fsm.worker_fsm import WorkerState, WorkerStateMachine

__all__ = ["LoopEvent", "SyncEvent", "WorkerState", "WorkerStateMachine"]
