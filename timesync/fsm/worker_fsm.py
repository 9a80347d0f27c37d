"""Worker lifecycle FSM: IDLE -> STARTING -> RUNNING -> STOPPING -> STOPPED -> STARTING ...

Transition implementation (engine/worker.py):
- IDLE/STOPPED -> STARTING: WorkerSupervisor.start()
- STARTING -> RUNNING: worker task created
- STARTING -> STOPPED: worker factory raised
- RUNNING -> STOPPING: WorkerSupervisor.stop()
- STOPPING -> STOPPED: worker task cancelled and awaited
"""

import enum
import logging

from timesync.errors import WorkerLifecycleError

logger = logging.getLogger(__name__)


class WorkerState(str, enum.Enum):
    """Lifecycle of the (single) sync worker slot."""

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


# Valid transitions: from_state -> set of allowed to_states
_TRANSITIONS: dict[WorkerState, set[WorkerState]] = {
    WorkerState.IDLE: {WorkerState.STARTING},
    WorkerState.STARTING: {WorkerState.RUNNING, WorkerState.STOPPED},
    WorkerState.RUNNING: {WorkerState.STOPPING},
    WorkerState.STOPPING: {WorkerState.STOPPED},
    WorkerState.STOPPED: {WorkerState.STARTING},
}


class WorkerStateMachine:
    """Tracks the worker slot state. Invalid transitions raise WorkerLifecycleError."""

    def __init__(self):
        self._current = WorkerState.IDLE

    @property
    def current(self) -> WorkerState:
        return self._current

    def can_transition_to(self, to_state: WorkerState) -> bool:
        """Check if transition from current state to to_state is valid."""
        allowed = _TRANSITIONS.get(self._current, set())
        return to_state in allowed

    def transition(self, to_state: WorkerState) -> None:
        """Move to to_state. Raises WorkerLifecycleError if the table does not allow it."""
        if not self.can_transition_to(to_state):
            raise WorkerLifecycleError(
                f"invalid worker transition: {self._current.value} -> {to_state.value} "
                f"(allowed: {sorted(s.value for s in _TRANSITIONS.get(self._current, set()))})"
            )
        from_state = self._current
        self._current = to_state
        logger.debug("Worker state: %s -> %s", from_state.value, to_state.value)

    def is_active(self) -> bool:
        """True while a worker exists (starting, running or being stopped)."""
        return self._current in (WorkerState.STARTING, WorkerState.RUNNING, WorkerState.STOPPING)
