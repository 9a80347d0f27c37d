"""Reconcile loop state. Owned by the controller's task; nothing else mutates it."""

from dataclasses import dataclass

from timesync.engine.timer import BootTimeoutTimer
from timesync.engine.worker import WorkerSupervisor
from timesync.resources.time_status import TimeStatus


@dataclass
class SyncState:
    """epoch: +1 per worker epoch change, never reset.
    synced: set by worker synced signal, boot deadline or disabled sync; reset on every worker start.
    Whenever synced is set the boot timer is disarmed.
    """

    boot_time: float
    timer: BootTimeoutTimer
    worker: WorkerSupervisor
    epoch: int = 0
    synced: bool = False
    sync_disabled: bool = False

    def status(self) -> TimeStatus:
        return TimeStatus(epoch=self.epoch, synced=self.synced, sync_disabled=self.sync_disabled)
