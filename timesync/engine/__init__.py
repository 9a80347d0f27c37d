"""Sync controller: reconcile loop, boot timeout timer and worker supervisor."""

from timesync.engine.controller import SyncController
from timesync.engine.state import SyncState
from timesync.engine.timer import BootTimeoutTimer
from timesync.engine.worker import WorkerSupervisor

__all__ = ["SyncController", "SyncState", "BootTimeoutTimer", "WorkerSupervisor"]
