"""Typed views over the resources the time sync controller reads and writes."""

from timesync.resources.machine_config import MachineConfig, TimeConfig
from timesync.resources.network import TimeServerStatus
from timesync.resources.time_status import TimeStatus

__all__ = ["MachineConfig", "TimeConfig", "TimeServerStatus", "TimeStatus"]
