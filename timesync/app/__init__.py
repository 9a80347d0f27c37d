"""Process entry: TimeSyncAgent wires the store, the sync controller and the status server."""

from timesync.app.agent import TimeSyncAgent, run_agent

__all__ = ["TimeSyncAgent", "run_agent"]
