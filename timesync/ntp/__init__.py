"""Time sync worker: TimeSyncer contract and the ntplib-based NTPSyncer."""

from timesync.ntp.syncer import NTPSyncer, SyncerFactory, TimeSyncer, ntp_syncer_factory

__all__ = ["NTPSyncer", "SyncerFactory", "TimeSyncer", "ntp_syncer_factory"]
