"""Time sync status reconciler: watches time server list and machine config, supervises the NTP worker, publishes TimeStatus."""

__version__ = "0.1.0"
