"""In-memory versioned resource store and the per-controller runtime view over it."""

from timesync.state.resource import Metadata, Resource
from timesync.state.runtime import ControllerRuntime, Input, InputKind, Output, OutputKind
from timesync.state.store import ResourceStore, WatchEvent

__all__ = [
    "Metadata",
    "Resource",
    "ResourceStore",
    "WatchEvent",
    "ControllerRuntime",
    "Input",
    "InputKind",
    "Output",
    "OutputKind",
]
