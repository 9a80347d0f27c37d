"""runtime/TimeStatus: aggregated time sync status, exclusively written by the sync controller."""

from dataclasses import dataclass
from typing import Any, Dict

from timesync.state.resource import Metadata, Resource

NAMESPACE = "runtime"
TIME_STATUS_TYPE = "TimeStatus"
TIME_STATUS_ID = "node"

# Spec keys. Every write sets all of them.
STATUS_KEYS = ("epoch", "synced", "sync_disabled")


@dataclass(frozen=True)
class TimeStatus:
    epoch: int = 0
    synced: bool = False
    sync_disabled: bool = False

    @staticmethod
    def metadata() -> Metadata:
        return Metadata(NAMESPACE, TIME_STATUS_TYPE, TIME_STATUS_ID)

    @classmethod
    def from_resource(cls, r: Resource) -> "TimeStatus":
        return cls(
            epoch=int(r.spec.get("epoch", 0)),
            synced=bool(r.spec.get("synced", False)),
            sync_disabled=bool(r.spec.get("sync_disabled", False)),
        )

    def to_spec(self) -> Dict[str, Any]:
        return {"epoch": self.epoch, "synced": self.synced, "sync_disabled": self.sync_disabled}
