"""network/TimeServerStatus: resolved list of NTP servers (produced by the network controllers)."""

from dataclasses import dataclass, field
from typing import Any, Dict, List

from timesync.state.resource import Metadata, Resource

NAMESPACE = "network"
TIME_SERVER_STATUS_TYPE = "TimeServerStatus"
TIME_SERVER_ID = "timeservers"


@dataclass
class TimeServerStatus:
    """Ordered time server list; may be empty."""

    ntp_servers: List[str] = field(default_factory=list)

    @staticmethod
    def metadata() -> Metadata:
        return Metadata(NAMESPACE, TIME_SERVER_STATUS_TYPE, TIME_SERVER_ID)

    @classmethod
    def from_resource(cls, r: Resource) -> "TimeServerStatus":
        servers = r.spec.get("ntp_servers") or []
        return cls(ntp_servers=[str(s) for s in servers])

    def to_spec(self) -> Dict[str, Any]:
        return {"ntp_servers": list(self.ntp_servers)}
