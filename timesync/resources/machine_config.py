"""config/MachineConfig: machine configuration document. The controller only reads machine.time."""

from dataclasses import dataclass
from typing import Any, Dict

from timesync.config.settings import parse_duration
from timesync.state.resource import Metadata, Resource

NAMESPACE = "config"
MACHINE_CONFIG_TYPE = "MachineConfig"
V1ALPHA1_ID = "v1alpha1"


@dataclass(frozen=True)
class TimeConfig:
    """machine.time section. boot_timeout in seconds, 0 = no timeout."""

    disabled: bool = False
    boot_timeout: float = 0.0


@dataclass
class MachineConfig:
    time: TimeConfig

    @staticmethod
    def metadata() -> Metadata:
        return Metadata(NAMESPACE, MACHINE_CONFIG_TYPE, V1ALPHA1_ID)

    @classmethod
    def from_resource(cls, r: Resource) -> "MachineConfig":
        machine = r.spec.get("machine") or {}
        t = machine.get("time") or {}
        return cls(
            time=TimeConfig(
                disabled=bool(t.get("disabled", False)),
                boot_timeout=parse_duration(t.get("boot_timeout")),
            )
        )

    def to_spec(self) -> Dict[str, Any]:
        return {
            "machine": {
                "time": {
                    "disabled": self.time.disabled,
                    "boot_timeout": self.time.boot_timeout,
                }
            }
        }
