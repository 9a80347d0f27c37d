"""Agent configuration (YAML) and machine time config accessors."""

from timesync.config.settings import (
    get_agent_config,
    get_machine_time_config,
    get_ntp_config,
    get_status_server_config,
    parse_duration,
    read_config,
)

__all__ = [
    "get_agent_config",
    "get_machine_time_config",
    "get_ntp_config",
    "get_status_server_config",
    "parse_duration",
    "read_config",
]
