"""Agent config: agent, machine.time, ntp, status_server sections.

Defaults: loaded from config/config.yaml.example (single source of truth, no code-level defaults).
"""

import enum
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from timesync.errors import ConfigError

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_EXAMPLE_PATH = _PROJECT_ROOT / "config" / "config.yaml.example"

# Lazy-loaded example config (single source of truth for defaults)
_EXAMPLE_CONFIG: Optional[Dict[str, Any]] = None

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


class Mode(str, enum.Enum):
    """Process execution mode. CONTAINER: clock belongs to the host, sync is always disabled."""

    METAL = "metal"
    CLOUD = "cloud"
    CONTAINER = "container"


def read_config(config_path: Optional[str] = None) -> tuple[dict, str]:
    """Load YAML config. Returns (config, resolved_path).

    Lookup: config_path, $TIMESYNC_CONFIG, config/config.yaml, then config/config.yaml.example.
    """
    config_path = config_path or os.environ.get("TIMESYNC_CONFIG", "config/config.yaml")
    if not Path(config_path).exists():
        config_path = str(_EXAMPLE_PATH)
    config_path = str(Path(config_path).resolve())
    with open(config_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
    return config, config_path


def _load_example_config() -> Dict[str, Any]:
    """Load config.yaml.example as defaults. No code-level defaults."""
    global _EXAMPLE_CONFIG
    if _EXAMPLE_CONFIG is None:
        with open(_EXAMPLE_PATH, encoding="utf-8") as f:
            _EXAMPLE_CONFIG = yaml.safe_load(f) or {}
    return _EXAMPLE_CONFIG


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge override into base. Override values take precedence."""
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _merged_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Merge config with example so missing keys come from config file."""
    return _deep_merge(_load_example_config(), cfg)


def _section(cfg: Dict[str, Any], *path: str) -> Dict[str, Any]:
    """Walk nested sections. Returns {} if any level is missing or not a dict."""
    node: Any = cfg
    for key in path:
        node = node.get(key) if isinstance(node, dict) else None
    return node if isinstance(node, dict) else {}


def parse_duration(value: Union[None, int, float, str]) -> float:
    """Duration in seconds from a number or a string like "90", "30s", "2m", "1h30m", "500ms".

    None and "" mean 0 (no timeout). Negative values are rejected.
    """
    if value is None or value == "":
        return 0.0
    if isinstance(value, bool):
        raise ConfigError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = str(value).strip().lower()
        try:
            seconds = float(text)
        except ValueError:
            pos = 0
            seconds = 0.0
            for m in _DURATION_PART.finditer(text):
                if m.start() != pos:
                    raise ConfigError(f"invalid duration: {value!r}")
                seconds += float(m.group(1)) * _DURATION_UNITS[m.group(2)]
                pos = m.end()
            if pos == 0 or pos != len(text):
                raise ConfigError(f"invalid duration: {value!r}")
    if seconds < 0:
        raise ConfigError(f"duration must not be negative: {value!r}")
    return seconds


def parse_mode(value: Any) -> Mode:
    try:
        return Mode(str(value).strip().lower())
    except ValueError as e:
        raise ConfigError(f"invalid agent.mode: {value!r} (expected metal, cloud or container)") from e


def get_agent_config(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Return agent config (mode as Mode, log_level, config_reload_interval)."""
    merged = _merged_config(config or {})
    a = _section(merged, "agent")
    return {
        "mode": parse_mode(a.get("mode")),
        "log_level": str(a.get("log_level") or "INFO").upper(),
        "config_reload_interval": float(a.get("config_reload_interval")),
    }


def get_machine_time_config(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Return machine.time config: disabled, boot_timeout (seconds), servers (list of str)."""
    merged = _merged_config(config or {})
    t = _section(merged, "machine", "time")
    servers: List[str] = [str(s).strip() for s in (t.get("servers") or []) if s and str(s).strip()]
    return {
        "disabled": bool(t.get("disabled", False)),
        "boot_timeout": parse_duration(t.get("boot_timeout")),
        "servers": servers,
    }


def get_ntp_config(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Return ntp worker config: poll_interval, retry_interval, request_timeout, step_threshold, adjust_clock."""
    merged = _merged_config(config or {})
    n = _section(merged, "ntp")
    return {
        "poll_interval": parse_duration(n.get("poll_interval")),
        "retry_interval": parse_duration(n.get("retry_interval")),
        "request_timeout": parse_duration(n.get("request_timeout")),
        "step_threshold": float(n.get("step_threshold")),
        "adjust_clock": bool(n.get("adjust_clock", False)),
    }


def get_status_server_config(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Return status_server config: enabled, host, port."""
    merged = _merged_config(config or {})
    s = _section(merged, "status_server")
    return {
        "enabled": bool(s.get("enabled", False)),
        "host": str(s.get("host")),
        "port": int(s.get("port")),
    }
