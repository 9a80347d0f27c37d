"""Read-only status server: GET /status, GET /health over the resource store."""

from timesync.status_server.self_check import derive_self_check

__all__ = ["derive_self_check"]
