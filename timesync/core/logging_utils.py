"""Structured logging for published time status, worker transitions and skipped reconcile cycles."""

import logging
import uuid
from typing import Any, Optional

logger = logging.getLogger(__name__)


def _ensure_trace_id(extra: dict) -> str:
    trace_id = extra.get("trace_id")
    if not trace_id:
        trace_id = str(uuid.uuid4())[:8]
        extra["trace_id"] = trace_id
    return trace_id


def _format(kind: str, extra: dict) -> str:
    return kind + " " + " ".join(f"{k}={v}" for k, v in sorted(extra.items()))


def log_time_status(
    epoch: int,
    synced: bool,
    sync_disabled: bool,
    version: Optional[int] = None,
    trace_id: Optional[str] = None,
    extra: Optional[dict] = None,
) -> None:
    """Log a TimeStatus write as structured key-value."""
    extra = extra or {}
    if trace_id:
        extra["trace_id"] = trace_id
    _ensure_trace_id(extra)
    extra["epoch"] = epoch
    extra["synced"] = synced
    extra["sync_disabled"] = sync_disabled
    if version is not None:
        extra["version"] = version
    logger.debug(_format("time_status", extra))


def log_worker_transition(
    from_state: str,
    to_state: str,
    event: str,
    generation: Optional[int] = None,
    time_servers: Optional[Any] = None,
    trace_id: Optional[str] = None,
    extra: Optional[dict] = None,
) -> None:
    """Log worker lifecycle transition: trace_id, from_state, to_state, event, generation."""
    extra = extra or {}
    if trace_id:
        extra["trace_id"] = trace_id
    _ensure_trace_id(extra)
    extra["from_state"] = from_state
    extra["to_state"] = to_state
    extra["event"] = event
    if generation is not None:
        extra["generation"] = generation
    if time_servers is not None:
        extra["time_servers"] = ",".join(time_servers) or "-"
    logger.info(_format("worker_transition", extra))


def log_reconcile_skip(reason: str, event: Optional[str] = None, extra: Optional[dict] = None) -> None:
    """Log a reconcile cycle that ended before the status write (e.g. inputs not ready)."""
    extra = extra or {}
    extra["reason"] = reason
    if event:
        extra["event"] = event
    logger.debug(_format("reconcile_skip", extra))
