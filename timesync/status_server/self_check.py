"""Derive self_check and status_lamp from the published TimeStatus spec."""

from typing import Any, Dict, List, Optional


def derive_self_check(status: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Compute self_check (ok/degraded/blocked), block_reasons, and status_lamp (green/yellow/red).

    Args:
        status: TimeStatus spec (epoch, synced, sync_disabled) or None if not published yet.

    Returns:
        {"self_check": "ok"|"degraded"|"blocked", "block_reasons": [...], "status_lamp": "green"|"yellow"|"red"}
    """
    block_reasons: List[str] = []

    if status is None:
        block_reasons.append("no_status")
        return {"self_check": "blocked", "block_reasons": block_reasons, "status_lamp": "red"}

    # Disabled sync counts as synced; report it so operators can tell the two apart
    if status.get("sync_disabled"):
        block_reasons.append("sync_disabled")
        return {"self_check": "ok", "block_reasons": block_reasons, "status_lamp": "green"}

    if not status.get("synced"):
        block_reasons.append("not_synced")
        return {"self_check": "degraded", "block_reasons": block_reasons, "status_lamp": "yellow"}

    return {"self_check": "ok", "block_reasons": block_reasons, "status_lamp": "green"}
