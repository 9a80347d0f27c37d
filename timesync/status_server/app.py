"""FastAPI app: GET /status (published TimeStatus), GET /health (derived self_check)."""

import logging
from typing import Any, Dict

from fastapi import FastAPI

from timesync.errors import NotFoundError
from timesync.resources.time_status import TimeStatus
from timesync.state.store import ResourceStore
from timesync.status_server.self_check import derive_self_check

logger = logging.getLogger(__name__)


def create_app(store: ResourceStore) -> FastAPI:
    """Build FastAPI app reading runtime/TimeStatus from store. Read-only; nothing here writes the store."""
    app = FastAPI(title="timesync status server", description="Time sync status API")

    def _read_status() -> Dict[str, Any]:
        try:
            r = store.get(TimeStatus.metadata())
        except NotFoundError:
            return {"status": None, "version": None}
        return {"status": TimeStatus.from_resource(r).to_spec(), "version": r.version}

    @app.get("/status")
    def get_status() -> Dict[str, Any]:
        """Return current TimeStatus (null until first published) plus self_check."""
        payload = _read_status()
        payload.update(derive_self_check(payload["status"]))
        return payload

    @app.get("/health")
    def get_health() -> Dict[str, Any]:
        """Return only the derived self_check, status_lamp and block_reasons."""
        return derive_self_check(_read_status()["status"])

    return app


async def serve_status(store: ResourceStore, host: str, port: int) -> None:
    """Serve create_app(store) with uvicorn on the running event loop until cancelled."""
    import uvicorn

    server = uvicorn.Server(uvicorn.Config(create_app(store), host=host, port=int(port), log_level="info"))
    logger.info("Status server listening on %s:%s", host, port)
    try:
        await server.serve()
    finally:
        server.should_exit = True
