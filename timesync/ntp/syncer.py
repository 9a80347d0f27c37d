"""Time sync worker contract (TimeSyncer) and the default ntplib-based implementation (NTPSyncer).

The worker talks only through three signal points: synced() is set once, the first time a server
answered; epoch_change() gets one item per clock step; set_time_servers() swaps the server list,
which the worker picks up on its next poll. Network errors are logged and retried, never raised.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

import ntplib

_module_logger = logging.getLogger(__name__)


class TimeSyncer(ABC):
    """Background worker that keeps the clock in sync with a list of time servers."""

    @abstractmethod
    async def run(self) -> None:
        """Network loop. Runs until the task is cancelled."""
        ...

    @abstractmethod
    def synced(self) -> asyncio.Event:
        """Set once, when synchronization is first achieved."""
        ...

    @abstractmethod
    def epoch_change(self) -> "asyncio.Queue[None]":
        """One item per discontinuous clock adjustment."""
        ...

    @abstractmethod
    def set_time_servers(self, servers: List[str]) -> None:
        """Replace the server list without restarting run()."""
        ...


SyncerFactory = Callable[[logging.Logger, List[str]], TimeSyncer]


class NTPSyncer(TimeSyncer):
    """Polls servers in order until one answers; steps the clock when |offset| > step_threshold.

    adjust_clock=False only measures: synced is still reported, but the clock is never touched and
    no epoch change is emitted.

    Requests run in a worker thread (asyncio.to_thread). Cancelling run() ends the coroutine at once,
    but a request already in flight finishes in its thread, bounded by request_timeout; its result is
    discarded and it cannot touch the signals.
    """

    def __init__(
        self,
        logger: Optional[logging.Logger],
        time_servers: List[str],
        poll_interval: float = 64.0,
        retry_interval: float = 5.0,
        request_timeout: float = 5.0,
        step_threshold: float = 0.4,
        adjust_clock: bool = False,
        client: Any = None,
    ):
        self._logger = logger or _module_logger
        self._servers = list(time_servers)
        self._poll_interval = poll_interval
        self._retry_interval = retry_interval
        self._request_timeout = request_timeout
        self._step_threshold = step_threshold
        self._adjust_clock = adjust_clock
        self._client = client or ntplib.NTPClient()

        self._synced = asyncio.Event()
        self._epoch_change: "asyncio.Queue[None]" = asyncio.Queue()
        self._last_server: Optional[str] = None
        self._last_offset: Optional[float] = None

    def synced(self) -> asyncio.Event:
        return self._synced

    def epoch_change(self) -> "asyncio.Queue[None]":
        return self._epoch_change

    def set_time_servers(self, servers: List[str]) -> None:
        servers = list(servers)
        if servers != self._servers:
            self._logger.info("time servers updated: %s", ", ".join(servers) or "(none)")
        self._servers = servers

    @property
    def last_offset(self) -> Optional[float]:
        return self._last_offset

    async def run(self) -> None:
        self._logger.info("starting time sync (servers=%s)", ", ".join(self._servers) or "(none)")
        while True:
            delay = await self.poll_once()
            await asyncio.sleep(delay)

    async def poll_once(self) -> float:
        """Query servers once, apply the result. Returns seconds until the next poll."""
        servers = list(self._servers)
        if not servers:
            self._logger.debug("no time servers configured; waiting")
            return self._retry_interval
        sample = await self._query(servers)
        if sample is None:
            self._logger.warning("no time server answered (%s); retrying in %.0fs", ", ".join(servers), self._retry_interval)
            return self._retry_interval
        server, offset = sample
        self._last_server = server
        self._last_offset = offset
        if abs(offset) > self._step_threshold:
            if self._adjust_clock:
                if self._step_clock(offset):
                    self._logger.info("clock stepped by %.6fs (server=%s)", offset, server)
                    self._epoch_change.put_nowait(None)
                else:
                    return self._retry_interval
            else:
                self._logger.warning("clock offset %.6fs exceeds %.3fs (server=%s); adjust_clock disabled", offset, self._step_threshold, server)
        else:
            self._logger.debug("sample server=%s offset=%.6fs", server, offset)
        if not self._synced.is_set():
            self._logger.info("time synchronized (server=%s, offset=%.6fs)", server, offset)
            self._synced.set()
        return self._poll_interval

    async def _query(self, servers: List[str]) -> Optional[tuple[str, float]]:
        for server in servers:
            try:
                response = await asyncio.to_thread(
                    self._client.request, server, version=4, timeout=self._request_timeout
                )
            except (ntplib.NTPException, OSError) as e:
                self._logger.debug("time server %s failed: %s", server, e)
                continue
            return server, float(response.offset)
        return None

    def _step_clock(self, offset: float) -> bool:
        try:
            time.clock_settime(time.CLOCK_REALTIME, time.time() + offset)
        except (OSError, AttributeError) as e:
            self._logger.error("failed to step clock by %.6fs: %s", offset, e)
            return False
        return True


def ntp_syncer_factory(ntp_cfg: Optional[Dict[str, Any]] = None) -> SyncerFactory:
    """Factory for SyncController.new_syncer from the ntp config section (see get_ntp_config)."""
    cfg = dict(ntp_cfg or {})

    def _new_syncer(logger: logging.Logger, time_servers: List[str]) -> TimeSyncer:
        return NTPSyncer(logger, time_servers, **cfg)

    return _new_syncer
