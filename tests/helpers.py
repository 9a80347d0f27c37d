"""Test doubles shared by the timesync tests: fake clock, fake scheduler, fake syncer."""

import asyncio
from typing import Callable, List, Optional

from timesync.ntp.syncer import TimeSyncer


class FakeClock:
    """Monotonic clock under test control."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeHandle:
    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Stands in for loop.call_later; fire() runs pending callbacks on demand."""

    def __init__(self):
        self.handles: List[FakeHandle] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeHandle:
        h = FakeHandle(delay, callback)
        self.handles.append(h)
        return h

    @property
    def pending(self) -> List[FakeHandle]:
        return [h for h in self.handles if not h.cancelled]

    def fire(self) -> int:
        """Run every pending callback once. Returns how many ran."""
        due = self.pending
        for h in due:
            h.cancelled = True
            h.callback()
        return len(due)


class FakeSyncer(TimeSyncer):
    """Worker that never touches the network; tests trigger its signals directly."""

    def __init__(self, logger, time_servers: List[str]):
        self.initial_servers = list(time_servers)
        self.servers = list(time_servers)
        self.set_calls: List[List[str]] = []
        self.started = asyncio.Event()
        self.cancelled = False
        self.exited = False
        self._synced = asyncio.Event()
        self._epoch_change: "asyncio.Queue[None]" = asyncio.Queue()

    async def run(self) -> None:
        self.started.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        finally:
            self.exited = True

    def synced(self) -> asyncio.Event:
        return self._synced

    def epoch_change(self) -> "asyncio.Queue[None]":
        return self._epoch_change

    def set_time_servers(self, servers: List[str]) -> None:
        self.set_calls.append(list(servers))
        self.servers = list(servers)

    # test helpers
    def signal_synced(self) -> None:
        self._synced.set()

    def signal_epoch(self) -> None:
        self._epoch_change.put_nowait(None)


class FakeSyncerFactory:
    """SyncerFactory that records every worker it builds."""

    def __init__(self):
        self.instances: List[FakeSyncer] = []

    def __call__(self, logger, time_servers: List[str]) -> FakeSyncer:
        s = FakeSyncer(logger, time_servers)
        self.instances.append(s)
        return s

    @property
    def last(self) -> Optional[FakeSyncer]:
        return self.instances[-1] if self.instances else None


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll predicate on the event loop until true; fail the test on timeout."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0.002)


async def settle(rounds: int = 50) -> None:
    """Let queued callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)
