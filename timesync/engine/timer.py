"""Boot-sync deadline timer: at most one pending fire, delivered to the controller as a TIMEOUT event."""

import asyncio
import logging
import time
from typing import Any, Callable, Optional

from timesync.fsm.events import LoopEvent

logger = logging.getLogger(__name__)

# Re-arming with a deadline this close to the armed one keeps the existing timer.
_DEADLINE_TOLERANCE = 0.001

Schedule = Callable[[float, Callable[[], None]], Any]


def _loop_call_later(delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
    return asyncio.get_running_loop().call_later(delay, callback)


class BootTimeoutTimer:
    """arm(delay) replaces any pending timer; disarm() stops it.

    Each arm gets a new generation and the fired event carries it, so a fire that was already queued
    when the timer was disarmed or re-armed is recognised as stale (is_current() is False).
    schedule(delay, callback) must return a handle with cancel(); defaults to loop.call_later.
    """

    def __init__(
        self,
        emit: Callable[[LoopEvent], None],
        clock: Callable[[], float] = time.monotonic,
        schedule: Optional[Schedule] = None,
    ):
        self._emit = emit
        self._clock = clock
        self._schedule = schedule or _loop_call_later
        self._handle: Any = None
        self._deadline: Optional[float] = None
        self._generation = 0

    @property
    def armed(self) -> bool:
        return self._deadline is not None

    @property
    def deadline(self) -> Optional[float]:
        """Absolute fire time on the timer's clock, or None when disarmed."""
        return self._deadline

    @property
    def generation(self) -> int:
        return self._generation

    def arm(self, delay: float) -> bool:
        """Fire after delay seconds. Returns False if an identical deadline is already pending."""
        delay = max(0.0, delay)
        deadline = self._clock() + delay
        if self._handle is not None and self._deadline is not None and abs(deadline - self._deadline) < _DEADLINE_TOLERANCE:
            return False
        self._cancel_handle()
        self._generation += 1
        generation = self._generation
        self._deadline = deadline
        self._handle = self._schedule(delay, lambda: self._fire(generation))
        logger.debug("boot timeout armed: %.3fs (generation=%d)", delay, generation)
        return True

    def disarm(self) -> None:
        """Stop any pending timer; a fire already queued becomes stale."""
        if self._deadline is None and self._handle is None:
            return
        self._cancel_handle()
        self._generation += 1
        self._deadline = None
        logger.debug("boot timeout disarmed")

    def is_current(self, generation: Optional[int]) -> bool:
        """True if a fired TIMEOUT with this generation belongs to the armed timer."""
        return self._deadline is not None and generation == self._generation

    def clear(self) -> None:
        """Forget the timer after its TIMEOUT was consumed."""
        self._handle = None
        self._deadline = None

    def _fire(self, generation: int) -> None:
        if generation != self._generation:
            return
        self._handle = None
        self._emit(LoopEvent.timeout(generation))

    def _cancel_handle(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
