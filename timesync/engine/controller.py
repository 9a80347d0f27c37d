"""SyncController: reconciles runtime/TimeStatus from machine config, time servers and the NTP worker.

One task runs run(); it is the only place SyncState is touched. Each wake-up (LoopEvent) is
dispatched, then reconcile() re-reads inputs, drives the boot timeout timer and the worker, and
publishes the status. Cancellation (stop() or Task.cancel()) tears down the worker and the timer.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional

from timesync.config.settings import Mode
from timesync.core.logging_utils import log_reconcile_skip
from timesync.core.metrics import Metrics, get_metrics
from timesync.engine.state import SyncState
from timesync.engine.timer import BootTimeoutTimer, Schedule
from timesync.engine.worker import WorkerSupervisor
from timesync.errors import NotFoundError, StoreError
from timesync.fsm.events import LoopEvent, SyncEvent
from timesync.ntp.syncer import SyncerFactory, ntp_syncer_factory
from timesync.resources import machine_config, network, time_status
from timesync.resources.machine_config import MachineConfig
from timesync.resources.network import TimeServerStatus
from timesync.sink.publisher import StatusPublisher, StatusSink
from timesync.state.runtime import ControllerRuntime, Input, InputKind, Output, OutputKind

_module_logger = logging.getLogger(__name__)


class SyncController:
    """Manages runtime/TimeStatus based on configuration and the NTP sync process."""

    def __init__(
        self,
        mode: Mode = Mode.METAL,
        new_syncer: Optional[SyncerFactory] = None,
        clock: Callable[[], float] = time.monotonic,
        schedule: Optional[Schedule] = None,
        metrics: Optional[Metrics] = None,
    ):
        self.mode = mode
        self.new_syncer = new_syncer or ntp_syncer_factory()
        self._clock = clock
        self._schedule = schedule
        self._metrics = metrics or get_metrics()
        self._logger = _module_logger

        # Fixed on the first run() and kept across restarts of the loop
        self.boot_time: Optional[float] = None

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._events: Optional["asyncio.Queue[LoopEvent]"] = None
        self._stop_requested = False
        self.state: Optional[SyncState] = None

    @property
    def name(self) -> str:
        return "time.SyncController"

    def inputs(self) -> List[Input]:
        return [
            Input(network.NAMESPACE, network.TIME_SERVER_STATUS_TYPE, network.TIME_SERVER_ID, InputKind.WEAK),
            Input(machine_config.NAMESPACE, machine_config.MACHINE_CONFIG_TYPE, machine_config.V1ALPHA1_ID, InputKind.STRONG),
        ]

    def outputs(self) -> List[Output]:
        return [Output(time_status.NAMESPACE, time_status.TIME_STATUS_TYPE, OutputKind.EXCLUSIVE)]

    def emit(self, event: LoopEvent) -> None:
        """Queue a wake-up for the loop. Must be called on the loop's thread."""
        if self._events is not None:
            self._events.put_nowait(event)

    def stop(self) -> None:
        """Request loop exit. Safe to call from any thread, before or during run()."""
        self._stop_requested = True
        loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self.emit, LoopEvent.cancel())

    def new_state(self) -> SyncState:
        """Fresh loop state: epoch 0, not synced, no timer, no worker."""
        if self.boot_time is None:
            self.boot_time = self._clock()
        return SyncState(
            boot_time=self.boot_time,
            timer=BootTimeoutTimer(self.emit, clock=self._clock, schedule=self._schedule),
            worker=WorkerSupervisor(self.new_syncer, self.emit, logger=self._logger, metrics=self._metrics),
        )

    async def run(self, runtime: ControllerRuntime, logger: Optional[logging.Logger] = None) -> None:
        """Reconcile until stop(). Store errors other than not-found are fatal and propagate."""
        if logger is not None:
            self._logger = logger
        self._loop = asyncio.get_running_loop()
        self._events = asyncio.Queue()
        state = self.new_state()
        self.state = state
        publisher = StatusPublisher(runtime, metrics=self._metrics)
        unwatch = runtime.watch_inputs(lambda: self.emit(LoopEvent.input_changed()))

        stop_first, self._stop_requested = self._stop_requested, False
        # initial reconcile, as if inputs had just changed
        self.emit(LoopEvent.cancel() if stop_first else LoopEvent.input_changed())
        try:
            while True:
                event = await self._events.get()
                if not self.dispatch(state, event):
                    self._logger.debug("%s: stop requested", self.name)
                    return
                await self.reconcile(state, runtime, publisher)
        finally:
            unwatch()
            await self.teardown(state)
            self._events = None
            self._stop_requested = False

    def dispatch(self, state: SyncState, event: LoopEvent) -> bool:
        """Apply one wake-up to state. Returns False for CANCEL."""
        if event.kind == SyncEvent.CANCEL:
            return False
        if event.kind == SyncEvent.SYNCED:
            if state.worker.is_current(event.generation):
                state.synced = True
                state.timer.disarm()
                self._logger.info("time sync achieved (worker generation=%s)", event.generation)
            else:
                self._logger.debug("dropping synced signal from stopped worker (generation=%s)", event.generation)
        elif event.kind == SyncEvent.EPOCH_CHANGED:
            if state.worker.is_current(event.generation):
                state.epoch += 1
                self._logger.info("time epoch changed to %d", state.epoch)
            else:
                self._logger.debug("dropping epoch signal from stopped worker (generation=%s)", event.generation)
        elif event.kind == SyncEvent.TIMEOUT:
            if state.timer.is_current(event.generation):
                state.synced = True
                state.timer.clear()
                self._logger.warning("time sync boot timeout elapsed; reporting time as synced")
            else:
                self._logger.debug("dropping stale boot timeout (generation=%s)", event.generation)
        return True

    async def reconcile(
        self,
        state: SyncState,
        runtime: ControllerRuntime,
        publisher: Optional[StatusSink] = None,
    ) -> bool:
        """Steps 2-9 of a cycle. Returns False if skipped because the time server list is not ready."""
        self._metrics.inc_cycles()

        try:
            servers_res = runtime.get(TimeServerStatus.metadata())
        except NotFoundError:
            # time server list is not ready yet, wait for the next event
            self._metrics.inc_skipped_cycles()
            log_reconcile_skip("time_servers_not_found")
            return False
        except StoreError as e:
            raise StoreError(f"error getting time server status: {e}") from e

        time_servers = TimeServerStatus.from_resource(servers_res).ntp_servers

        cfg: Optional[MachineConfig] = None
        try:
            cfg = MachineConfig.from_resource(runtime.get(MachineConfig.metadata()))
        except NotFoundError:
            pass
        except StoreError as e:
            raise StoreError(f"error getting config: {e}") from e

        sync_disabled = self.mode == Mode.CONTAINER or (cfg is not None and cfg.time.disabled)
        sync_timeout = cfg.time.boot_timeout if cfg is not None else 0.0

        state.sync_disabled = sync_disabled

        if not state.synced:
            self._reconcile_boot_timeout(state, sync_timeout)

        if sync_disabled and state.worker.running:
            await state.worker.stop()
        elif not sync_disabled and not state.worker.running:
            state.worker.start(time_servers)
            state.synced = False
            # a fresh worker is unsynced, the boot deadline still applies to it
            self._reconcile_boot_timeout(state, sync_timeout)

        if state.worker.running:
            state.worker.update(time_servers)

        if sync_disabled:
            state.synced = True
            state.timer.disarm()

        status = state.status()
        (publisher or StatusPublisher(runtime, metrics=self._metrics)).publish(status)
        return True

    def _reconcile_boot_timeout(self, state: SyncState, sync_timeout: float) -> None:
        since_boot = self._clock() - state.boot_time
        if sync_timeout == 0:
            state.timer.disarm()
        elif since_boot > sync_timeout:
            # over the boot timeout already, so in sync
            state.synced = True
            state.timer.disarm()
        else:
            # fire in whatever time is left till the timeout
            state.timer.arm(sync_timeout - since_boot)

    async def teardown(self, state: SyncState) -> None:
        """Stop the worker (awaited) and the timer. No status is written."""
        if state.worker.running:
            await state.worker.stop()
        state.timer.disarm()
