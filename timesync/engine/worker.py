"""Worker supervisor: start/stop the single time sync worker and forward its signals to the controller."""

import asyncio
import logging
from typing import Callable, List, Optional

from timesync.core.logging_utils import log_worker_transition
from timesync.core.metrics import Metrics, get_metrics
from timesync.errors import WorkerLifecycleError
from timesync.fsm.events import LoopEvent
from timesync.fsm.worker_fsm import WorkerState, WorkerStateMachine
from timesync.ntp.syncer import SyncerFactory, TimeSyncer

_module_logger = logging.getLogger(__name__)


class WorkerSupervisor:
    """Owns at most one worker.

    start() runs worker.run() in its own task (cancellable independently of the controller) plus
    two forwarding tasks that turn the worker's synced/epoch signals into LoopEvents tagged with the
    worker generation. stop() cancels all three and returns only once they have finished.
    """

    def __init__(
        self,
        new_syncer: SyncerFactory,
        emit: Callable[[LoopEvent], None],
        logger: Optional[logging.Logger] = None,
        metrics: Optional[Metrics] = None,
    ):
        self._new_syncer = new_syncer
        self._emit = emit
        self._logger = logger or _module_logger
        self._metrics = metrics or get_metrics()
        self._fsm = WorkerStateMachine()
        self._worker: Optional[TimeSyncer] = None
        self._task: Optional[asyncio.Task] = None
        self._forwarders: List[asyncio.Task] = []
        self._generation = 0

    @property
    def state(self) -> WorkerState:
        return self._fsm.current

    @property
    def running(self) -> bool:
        return self._fsm.current == WorkerState.RUNNING

    @property
    def generation(self) -> int:
        """Generation of the current (or last) worker; grows by 1 per start."""
        return self._generation

    @property
    def worker(self) -> Optional[TimeSyncer]:
        return self._worker

    def is_current(self, generation: Optional[int]) -> bool:
        """True if a signal with this generation comes from the running worker."""
        return self.running and generation == self._generation

    def start(self, time_servers: List[str]) -> None:
        if self._fsm.is_active():
            raise WorkerLifecycleError(f"worker already {self._fsm.current.value} (generation={self._generation})")
        from_state = self._fsm.current
        self._fsm.transition(WorkerState.STARTING)
        try:
            worker = self._new_syncer(self._logger, list(time_servers))
        except Exception:
            self._fsm.transition(WorkerState.STOPPED)
            raise
        self._generation += 1
        generation = self._generation
        self._worker = worker
        self._task = asyncio.create_task(self._run_worker(worker, generation), name=f"time-sync-worker-{generation}")
        self._forwarders = [
            asyncio.create_task(self._forward_synced(worker.synced(), generation)),
            asyncio.create_task(self._forward_epochs(worker.epoch_change(), generation)),
        ]
        self._fsm.transition(WorkerState.RUNNING)
        self._metrics.inc_worker_starts()
        log_worker_transition(
            from_state.value, WorkerState.RUNNING.value, "start", generation=generation, time_servers=time_servers
        )

    async def stop(self) -> None:
        """Cancel the worker and wait until its task has fully exited.

        Only the worker's asyncio tasks are awaited; a blocking call it handed to a thread may still be
        running (NTPSyncer: at most request_timeout). Its signals are no longer forwarded.
        """
        if not self.running:
            raise WorkerLifecycleError(f"no running worker to stop (state={self._fsm.current.value})")
        self._fsm.transition(WorkerState.STOPPING)
        tasks = [t for t in [self._task, *self._forwarders] if t is not None]
        for t in tasks:
            t.cancel()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for r in results:
            if isinstance(r, Exception):
                self._logger.debug("worker task raised during stop: %s", r)
        self._worker = None
        self._task = None
        self._forwarders = []
        self._fsm.transition(WorkerState.STOPPED)
        self._metrics.inc_worker_stops()
        log_worker_transition(WorkerState.RUNNING.value, WorkerState.STOPPED.value, "stop", generation=self._generation)

    def update(self, time_servers: List[str]) -> None:
        """Live server list update; the worker keeps running."""
        if not self.running or self._worker is None:
            raise WorkerLifecycleError("no running worker to update")
        self._worker.set_time_servers(list(time_servers))

    async def _run_worker(self, worker: TimeSyncer, generation: int) -> None:
        try:
            await worker.run()
        except asyncio.CancelledError:
            raise
        except Exception:
            self._logger.exception("time sync worker failed (generation=%d)", generation)
        else:
            self._logger.warning("time sync worker exited before stop (generation=%d)", generation)

    async def _forward_synced(self, synced: asyncio.Event, generation: int) -> None:
        await synced.wait()
        self._emit(LoopEvent.synced(generation))

    async def _forward_epochs(self, epochs: "asyncio.Queue[None]", generation: int) -> None:
        while True:
            await epochs.get()
            self._emit(LoopEvent.epoch_changed(generation))
