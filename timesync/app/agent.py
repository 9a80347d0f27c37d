"""TimeSyncAgent: store + SyncController + config reload loop + optional status server, in one process.

machine.time in the YAML config plays the part of the machine config and network controllers: it is
published to config/MachineConfig and network/TimeServerStatus, and republished when the file changes.
"""

import asyncio
import logging
import signal
from pathlib import Path
from typing import Any, Optional

from timesync.config.settings import (
    get_agent_config,
    get_machine_time_config,
    get_ntp_config,
    get_status_server_config,
    read_config,
)
from timesync.core.metrics import get_metrics
from timesync.engine.controller import SyncController
from timesync.ntp.syncer import SyncerFactory, ntp_syncer_factory
from timesync.resources.machine_config import MachineConfig, TimeConfig
from timesync.resources.network import TimeServerStatus
from timesync.state.runtime import ControllerRuntime
from timesync.state.store import ResourceStore

logger = logging.getLogger(__name__)

# Writer name for resources this process publishes on behalf of other controllers
_INPUTS_OWNER = "timesync.agent"


class TimeSyncAgent:
    """Runs the sync controller against an in-memory store seeded from config."""

    def __init__(
        self,
        config: dict,
        config_path: Optional[str] = None,
        store: Optional[ResourceStore] = None,
        new_syncer: Optional[SyncerFactory] = None,
    ):
        # 1. Config
        self.config = config
        self._config_path = config_path
        agent_cfg = get_agent_config(config)
        self.mode = agent_cfg["mode"]
        self._config_reload_interval = agent_cfg["config_reload_interval"]
        self._status_server_cfg = get_status_server_config(config)

        # 2. Object references
        self.store = store or ResourceStore()
        self.controller = SyncController(
            mode=self.mode,
            new_syncer=new_syncer or ntp_syncer_factory(get_ntp_config(config)),
        )
        self.runtime = ControllerRuntime(
            self.store, self.controller.name, self.controller.inputs(), self.controller.outputs()
        )
        self._last_config_mtime: Optional[float] = None
        self._running = False

    def publish_inputs(self, config: dict) -> None:
        """Write machine.time to MachineConfig and TimeServerStatus. Unchanged specs do not wake the controller."""
        t = get_machine_time_config(config)
        machine = MachineConfig(time=TimeConfig(disabled=t["disabled"], boot_timeout=t["boot_timeout"]))
        servers = TimeServerStatus(ntp_servers=t["servers"])
        self.store.modify(MachineConfig.metadata(), lambda _spec: machine.to_spec(), owner=_INPUTS_OWNER)
        self.store.modify(TimeServerStatus.metadata(), lambda _spec: servers.to_spec(), owner=_INPUTS_OWNER)

    def reload_config(self, config: dict) -> None:
        """Apply hot-reloadable config (machine.time). agent.mode and ntp.* require restart."""
        self.config = config
        self.publish_inputs(config)

    async def _reload_config_loop(self) -> None:
        """Periodically check config file mtime and reload if changed."""
        if not self._config_path or not Path(self._config_path).exists():
            return
        while self._running:
            await asyncio.sleep(self._config_reload_interval)
            if not self._running:
                return
            try:
                mtime = Path(self._config_path).stat().st_mtime
                if self._last_config_mtime is not None and mtime > self._last_config_mtime:
                    config, _ = read_config(self._config_path)
                    self.reload_config(config)
                    self._last_config_mtime = mtime
                    logger.info("Config reloaded from %s", self._config_path)
                elif self._last_config_mtime is None:
                    self._last_config_mtime = mtime
            except Exception as e:
                logger.warning("Config reload check failed: %s", e)

    async def run(self) -> None:
        """Seed inputs, run the controller until stop(); background tasks are cancelled on exit."""
        self.publish_inputs(self.config)
        if self._config_path and Path(self._config_path).exists():
            self._last_config_mtime = Path(self._config_path).stat().st_mtime
        self._running = True
        background = [asyncio.create_task(self._reload_config_loop())]
        if self._status_server_cfg["enabled"]:
            from timesync.status_server.app import serve_status

            background.append(
                asyncio.create_task(
                    serve_status(self.store, self._status_server_cfg["host"], self._status_server_cfg["port"])
                )
            )
        logger.info(
            "Agent running (mode=%s, config=%s, status_server=%s)",
            self.mode.value,
            self._config_path or "default",
            self._status_server_cfg["enabled"],
        )
        try:
            await self.controller.run(self.runtime, logger=logging.getLogger("timesync.controller"))
        finally:
            self._running = False
            for task in background:
                task.cancel()
            for task in background:
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                except Exception as e:
                    logger.debug("Background task raised before cancel: %s", e)
            get_metrics().log_snapshot()

    def stop(self) -> None:
        self.controller.stop()


async def _run_agent_main(config_path: Optional[str] = None) -> None:
    """Load config, register signals, run TimeSyncAgent. SIGTERM/SIGINT call agent.stop()."""
    config, resolved_path = read_config(config_path)
    agent = TimeSyncAgent(config, config_path=resolved_path)
    loop = asyncio.get_running_loop()

    def _on_stop_signal(*_args: Any) -> None:
        logger.info("[Agent] received SIGTERM/SIGINT → requesting stop")
        agent.stop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, _on_stop_signal)
        except (NotImplementedError, OSError):
            pass  # add_signal_handler not supported on Windows
    await agent.run()


def run_agent(config_path: Optional[str] = None) -> None:
    """Entry: run the time sync agent (SIGTERM/SIGINT stop)."""
    asyncio.run(_run_agent_main(config_path))
