#!/usr/bin/env python3
"""Run the time sync agent: publishes machine.time from config, supervises the NTP worker, writes TimeStatus.

Usage: python scripts/run_timesync.py [config/config.yaml]
Stop with SIGINT/SIGTERM; the worker is cancelled and awaited before exit.
"""

import logging
import os
import sys
from pathlib import Path

# Project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))
os.chdir(_PROJECT_ROOT)

logger = logging.getLogger(__name__)


def main() -> None:
    from timesync.app.agent import run_agent
    from timesync.config.settings import get_agent_config, read_config

    args = [a for a in sys.argv[1:] if not a.startswith("--")]
    config_path = args[0] if args else None
    if config_path and not os.path.isabs(config_path):
        config_path = str(_PROJECT_ROOT / config_path)

    config, resolved_path = read_config(config_path)
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        level=get_agent_config(config)["log_level"],
    )
    logger.info("Using config %s", resolved_path)
    run_agent(resolved_path)


if __name__ == "__main__":
    main()
