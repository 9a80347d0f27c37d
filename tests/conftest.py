"""Pytest fixtures for timesync tests: store, metrics, fake clock/scheduler, fake syncer factory."""

import sys
from pathlib import Path

import pytest

# Ensure project root is in path for timesync imports
_project_root = Path(__file__).resolve().parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from helpers import FakeClock, FakeScheduler, FakeSyncerFactory  # noqa: E402
from timesync.core.metrics import Metrics  # noqa: E402
from timesync.state.store import ResourceStore  # noqa: E402


@pytest.fixture
def project_root() -> Path:
    return _project_root


@pytest.fixture
def store() -> ResourceStore:
    return ResourceStore()


@pytest.fixture
def metrics() -> Metrics:
    return Metrics()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def syncers() -> FakeSyncerFactory:
    return FakeSyncerFactory()
