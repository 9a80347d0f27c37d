"""Unit tests for StatusPublisher."""

from unittest.mock import MagicMock

import pytest

from timesync.errors import ConflictError, StatusWriteError
from timesync.resources.time_status import STATUS_KEYS, TimeStatus
from timesync.sink.publisher import StatusPublisher
from timesync.state.runtime import ControllerRuntime, Output, OutputKind


@pytest.fixture
def runtime(store):
    return ControllerRuntime(store, "time.SyncController", [], [Output("runtime", "TimeStatus", OutputKind.EXCLUSIVE)])


class TestStatusPublisher:
    def test_publish_writes_all_fields(self, store, runtime, metrics):
        StatusPublisher(runtime, metrics=metrics).publish(TimeStatus(epoch=2, synced=True, sync_disabled=False))
        r = store.get(TimeStatus.metadata())
        assert r.spec == {"epoch": 2, "synced": True, "sync_disabled": False}
        assert set(r.spec) == set(STATUS_KEYS)
        assert r.owner == "time.SyncController"
        assert metrics.status_writes == 1

    def test_publish_replaces_not_merges(self, store, runtime, metrics):
        md = TimeStatus.metadata()
        store.modify(md, lambda s: {"epoch": 9, "stale_key": "x"}, owner="time.SyncController")
        StatusPublisher(runtime, metrics=metrics).publish(TimeStatus())
        assert store.get(md).spec == {"epoch": 0, "synced": False, "sync_disabled": False}

    def test_store_failure_is_status_write_error(self, metrics):
        rt = MagicMock()
        rt.modify.side_effect = ConflictError("owned by someone else")
        with pytest.raises(StatusWriteError, match="error updating objects: owned by someone else") as exc:
            StatusPublisher(rt, metrics=metrics).publish(TimeStatus(epoch=1))
        assert isinstance(exc.value.__cause__, ConflictError)
        assert metrics.status_writes == 0
        rt.modify.assert_called_once()

    def test_round_trip_through_resource(self, store, runtime, metrics):
        status = TimeStatus(epoch=5, synced=False, sync_disabled=True)
        StatusPublisher(runtime, metrics=metrics).publish(status)
        assert TimeStatus.from_resource(store.get(TimeStatus.metadata())) == status
