"""Unit tests for ResourceStore and ControllerRuntime."""

import asyncio
import threading

import pytest

from helpers import settle
from timesync.errors import ConflictError, NotFoundError, StoreError, is_not_found
from timesync.state.resource import Metadata
from timesync.state.runtime import ControllerRuntime, Input, InputKind, Output, OutputKind
from timesync.state.store import ResourceStore, WatchEvent

MD = Metadata("network", "TimeServerStatus", "timeservers")
OTHER = Metadata("network", "TimeServerStatus", "other")


class TestResourceStore:
    def test_get_missing_raises_not_found(self):
        store = ResourceStore()
        with pytest.raises(NotFoundError) as exc:
            store.get(MD)
        assert is_not_found(exc.value)
        assert exc.value.id == "timeservers"

    def test_create_then_get(self):
        store = ResourceStore()
        r = store.create(MD, {"ntp_servers": ["a"]})
        assert r.version == 1
        got = store.get(MD)
        assert got.spec == {"ntp_servers": ["a"]}
        assert got.version == 1

    def test_create_twice_conflicts(self):
        store = ResourceStore()
        store.create(MD, {})
        with pytest.raises(ConflictError):
            store.create(MD, {})

    def test_modify_upserts_and_bumps_version(self):
        store = ResourceStore()
        r1 = store.modify(MD, lambda s: {"ntp_servers": ["a"]})
        assert r1.version == 1

        def _append(spec):
            spec["ntp_servers"].append("b")

        r2 = store.modify(MD, _append)
        assert r2.version == 2
        assert store.get(MD).spec == {"ntp_servers": ["a", "b"]}

    def test_modify_unchanged_spec_keeps_version(self):
        store = ResourceStore()
        store.modify(MD, lambda s: {"ntp_servers": ["a"]})
        r = store.modify(MD, lambda s: {"ntp_servers": ["a"]})
        assert r.version == 1

    def test_returned_copies_are_detached(self):
        store = ResourceStore()
        store.modify(MD, lambda s: {"ntp_servers": ["a"]})
        got = store.get(MD)
        got.spec["ntp_servers"].append("mutated")
        assert store.get(MD).spec == {"ntp_servers": ["a"]}

    def test_destroy(self):
        store = ResourceStore()
        store.create(MD, {})
        store.destroy(MD)
        with pytest.raises(NotFoundError):
            store.get(MD)
        with pytest.raises(NotFoundError):
            store.destroy(MD)

    def test_list_by_type_sorted_by_id(self):
        store = ResourceStore()
        store.create(OTHER, {"n": 2})
        store.create(MD, {"n": 1})
        store.create(Metadata("config", "MachineConfig", "v1alpha1"), {})
        ids = [r.metadata.id for r in store.list("network", "TimeServerStatus")]
        assert ids == ["other", "timeservers"]

    def test_exclusive_owner(self):
        store = ResourceStore()
        store.register_owner("runtime", "TimeStatus", "time.SyncController")
        md = Metadata("runtime", "TimeStatus", "node")
        with pytest.raises(ConflictError):
            store.modify(md, lambda s: {"epoch": 1})
        with pytest.raises(ConflictError):
            store.modify(md, lambda s: {"epoch": 1}, owner="someone.else")
        r = store.modify(md, lambda s: {"epoch": 1}, owner="time.SyncController")
        assert r.owner == "time.SyncController"
        with pytest.raises(ConflictError):
            store.register_owner("runtime", "TimeStatus", "someone.else")

    def test_watch_events_and_unsubscribe(self):
        store = ResourceStore()
        seen = []
        unsub = store.watch("network", "TimeServerStatus", lambda ev, r: seen.append((ev, r.metadata.id, r.version)))
        store.modify(MD, lambda s: {"ntp_servers": ["a"]})
        store.modify(MD, lambda s: {"ntp_servers": ["a"]})
        store.modify(MD, lambda s: {"ntp_servers": ["b"]})
        store.destroy(MD)
        assert seen == [
            (WatchEvent.CREATED, "timeservers", 1),
            (WatchEvent.UPDATED, "timeservers", 2),
            (WatchEvent.DESTROYED, "timeservers", 2),
        ]
        unsub()
        store.create(MD, {})
        assert len(seen) == 3

    def test_watch_single_id(self):
        store = ResourceStore()
        seen = []
        store.watch("network", "TimeServerStatus", lambda ev, r: seen.append(r.metadata.id), id_="timeservers")
        store.create(OTHER, {})
        store.create(MD, {})
        assert seen == ["timeservers"]

    def test_failing_watcher_does_not_break_writes(self):
        store = ResourceStore()
        seen = []

        def _bad(ev, r):
            raise RuntimeError("boom")

        store.watch("network", "TimeServerStatus", _bad)
        store.watch("network", "TimeServerStatus", lambda ev, r: seen.append(ev))
        r = store.modify(MD, lambda s: {"ntp_servers": []})
        assert r.version == 1
        assert seen == [WatchEvent.CREATED]

    def test_thread_safety(self):
        store = ResourceStore()

        def writer(n):
            for i in range(100):
                store.modify(MD, lambda s: {"n": s.get("n", 0) + 1})

        threads = [threading.Thread(target=writer, args=(k,)) for k in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        r = store.get(MD)
        assert r.spec["n"] == 400
        assert r.version == 400


def _runtime(store):
    return ControllerRuntime(
        store,
        "time.SyncController",
        [
            Input("network", "TimeServerStatus", "timeservers", InputKind.WEAK),
            Input("config", "MachineConfig", "v1alpha1", InputKind.STRONG),
        ],
        [Output("runtime", "TimeStatus", OutputKind.EXCLUSIVE)],
    )


class TestControllerRuntime:
    def test_registers_exclusive_outputs(self):
        store = ResourceStore()
        rt = _runtime(store)
        assert rt.name == "time.SyncController"
        with pytest.raises(ConflictError):
            store.modify(Metadata("runtime", "TimeStatus", "node"), lambda s: {"epoch": 0}, owner="intruder")

    def test_get_limited_to_declared(self):
        store = ResourceStore()
        rt = _runtime(store)
        with pytest.raises(NotFoundError):
            rt.get(MD)
        store.create(Metadata("secrets", "Keys", "x"), {})
        with pytest.raises(StoreError) as exc:
            rt.get(Metadata("secrets", "Keys", "x"))
        assert not is_not_found(exc.value)
        with pytest.raises(StoreError):
            rt.get(OTHER)

    def test_modify_limited_to_outputs(self):
        store = ResourceStore()
        rt = _runtime(store)
        with pytest.raises(StoreError):
            rt.modify(MD, lambda s: {"ntp_servers": []})
        r = rt.modify(Metadata("runtime", "TimeStatus", "node"), lambda s: {"epoch": 0})
        assert r.owner == "time.SyncController"

    @pytest.mark.asyncio
    async def test_watch_inputs_delivers_on_loop(self):
        store = ResourceStore()
        rt = _runtime(store)
        calls = []
        unwatch = rt.watch_inputs(lambda: calls.append(1))
        store.modify(MD, lambda s: {"ntp_servers": ["a"]})
        # delivered via call_soon, not inline
        assert calls == []
        await settle()
        assert calls == [1]

        # outputs and undeclared ids do not notify
        rt.modify(Metadata("runtime", "TimeStatus", "node"), lambda s: {"epoch": 0})
        store.create(OTHER, {})
        await settle()
        assert calls == [1]

        unwatch()
        store.modify(MD, lambda s: {"ntp_servers": ["b"]})
        await settle()
        assert calls == [1]

    @pytest.mark.asyncio
    async def test_watch_inputs_from_other_thread(self):
        store = ResourceStore()
        rt = _runtime(store)
        got = asyncio.Event()
        rt.watch_inputs(got.set)
        t = threading.Thread(target=lambda: store.modify(MD, lambda s: {"ntp_servers": ["a"]}))
        t.start()
        t.join()
        await asyncio.wait_for(got.wait(), timeout=2.0)
