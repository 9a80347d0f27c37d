"""Thread-safe in-memory resource store: get, list, create, modify (upsert), destroy, watch."""

import enum
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

from timesync.errors import ConflictError, NotFoundError
from timesync.state.resource import Metadata, Resource

logger = logging.getLogger(__name__)


class WatchEvent(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    DESTROYED = "destroyed"


WatchCallback = Callable[[WatchEvent, Resource], None]

# (namespace, type, id or None for all ids)
_WatchKey = Tuple[str, str, Optional[str]]


class ResourceStore:
    """Holds the latest version of each resource and notifies watchers on change.

    Exclusive outputs: register_owner(namespace, type, owner) makes owner the only writer
    of that type; writes by anyone else raise ConflictError.
    Watch callbacks run synchronously on the writing thread, after the lock is released.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._resources: Dict[Metadata, Resource] = {}
        self._owners: Dict[Tuple[str, str], str] = {}
        self._watchers: Dict[int, Tuple[_WatchKey, WatchCallback]] = {}
        self._next_watch_id = 0

    def register_owner(self, namespace: str, type_: str, owner: str) -> None:
        with self._lock:
            current = self._owners.get((namespace, type_))
            if current is not None and current != owner:
                raise ConflictError(f"{namespace}/{type_} is already owned by {current}")
            self._owners[(namespace, type_)] = owner

    def _check_owner(self, md: Metadata, owner: Optional[str]) -> None:
        expected = self._owners.get((md.namespace, md.type))
        if expected is not None and owner != expected:
            raise ConflictError(f"{md} is owned by {expected}, write by {owner or 'anonymous'} rejected")

    def get(self, md: Metadata) -> Resource:
        """Return a copy of the latest version. Raises NotFoundError."""
        with self._lock:
            r = self._resources.get(md)
            if r is None:
                raise NotFoundError(md.namespace, md.type, md.id)
            return r.copy()

    def list(self, namespace: str, type_: str) -> List[Resource]:
        with self._lock:
            return [
                r.copy()
                for md, r in sorted(self._resources.items(), key=lambda kv: kv[0].id)
                if md.namespace == namespace and md.type == type_
            ]

    def create(self, md: Metadata, spec: Dict[str, Any], owner: Optional[str] = None) -> Resource:
        """Create a resource. Raises ConflictError if it already exists."""
        with self._lock:
            self._check_owner(md, owner)
            if md in self._resources:
                raise ConflictError(f"{md} already exists")
            r = Resource(md, dict(spec), version=1, owner=owner)
            self._resources[md] = r
            out = r.copy()
        self._notify(WatchEvent.CREATED, out)
        return out

    def modify(
        self,
        md: Metadata,
        update_fn: Callable[[Dict[str, Any]], Optional[Dict[str, Any]]],
        owner: Optional[str] = None,
    ) -> Resource:
        """Upsert: create if missing, then apply update_fn to a copy of the spec.

        update_fn may mutate the dict in place or return a replacement spec. Version grows by 1
        when the spec changes; unchanged specs are not rewritten and do not notify watchers.
        """
        with self._lock:
            self._check_owner(md, owner)
            current = self._resources.get(md)
            created = current is None
            spec: Dict[str, Any] = {} if created else current.copy().spec
            replaced = update_fn(spec)
            if replaced is not None:
                spec = replaced
            if not created and spec == current.spec:
                return current.copy()
            version = 1 if created else current.version + 1
            r = Resource(md, spec, version=version, owner=owner)
            self._resources[md] = r
            out = r.copy()
        self._notify(WatchEvent.CREATED if created else WatchEvent.UPDATED, out)
        return out

    def destroy(self, md: Metadata, owner: Optional[str] = None) -> None:
        """Remove a resource. Raises NotFoundError."""
        with self._lock:
            self._check_owner(md, owner)
            r = self._resources.pop(md, None)
            if r is None:
                raise NotFoundError(md.namespace, md.type, md.id)
        self._notify(WatchEvent.DESTROYED, r)

    def watch(
        self,
        namespace: str,
        type_: str,
        callback: WatchCallback,
        id_: Optional[str] = None,
    ) -> Callable[[], None]:
        """Subscribe to changes of namespace/type (optionally a single id). Returns an unsubscribe function."""
        with self._lock:
            watch_id = self._next_watch_id
            self._next_watch_id += 1
            self._watchers[watch_id] = ((namespace, type_, id_), callback)

        def _unsubscribe() -> None:
            with self._lock:
                self._watchers.pop(watch_id, None)

        return _unsubscribe

    def _notify(self, event: WatchEvent, r: Resource) -> None:
        with self._lock:
            targets = [
                cb
                for (ns, typ, rid), cb in self._watchers.values()
                if ns == r.metadata.namespace and typ == r.metadata.type and (rid is None or rid == r.metadata.id)
            ]
        for cb in targets:
            try:
                cb(event, r.copy())
            except Exception as e:
                logger.warning("watch callback failed for %s (%s): %s", r.metadata, event.value, e)
