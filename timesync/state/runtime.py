"""Per-controller view over the store: declared inputs/outputs, change notifications, scoped get/modify."""

import asyncio
import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from timesync.errors import StoreError
from timesync.state.resource import Metadata, Resource
from timesync.state.store import ResourceStore, WatchEvent

logger = logging.getLogger(__name__)


class InputKind(str, enum.Enum):
    """STRONG: controller depends on the resource. WEAK: only watched for changes."""

    STRONG = "strong"
    WEAK = "weak"


class OutputKind(str, enum.Enum):
    EXCLUSIVE = "exclusive"


@dataclass(frozen=True)
class Input:
    namespace: str
    type: str
    id: Optional[str] = None
    kind: InputKind = InputKind.STRONG


@dataclass(frozen=True)
class Output:
    namespace: str
    type: str
    kind: OutputKind = OutputKind.EXCLUSIVE


class ControllerRuntime:
    """Store access for one controller.

    get() is limited to declared inputs and outputs, modify() to declared outputs; exclusive outputs
    are registered with the store so no other writer can touch them. Input change notifications are
    delivered to the callback passed to watch_inputs(), on the event loop that called it.
    """

    def __init__(self, store: ResourceStore, controller_name: str, inputs: List[Input], outputs: List[Output]):
        self._store = store
        self._name = controller_name
        self._inputs = list(inputs)
        self._outputs = list(outputs)
        for out in self._outputs:
            if out.kind == OutputKind.EXCLUSIVE:
                store.register_owner(out.namespace, out.type, controller_name)

    @property
    def name(self) -> str:
        return self._name

    def _readable(self, md: Metadata) -> bool:
        for i in self._inputs:
            if i.namespace == md.namespace and i.type == md.type and (i.id is None or i.id == md.id):
                return True
        return self._writable(md)

    def _writable(self, md: Metadata) -> bool:
        return any(o.namespace == md.namespace and o.type == md.type for o in self._outputs)

    def get(self, md: Metadata) -> Resource:
        """Latest version of md. Raises NotFoundError (recoverable) or StoreError."""
        if not self._readable(md):
            raise StoreError(f"{self._name}: {md.namespace}/{md.type} is not a declared input")
        return self._store.get(md)

    def modify(
        self,
        md: Metadata,
        update_fn: Callable[[Dict[str, Any]], Optional[Dict[str, Any]]],
    ) -> Resource:
        if not self._writable(md):
            raise StoreError(f"{self._name}: {md.namespace}/{md.type} is not a declared output")
        return self._store.modify(md, update_fn, owner=self._name)

    def watch_inputs(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Call callback (on the current event loop) whenever a declared input changes.

        Must be called from a running event loop. Returns a function that cancels all input watches.
        """
        loop = asyncio.get_running_loop()

        def _on_change(event: WatchEvent, r: Resource) -> None:
            logger.debug("%s: input %s %s (version=%s)", self._name, r.metadata, event.value, r.version)
            if loop.is_closed():
                return
            loop.call_soon_threadsafe(callback)

        unsubscribes = [self._store.watch(i.namespace, i.type, _on_change, id_=i.id) for i in self._inputs]

        def _unsubscribe_all() -> None:
            for unsub in unsubscribes:
                unsub()

        return _unsubscribe_all
