"""Resource and metadata types held by the store."""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Metadata:
    """Resource key: namespace/type/id."""

    namespace: str
    type: str
    id: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.type}/{self.id}"


@dataclass
class Resource:
    """Versioned resource. version starts at 1 on create and grows by 1 per update."""

    metadata: Metadata
    spec: Dict[str, Any] = field(default_factory=dict)
    version: int = 0
    owner: Optional[str] = None

    def copy(self) -> "Resource":
        return Resource(self.metadata, copy.deepcopy(self.spec), self.version, self.owner)
