"""In-memory collections backing the reference API server.

Each kind is a plain list guarded by nothing but the event loop: endpoint
handlers never await while holding a reference to a list, so every handler
sees and leaves a consistent collection.
"""

import logging
from collections.abc import Iterable
from typing import Generic, TypeVar

from pbx_console.schemas.kinds import CODECS, RESOURCE_KINDS, ResourceKind
from pbx_console.schemas.resources import Codec, OrderedResource

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=OrderedResource)

DEFAULT_CODECS: list[Codec] = [
    Codec(name="PCMU", payload_type=0, clock_rate=8000, channels=1, description="G.711 μ-law (64 kbps)"),
    Codec(name="PCMA", payload_type=8, clock_rate=8000, channels=1, description="G.711 A-law (64 kbps)"),
    Codec(name="G722", payload_type=9, clock_rate=8000, channels=1, description="G.722 wideband (64 kbps)"),
    Codec(name="GSM", payload_type=3, clock_rate=8000, channels=1, description="GSM Full Rate (13 kbps)"),
    Codec(name="G729", payload_type=18, clock_rate=8000, channels=1, description="G.729 (8 kbps)"),
    Codec(name="opus", payload_type=111, clock_rate=48000, channels=2, description="Opus codec (6-510 kbps)"),
]


class DuplicateResourceError(Exception):
    pass


class UnknownResourceError(Exception):
    pass


class InvalidIndexError(Exception):
    pass


class InMemoryCollection(Generic[R]):
    """Server-side list for one kind; list order is the authoritative order."""

    def __init__(self, kind: ResourceKind[R], items: Iterable[R] = ()) -> None:
        self.kind = kind
        self._label = kind.title
        self._items: list[R] = [
            item.model_copy(update={"priority": index}) for index, item in enumerate(items)
        ]

    def __len__(self) -> int:
        return len(self._items)

    def all(self) -> list[R]:
        return list(self._items)

    def get(self, resource_id: str) -> R:
        for item in self._items:
            if item.id == resource_id:
                return item
        raise UnknownResourceError(f"{self._label} not found")

    def add(self, item: R) -> R:
        name = getattr(item, "name", None)
        for existing in self._items:
            if existing.id == item.id or (name is not None and getattr(existing, "name", None) == name):
                raise DuplicateResourceError(f"{self._label} already exists")
        self._items.append(item)
        return item

    def replace(self, resource_id: str, item: R) -> R:
        for index, existing in enumerate(self._items):
            if existing.id == resource_id:
                self._items[index] = item
                return item
        raise UnknownResourceError(f"{self._label} not found")

    def remove(self, resource_id: str) -> None:
        for index, existing in enumerate(self._items):
            if existing.id == resource_id:
                del self._items[index]
                return
        raise UnknownResourceError(f"{self._label} not found")

    def reorder(self, from_index: int, to_index: int) -> list[R]:
        """Move by index, then renumber every priority to its position."""
        if from_index >= len(self._items) or to_index >= len(self._items):
            raise InvalidIndexError("Invalid index")
        item = self._items.pop(from_index)
        self._items.insert(to_index, item)
        self._items = [item.model_copy(update={"priority": index}) for index, item in enumerate(self._items)]
        logger.info("%s reordered: %d → %d", self.kind.name, from_index, to_index)
        return self.all()


class CollectionRegistry:
    """One ``InMemoryCollection`` per resource kind."""

    def __init__(self, seed: dict[str, Iterable[OrderedResource]] | None = None) -> None:
        seed = seed or {}
        self._collections: dict[str, InMemoryCollection] = {
            name: InMemoryCollection(kind, seed.get(name, ())) for name, kind in RESOURCE_KINDS.items()
        }

    @classmethod
    def with_defaults(cls) -> "CollectionRegistry":
        return cls({CODECS.name: DEFAULT_CODECS})

    def __getitem__(self, kind_name: str) -> InMemoryCollection:
        return self._collections[kind_name]
