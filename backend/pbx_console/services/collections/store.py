"""Ordered collection store.

Holds the best-known ordered list of one resource kind. Every operation
derives a new immutable ``CollectionSnapshot`` instead of editing the
current one, so callers can compare before/after and roll back by
restoring an earlier snapshot.

Operations address resources by id. An unknown id is a no-op rather than an
error: the UI may race a delete against a stale render.
"""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from pbx_console.schemas.resources import OrderedResource

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=OrderedResource)


@dataclass(frozen=True)
class CollectionSnapshot(Generic[R]):
    """Immutable view of a collection at one moment.

    ``authoritative`` is True when the items are exactly what the server last
    returned, and False once a local change has been applied on top.
    """

    items: tuple[R, ...] = field(default=())
    authoritative: bool = False

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[R]:
        return iter(self.items)

    def __getitem__(self, index: int) -> R:
        return self.items[index]

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(item.id for item in self.items)

    def index_of(self, resource_id: str) -> int | None:
        for index, item in enumerate(self.items):
            if item.id == resource_id:
                return index
        return None

    def get(self, resource_id: str) -> R | None:
        index = self.index_of(resource_id)
        return None if index is None else self.items[index]

    def _derive(self, items: tuple[R, ...]) -> "CollectionSnapshot[R]":
        return CollectionSnapshot(items)

    def insert(self, item: R, index: int | None = None) -> "CollectionSnapshot[R]":
        """Add ``item`` at ``index`` (default: the end). Duplicate ids are ignored."""
        if self.index_of(item.id) is not None:
            return self
        if index is None:
            index = len(self.items)
        index = max(0, min(index, len(self.items)))
        return self._derive(self.items[:index] + (item,) + self.items[index:])

    def replace(self, item: R) -> "CollectionSnapshot[R]":
        index = self.index_of(item.id)
        if index is None:
            return self
        return self._derive(self.items[:index] + (item,) + self.items[index + 1 :])

    def remove(self, resource_id: str) -> "CollectionSnapshot[R]":
        index = self.index_of(resource_id)
        if index is None:
            return self
        return self._derive(self.items[:index] + self.items[index + 1 :])

    def move_to(self, resource_id: str, new_index: int) -> "CollectionSnapshot[R]":
        """Remove the item at its current index and insert it at ``new_index``.

        ``new_index`` is clamped to the ends of the collection.
        """
        old_index = self.index_of(resource_id)
        if old_index is None:
            return self
        new_index = max(0, min(new_index, len(self.items) - 1))
        if new_index == old_index:
            return self
        items = list(self.items)
        items.insert(new_index, items.pop(old_index))
        return self._derive(tuple(items))


class OrderedCollectionStore(Generic[R]):
    """Current-best-known state of one ordered collection.

    Each mutator swaps in a new snapshot and returns it. The store never talks
    to the network; see ``ReorderSynchronizer`` and ``CollectionController``.
    """

    def __init__(self, name: str, items: Iterable[R] = ()) -> None:
        self._name = name
        self._snapshot: CollectionSnapshot[R] = CollectionSnapshot(tuple(items))

    @property
    def name(self) -> str:
        return self._name

    @property
    def snapshot(self) -> CollectionSnapshot[R]:
        return self._snapshot

    def __len__(self) -> int:
        return len(self._snapshot)

    def next_priority(self) -> int:
        """Priority for a resource about to be created: the current length."""
        return len(self._snapshot)

    def insert(self, item: R, index: int | None = None) -> CollectionSnapshot[R]:
        return self._swap(self._snapshot.insert(item, index))

    def replace(self, item: R) -> CollectionSnapshot[R]:
        return self._swap(self._snapshot.replace(item))

    def remove(self, resource_id: str) -> CollectionSnapshot[R]:
        return self._swap(self._snapshot.remove(resource_id))

    def move_to(self, resource_id: str, new_index: int) -> CollectionSnapshot[R]:
        return self._swap(self._snapshot.move_to(resource_id, new_index))

    def adopt(self, items: Iterable[R]) -> CollectionSnapshot[R]:
        """Replace everything with the server's list and mark it authoritative."""
        snapshot = CollectionSnapshot(tuple(items), authoritative=True)
        logger.debug("%s: adopted %d authoritative items", self._name, len(snapshot))
        return self._swap(snapshot)

    def restore(self, snapshot: CollectionSnapshot[R]) -> CollectionSnapshot[R]:
        """Roll back to an earlier snapshot."""
        return self._swap(snapshot)

    def _swap(self, snapshot: CollectionSnapshot[R]) -> CollectionSnapshot[R]:
        self._snapshot = snapshot
        return snapshot
