"""Ordered collections: snapshot store, reorder synchronizer and controller."""

from pbx_console.services.collections.authority import BaseCollectionAuthority
from pbx_console.services.collections.controller import ActionResult, CollectionController
from pbx_console.services.collections.exceptions import (
    CollectionError,
    ReorderError,
    ReorderFailedError,
    ReorderInProgressError,
    ResourceValidationError,
)
from pbx_console.services.collections.store import CollectionSnapshot, OrderedCollectionStore
from pbx_console.services.collections.synchronizer import (
    ReorderOutcome,
    ReorderSynchronizer,
    SyncState,
)

__all__ = [
    "ActionResult",
    "BaseCollectionAuthority",
    "CollectionController",
    "CollectionError",
    "CollectionSnapshot",
    "OrderedCollectionStore",
    "ReorderError",
    "ReorderFailedError",
    "ReorderInProgressError",
    "ReorderOutcome",
    "ReorderSynchronizer",
    "ResourceValidationError",
    "SyncState",
]
