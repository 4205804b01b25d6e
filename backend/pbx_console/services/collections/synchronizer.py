"""Reorder synchronizer: optimistic move, server commit, reconcile.

Turns an index move requested by the operator into a durable priority change:

    1. Find the resource's current index
    2. Apply the move locally so the new order renders immediately
    3. Ask the authority to perform the same move by index
    4. Success → adopt the server's returned list wholesale
    5. Failure → restore the pre-move snapshot, re-fetch the collection,
       then raise ReorderFailedError (a malformed reply restores without
       re-fetching; cancellation restores and re-raises)

State machine::

    STABLE --move--> PENDING_COMMIT(snapshot_before) --ack/rollback--> STABLE

Only one reorder may be outstanding per collection; a second attempt while
PENDING_COMMIT raises ReorderInProgressError.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from pbx_console.core.exceptions import ConsoleError
from pbx_console.schemas.resources import OrderedResource
from pbx_console.services.api_client.exceptions import MalformedResponseError
from pbx_console.services.collections.authority import BaseCollectionAuthority
from pbx_console.services.collections.exceptions import (
    ReorderFailedError,
    ReorderInProgressError,
)
from pbx_console.services.collections.store import CollectionSnapshot, OrderedCollectionStore

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=OrderedResource)


class SyncState(str, Enum):
    STABLE = "stable"
    PENDING_COMMIT = "pending_commit"


@dataclass(frozen=True)
class ReorderOutcome(Generic[R]):
    """Result of a reorder that did not fail.

    ``committed`` is False when there was nothing to send (unknown id or the
    item is already at the requested index).
    """

    committed: bool
    from_index: int | None
    to_index: int | None
    snapshot: CollectionSnapshot[R]


class ReorderSynchronizer(Generic[R]):
    """Keeps one store's order in step with its authority."""

    def __init__(self, store: OrderedCollectionStore[R], authority: BaseCollectionAuthority[R]) -> None:
        self._store = store
        self._authority = authority
        self._state = SyncState.STABLE
        self._pending_before: CollectionSnapshot[R] | None = None

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def pending_snapshot(self) -> CollectionSnapshot[R] | None:
        """Snapshot taken before the outstanding move, if one is pending."""
        return self._pending_before

    async def move(self, resource_id: str, new_index: int) -> ReorderOutcome[R]:
        """Move ``resource_id`` to ``new_index`` and commit it to the authority.

        Raises:
            ReorderInProgressError: A previous reorder is still outstanding.
            ReorderFailedError: The authority rejected the move or could not be
                reached; the store has been rolled back and refreshed.
        """
        if self._state is SyncState.PENDING_COMMIT:
            raise ReorderInProgressError(self._store.name)

        before = self._store.snapshot
        old_index = before.index_of(resource_id)
        if old_index is None:
            logger.info("%s: reorder of unknown id %s ignored", self._store.name, resource_id)
            return ReorderOutcome(committed=False, from_index=None, to_index=None, snapshot=before)

        optimistic = self._store.move_to(resource_id, new_index)
        to_index = optimistic.index_of(resource_id)
        if to_index == old_index:
            return ReorderOutcome(committed=False, from_index=old_index, to_index=to_index, snapshot=before)

        self._state = SyncState.PENDING_COMMIT
        self._pending_before = before
        logger.info("%s: moving %s from %d to %d", self._store.name, resource_id, old_index, to_index)

        try:
            items = await self._authority.reorder(old_index, to_index)
        except MalformedResponseError as exc:
            logger.warning(
                "%s: reorder %d → %d returned a malformed response: %s", self._store.name, old_index, to_index, exc
            )
            self._store.restore(before)
            raise ReorderFailedError(self._store.name, str(exc)) from exc
        except ConsoleError as exc:
            logger.warning("%s: reorder %d → %d rejected: %s", self._store.name, old_index, to_index, exc)
            await self._rollback(before)
            raise ReorderFailedError(self._store.name, str(exc)) from exc
        except Exception:
            logger.exception("%s: unexpected error during reorder", self._store.name)
            await self._rollback(before)
            raise
        except BaseException:
            # cancelled mid-commit; nothing may be awaited here
            self._store.restore(before)
            raise
        finally:
            self._state = SyncState.STABLE
            self._pending_before = None

        snapshot = self._store.adopt(items)
        return ReorderOutcome(committed=True, from_index=old_index, to_index=to_index, snapshot=snapshot)

    async def refresh(self) -> CollectionSnapshot[R]:
        """Fetch the collection and adopt it as authoritative."""
        items = await self._authority.fetch()
        return self._store.adopt(items)

    async def _rollback(self, before: CollectionSnapshot[R]) -> None:
        self._store.restore(before)
        try:
            await self.refresh()
        except ConsoleError:
            logger.exception(
                "%s: re-fetch after failed reorder also failed; keeping last known order",
                self._store.name,
            )
