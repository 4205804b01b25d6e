"""Collection controller: the operator-action boundary for one collection.

Each public coroutine is one operator action (load, create, update, delete,
move). Actions on the same collection are queued on a lock so they never
interleave; actions on different collections run independently.

Errors never escape as exceptions from a failed action. They are logged and
returned as an ``ActionResult`` with ``ok=False`` and a readable message,
after the collection has been put back into a consistent state:

    validation failure  → local state restored, nothing re-fetched
    malformed payload   → local state restored, nothing re-fetched
    conflict/transport  → local state restored, collection re-fetched
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import ValidationError

from pbx_console.core.exceptions import ConsoleError
from pbx_console.schemas.api import OperationResponse
from pbx_console.schemas.kinds import ResourceKind
from pbx_console.schemas.resources import OrderedResource, new_resource_id
from pbx_console.services.api_client.exceptions import ApiValidationError, MalformedResponseError
from pbx_console.services.collections.authority import BaseCollectionAuthority
from pbx_console.services.collections.exceptions import ResourceValidationError
from pbx_console.services.collections.store import CollectionSnapshot, OrderedCollectionStore
from pbx_console.services.collections.synchronizer import ReorderSynchronizer

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=OrderedResource)


@dataclass(frozen=True)
class ActionResult(Generic[R]):
    """What the operator sees after an action."""

    ok: bool
    message: str
    snapshot: CollectionSnapshot[R]
    error: ConsoleError | None = None


def _display_name(item: OrderedResource) -> str:
    for attr in ("name", "extension", "number"):
        value = getattr(item, attr, None)
        if value:
            return str(value)
    return item.id


class CollectionController(Generic[R]):
    """Owns the store, synchronizer and authority of one resource kind."""

    def __init__(
        self,
        kind: ResourceKind[R],
        authority: BaseCollectionAuthority[R],
        store: OrderedCollectionStore[R] | None = None,
    ) -> None:
        self._kind = kind
        self._authority = authority
        self._store = store if store is not None else OrderedCollectionStore(kind.name)
        self._sync = ReorderSynchronizer(self._store, authority)
        self._lock = asyncio.Lock()

    @property
    def kind(self) -> ResourceKind[R]:
        return self._kind

    @property
    def store(self) -> OrderedCollectionStore[R]:
        return self._store

    @property
    def synchronizer(self) -> ReorderSynchronizer[R]:
        return self._sync

    @property
    def snapshot(self) -> CollectionSnapshot[R]:
        return self._store.snapshot

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    # ------------------------------------------------------------------
    # Client-side validation
    # ------------------------------------------------------------------

    def prepare(self, data: dict[str, Any]) -> R:
        """Validate form data into a new resource.

        A fresh id and ``priority = len(collection)`` are filled in when the
        form does not supply them.

        Raises:
            ResourceValidationError: The data does not describe a valid resource.
        """
        fields = dict(data)
        fields.setdefault("priority", self._store.next_priority())
        if not fields.get("id"):
            natural = fields.get(self._kind.natural_key) if self._kind.natural_key else None
            fields["id"] = natural or new_resource_id(self._kind.id_prefix)
        return self.validate(fields)

    def validate(self, data: dict[str, Any]) -> R:
        try:
            return self._kind.model.model_validate(data)
        except ValidationError as exc:
            details = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'value'}: {err['msg']}" for err in exc.errors()
            )
            raise ResourceValidationError(self._kind.label, details) from exc

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def load(self) -> ActionResult[R]:
        """Fetch the collection; on failure the current state is kept."""
        async with self._lock:
            try:
                snapshot = await self._sync.refresh()
            except ConsoleError as exc:
                logger.warning("%s: fetch failed: %s", self._kind.name, exc)
                return self._failure(f"Failed to fetch {self._kind.name} from server: {exc}", exc)
            return ActionResult(ok=True, message=f"Loaded {len(snapshot)} {self._kind.name}", snapshot=snapshot)

    async def create(self, item: R | dict[str, Any]) -> ActionResult[R]:
        try:
            resource = self.prepare(item) if isinstance(item, dict) else item
        except ResourceValidationError as exc:
            return self._failure(str(exc), exc)

        label = self._kind.title
        return await self._mutate(
            verb="create",
            apply=lambda: self._store.insert(resource),
            call=lambda: self._authority.create(resource),
            success=f"{label} '{_display_name(resource)}' created successfully",
        )

    async def update(self, item: R | dict[str, Any]) -> ActionResult[R]:
        try:
            resource = self.validate(item) if isinstance(item, dict) else item
        except ResourceValidationError as exc:
            return self._failure(str(exc), exc)

        label = self._kind.title
        return await self._mutate(
            verb="update",
            apply=lambda: self._store.replace(resource),
            call=lambda: self._authority.update(resource),
            success=f"{label} '{_display_name(resource)}' updated successfully",
        )

    async def delete(self, resource_id: str) -> ActionResult[R]:
        label = self._kind.title
        return await self._mutate(
            verb="delete",
            apply=lambda: self._store.remove(resource_id),
            call=lambda: self._authority.delete(resource_id),
            success=f"{label} deleted successfully",
        )

    async def move(self, resource_id: str, new_index: int) -> ActionResult[R]:
        """Reorder through the synchronizer (optimistic, then authoritative)."""
        async with self._lock:
            try:
                outcome = await self._sync.move(resource_id, new_index)
            except ConsoleError as exc:
                logger.warning("%s: reorder failed: %s", self._kind.name, exc)
                return self._failure(str(exc), exc)

        if not outcome.committed:
            return ActionResult(ok=True, message="Order unchanged", snapshot=outcome.snapshot)
        label = self._kind.title
        return ActionResult(ok=True, message=f"{label} order updated", snapshot=outcome.snapshot)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _mutate(
        self,
        verb: str,
        apply: Callable[[], CollectionSnapshot[R]],
        call: Callable[[], Awaitable[OperationResponse]],
        success: str,
    ) -> ActionResult[R]:
        async with self._lock:
            before = self._store.snapshot
            apply()
            try:
                response = await call()
            except (ApiValidationError, MalformedResponseError) as exc:
                self._store.restore(before)
                logger.warning("%s: %s rejected: %s", self._kind.name, verb, exc)
                return self._failure(f"Failed to {verb} {self._kind.label}: {exc}", exc)
            except ConsoleError as exc:
                self._store.restore(before)
                logger.warning("%s: %s failed, re-fetching: %s", self._kind.name, verb, exc)
                await self._refresh_quietly()
                return self._failure(f"Failed to {verb} {self._kind.label}: {exc}", exc)
            except BaseException:
                self._store.restore(before)
                raise

            await self._refresh_quietly()
            return ActionResult(ok=True, message=response.message or success, snapshot=self._store.snapshot)

    async def _refresh_quietly(self) -> None:
        try:
            await self._sync.refresh()
        except ConsoleError:
            logger.exception("%s: re-fetch failed; keeping last known state", self._kind.name)

    def _failure(self, message: str, exc: ConsoleError) -> ActionResult[R]:
        return ActionResult(ok=False, message=message, snapshot=self._store.snapshot, error=exc)
