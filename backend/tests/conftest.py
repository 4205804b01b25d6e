import asyncio
from datetime import UTC, datetime

import httpx
import pytest
from fastapi.testclient import TestClient

from pbx_console.core.exceptions import ConsoleError
from pbx_console.main import create_app
from pbx_console.schemas.api import OperationResponse
from pbx_console.schemas.resources import OrderedResource
from pbx_console.schemas.routing import RoutingRule
from pbx_console.services.api_client import ApiConflictError, ApiValidationError, ConsoleApiClient
from pbx_console.services.collections import BaseCollectionAuthority
from pbx_console.services.reference import CollectionRegistry
from pbx_console.services.routing import ConditionMatcher, RouteEvaluator, TimeProvider

# Wednesday 13 March 2024, 10:30 UTC
FIXED_NOW = datetime(2024, 3, 13, 10, 30, tzinfo=UTC)


class FixedTimeProvider(TimeProvider):
    """Clock pinned to a settable instant."""

    def __init__(self, now: datetime = FIXED_NOW) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current


class FakeAuthority(BaseCollectionAuthority):
    """In-memory authority with the reference server's semantics.

    Set ``fail_with`` to make the next mutating call raise, ``fetch_error`` to
    make ``fetch`` raise, or ``gate`` to hold mutating calls until it is set.
    """

    def __init__(self, name: str = "routes", items=()) -> None:
        self._name = name
        self.items = [item.model_copy(update={"priority": i}) for i, item in enumerate(items)]
        self.fail_with: Exception | None = None
        self.fetch_error: ConsoleError | None = None
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple] = []
        self.reply_message = True

    @property
    def name(self) -> str:
        return self._name

    def _message(self, text: str) -> str:
        return text if self.reply_message else ""

    async def _hold(self) -> None:
        if self.gate is not None:
            await self.gate.wait()

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            exc, self.fail_with = self.fail_with, None
            raise exc

    async def fetch(self):
        self.calls.append(("fetch",))
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.items)

    async def create(self, item):
        self.calls.append(("create", item.id))
        await self._hold()
        self._maybe_fail()
        if any(existing.id == item.id for existing in self.items):
            raise ApiConflictError("Already exists", 409)
        self.items.append(item)
        return OperationResponse(success=True, message=self._message("Created"), id=item.id)

    async def update(self, item):
        self.calls.append(("update", item.id))
        await self._hold()
        self._maybe_fail()
        for index, existing in enumerate(self.items):
            if existing.id == item.id:
                self.items[index] = item
                return OperationResponse(success=True, message=self._message("Updated"))
        raise ApiConflictError("Not found", 404)

    async def delete(self, resource_id):
        self.calls.append(("delete", resource_id))
        await self._hold()
        self._maybe_fail()
        for index, existing in enumerate(self.items):
            if existing.id == resource_id:
                del self.items[index]
                return OperationResponse(success=True, message=self._message("Deleted"))
        raise ApiConflictError("Not found", 404)

    async def reorder(self, from_index, to_index):
        self.calls.append(("reorder", from_index, to_index))
        await self._hold()
        self._maybe_fail()
        if from_index >= len(self.items) or to_index >= len(self.items):
            raise ApiValidationError("Invalid index", 400)
        item = self.items.pop(from_index)
        self.items.insert(to_index, item)
        self.items = [item.model_copy(update={"priority": i}) for i, item in enumerate(self.items)]
        return list(self.items)


def make_rule(rule_id: str, pattern: str = r"^\d+$", priority: int = 0, **fields) -> RoutingRule:
    data = {
        "id": rule_id,
        "name": fields.pop("name", rule_id),
        "pattern": pattern,
        "priority": priority,
        "destination": fields.pop("destination", {"type": "Extension", "value": "1000"}),
    }
    data.update(fields)
    return RoutingRule.model_validate(data)


def make_items(*ids: str) -> list[OrderedResource]:
    return [OrderedResource(id=resource_id, priority=index) for index, resource_id in enumerate(ids)]


@pytest.fixture
def clock():
    return FixedTimeProvider()


@pytest.fixture
def evaluator(clock):
    return RouteEvaluator(ConditionMatcher(clock))


@pytest.fixture
def sample_rules():
    """Two rules: four-digit internal numbers first, anything numeric second."""
    return [
        make_rule("rule-internal", r"^1\d{3}$", 0, name="Internal", destination={"type": "Extension", "value": "1000"}),
        make_rule("rule-pstn", r"^\d+$", 1, name="PSTN", destination={"type": "Trunk", "value": "pstn"}),
    ]


@pytest.fixture
def authority():
    return FakeAuthority("items", make_items("a", "b", "c", "d"))


@pytest.fixture
def registry():
    return CollectionRegistry()


@pytest.fixture
def reference_app(registry, clock):
    return create_app(registry, clock)


@pytest.fixture
def client(reference_app):
    """TestClient against the in-memory reference API."""
    return TestClient(reference_app)


@pytest.fixture
def make_api(reference_app):
    """Factory for ConsoleApiClient instances wired to the reference app in-process."""

    def _make(**kwargs) -> ConsoleApiClient:
        return ConsoleApiClient(
            base_url="http://testserver",
            transport=httpx.ASGITransport(app=reference_app),
            **kwargs,
        )

    return _make
