"""Async client for the call-routing platform's REST API.

One ``ConsoleApiClient`` per admin session; ``resource(kind)`` hands out a
``ResourceEndpoint`` for each ordered collection, which is the remote
authority a ``CollectionController`` talks to.

HTTP failures are mapped onto the console's error taxonomy:

    network error, timeout, 5xx     → ApiTransportError
    404, 409                        → ApiConflictError
    other 4xx, ``success: false``   → ApiValidationError (server message verbatim)
    unparseable body                → MalformedResponseError
"""

import logging
from typing import Any, Generic, TypeVar
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError

from pbx_console.core.config import settings
from pbx_console.schemas.api import (
    HealthResponse,
    OperationResponse,
    ReorderRequest,
    RouteTestRequest,
    RouteTestResponse,
)
from pbx_console.schemas.kinds import ROUTES, ResourceKind
from pbx_console.schemas.resources import OrderedResource
from pbx_console.schemas.routing import RoutingRule
from pbx_console.services.api_client.exceptions import (
    ApiConflictError,
    ApiTransportError,
    ApiValidationError,
    MalformedResponseError,
)
from pbx_console.services.collections.authority import BaseCollectionAuthority

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=OrderedResource)

_CONFLICT_STATUSES = {404, 409}


def _error_message(response: httpx.Response) -> str:
    """Best-effort operator-facing message from an error response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
            if value:
                return str(value)
    return response.reason_phrase


class ConsoleApiClient:
    """Thin async wrapper around ``httpx.AsyncClient``.

    Usage::

        async with ConsoleApiClient() as api:
            routes = await api.routes.fetch()
            result = await api.test_route("+15551234567", "1001")
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        token = settings.API_TOKEN if token is None else token
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._prefix = settings.API_V1_PREFIX
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            timeout=settings.HTTP_TIMEOUT_SECONDS if timeout is None else timeout,
            headers=headers,
            transport=transport,
        )
        self._endpoints: dict[str, ResourceEndpoint] = {}

    async def __aenter__(self) -> "ConsoleApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def resource(self, kind: ResourceKind[R]) -> "ResourceEndpoint[R]":
        endpoint = self._endpoints.get(kind.name)
        if endpoint is None:
            endpoint = ResourceEndpoint(self, kind)
            self._endpoints[kind.name] = endpoint
        return endpoint

    @property
    def routes(self) -> "ResourceEndpoint[RoutingRule]":
        return self.resource(ROUTES)

    async def health(self) -> HealthResponse:
        body = await self.request("GET", "/health", prefixed=False)
        return self.parse(HealthResponse, body)

    async def test_route(self, caller_id: str, destination: str) -> RouteTestResponse:
        """Ask the server how it would route a call right now."""
        payload = RouteTestRequest(caller_id=caller_id, destination=destination)
        body = await self.request("POST", f"/{ROUTES.path}/test", json=payload.model_dump())
        result = self.parse(RouteTestResponse, body)
        if not result.success:
            raise ApiValidationError(result.message or "Route test failed")
        return result

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        prefixed: bool = True,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Raises:
            ApiTransportError: Network failure, timeout or 5xx.
            ApiConflictError: 404 or 409.
            ApiValidationError: Any other 4xx.
            MalformedResponseError: Body is not JSON.
        """
        url = f"{self._prefix}{path}" if prefixed else path
        try:
            response = await self._client.request(method, url, json=json)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            logger.error("%s %s timed out", method, url)
            raise ApiTransportError(f"Request timed out: {method} {url}") from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            message = _error_message(exc.response)
            logger.error("%s %s returned %d: %s", method, url, status, message)
            if status >= 500:
                raise ApiTransportError(f"Server error {status}: {message}", status) from exc
            if status in _CONFLICT_STATUSES:
                raise ApiConflictError(message, status) from exc
            raise ApiValidationError(message, status) from exc
        except httpx.RequestError as exc:
            logger.error("%s %s failed: %s", method, url, exc)
            raise ApiTransportError(f"Request failed: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponseError(f"{method} {url} returned a non-JSON body", response.status_code) from exc

    @staticmethod
    def parse(model: Any, data: Any) -> Any:
        """Validate ``data`` against a model or type; bad shapes are MalformedResponseError."""
        try:
            return TypeAdapter(model).validate_python(data)
        except ValidationError as exc:
            raise MalformedResponseError(f"Unexpected response shape: {exc.error_count()} error(s): {exc}") from exc


class ResourceEndpoint(BaseCollectionAuthority[R], Generic[R]):
    """REST authority for one resource kind (``/api/v1/<path>``)."""

    def __init__(self, api: ConsoleApiClient, kind: ResourceKind[R]) -> None:
        self._api = api
        self._kind = kind
        self._list_adapter = TypeAdapter(list[kind.model])

    @property
    def name(self) -> str:
        return self._kind.name

    @property
    def kind(self) -> ResourceKind[R]:
        return self._kind

    async def fetch(self) -> list[R]:
        body = await self._api.request("GET", f"/{self._kind.path}")
        return self._items(body)

    async def create(self, item: R) -> OperationResponse:
        body = await self._api.request("POST", f"/{self._kind.path}", json=item.model_dump(mode="json"))
        return self._operation(body)

    async def update(self, item: R) -> OperationResponse:
        body = await self._api.request("PUT", self._item_path(item.id), json=item.model_dump(mode="json"))
        return self._operation(body)

    async def delete(self, resource_id: str) -> OperationResponse:
        body = await self._api.request("DELETE", self._item_path(resource_id))
        return self._operation(body)

    async def reorder(self, from_index: int, to_index: int) -> list[R]:
        payload = ReorderRequest(from_index=from_index, to_index=to_index)
        body = await self._api.request("POST", f"/{self._kind.path}/reorder", json=payload.model_dump())
        if isinstance(body, dict) and body.get("success") is False:
            raise ApiValidationError(body.get("message") or "Reorder rejected")
        return self._items(body)

    def _item_path(self, resource_id: str) -> str:
        return f"/{self._kind.path}/{quote(resource_id, safe='')}"

    def _items(self, body: Any) -> list[R]:
        if not isinstance(body, dict) or self._kind.list_key not in body:
            raise MalformedResponseError(f"Response has no '{self._kind.list_key}' array")
        try:
            return self._list_adapter.validate_python(body[self._kind.list_key])
        except ValidationError as exc:
            raise MalformedResponseError(
                f"Invalid {self._kind.name} in response: {exc.error_count()} error(s): {exc}"
            ) from exc

    def _operation(self, body: Any) -> OperationResponse:
        result = ConsoleApiClient.parse(OperationResponse, body)
        if not result.success:
            raise ApiValidationError(result.message or f"{self._kind.label} operation rejected")
        return result
