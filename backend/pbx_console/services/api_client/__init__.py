"""REST client for the platform API."""

from pbx_console.services.api_client.exceptions import (
    ApiConflictError,
    ApiTransportError,
    ApiValidationError,
    ConsoleApiError,
    MalformedResponseError,
)
from pbx_console.services.api_client.client import ConsoleApiClient, ResourceEndpoint

__all__ = [
    "ApiConflictError",
    "ApiTransportError",
    "ApiValidationError",
    "ConsoleApiClient",
    "ConsoleApiError",
    "MalformedResponseError",
    "ResourceEndpoint",
]
