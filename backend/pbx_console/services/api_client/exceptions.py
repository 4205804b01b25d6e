"""Console API client exceptions."""

from pbx_console.core.exceptions import ConsoleError


class ConsoleApiError(ConsoleError):
    """Base exception for calls to the platform REST API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ApiValidationError(ConsoleApiError):
    """The server refused the request as invalid; its message is kept verbatim."""


class ApiConflictError(ConsoleApiError):
    """The server rejected the request because the underlying data changed."""


class ApiTransportError(ConsoleApiError):
    """Network failure, timeout or server-side (5xx) error."""


class MalformedResponseError(ConsoleApiError):
    """The response body could not be parsed into the expected shape."""
