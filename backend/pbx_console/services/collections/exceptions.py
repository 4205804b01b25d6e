"""Ordered collection exceptions."""

from pbx_console.core.exceptions import ConsoleError


class CollectionError(ConsoleError):
    """Base exception for ordered collection operations."""


class ResourceValidationError(CollectionError):
    """Raised when a resource fails client-side validation before submission."""

    def __init__(self, label: str, message: str) -> None:
        self.label = label
        super().__init__(f"Invalid {label}: {message}")


class ReorderError(CollectionError):
    """Base exception for reorder operations."""


class ReorderInProgressError(ReorderError):
    """Raised when a reorder is attempted while another is awaiting the server."""

    def __init__(self, collection: str) -> None:
        self.collection = collection
        super().__init__(f"A reorder of {collection} is already awaiting the server")


class ReorderFailedError(ReorderError):
    """Raised after a rejected reorder has been rolled back."""

    def __init__(self, collection: str, message: str) -> None:
        self.collection = collection
        super().__init__(f"Failed to reorder {collection}: {message}")
