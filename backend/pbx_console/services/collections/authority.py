"""Abstract remote authority for one ordered collection."""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from pbx_console.schemas.api import OperationResponse
from pbx_console.schemas.resources import OrderedResource

R = TypeVar("R", bound=OrderedResource)


class BaseCollectionAuthority(ABC, Generic[R]):
    """The server side of one collection; the only source of final ordering."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Collection identifier used in logs and operator messages."""

    @abstractmethod
    async def fetch(self) -> list[R]:
        """Fetch the full collection in server order."""

    @abstractmethod
    async def create(self, item: R) -> OperationResponse:
        """Persist a new resource."""

    @abstractmethod
    async def update(self, item: R) -> OperationResponse:
        """Replace an existing resource by id."""

    @abstractmethod
    async def delete(self, resource_id: str) -> OperationResponse:
        """Remove a resource by id."""

    @abstractmethod
    async def reorder(self, from_index: int, to_index: int) -> list[R]:
        """Move the item at ``from_index`` to ``to_index``.

        Indexes refer to the collection as the server currently knows it.

        Returns:
            The full, authoritatively reordered collection.
        """
