"""
Content store repository interface.

One repository per entity kind is injected into the components
that read or write the store.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from game_catalog.ingestion.contracts import EntityKind


class ContentRepository(ABC):
    """Find/create surface of the content store for one entity kind."""

    kind: EntityKind

    @abstractmethod
    async def find(self, filters: dict[str, Any]) -> list[dict[str, Any]]:
        """
        Return records whose fields equal every filter value.

        Raises:
            StoreLookupError: If the store cannot be queried
        """
        ...

    @abstractmethod
    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Create a record and return it with its assigned id.

        Raises:
            StoreConflictError: If a unique field already holds the value
            StoreCreateError: For any other create failure
        """
        ...

    async def find_one(self, **filters: Any) -> dict[str, Any] | None:
        """First matching record, or None."""
        results = await self.find(filters)
        return results[0] if results else None

    async def close(self) -> None:
        """Release resources held by the repository."""
        return None


Repositories = Mapping[EntityKind, ContentRepository]
