"""
In-memory content store.

Backs dry runs from the CLI and the test suite. Optionally enforces
unique fields so conflict handling can be exercised.
"""

import asyncio
from itertools import count
from typing import Any

from game_catalog.ingestion.contracts import EntityKind
from game_catalog.ingestion.errors import StoreConflictError
from game_catalog.ingestion.store.base import ContentRepository


class InMemoryRepository(ContentRepository):
    """Dict-backed repository with auto-increment ids."""

    def __init__(
        self,
        kind: EntityKind,
        *,
        unique_fields: tuple[str, ...] = (),
    ) -> None:
        self.kind = kind
        self.records: list[dict[str, Any]] = []
        self.find_calls = 0
        self.create_calls = 0
        self._unique_fields = unique_fields
        self._ids = count(1)

    async def find(self, filters: dict[str, Any]) -> list[dict[str, Any]]:
        self.find_calls += 1
        # Yield so concurrent callers interleave like they would over the network
        await asyncio.sleep(0)
        return [
            dict(record)
            for record in self.records
            if all(record.get(key) == value for key, value in filters.items())
        ]

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        self.create_calls += 1
        await asyncio.sleep(0)

        for field in self._unique_fields:
            if any(record.get(field) == data.get(field) for record in self.records):
                raise StoreConflictError(
                    f"{self.kind.value}.{field} must be unique",
                    source="memory",
                    status_code=400,
                    details=[{"path": [field], "message": "This attribute must be unique"}],
                )

        record = {"id": next(self._ids), **data}
        self.records.append(record)
        return dict(record)


def memory_repositories(*, unique_names: bool = True) -> dict[EntityKind, InMemoryRepository]:
    """One in-memory repository per entity kind."""
    unique_fields = ("name",) if unique_names else ()
    return {kind: InMemoryRepository(kind, unique_fields=unique_fields) for kind in EntityKind}
