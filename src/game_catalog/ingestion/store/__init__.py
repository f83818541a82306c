"""
Content store access.

Repositories expose find/create per entity kind and are injected
into the upserter and the entry builder.
"""

from game_catalog.ingestion.store.base import ContentRepository, Repositories
from game_catalog.ingestion.store.http import HTTPContentRepository, http_repositories
from game_catalog.ingestion.store.memory import InMemoryRepository, memory_repositories

__all__ = [
    "ContentRepository",
    "HTTPContentRepository",
    "InMemoryRepository",
    "Repositories",
    "http_repositories",
    "memory_repositories",
]
