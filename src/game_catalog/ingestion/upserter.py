"""
Idempotent get-or-create for taxonomy entities.

Lookup-then-create is not atomic at the store, so resolution is
serialized per (kind, name) behind an asyncio.Lock and resolved
entities are memoized. A create rejected as a uniqueness conflict
falls back to the existing record.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from game_catalog.config import get_settings
from game_catalog.ingestion.contracts import RELATION_KINDS, EntityKind, RelationalEntity
from game_catalog.ingestion.errors import IngestionError, StoreConflictError
from game_catalog.ingestion.normalizer import RelationNames
from game_catalog.ingestion.store import Repositories
from game_catalog.ingestion.utils.concurrency import gather_bounded
from game_catalog.logger import get_logger

EntityKey = tuple[EntityKind, str]


@dataclass
class UpsertSummary:
    """Outcome of resolving a batch of names."""

    requested: int = 0
    resolved: int = 0
    failed: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class ResolvedRelations:
    """Entities resolved for one product, per relation kind."""

    entities: dict[EntityKind, list[RelationalEntity]] = field(
        default_factory=lambda: {kind: [] for kind in RELATION_KINDS}
    )
    missing: list[dict[str, str]] = field(default_factory=list)

    def __getitem__(self, kind: EntityKind) -> list[RelationalEntity]:
        return self.entities[kind]


class IdempotentUpserter:
    """
    Resolves taxonomy names to stored entities, creating them once.

    Example:
        >>> upserter = IdempotentUpserter(repositories)
        >>> entity = await upserter.resolve("CD PROJEKT RED", EntityKind.DEVELOPER)
    """

    def __init__(
        self,
        repositories: Repositories,
        *,
        max_concurrency: int | None = None,
    ) -> None:
        self._repositories = repositories
        self._max_concurrency = max_concurrency or get_settings().pipeline.max_concurrency
        self._locks: dict[EntityKey, asyncio.Lock] = {}
        self._resolved: dict[EntityKey, RelationalEntity] = {}
        self.created = 0
        self._logger = get_logger(__name__, component="upserter")

    def _lock_for(self, key: EntityKey) -> asyncio.Lock:
        return self._locks.setdefault(key, asyncio.Lock())

    async def resolve(self, name: str, kind: EntityKind) -> RelationalEntity | None:
        """
        Return the stored entity for `name`, creating it if absent.

        Existing entities are returned unchanged. Store failures are
        logged and yield None.
        """
        key = (kind, name)

        async with self._lock_for(key):
            cached = self._resolved.get(key)
            if cached is not None:
                return cached

            try:
                entity = await self._get_or_create(name, kind)
            except IngestionError as e:
                self._logger.error(
                    "Entity resolution failed",
                    kind=kind.value,
                    name=name,
                    **e.to_log(),
                )
                return None

            self._resolved[key] = entity
            return entity

    async def _get_or_create(self, name: str, kind: EntityKind) -> RelationalEntity:
        repository = self._repositories[kind]

        existing = await repository.find_one(name=name)
        if existing is not None:
            return RelationalEntity.from_store(existing)

        draft = RelationalEntity.from_name(name)
        try:
            created = await repository.create(draft.to_store_payload())
        except StoreConflictError:
            self._logger.info("Entity created concurrently, reusing", kind=kind.value, name=name)
            existing = await repository.find_one(name=name)
            if existing is None:
                raise
            return RelationalEntity.from_store(existing)

        self.created += 1
        self._logger.info("Entity created", kind=kind.value, name=name, slug=draft.slug)
        return RelationalEntity.from_store({**draft.to_store_payload(), **created})

    async def resolve_many(self, names: RelationNames) -> UpsertSummary:
        """Resolve every name of a batch together, bounded by max_concurrency."""
        keys = [(kind, name) for kind, kind_names in names.items() for name in kind_names]
        summary = UpsertSummary(requested=len(keys))

        results = await gather_bounded(
            (self.resolve(name, kind) for kind, name in keys),
            limit=self._max_concurrency,
        )

        for (kind, name), result in zip(keys, results):
            if isinstance(result, RelationalEntity):
                summary.resolved += 1
            else:
                summary.failed.append({"kind": kind.value, "name": name})

        self._logger.info(
            "Relations upserted",
            requested=summary.requested,
            resolved=summary.resolved,
            failed=len(summary.failed),
        )
        return summary

    async def resolve_relations(self, names: RelationNames) -> ResolvedRelations:
        """Resolve one product's relation names, all kinds concurrently."""
        keys = [(kind, name) for kind, kind_names in names.items() for name in kind_names]
        entities = await asyncio.gather(*(self.resolve(name, kind) for kind, name in keys))

        relations = ResolvedRelations()
        for (kind, name), entity in zip(keys, entities):
            if entity is None:
                relations.missing.append({"kind": kind.value, "name": name})
            else:
                relations.entities[kind].append(entity)
        return relations
