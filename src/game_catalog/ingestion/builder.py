"""
Catalog entry assembly and creation.

Skips products whose title already exists, resolves relations and
enrichment concurrently, then submits the create call.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal

from game_catalog.ingestion.contracts import (
    CatalogEntry,
    EntityKind,
    Enrichment,
    Product,
)
from game_catalog.ingestion.errors import StoreCreateError
from game_catalog.ingestion.extractors.detail_page import DetailPageEnricher
from game_catalog.ingestion.normalizer import product_relation_names
from game_catalog.ingestion.store import Repositories
from game_catalog.ingestion.upserter import IdempotentUpserter, ResolvedRelations
from game_catalog.logger import get_logger

DEFAULT_PRICE = Decimal("0.00")

# Catalog dates come as ISO dates, dotted dates or full timestamps
RELEASE_DATE_FORMATS = ("%Y-%m-%d", "%Y.%m.%d", "%Y/%m/%d")


def parse_release_date(value: str | None) -> date | None:
    """Parse a catalog release date, None when absent or unreadable."""
    if not value:
        return None

    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    for fmt in RELEASE_DATE_FORMATS:
        try:
            return datetime.strptime(value[:10], fmt).date()
        except ValueError:
            continue
    return None


@dataclass
class BuiltEntry:
    """A created entry plus what was left out of it."""

    entry: CatalogEntry
    missing_relations: list[dict[str, str]] = field(default_factory=list)


class CatalogEntryBuilder:
    """
    Builds and creates one CatalogEntry per product.

    Example:
        >>> builder = CatalogEntryBuilder(repositories, upserter, enricher)
        >>> built = await builder.create_entry(product)
    """

    def __init__(
        self,
        repositories: Repositories,
        upserter: IdempotentUpserter,
        enricher: DetailPageEnricher,
    ) -> None:
        self._games = repositories[EntityKind.GAME]
        self._upserter = upserter
        self._enricher = enricher
        self._title_locks: dict[str, asyncio.Lock] = {}
        self._logger = get_logger(__name__, component="entry_builder")

    async def exists(self, title: str) -> bool:
        """
        Whether an entry with exactly this name is stored.

        Raises:
            StoreLookupError: If the store cannot be queried
        """
        return await self._games.find_one(name=title) is not None

    def assemble(
        self,
        product: Product,
        relations: ResolvedRelations,
        enrichment: Enrichment | None,
    ) -> CatalogEntry:
        """Map product, relations and enrichment onto a new entry."""
        amount = product.final_amount
        entry = CatalogEntry(
            name=product.title,
            slug=product.slug,
            price=amount if amount is not None else DEFAULT_PRICE,
            release_date=parse_release_date(product.release_date),
            developers=relations[EntityKind.DEVELOPER],
            publishers=relations[EntityKind.PUBLISHER],
            categories=relations[EntityKind.CATEGORY],
            platforms=relations[EntityKind.PLATFORM],
            published_at=datetime.now(timezone.utc),
        )
        if enrichment is not None:
            entry = entry.model_copy(update=enrichment.model_dump())
        return entry

    async def submit(self, entry: CatalogEntry) -> CatalogEntry:
        """
        Create the entry and return it with its store id.

        Raises:
            StoreCreateError: If the store rejects the create
        """
        created = await self._games.create(entry.to_store_payload())
        if created.get("id") is None:
            raise StoreCreateError(
                f"create game returned no id for {entry.name}",
                source="content_store.game",
            )
        return entry.model_copy(update={"id": created["id"]})

    async def create_entry(self, product: Product) -> BuiltEntry | None:
        """
        Create the entry for a product, or None if its title exists.

        Calls for the same title are serialized so a batch that lists a
        product twice still creates a single entry.

        Raises:
            StoreLookupError: If the existence check fails
            StoreCreateError: If the create call fails
        """
        async with self._title_locks.setdefault(product.title, asyncio.Lock()):
            if await self.exists(product.title):
                self._logger.info("Entry exists, skipping", title=product.title)
                return None

            self._logger.info("Creating entry", title=product.title)

            relations, enrichment = await asyncio.gather(
                self._upserter.resolve_relations(product_relation_names(product)),
                self._enricher.enrich(product.slug),
            )

            entry = await self.submit(self.assemble(product, relations, enrichment))

        self._logger.info(
            "Entry created",
            title=entry.name,
            entry_id=entry.id,
            enriched=entry.is_enriched,
            missing_relations=len(relations.missing),
        )
        return BuiltEntry(entry=entry, missing_relations=relations.missing)
