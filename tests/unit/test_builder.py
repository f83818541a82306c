"""Tests for catalog entry assembly."""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Any, cast

import pytest

from game_catalog.ingestion.builder import CatalogEntryBuilder, parse_release_date
from game_catalog.ingestion.contracts import EntityKind, Enrichment, Product
from game_catalog.ingestion.extractors.detail_page import DetailPageEnricher
from game_catalog.ingestion.store import memory_repositories
from game_catalog.ingestion.upserter import IdempotentUpserter, ResolvedRelations

SAMPLE_ENRICHMENT = Enrichment(
    description="<p>An open world.</p>",
    short_description="An open world.",
    rating="pegi16",
)


class StubEnricher:
    """Enricher returning a fixed result and counting calls."""

    def __init__(self, enrichment: Enrichment | None = SAMPLE_ENRICHMENT) -> None:
        self.enrichment = enrichment
        self.calls: list[str] = []

    async def enrich(self, slug: str) -> Enrichment | None:
        self.calls.append(slug)
        await asyncio.sleep(0)
        return self.enrichment


def make_builder(
    enricher: StubEnricher | None = None,
) -> tuple[CatalogEntryBuilder, dict[EntityKind, Any], StubEnricher]:
    repositories = memory_repositories()
    stub = enricher or StubEnricher()
    builder = CatalogEntryBuilder(
        repositories,
        IdempotentUpserter(repositories, max_concurrency=4),
        cast(DetailPageEnricher, stub),
    )
    return builder, repositories, stub


def sample_product(**fields: Any) -> Product:
    data: dict[str, Any] = {
        "title": "Sample Game",
        "slug": "sample-game",
        "releaseDate": "2024-01-01",
        "genres": [{"name": "Action"}],
        "operatingSystems": ["windows"],
        "developers": ["Studio A"],
        "publishers": ["Pub B"],
    }
    data.update(fields)
    return Product.model_validate(data)


class TestParseReleaseDate:
    """Tests for parse_release_date()."""

    @pytest.mark.parametrize(
        "value",
        [
            "2024-01-01",
            "2024.01.01",
            "2024/01/01",
            "2024-01-01T00:00:00Z",
            "2024-01-01T10:30:00+02:00",
        ],
    )
    def test_supported_formats(self, value: str) -> None:
        """Test the date shapes the catalog sends."""
        assert parse_release_date(value) == date(2024, 1, 1)

    @pytest.mark.parametrize("value", [None, "", "soon", "2024-13-40"])
    def test_unreadable(self, value: str | None) -> None:
        """Test that missing or unreadable dates yield None."""
        assert parse_release_date(value) is None


class TestAssemble:
    """Tests for assemble()."""

    def test_price_falls_back_to_zero(self) -> None:
        """Test that unpriced products get price 0.00."""
        builder, _, _ = make_builder()

        entry = builder.assemble(sample_product(), ResolvedRelations(), None)

        assert entry.price == Decimal("0.00")
        assert entry.release_date == date(2024, 1, 1)
        assert entry.description is None
        assert entry.published_at is not None

    def test_final_price_used(self) -> None:
        """Test that the final price amount is carried over."""
        builder, _, _ = make_builder()
        product = sample_product(price={"finalMoney": {"amount": "29.99", "currency": "USD"}})

        entry = builder.assemble(product, ResolvedRelations(), None)

        assert entry.price == Decimal("29.99")

    def test_enrichment_merged(self) -> None:
        """Test that enrichment fields land on the entry."""
        builder, _, _ = make_builder()

        entry = builder.assemble(sample_product(), ResolvedRelations(), SAMPLE_ENRICHMENT)

        assert entry.description == "<p>An open world.</p>"
        assert entry.short_description == "An open world."
        assert entry.rating == "pegi16"


class TestCreateEntry:
    """Tests for create_entry()."""

    @pytest.mark.asyncio
    async def test_creates_with_relations(self) -> None:
        """Test a product becomes one entry linked to its entities."""
        builder, repositories, stub = make_builder()

        built = await builder.create_entry(sample_product())

        assert built is not None
        assert built.entry.id == 1
        assert built.missing_relations == []
        assert stub.calls == ["sample-game"]

        record = repositories[EntityKind.GAME].records[0]
        assert record["name"] == "Sample Game"
        assert record["price"] == 0.0
        assert record["release_date"] == "2024-01-01"
        assert record["rating"] == "pegi16"
        for kind in (EntityKind.DEVELOPER, EntityKind.PUBLISHER, EntityKind.CATEGORY):
            assert len(repositories[kind].records) == 1
        assert record["platforms"] == [repositories[EntityKind.PLATFORM].records[0]["id"]]

    @pytest.mark.asyncio
    async def test_existing_title_skipped(self) -> None:
        """Test that a stored title is not created again nor enriched."""
        builder, repositories, stub = make_builder()
        await repositories[EntityKind.GAME].create({"name": "Sample Game"})

        built = await builder.create_entry(sample_product())

        assert built is None
        assert stub.calls == []
        assert len(repositories[EntityKind.GAME].records) == 1
        assert repositories[EntityKind.DEVELOPER].records == []

    @pytest.mark.asyncio
    async def test_duplicate_product_in_batch(self) -> None:
        """Test that the same product submitted concurrently creates one entry."""
        builder, repositories, _ = make_builder()

        results = await asyncio.gather(
            builder.create_entry(sample_product()),
            builder.create_entry(sample_product()),
        )

        assert sum(1 for r in results if r is not None) == 1
        assert len(repositories[EntityKind.GAME].records) == 1

    @pytest.mark.asyncio
    async def test_without_enrichment(self) -> None:
        """Test that enrichment fields are omitted when unavailable."""
        builder, repositories, _ = make_builder(StubEnricher(enrichment=None))

        built = await builder.create_entry(sample_product())

        assert built is not None
        record = repositories[EntityKind.GAME].records[0]
        assert "description" not in record
        assert "short_description" not in record
        assert "rating" not in record
