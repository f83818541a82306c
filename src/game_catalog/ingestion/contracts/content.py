"""
Data contracts for records materialized in the content store.

RelationalEntity and CatalogEntry mirror the content types the
pipeline creates; MediaAsset describes one attached image.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from game_catalog.ingestion.utils.slug import strict_slugify

EntityId = int | str


class EntityKind(str, Enum):
    """Content types the pipeline reads and writes."""

    DEVELOPER = "developer"
    PUBLISHER = "publisher"
    CATEGORY = "category"
    PLATFORM = "platform"
    GAME = "game"


# Taxonomy kinds, each an independent many-to-many relation of a game
RELATION_KINDS: tuple[EntityKind, ...] = (
    EntityKind.DEVELOPER,
    EntityKind.PUBLISHER,
    EntityKind.CATEGORY,
    EntityKind.PLATFORM,
)


class MediaField(str, Enum):
    """Target field of an uploaded image."""

    COVER = "cover"
    GALLERY = "gallery"


class RelationalEntity(BaseModel):
    """A named taxonomy value (developer, publisher, category, platform)."""

    id: EntityId | None = None
    name: str = Field(..., min_length=1)
    slug: str

    @classmethod
    def from_name(cls, name: str) -> "RelationalEntity":
        """Build a not-yet-stored entity with its derived slug."""
        return cls(name=name, slug=strict_slugify(name))

    @classmethod
    def from_store(cls, record: dict[str, Any]) -> "RelationalEntity":
        """Build from a content store record, unchanged."""
        return cls(
            id=record.get("id"),
            name=record["name"],
            slug=record.get("slug") or "",
        )

    def to_store_payload(self) -> dict[str, Any]:
        """Fields sent on create."""
        return {"name": self.name, "slug": self.slug}


class Enrichment(BaseModel):
    """Descriptive data scraped from the product detail page."""

    description: str
    short_description: str
    rating: str


class CatalogEntry(BaseModel):
    """
    The materialized record for one catalog product.

    Relations hold resolved entities; only their ids are sent
    to the store.
    """

    id: EntityId | None = None
    name: str
    slug: str
    price: Decimal = Decimal("0.00")
    release_date: date | None = None

    developers: list[RelationalEntity] = Field(default_factory=list)
    publishers: list[RelationalEntity] = Field(default_factory=list)
    categories: list[RelationalEntity] = Field(default_factory=list)
    platforms: list[RelationalEntity] = Field(default_factory=list)

    description: str | None = None
    short_description: str | None = None
    rating: str | None = None

    published_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_enriched(self) -> bool:
        """Whether enrichment fields were merged in."""
        return self.description is not None

    def relations(self, kind: EntityKind) -> list[RelationalEntity]:
        """Resolved entities for a relation kind."""
        return {
            EntityKind.DEVELOPER: self.developers,
            EntityKind.PUBLISHER: self.publishers,
            EntityKind.CATEGORY: self.categories,
            EntityKind.PLATFORM: self.platforms,
        }[kind]

    def to_store_payload(self) -> dict[str, Any]:
        """
        Render the create payload.

        Enrichment fields are omitted entirely when absent so the
        store keeps its own defaults.
        """
        payload: dict[str, Any] = {
            "name": self.name,
            "slug": self.slug,
            "price": float(self.price),
            "release_date": self.release_date.isoformat() if self.release_date else None,
            "developers": [e.id for e in self.developers if e.id is not None],
            "publishers": [e.id for e in self.publishers if e.id is not None],
            "categories": [e.id for e in self.categories if e.id is not None],
            "platforms": [e.id for e in self.platforms if e.id is not None],
            "publishedAt": self.published_at.isoformat(),
        }
        for field in ("description", "short_description", "rating"):
            value = getattr(self, field)
            if value is not None:
                payload[field] = value
        return payload


class MediaAsset(BaseModel):
    """One image attached to a catalog entry."""

    source_url: str
    field: MediaField = MediaField.COVER
    filename: str
