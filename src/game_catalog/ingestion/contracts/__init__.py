"""
Data contracts for the catalog feed and the content store.

Pydantic models that define the structure of data flowing through
the ingestion pipeline, ensuring type safety and validation.
"""

from game_catalog.ingestion.contracts.catalog import (
    CatalogPage,
    CatalogQuery,
    Genre,
    Money,
    Product,
    ProductPrice,
)
from game_catalog.ingestion.contracts.content import (
    RELATION_KINDS,
    CatalogEntry,
    EntityId,
    EntityKind,
    Enrichment,
    MediaAsset,
    MediaField,
    RelationalEntity,
)

__all__ = [
    "RELATION_KINDS",
    "CatalogEntry",
    "CatalogPage",
    "CatalogQuery",
    "EntityId",
    "EntityKind",
    "Enrichment",
    "Genre",
    "MediaAsset",
    "MediaField",
    "Money",
    "Product",
    "ProductPrice",
    "RelationalEntity",
]
