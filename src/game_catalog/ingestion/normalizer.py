"""
Relational taxonomy extraction.

Collects the distinct developer, publisher, category and platform
names referenced by a batch of products.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from game_catalog.ingestion.contracts import EntityKind, Product


@dataclass
class RelationNames:
    """Distinct entity names per relation kind."""

    developers: set[str] = field(default_factory=set)
    publishers: set[str] = field(default_factory=set)
    categories: set[str] = field(default_factory=set)
    platforms: set[str] = field(default_factory=set)

    def for_kind(self, kind: EntityKind) -> set[str]:
        return {
            EntityKind.DEVELOPER: self.developers,
            EntityKind.PUBLISHER: self.publishers,
            EntityKind.CATEGORY: self.categories,
            EntityKind.PLATFORM: self.platforms,
        }[kind]

    def items(self) -> Iterator[tuple[EntityKind, set[str]]]:
        yield EntityKind.DEVELOPER, self.developers
        yield EntityKind.PUBLISHER, self.publishers
        yield EntityKind.CATEGORY, self.categories
        yield EntityKind.PLATFORM, self.platforms

    def __len__(self) -> int:
        return sum(len(names) for _, names in self.items())


def normalize(products: Iterable[Product]) -> RelationNames:
    """Deduplicate relation names across a batch. Pure, no I/O."""
    names = RelationNames()

    for product in products:
        names.categories.update(n for n in product.genre_names if n)
        names.platforms.update(n for n in product.operating_systems if n)
        names.developers.update(n for n in product.developers if n)
        names.publishers.update(n for n in product.publishers if n)

    return names


def product_relation_names(product: Product) -> RelationNames:
    """Relation names of a single product."""
    return normalize([product])
