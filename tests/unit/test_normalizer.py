"""Tests for relation name extraction."""

from typing import Any

from game_catalog.ingestion.contracts import EntityKind, Product
from game_catalog.ingestion.normalizer import normalize, product_relation_names
from game_catalog.ingestion.utils.slug import strict_slugify


def make_product(title: str, **fields: Any) -> Product:
    return Product.model_validate({"title": title, "slug": strict_slugify(title), **fields})


class TestNormalize:
    """Tests for normalize()."""

    def test_deduplicates_across_products(self, catalog_response: dict[str, Any]) -> None:
        """Test names shared by products appear once."""
        products = [Product.model_validate(p) for p in catalog_response["products"]]

        names = normalize(products)

        assert names.categories == {"Action", "Role-playing", "Racing"}
        assert names.platforms == {"windows", "osx"}
        assert names.developers == {"Guerrilla", "Aquiris Game Studio"}
        assert names.publishers == {"PlayStation PC LLC", "Aquiris Game Studio"}
        assert len(names) == 9

    def test_kinds_stay_independent(self) -> None:
        """Test that the same name in two kinds is kept in both."""
        product = make_product(
            "Solo Dev Game",
            developers=["Lone Wolf"],
            publishers=["Lone Wolf"],
        )

        names = normalize([product])

        assert names.for_kind(EntityKind.DEVELOPER) == {"Lone Wolf"}
        assert names.for_kind(EntityKind.PUBLISHER) == {"Lone Wolf"}

    def test_empty_batch(self) -> None:
        """Test that no products yields no names."""
        names = normalize([])

        assert len(names) == 0
        assert [kind for kind, _ in names.items()] == [
            EntityKind.DEVELOPER,
            EntityKind.PUBLISHER,
            EntityKind.CATEGORY,
            EntityKind.PLATFORM,
        ]

    def test_blank_names_ignored(self) -> None:
        """Test that empty strings are not collected."""
        product = make_product("Odd Game", developers=["", "Studio A"], operatingSystems=[""])

        names = product_relation_names(product)

        assert names.developers == {"Studio A"}
        assert names.platforms == set()

    def test_case_sensitive(self) -> None:
        """Test that names differing only in case stay distinct."""
        names = normalize(
            [
                make_product("A", genres=[{"name": "Action"}]),
                make_product("B", genres=[{"name": "action"}]),
            ]
        )

        assert names.categories == {"Action", "action"}
