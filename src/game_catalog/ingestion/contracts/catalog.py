"""
Data contracts for the GOG catalog API.

These Pydantic models define the expected structure of products
returned by the catalog query endpoint, and the query sent to it.
"""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Money(BaseModel):
    """Monetary amount as returned by the catalog."""

    amount: Decimal = Field(..., description="Amount, e.g. 29.99")
    currency: str = Field(default="", description="Currency code")


class ProductPrice(BaseModel):
    """Price block of a catalog product."""

    model_config = ConfigDict(populate_by_name=True)

    final_money: Money | None = Field(default=None, alias="finalMoney")
    base_money: Money | None = Field(default=None, alias="baseMoney")
    discount: str | None = Field(default=None)


class Genre(BaseModel):
    """Product genre."""

    name: str
    slug: str | None = None


class Product(BaseModel):
    """
    A single product from the catalog feed.

    Read-only input to the pipeline.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    # Identifiers
    title: str = Field(..., min_length=1, description="Product title (natural key)")
    slug: str = Field(..., min_length=1, description="Product slug")

    # Commerce
    price: ProductPrice | None = Field(default=None, description="None when unpriced")
    release_date: str | None = Field(default=None, alias="releaseDate")

    # Taxonomy
    genres: list[Genre] = Field(default_factory=list)
    operating_systems: list[str] = Field(default_factory=list, alias="operatingSystems")
    developers: list[str] = Field(default_factory=list)
    publishers: list[str] = Field(default_factory=list)

    # Media
    cover_horizontal: str | None = Field(default=None, alias="coverHorizontal")
    screenshots: list[str] = Field(default_factory=list)

    @field_validator(
        "genres", "operating_systems", "developers", "publishers", "screenshots", mode="before"
    )
    @classmethod
    def coerce_null_list(cls, v: Any) -> Any:
        """The feed sends null instead of an empty list for some products."""
        return [] if v is None else v

    @property
    def genre_names(self) -> list[str]:
        """Extract genre names as simple list."""
        return [g.name for g in self.genres]

    @property
    def final_amount(self) -> Decimal | None:
        """Final price amount, if the product is priced."""
        if self.price is None or self.price.final_money is None:
            return None
        return self.price.final_money.amount


class CatalogPage(BaseModel):
    """One decoded page of the catalog response."""

    model_config = ConfigDict(populate_by_name=True)

    products: list[Product] = Field(default_factory=list)
    rejected: int = Field(default=0, description="Products dropped by validation")
    pages: int | None = None
    product_count: int | None = Field(default=None, alias="productCount")


class CatalogQuery(BaseModel):
    """Query parameters for one catalog request."""

    limit: int = Field(default=8, ge=1, le=100)
    query: str | None = None
    order: str = "desc:score"
    product_types: list[str] = Field(default_factory=lambda: ["game", "pack", "dlc", "extras"])
    release_statuses: list[str] | None = None

    @field_validator("order")
    @classmethod
    def validate_order(cls, v: str) -> str:
        """Require a sort direction prefix."""
        if not v.startswith(("asc:", "desc:")):
            raise ValueError(f"Invalid order, expected asc:<key> or desc:<key>: {v}")
        return v

    def to_params(self) -> dict[str, str | int]:
        """Render as catalog API query parameters (httpx handles encoding)."""
        params: dict[str, str | int] = {
            "limit": self.limit,
            "order": self.order,
            "productType": f"in:{','.join(self.product_types)}",
        }
        if self.query:
            params["query"] = self.query
        if self.release_statuses:
            params["releaseStatuses"] = f"in:{','.join(self.release_statuses)}"
        return params
