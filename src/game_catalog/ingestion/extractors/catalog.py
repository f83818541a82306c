"""
GOG catalog API extractor.

Fetches one page of catalog products for a query and decodes
them into validated Product contracts.
"""

import time
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from game_catalog.config import get_settings
from game_catalog.ingestion.contracts import CatalogPage, CatalogQuery, Product
from game_catalog.ingestion.errors import IngestionError, ParseError
from game_catalog.ingestion.extractors.base import BaseExtractor, ExtractionResult
from game_catalog.ingestion.utils.rate_limiter import RateLimiter, RateLimiterConfig


class CatalogFetcher(BaseExtractor[CatalogPage]):
    """
    Extractor for the catalog query endpoint.

    Example:
        >>> async with CatalogFetcher() as fetcher:
        ...     products = await fetcher.fetch(CatalogQuery(limit=8, query="like:Horizon"))
    """

    def __init__(
        self,
        *,
        api_url: str | None = None,
        rate_limiter: RateLimiter | None = None,
        **kwargs: Any,
    ) -> None:
        """
        Initialize catalog fetcher.

        Args:
            api_url: Catalog endpoint (defaults to GOG_API_URL)
            rate_limiter: Shared rate limiter (creates default if None)
            **kwargs: Arguments passed to BaseExtractor
        """
        super().__init__(**kwargs)
        settings = get_settings()
        self._api_url = api_url or settings.catalog.api_url
        self._rate_limiter = rate_limiter or RateLimiter(
            RateLimiterConfig(
                requests_per_minute=settings.catalog.requests_per_minute,
            )
        )

    @property
    def source_name(self) -> str:
        """Return source identifier."""
        return "gog_catalog_api"

    def _parse_response(self, raw_data: Any) -> CatalogPage:
        """
        Decode the catalog body.

        Products that fail validation are logged and dropped so one
        malformed record cannot sink the page.

        Raises:
            ParseError: If the body has no products array
        """
        if not isinstance(raw_data, dict) or not isinstance(raw_data.get("products"), list):
            raise ParseError(
                "Catalog response has no products array",
                source=self.source_name,
                endpoint=self._api_url,
            )

        products: list[Product] = []
        rejected = 0
        for raw_product in raw_data["products"]:
            try:
                products.append(Product.model_validate(raw_product))
            except PydanticValidationError as e:
                rejected += 1
                title = raw_product.get("title") if isinstance(raw_product, dict) else None
                self._logger.warning(
                    "Skipping invalid product",
                    title=title,
                    error_count=e.error_count(),
                    errors=e.errors(include_url=False),
                )

        return CatalogPage(
            products=products,
            rejected=rejected,
            pages=raw_data.get("pages"),
            product_count=raw_data.get("productCount"),
        )

    async def fetch_page(self, query: CatalogQuery) -> CatalogPage:
        """
        Issue the catalog GET and decode it.

        Raises:
            UpstreamFetchError: On network failure or non-2xx response
            ParseError: If the body is not the expected JSON shape
        """
        await self._rate_limiter.acquire()

        response = await self._make_request("GET", self._api_url, params=query.to_params())

        try:
            raw_data = response.json()
        except ValueError as e:
            raise ParseError(
                "Catalog response is not JSON",
                source=self.source_name,
                endpoint=str(response.url),
                original_error=e,
            ) from e

        return self._parse_response(raw_data)

    async def fetch(self, query: CatalogQuery) -> list[Product]:
        """Fetch one page and return its products."""
        self._logger.info("Fetching catalog", **query.to_params())

        page = await self.fetch_page(query)

        self._logger.info(
            "Catalog fetched",
            products=len(page.products),
            rejected=page.rejected,
        )
        return page.products

    async def extract(self, query: CatalogQuery) -> ExtractionResult[CatalogPage]:
        """
        Fetch one page without raising.

        Returns:
            ExtractionResult[CatalogPage]: Extraction result with metadata
        """
        start_time = time.perf_counter()

        try:
            page = await self.fetch_page(query)
        except IngestionError as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self._logger.error("Catalog extraction failed", **e.to_log())
            return ExtractionResult[CatalogPage](
                success=False,
                error_message=str(e),
                source=self.source_name,
                endpoint=self._api_url,
                duration_ms=duration_ms,
            )

        duration_ms = (time.perf_counter() - start_time) * 1000
        return ExtractionResult[CatalogPage](
            success=True,
            data=page,
            source=self.source_name,
            endpoint=self._api_url,
            duration_ms=duration_ms,
            extracted_at=datetime.now(timezone.utc),
        )
