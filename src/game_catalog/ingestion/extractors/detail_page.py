"""
Product detail page enricher.

Scrapes the GOG product page for the long description, a short
plain-text description and the age rating code.
"""

import time
from datetime import datetime, timezone
from typing import Any, ClassVar

from bs4 import BeautifulSoup

from game_catalog.config import get_settings
from game_catalog.ingestion.contracts import Enrichment
from game_catalog.ingestion.errors import IngestionError, ParseError
from game_catalog.ingestion.extractors.base import BaseExtractor, ExtractionResult
from game_catalog.ingestion.utils.rate_limiter import RateLimiter, RateLimiterConfig

DESCRIPTION_SELECTOR = ".description"
RATING_ICON_SELECTOR = ".age-restrictions__icon use"


def detail_slug(slug: str) -> str:
    """Catalog slugs use hyphens, product page paths use underscores."""
    return slug.replace("-", "_").lower()


def normalize_rating(href: str) -> str:
    """Turn an icon reference such as '#pegi_16' into 'pegi16'."""
    return href.replace("_", "").replace("#", "", 1)


class DetailPageEnricher(BaseExtractor[Enrichment]):
    """
    Extractor for product detail pages.

    Enrichment is best-effort: `enrich` never raises and returns
    None when the page cannot be fetched or parsed.

    Example:
        >>> async with DetailPageEnricher() as enricher:
        ...     enrichment = await enricher.enrich("horizon-zero-dawn-complete-edition")
    """

    default_headers: ClassVar[dict[str, str]] = {
        "User-Agent": "GameCatalogIngest/1.0",
        "Accept": "text/html,application/xhtml+xml",
    }

    def __init__(
        self,
        *,
        site_url: str | None = None,
        rate_limiter: RateLimiter | None = None,
        short_description_length: int | None = None,
        default_rating: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        settings = get_settings()
        self._site_url = (site_url or settings.catalog.site_url).rstrip("/")
        self._short_description_length = (
            short_description_length or settings.pipeline.short_description_length
        )
        self._default_rating = default_rating or settings.pipeline.default_rating
        self._rate_limiter = rate_limiter or RateLimiter(
            RateLimiterConfig(
                requests_per_minute=settings.catalog.requests_per_minute,
            )
        )

    @property
    def source_name(self) -> str:
        """Return source identifier."""
        return "gog_detail_page"

    def detail_url(self, slug: str) -> str:
        """Product page URL for a catalog slug."""
        return f"{self._site_url}/game/{detail_slug(slug)}"

    def _parse_response(self, raw_data: Any) -> Enrichment:
        """
        Parse the product page HTML.

        Raises:
            ParseError: If the page has no description block
        """
        soup = BeautifulSoup(raw_data, "html.parser")

        block = soup.select_one(DESCRIPTION_SELECTOR)
        if block is None:
            raise ParseError(
                "Detail page has no description block",
                source=self.source_name,
            )

        text = block.get_text()

        rating = self._default_rating
        icon = soup.select_one(RATING_ICON_SELECTOR)
        if icon is not None:
            href = icon.get("xlink:href") or icon.get("href")
            if isinstance(href, str) and href:
                rating = normalize_rating(href)

        return Enrichment(
            description=block.decode_contents(),
            short_description=text[: self._short_description_length],
            rating=rating,
        )

    async def fetch_enrichment(self, slug: str) -> Enrichment:
        """
        Fetch and parse the detail page for a product slug.

        Raises:
            UpstreamFetchError: On network failure or non-2xx response
            ParseError: If the page is missing the description block
        """
        url = self.detail_url(slug)

        await self._rate_limiter.acquire()
        response = await self._make_request("GET", url)

        try:
            return self._parse_response(response.text)
        except ParseError as e:
            e.endpoint = url
            raise

    async def enrich(self, slug: str) -> Enrichment | None:
        """Best-effort enrichment, None on any fetch or parse failure."""
        try:
            enrichment = await self.fetch_enrichment(slug)
        except IngestionError as e:
            self._logger.warning("Enrichment unavailable", slug=slug, **e.to_log())
            return None

        self._logger.debug("Enrichment parsed", slug=slug, rating=enrichment.rating)
        return enrichment

    async def extract(self, slug: str) -> ExtractionResult[Enrichment]:
        """
        Fetch enrichment for a slug without raising.

        Returns:
            ExtractionResult[Enrichment]: Extraction result with metadata
        """
        endpoint = self.detail_url(slug)
        start_time = time.perf_counter()

        try:
            enrichment = await self.fetch_enrichment(slug)
        except IngestionError as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self._logger.error("Detail page extraction failed", slug=slug, **e.to_log())
            return ExtractionResult[Enrichment](
                success=False,
                error_message=str(e),
                source=self.source_name,
                endpoint=endpoint,
                duration_ms=duration_ms,
            )

        duration_ms = (time.perf_counter() - start_time) * 1000
        return ExtractionResult[Enrichment](
            success=True,
            data=enrichment,
            source=self.source_name,
            endpoint=endpoint,
            duration_ms=duration_ms,
            extracted_at=datetime.now(timezone.utc),
        )
