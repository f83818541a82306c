"""Integration tests for catalog and detail page extractors with mocked HTTP responses."""

from typing import Any

import httpx
import pytest
import respx

from game_catalog.config import RetryConfig
from game_catalog.ingestion.contracts import CatalogQuery
from game_catalog.ingestion.errors import ParseError, UpstreamFetchError
from game_catalog.ingestion.extractors import CatalogFetcher, DetailPageEnricher
from game_catalog.ingestion.extractors.detail_page import detail_slug, normalize_rating

CATALOG_URL = "https://catalog.gog.com/v1/catalog"
DETAIL_URL = "https://www.gog.com/en/game/horizon_zero_dawn_complete_edition"


class TestCatalogFetcher:
    """Integration tests for the catalog fetcher."""

    @respx.mock
    @pytest.mark.asyncio
    async def test_fetch_success(self, catalog_response: dict[str, Any]) -> None:
        """Test successful catalog fetch."""
        route = respx.get(CATALOG_URL).mock(
            return_value=httpx.Response(200, json=catalog_response)
        )

        async with CatalogFetcher() as fetcher:
            products = await fetcher.fetch(CatalogQuery(limit=8, query="like:Horizon"))

        assert [p.title for p in products] == [
            "Horizon Zero Dawn Complete Edition",
            "Horizon Chase Turbo",
        ]

        params = route.calls.last.request.url.params
        assert params["limit"] == "8"
        assert params["query"] == "like:Horizon"
        assert params["order"] == "desc:score"
        assert params["productType"] == "in:game,pack,dlc,extras"

    @respx.mock
    @pytest.mark.asyncio
    async def test_invalid_products_rejected(self) -> None:
        """Test that malformed products are dropped, not fatal."""
        respx.get(CATALOG_URL).mock(
            return_value=httpx.Response(
                200,
                json={"products": [{"title": "Good", "slug": "good"}, {"slug": "no-title"}]},
            )
        )

        async with CatalogFetcher() as fetcher:
            page = await fetcher.fetch_page(CatalogQuery())

        assert [p.title for p in page.products] == ["Good"]
        assert page.rejected == 1

    @respx.mock
    @pytest.mark.asyncio
    async def test_server_error(self) -> None:
        """Test that a 5xx surfaces as UpstreamFetchError."""
        respx.get(CATALOG_URL).mock(return_value=httpx.Response(500))

        async with CatalogFetcher() as fetcher:
            with pytest.raises(UpstreamFetchError) as exc_info:
                await fetcher.fetch(CatalogQuery())

        assert exc_info.value.status_code == 500

    @respx.mock
    @pytest.mark.asyncio
    async def test_missing_products_array(self) -> None:
        """Test that an unexpected body shape is a ParseError."""
        respx.get(CATALOG_URL).mock(return_value=httpx.Response(200, json={"items": []}))

        async with CatalogFetcher() as fetcher:
            with pytest.raises(ParseError):
                await fetcher.fetch(CatalogQuery())

    @respx.mock
    @pytest.mark.asyncio
    async def test_extract_never_raises(self) -> None:
        """Test that extract() wraps failures in the result."""
        respx.get(CATALOG_URL).mock(side_effect=httpx.ConnectError("Connection failed"))

        async with CatalogFetcher() as fetcher:
            result = await fetcher.extract(CatalogQuery())

        assert result.success is False
        assert result.data is None
        assert result.error_message is not None
        assert result.source == "gog_catalog_api"

    @respx.mock
    @pytest.mark.asyncio
    async def test_retry_on_server_error(self, catalog_response: dict[str, Any]) -> None:
        """Test that a transient 503 is retried."""
        route = respx.get(CATALOG_URL).mock(
            side_effect=[
                httpx.Response(503),
                httpx.Response(200, json=catalog_response),
            ]
        )

        retry_config = RetryConfig(max_attempts=2, base_delay_seconds=0.1)
        async with CatalogFetcher(retry_config=retry_config) as fetcher:
            products = await fetcher.fetch(CatalogQuery())

        assert len(products) == 2
        assert route.call_count == 2


class TestDetailPageEnricher:
    """Integration tests for the detail page enricher."""

    def test_detail_url(self) -> None:
        """Test hyphens become underscores in the page path."""
        assert detail_slug("The-Witcher-3") == "the_witcher_3"
        assert DetailPageEnricher().detail_url("horizon-zero-dawn-complete-edition") == DETAIL_URL

    @pytest.mark.parametrize(
        ("href", "expected"),
        [("#pegi_16", "pegi16"), ("#esrb_m", "esrbm"), ("#BR_0", "BR0")],
    )
    def test_normalize_rating(self, href: str, expected: str) -> None:
        """Test icon reference normalization."""
        assert normalize_rating(href) == expected

    @respx.mock
    @pytest.mark.asyncio
    async def test_enrich_success(self, detail_page: str) -> None:
        """Test description, short description and rating extraction."""
        respx.get(DETAIL_URL).mock(return_value=httpx.Response(200, text=detail_page))

        async with DetailPageEnricher() as enricher:
            enrichment = await enricher.enrich("horizon-zero-dawn-complete-edition")

        assert enrichment is not None
        assert enrichment.description.startswith("<p><b>Experience Aloy's legendary quest</b>")
        assert len(enrichment.short_description) == 160
        assert enrichment.short_description.startswith("Experience Aloy's legendary quest to")
        assert "<" not in enrichment.short_description
        assert enrichment.rating == "pegi16"

    @respx.mock
    @pytest.mark.asyncio
    async def test_missing_rating_icon(self) -> None:
        """Test default rating when the page shows no age icon."""
        respx.get(DETAIL_URL).mock(
            return_value=httpx.Response(
                200, text='<html><div class="description">Short text</div></html>'
            )
        )

        async with DetailPageEnricher() as enricher:
            enrichment = await enricher.enrich("horizon-zero-dawn-complete-edition")

        assert enrichment is not None
        assert enrichment.short_description == "Short text"
        assert enrichment.rating == "BR0"

    @respx.mock
    @pytest.mark.asyncio
    async def test_missing_description(self) -> None:
        """Test that a page without a description yields no enrichment."""
        respx.get(DETAIL_URL).mock(
            return_value=httpx.Response(200, text="<html><body>Not found</body></html>")
        )

        async with DetailPageEnricher() as enricher:
            enrichment = await enricher.enrich("horizon-zero-dawn-complete-edition")

        assert enrichment is None

    @respx.mock
    @pytest.mark.asyncio
    async def test_network_error(self) -> None:
        """Test that network failures yield no enrichment."""
        respx.get(DETAIL_URL).mock(side_effect=httpx.ConnectError("Connection failed"))

        async with DetailPageEnricher() as enricher:
            enrichment = await enricher.enrich("horizon-zero-dawn-complete-edition")

        assert enrichment is None

    @respx.mock
    @pytest.mark.asyncio
    async def test_fetch_enrichment_raises(self) -> None:
        """Test that the strict variant surfaces the HTTP status."""
        respx.get(DETAIL_URL).mock(return_value=httpx.Response(404))

        async with DetailPageEnricher() as enricher:
            with pytest.raises(UpstreamFetchError) as exc_info:
                await enricher.fetch_enrichment("horizon-zero-dawn-complete-edition")

        assert exc_info.value.status_code == 404
