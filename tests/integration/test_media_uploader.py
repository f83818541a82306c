"""Integration tests for media upload with mocked HTTP responses."""

import os
from unittest.mock import patch

import httpx
import pytest
import respx

from game_catalog.config import ContentStoreConfig, RetryConfig
from game_catalog.ingestion.contracts import CatalogEntry, MediaField, Product
from game_catalog.ingestion.errors import UploadError
from game_catalog.ingestion.media import MediaUploader

UPLOAD_URL = "http://localhost:1337/api/upload/"
FORMAT = "product_card_v2_mobile_slider_639"


def sample_product(screenshots: int) -> Product:
    return Product.model_validate(
        {
            "title": "Sample Game",
            "slug": "sample-game",
            "coverHorizontal": "https://images.example.com/cover.png",
            "screenshots": [
                f"https://images.example.com/shot{i}_{{formatter}}.jpg" for i in range(screenshots)
            ],
        }
    )


def sample_entry(entry_id: int | None = 42) -> CatalogEntry:
    return CatalogEntry(id=entry_id, name="Sample Game", slug="sample-game")


class TestMediaUploader:
    """Integration tests for MediaUploader."""

    @respx.mock
    @pytest.mark.asyncio
    async def test_upload_multipart_fields(self) -> None:
        """Test the multipart body attaches the image to the entry."""
        respx.get("https://images.example.com/cover.png").mock(
            return_value=httpx.Response(200, content=b"\xff\xd8cover")
        )
        route = respx.post(UPLOAD_URL).mock(return_value=httpx.Response(200, json=[{"id": 1}]))

        async with MediaUploader() as uploader:
            asset = await uploader.upload(
                "https://images.example.com/cover.png", sample_entry(), MediaField.COVER
            )

        body = route.calls.last.request.read()
        assert b'name="refId"\r\n\r\n42' in body
        assert b'name="ref"\r\n\r\napi::game.game' in body
        assert b'name="field"\r\n\r\ncover' in body
        assert f'filename="{asset.filename}"'.encode() in body
        assert b"\xff\xd8cover" in body
        assert asset.filename.startswith("sample-game_")

    @respx.mock
    @pytest.mark.asyncio
    async def test_screenshots_capped(self) -> None:
        """Test one cover plus at most five gallery uploads."""
        image_route = respx.get(url__startswith="https://images.example.com/").mock(
            return_value=httpx.Response(200, content=b"img")
        )
        upload_route = respx.post(UPLOAD_URL).mock(return_value=httpx.Response(200, json=[]))

        async with MediaUploader(screenshot_limit=5, screenshot_format=FORMAT) as uploader:
            report = await uploader.upload_entry_media(sample_product(8), sample_entry())

        assert report.attempted == 6
        assert len(report.uploaded) == 6
        assert report.failed == []
        assert upload_route.call_count == 6
        assert [a.field for a in report.uploaded].count(MediaField.GALLERY) == 5

        downloaded = {str(call.request.url) for call in image_route.calls}
        assert f"https://images.example.com/shot4_{FORMAT}.jpg" in downloaded
        assert f"https://images.example.com/shot5_{FORMAT}.jpg" not in downloaded

    @respx.mock
    @pytest.mark.asyncio
    async def test_download_failure_counted(self) -> None:
        """Test that a failed download is reported and others proceed."""
        respx.get("https://images.example.com/cover.png").mock(return_value=httpx.Response(404))
        respx.get(f"https://images.example.com/shot0_{FORMAT}.jpg").mock(
            return_value=httpx.Response(200, content=b"img")
        )
        upload_route = respx.post(UPLOAD_URL).mock(return_value=httpx.Response(200, json=[]))

        async with MediaUploader(screenshot_format=FORMAT) as uploader:
            report = await uploader.upload_entry_media(sample_product(1), sample_entry())

        assert report.attempted == 2
        assert len(report.uploaded) == 1
        assert report.failed[0]["field"] == "cover"
        assert upload_route.call_count == 1

    @respx.mock
    @pytest.mark.asyncio
    async def test_upload_rejected(self) -> None:
        """Test that a rejected upload is an UploadError."""
        respx.get("https://images.example.com/cover.png").mock(
            return_value=httpx.Response(200, content=b"img")
        )
        respx.post(UPLOAD_URL).mock(return_value=httpx.Response(413))

        async with MediaUploader() as uploader:
            with pytest.raises(UploadError) as exc_info:
                await uploader.upload("https://images.example.com/cover.png", sample_entry())

        assert exc_info.value.status_code == 413

    @pytest.mark.asyncio
    async def test_entry_without_id(self) -> None:
        """Test that media cannot be attached to an unsaved entry."""
        async with MediaUploader() as uploader:
            with pytest.raises(UploadError):
                await uploader.upload("https://images.example.com/cover.png", sample_entry(None))

    @respx.mock
    @pytest.mark.asyncio
    async def test_token_only_sent_to_store(self) -> None:
        """Test that image hosts never receive the store credentials."""
        image_route = respx.get("https://images.example.com/cover.png").mock(
            return_value=httpx.Response(200, content=b"img")
        )
        upload_route = respx.post(UPLOAD_URL).mock(return_value=httpx.Response(200, json=[]))

        with patch.dict(os.environ, {"CONTENT_STORE_API_TOKEN": "s3cret"}):
            config = ContentStoreConfig()

        async with MediaUploader(config=config) as uploader:
            await uploader.upload("https://images.example.com/cover.png", sample_entry())

        assert "authorization" not in image_route.calls.last.request.headers
        assert upload_route.calls.last.request.headers["Authorization"] == "Bearer s3cret"

    @respx.mock
    @pytest.mark.asyncio
    async def test_failed_upload_not_resent(self) -> None:
        """Test that an upload POST gets a single attempt."""
        respx.get("https://images.example.com/cover.png").mock(
            return_value=httpx.Response(200, content=b"img")
        )
        upload_route = respx.post(UPLOAD_URL).mock(return_value=httpx.Response(503))

        retry_config = RetryConfig(max_attempts=3, base_delay_seconds=0.1)
        async with MediaUploader(retry_config=retry_config) as uploader:
            with pytest.raises(UploadError):
                await uploader.upload("https://images.example.com/cover.png", sample_entry())

        assert upload_route.call_count == 1
