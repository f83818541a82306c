"""
Media upload for catalog entries.

Downloads cover and screenshot images and attaches them to an
existing entry through the content store's multipart upload
endpoint. Uploads are best-effort: failures are logged and counted,
the entry is never rolled back.
"""

import asyncio
import secrets
import string
from dataclasses import dataclass, field
from typing import Any, ClassVar

from game_catalog.config import ContentStoreConfig, get_settings
from game_catalog.ingestion.contracts import CatalogEntry, MediaAsset, MediaField, Product
from game_catalog.ingestion.errors import UploadError, UpstreamFetchError
from game_catalog.ingestion.extractors.base import BaseHTTPClient

TOKEN_ALPHABET = string.ascii_lowercase + string.digits
TOKEN_LENGTH = 22
SCREENSHOT_PLACEHOLDER = "{formatter}"


def random_token(length: int = TOKEN_LENGTH) -> str:
    """Random lowercase alphanumeric token."""
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def asset_filename(slug: str) -> str:
    """Collision-resistant upload filename for an entry image."""
    return f"{slug}_{random_token()}.jpg"


def screenshot_urls(product: Product, *, limit: int, image_format: str) -> list[str]:
    """First `limit` screenshot templates with the resolution token filled in."""
    return [
        url.replace(SCREENSHOT_PLACEHOLDER, image_format) for url in product.screenshots[:limit]
    ]


@dataclass
class MediaReport:
    """Upload outcome for one entry."""

    attempted: int = 0
    uploaded: list[MediaAsset] = field(default_factory=list)
    failed: list[dict[str, Any]] = field(default_factory=list)


class MediaUploader(BaseHTTPClient):
    """
    Uploads entry images to the content store.

    Example:
        >>> async with MediaUploader() as uploader:
        ...     report = await uploader.upload_entry_media(product, entry)
    """

    default_headers: ClassVar[dict[str, str]] = {
        "User-Agent": "GameCatalogIngest/1.0",
        "Accept": "*/*",
    }

    def __init__(
        self,
        *,
        config: ContentStoreConfig | None = None,
        screenshot_limit: int | None = None,
        screenshot_format: str | None = None,
        **kwargs: Any,
    ) -> None:
        settings = get_settings()
        self._config = config or settings.store
        kwargs.setdefault("timeout", self._config.timeout_seconds)
        super().__init__(**kwargs)
        self._screenshot_limit = (
            screenshot_limit if screenshot_limit is not None else settings.pipeline.screenshot_limit
        )
        self._screenshot_format = screenshot_format or settings.pipeline.screenshot_format

    @property
    def source_name(self) -> str:
        """Return source identifier."""
        return "content_store.upload"

    def _upload_headers(self) -> dict[str, str]:
        """Store credentials, sent on the upload call only, never to image hosts."""
        if self._config.api_token is None:
            return {}
        return {"Authorization": f"Bearer {self._config.api_token.get_secret_value()}"}

    async def download(self, image_url: str) -> bytes:
        """
        Fetch image bytes.

        Raises:
            UploadError: If the image cannot be downloaded
        """
        try:
            response = await self._make_request("GET", image_url)
        except UpstreamFetchError as e:
            raise UploadError(
                f"Image download failed: {e}",
                source=self.source_name,
                endpoint=image_url,
                status_code=e.status_code,
                original_error=e,
            ) from e
        return response.content

    async def upload(
        self,
        image_url: str,
        entry: CatalogEntry,
        field: MediaField = MediaField.COVER,
    ) -> MediaAsset:
        """
        Download one image and attach it to `entry`.

        Raises:
            UploadError: If the entry has no id, or download or upload fails
        """
        if entry.id is None:
            raise UploadError(
                f"Entry {entry.name} has no id to attach media to",
                source=self.source_name,
            )

        content = await self.download(image_url)
        asset = MediaAsset(source_url=image_url, field=field, filename=asset_filename(entry.slug))

        self._logger.info(
            "Uploading image",
            field=field.value,
            filename=asset.filename,
            entry_id=entry.id,
        )

        try:
            await self._make_request(
                "POST",
                self._config.upload_url,
                headers=self._upload_headers(),
                data={
                    "refId": str(entry.id),
                    "ref": self._config.entry_ref,
                    "field": field.value,
                },
                files={"files": (asset.filename, content, "image/jpeg")},
            )
        except UpstreamFetchError as e:
            raise UploadError(
                f"Upload failed: {e}",
                source=self.source_name,
                endpoint=self._config.upload_url,
                status_code=e.status_code,
                details=e.details,
                payload=e.payload,
                original_error=e,
            ) from e

        return asset

    def media_jobs(self, product: Product) -> list[tuple[str, MediaField]]:
        """Cover first, then capped screenshots in source order."""
        jobs: list[tuple[str, MediaField]] = []
        if product.cover_horizontal:
            jobs.append((product.cover_horizontal, MediaField.COVER))
        jobs.extend(
            (url, MediaField.GALLERY)
            for url in screenshot_urls(
                product,
                limit=self._screenshot_limit,
                image_format=self._screenshot_format,
            )
        )
        return jobs

    async def upload_entry_media(self, product: Product, entry: CatalogEntry) -> MediaReport:
        """Upload cover and screenshots for an entry concurrently."""
        jobs = self.media_jobs(product)
        report = MediaReport(attempted=len(jobs))

        results = await asyncio.gather(
            *(self.upload(url, entry, media_field) for url, media_field in jobs),
            return_exceptions=True,
        )

        for (url, media_field), result in zip(jobs, results):
            if isinstance(result, MediaAsset):
                report.uploaded.append(result)
            elif isinstance(result, UploadError):
                self._logger.error(
                    "Image upload failed",
                    entry_id=entry.id,
                    field=media_field.value,
                    url=url,
                    **result.to_log(),
                )
                report.failed.append({"field": media_field.value, "url": url, "error": str(result)})
            else:
                raise result

        return report
