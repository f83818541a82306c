"""
Error taxonomy for the ingestion pipeline.

Every error carries enough context (source, endpoint, status code and
any validation details returned by the remote side) to be logged as a
single structured event.
"""

from datetime import datetime, timezone
from typing import Any


class IngestionError(Exception):
    """Base exception for ingestion errors."""

    def __init__(
        self,
        message: str,
        *,
        source: str | None = None,
        endpoint: str | None = None,
        status_code: int | None = None,
        details: list[Any] | None = None,
        payload: Any = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.source = source
        self.endpoint = endpoint
        self.status_code = status_code
        self.details = details or []
        self.payload = payload
        self.original_error = original_error
        self.timestamp = datetime.now(timezone.utc)

    def to_log(self) -> dict[str, Any]:
        """Flatten into keyword arguments for a structured log call."""
        return {
            "error": str(self),
            "error_type": type(self).__name__,
            "status_code": self.status_code,
            "endpoint": self.endpoint,
            "details": self.details or None,
        }


class UpstreamFetchError(IngestionError):
    """Catalog or detail page request failed (network or non-2xx)."""

    pass


class RateLimitError(UpstreamFetchError):
    """Raised when the remote side answers 429."""

    pass


class ParseError(IngestionError):
    """Response body could not be decoded into the expected shape."""

    pass


class StoreLookupError(IngestionError):
    """Content store find call failed."""

    pass


class StoreCreateError(IngestionError):
    """Content store create call failed."""

    pass


class StoreConflictError(StoreCreateError):
    """Create rejected because the natural key already exists."""

    pass


class UploadError(IngestionError):
    """Image download or multipart upload failed."""

    pass
