"""
Base HTTP client and extractor with retry logic, deadlines and error handling.

Provides a foundation for every outbound HTTP integration (catalog API,
product pages, content store, uploads) with exponential backoff,
per-attempt deadlines and structured logging.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, ClassVar, Generic, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from game_catalog.config import RetryConfig, get_settings
from game_catalog.ingestion.errors import RateLimitError, UpstreamFetchError
from game_catalog.logger import get_logger

# Type variable for response models
T = TypeVar("T", bound=BaseModel)


# Methods safe to resend when the first attempt may have reached the server
IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


def is_retryable(exc: BaseException) -> bool:
    """Transport failures, deadlines, 429 and 5xx are worth another attempt."""
    if isinstance(exc, (httpx.TransportError, asyncio.TimeoutError)):
        return True
    if isinstance(exc, UpstreamFetchError):
        if exc.status_code is None:
            return isinstance(exc.original_error, (httpx.TransportError, asyncio.TimeoutError))
        return exc.status_code == 429 or exc.status_code >= 500
    return False


def _decode_error_payload(response: httpx.Response) -> Any:
    """Best-effort decode of an error body."""
    try:
        return response.json()
    except ValueError:
        return response.text[:500] or None


def _validation_details(payload: Any) -> list[Any]:
    """Pull the validation error list out of a Strapi-style error body."""
    if not isinstance(payload, dict):
        return []
    error = payload.get("error")
    if not isinstance(error, dict):
        return []
    details = error.get("details") or {}
    errors = details.get("errors") if isinstance(details, dict) else None
    return list(errors) if isinstance(errors, list) else []


class ExtractionResult(BaseModel, Generic[T]):
    """
    Wrapper for extraction results with metadata.

    Provides consistent structure for all extraction outputs,
    including timing, source tracking, and error information.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    data: T | None = None
    error_message: str | None = None
    extracted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source: str
    endpoint: str
    duration_ms: float | None = None


class BaseHTTPClient(ABC):
    """
    Abstract base class for every HTTP integration.

    Provides common functionality including:
    - HTTP client management
    - Retry logic with exponential backoff
    - A hard deadline per request attempt
    - Structured logging

    Subclasses must implement:
    - source_name: Identifier for the remote side
    """

    default_headers: ClassVar[dict[str, str]] = {
        "User-Agent": "GameCatalogIngest/1.0",
        "Accept": "application/json",
    }

    def __init__(
        self,
        *,
        retry_config: RetryConfig | None = None,
        timeout: float | None = None,
        deadline: float | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            retry_config: Custom retry configuration (uses defaults if None)
            timeout: httpx timeout in seconds
            deadline: Overall deadline for one request attempt in seconds
        """
        settings = get_settings()
        self._retry_config = retry_config or settings.retry
        self._timeout = timeout or settings.catalog.timeout_seconds
        self._deadline = deadline or settings.pipeline.request_deadline_seconds
        self._logger = get_logger(
            self.__class__.__name__,
            component="http",
            source=self.source_name,
        )
        self._client: httpx.AsyncClient | None = None

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Return identifier for this remote source."""
        ...

    def _headers(self) -> dict[str, str]:
        """Headers sent with every request."""
        return dict(self.default_headers)

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                follow_redirects=True,
                headers=self._headers(),
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client and release resources."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "BaseHTTPClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    def _retry_policy(self, max_attempts: int | None = None) -> dict[str, Any]:
        """Tenacity arguments for the current retry configuration."""
        return dict(
            retry=retry_if_exception(is_retryable),
            stop=stop_after_attempt(max_attempts or self._retry_config.max_attempts),
            wait=wait_exponential(
                multiplier=self._retry_config.base_delay_seconds,
                max=self._retry_config.max_delay_seconds,
                exp_base=self._retry_config.exponential_base,
            ),
            before_sleep=self._log_retry_attempt,
            reraise=True,
        )

    def _create_retry_decorator(self, max_attempts: int | None = None) -> Any:
        """Create retry decorator with current configuration."""
        return retry(**self._retry_policy(max_attempts))

    def _log_retry_attempt(self, retry_state: Any) -> None:
        """Log retry attempts for observability."""
        self._logger.warning(
            "Retrying request",
            attempt=retry_state.attempt_number,
            wait_seconds=retry_state.next_action.sleep if retry_state.next_action else 0,
            exception=str(retry_state.outcome.exception()) if retry_state.outcome else None,
        )

    async def _make_request(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Make HTTP request with retry logic and a per-attempt deadline.

        Only idempotent methods are retried; anything else gets a single
        attempt and callers decide whether resending is safe.

        Args:
            method: HTTP method (GET, POST, etc.)
            url: Request URL
            **kwargs: Additional arguments passed to httpx

        Returns:
            httpx.Response: Successful response

        Raises:
            RateLimitError: If rate limit still exceeded after retries
            UpstreamFetchError: For network failures, deadlines and non-2xx responses
        """
        attempts = self._retry_config.max_attempts if method.upper() in IDEMPOTENT_METHODS else 1
        retry_decorator = self._create_retry_decorator(attempts)

        @retry_decorator
        async def _request() -> httpx.Response:
            self._logger.debug("Making request", method=method, url=url)

            response = await asyncio.wait_for(
                self.client.request(method, url, **kwargs),
                timeout=self._deadline,
            )

            if response.status_code == 429:
                retry_after = response.headers.get("Retry-After", "60")
                raise RateLimitError(
                    f"Rate limit exceeded. Retry after {retry_after}s",
                    source=self.source_name,
                    endpoint=url,
                    status_code=429,
                )

            if response.status_code >= 400:
                payload = _decode_error_payload(response)
                raise UpstreamFetchError(
                    f"HTTP error: {response.status_code}",
                    source=self.source_name,
                    endpoint=url,
                    status_code=response.status_code,
                    details=_validation_details(payload),
                    payload=payload,
                )

            return response

        try:
            return await _request()  # type: ignore[no-any-return]
        except asyncio.TimeoutError as e:
            self._logger.error("Request deadline exceeded", url=url, deadline=self._deadline)
            raise UpstreamFetchError(
                f"Request exceeded deadline of {self._deadline}s",
                source=self.source_name,
                endpoint=url,
                original_error=e,
            ) from e
        except httpx.HTTPError as e:
            self._logger.error(
                "Request failed",
                url=url,
                attempts=attempts,
                error=str(e),
            )
            raise UpstreamFetchError(
                f"Request failed: {e.__class__.__name__}: {e}",
                source=self.source_name,
                endpoint=url,
                original_error=e,
            ) from e


class BaseExtractor(BaseHTTPClient, Generic[T]):
    """
    Abstract base class for read-side extractors.

    Subclasses must implement:
    - extract(): Main extraction logic, never raises
    - _parse_response(): Response parsing and validation
    """

    @abstractmethod
    async def extract(self, *args: Any, **kwargs: Any) -> ExtractionResult[T]:
        """
        Execute extraction logic.

        Returns:
            ExtractionResult[T]: Wrapped extraction result with metadata
        """
        ...

    @abstractmethod
    def _parse_response(self, raw_data: Any) -> T:
        """
        Parse and validate a raw response body.

        Raises:
            ParseError: If the body doesn't match the expected shape
        """
        ...
