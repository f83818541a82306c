"""
REST-backed content store repository.

Talks to a Strapi-style collection API:

    GET  /api/{collection}?filters[name][$eq]=...
    POST /api/{collection}   {"data": {...}}

Responses may be v4-style ({"id", "attributes"}) or flat records;
both are flattened to plain dicts with an "id" key.
"""

from typing import Any

from tenacity import AsyncRetrying

from game_catalog.config import ContentStoreConfig, get_settings
from game_catalog.ingestion.contracts import EntityKind
from game_catalog.ingestion.errors import (
    StoreConflictError,
    StoreCreateError,
    StoreLookupError,
    UpstreamFetchError,
)
from game_catalog.ingestion.extractors.base import BaseHTTPClient
from game_catalog.ingestion.store.base import ContentRepository


def flatten_record(item: Any) -> dict[str, Any]:
    """Merge v4 `attributes` into the top level."""
    if isinstance(item, dict) and isinstance(item.get("attributes"), dict):
        return {"id": item.get("id"), **item["attributes"]}
    if isinstance(item, dict):
        return dict(item)
    raise ValueError(f"Unexpected record shape: {type(item).__name__}")


def is_unique_violation(error: UpstreamFetchError) -> bool:
    """409, or a 400 whose validation details complain about uniqueness."""
    if error.status_code == 409:
        return True
    if error.status_code != 400:
        return False
    messages = [
        str(detail.get("message", "")) for detail in error.details if isinstance(detail, dict)
    ]
    if isinstance(error.payload, dict) and isinstance(error.payload.get("error"), dict):
        messages.append(str(error.payload["error"].get("message", "")))
    return any("unique" in message.lower() for message in messages)


class HTTPContentRepository(BaseHTTPClient, ContentRepository):
    """Repository for one collection of the content store REST API."""

    def __init__(
        self,
        kind: EntityKind,
        *,
        config: ContentStoreConfig | None = None,
        **kwargs: Any,
    ) -> None:
        self.kind = kind
        self._config = config or get_settings().store
        kwargs.setdefault("timeout", self._config.timeout_seconds)
        super().__init__(**kwargs)
        collection = self._config.collections.get(kind.value, f"{kind.value}s")
        self._url = f"{self._config.base_url}/api/{collection}"

    @property
    def source_name(self) -> str:
        """Return source identifier."""
        return f"content_store.{self.kind.value}"

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        if self._config.api_token is not None:
            headers["Authorization"] = f"Bearer {self._config.api_token.get_secret_value()}"
        return headers

    async def find(self, filters: dict[str, Any]) -> list[dict[str, Any]]:
        params = {f"filters[{key}][$eq]": value for key, value in filters.items()}

        try:
            response = await self._make_request("GET", self._url, params=params)
            body = response.json()
            return [flatten_record(item) for item in body.get("data") or []]
        except UpstreamFetchError as e:
            raise StoreLookupError(
                f"find {self.kind.value} failed: {e}",
                source=self.source_name,
                endpoint=self._url,
                status_code=e.status_code,
                details=e.details,
                payload=e.payload,
                original_error=e,
            ) from e
        except (ValueError, AttributeError) as e:
            raise StoreLookupError(
                f"find {self.kind.value} returned an unreadable body",
                source=self.source_name,
                endpoint=self._url,
                original_error=e,
            ) from e

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        POST a record, resending only after checking it was not committed.

        A create whose response was lost may already be stored, so every
        resend is preceded by a lookup on `name`. Payloads without a name
        get a single attempt.

        Raises:
            StoreConflictError: If a unique field already holds the value
            StoreCreateError: For any other create failure
            StoreLookupError: If the lookup before a resend fails
        """
        name = data.get("name")
        attempts = self._retry_config.max_attempts if name else 1

        try:
            async for attempt in AsyncRetrying(**self._retry_policy(attempts)):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        existing = await self.find_one(name=name)
                        if existing is not None:
                            self._logger.info(
                                "Create already committed, reusing record",
                                name=name,
                                record_id=existing.get("id"),
                            )
                            return existing
                    response = await self._make_request("POST", self._url, json={"data": data})
                    return flatten_record(response.json().get("data"))
        except UpstreamFetchError as e:
            error_class = StoreConflictError if is_unique_violation(e) else StoreCreateError
            raise error_class(
                f"create {self.kind.value} failed: {e}",
                source=self.source_name,
                endpoint=self._url,
                status_code=e.status_code,
                details=e.details,
                payload=e.payload,
                original_error=e,
            ) from e
        except (ValueError, AttributeError) as e:
            raise StoreCreateError(
                f"create {self.kind.value} returned an unreadable body",
                source=self.source_name,
                endpoint=self._url,
                original_error=e,
            ) from e

        raise StoreCreateError(f"create {self.kind.value} made no attempt", source=self.source_name)


def http_repositories(
    config: ContentStoreConfig | None = None,
    **kwargs: Any,
) -> dict[EntityKind, HTTPContentRepository]:
    """One REST repository per entity kind."""
    return {kind: HTTPContentRepository(kind, config=config, **kwargs) for kind in EntityKind}
