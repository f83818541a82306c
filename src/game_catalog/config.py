"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables with validation,
type coercion, and sensible defaults.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CatalogAPIConfig(BaseSettings):
    """GOG catalog API and product page configuration."""

    model_config = SettingsConfigDict(env_prefix="GOG_")

    api_url: str = Field(
        default="https://catalog.gog.com/v1/catalog",
        description="Catalog query endpoint",
    )
    site_url: str = Field(
        default="https://www.gog.com/en",
        description="Base URL for product detail pages",
    )
    requests_per_minute: int = Field(
        default=60,
        ge=1,
        le=600,
        description="Rate limit for catalog and detail page requests per minute",
    )
    timeout_seconds: int = Field(
        default=30,
        ge=5,
        le=120,
        description="HTTP request timeout in seconds",
    )

    @field_validator("api_url", "site_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs so paths can be appended."""
        return v.rstrip("/")


class CatalogQueryConfig(BaseSettings):
    """Default query sent to the catalog API."""

    model_config = SettingsConfigDict(env_prefix="CATALOG_")

    limit: int = Field(default=8, ge=1, le=100, description="Products per page")
    query: str | None = Field(
        default="like:Horizon",
        description="Substring filter predicate, e.g. like:Horizon",
    )
    order: str = Field(
        default="desc:score",
        description="Sort key prefixed with asc: or desc:",
    )
    product_types: list[str] = Field(
        default_factory=lambda: ["game", "pack", "dlc", "extras"],
        description="Product types to include",
    )
    release_statuses: list[str] | None = Field(
        default=None,
        description="Optional release status filter, e.g. ['upcoming']",
    )

    @field_validator("order")
    @classmethod
    def validate_order(cls, v: str) -> str:
        """Require a sort direction prefix."""
        if not v.startswith(("asc:", "desc:")):
            raise ValueError(f"Invalid order, expected asc:<key> or desc:<key>: {v}")
        return v


class ContentStoreConfig(BaseSettings):
    """Content store (CMS) configuration."""

    model_config = SettingsConfigDict(env_prefix="CONTENT_STORE_")

    base_url: str = Field(
        default="http://localhost:1337",
        description="Base URL of the content store",
    )
    api_token: SecretStr | None = Field(
        default=None,
        description="Bearer token for the content store API",
    )
    upload_path: str = Field(
        default="/api/upload/",
        description="Path of the multipart upload endpoint",
    )
    entry_ref: str = Field(
        default="api::game.game",
        description="Entry kind identifier sent with uploads",
    )
    timeout_seconds: int = Field(
        default=30,
        ge=5,
        le=120,
        description="HTTP request timeout in seconds",
    )
    collections: dict[str, str] = Field(
        default_factory=lambda: {
            "developer": "developers",
            "publisher": "publishers",
            "category": "categories",
            "platform": "platforms",
            "game": "games",
        },
        description="REST collection path per entity kind",
    )

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URL so paths can be appended."""
        return v.rstrip("/")

    @property
    def upload_url(self) -> str:
        """Full URL of the upload endpoint."""
        return f"{self.base_url}{self.upload_path}"


class PipelineConfig(BaseSettings):
    """Ingestion pipeline behavior."""

    model_config = SettingsConfigDict(env_prefix="PIPELINE_")

    max_concurrency: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Maximum concurrent branches per fan-out",
    )
    screenshot_limit: int = Field(
        default=5,
        ge=0,
        le=50,
        description="Screenshots uploaded per entry",
    )
    screenshot_format: str = Field(
        default="product_card_v2_mobile_slider_639",
        description="Resolution token substituted into screenshot URL templates",
    )
    short_description_length: int = Field(
        default=160,
        ge=1,
        description="Characters kept for short_description",
    )
    default_rating: str = Field(
        default="BR0",
        description="Rating used when the page carries no age rating icon",
    )
    request_deadline_seconds: float = Field(
        default=60.0,
        ge=1.0,
        le=600.0,
        description="Overall deadline for a single HTTP attempt",
    )


class RetryConfig(BaseSettings):
    """Retry behavior configuration."""

    model_config = SettingsConfigDict(env_prefix="RETRY_")

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum number of retry attempts",
    )
    base_delay_seconds: float = Field(
        default=1.0,
        ge=0.1,
        le=30.0,
        description="Base delay between retries (exponential backoff)",
    )
    max_delay_seconds: float = Field(
        default=60.0,
        ge=1.0,
        le=300.0,
        description="Maximum delay between retries",
    )
    exponential_base: float = Field(
        default=2.0,
        ge=1.5,
        le=4.0,
        description="Base for exponential backoff calculation",
    )


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    format: Literal["json", "console"] = Field(
        default="json",
        description="Log output format",
    )
    include_timestamp: bool = Field(
        default=True,
        description="Include timestamp in log entries",
    )


class Settings(BaseSettings):
    """
    Main application settings.

    Aggregates all configuration sections and provides
    a single entry point for configuration access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )

    # Sub-configurations
    catalog: CatalogAPIConfig = Field(default_factory=CatalogAPIConfig)
    query: CatalogQueryConfig = Field(default_factory=CatalogQueryConfig)
    store: ContentStoreConfig = Field(default_factory=ContentStoreConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once
    and reused across the application.

    Returns:
        Settings: Application configuration instance
    """
    return Settings()
