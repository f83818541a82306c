"""
Extractors for the GOG catalog API and product pages.

Both are built on a common HTTP base with retry logic, deadlines,
rate limiting and structured logging.
"""

from game_catalog.ingestion.extractors.base import (
    BaseExtractor,
    BaseHTTPClient,
    ExtractionResult,
)
from game_catalog.ingestion.extractors.catalog import CatalogFetcher
from game_catalog.ingestion.extractors.detail_page import DetailPageEnricher

__all__ = [
    # Base classes
    "BaseExtractor",
    "BaseHTTPClient",
    "ExtractionResult",
    # Extractors
    "CatalogFetcher",
    "DetailPageEnricher",
]
