"""
Utility modules for ingestion.

Provides rate limiting, bounded concurrency and slug derivation.
"""

from game_catalog.ingestion.utils.concurrency import gather_bounded
from game_catalog.ingestion.utils.rate_limiter import RateLimiter, RateLimiterConfig
from game_catalog.ingestion.utils.slug import strict_slugify

__all__ = [
    "RateLimiter",
    "RateLimiterConfig",
    "gather_bounded",
    "strict_slugify",
]
