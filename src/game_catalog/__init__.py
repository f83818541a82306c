"""
Game Catalog Ingestion.

Pulls a page of the GOG catalog, normalizes its taxonomy and
materializes enriched game entries and their media into a
content store.
"""

from game_catalog.config import Settings, get_settings
from game_catalog.logger import get_logger, setup_logging

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
    "__version__",
]
