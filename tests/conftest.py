"""Shared fixtures."""

import json
import os
from pathlib import Path
from typing import Any, cast
from unittest.mock import patch

import pytest

from game_catalog.config import get_settings

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> str:
    """Load a fixture file as text."""
    with (FIXTURES_DIR / name).open(encoding="utf-8") as f:
        return f.read()


def load_json_fixture(name: str) -> dict[str, Any]:
    """Load a JSON fixture file."""
    return cast(dict[str, Any], json.loads(load_fixture(name)))


@pytest.fixture(autouse=True)
def test_env() -> Any:
    """Single attempt per request and no throttling, with fresh settings."""
    with patch.dict(
        os.environ,
        {
            "RETRY_MAX_ATTEMPTS": "1",
            "GOG_REQUESTS_PER_MINUTE": "600",
            "LOG_LEVEL": "WARNING",
        },
    ):
        get_settings.cache_clear()
        yield
    get_settings.cache_clear()


@pytest.fixture
def catalog_response() -> dict[str, Any]:
    """Catalog API response with two products."""
    return load_json_fixture("catalog_response.json")


@pytest.fixture
def detail_page() -> str:
    """Product detail page HTML."""
    return load_fixture("detail_page.html")
