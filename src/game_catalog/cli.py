"""
Command-line interface for the game catalog ingestion.

Provides commands to inspect the catalog feed and product pages
and to run the populate pipeline manually or from a scheduler.
"""

import asyncio
import json
import sys
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from game_catalog.config import get_settings
from game_catalog.logger import get_logger, setup_logging

# Initialize logging
setup_logging()
logger = get_logger(__name__, component="cli")


class CLIOutput(BaseModel):
    """Structured output for CLI commands."""

    success: bool
    command: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: dict[str, Any] | list[Any] | None = None
    error: str | None = None


def print_json(output: CLIOutput) -> None:
    """Print output as formatted JSON."""
    print(json.dumps(output.model_dump(), indent=2, default=str))


def parse_options(args: list[str]) -> dict[str, str | bool]:
    """Parse `--name value` pairs and bare `--flag` switches."""
    options: dict[str, str | bool] = {}
    i = 0
    while i < len(args):
        arg = args[i]
        if arg.startswith("--"):
            name = arg[2:].replace("-", "_")
            if i + 1 < len(args) and not args[i + 1].startswith("--"):
                options[name] = args[i + 1]
                i += 2
                continue
            options[name] = True
        i += 1
    return options


def query_overrides(options: dict[str, str | bool]) -> dict[str, Any]:
    """Catalog query overrides from CLI options."""
    overrides: dict[str, Any] = {}
    if isinstance(options.get("limit"), str):
        overrides["limit"] = int(str(options["limit"]))
    if isinstance(options.get("query"), str):
        overrides["query"] = options["query"]
    if isinstance(options.get("order"), str):
        overrides["order"] = options["order"]
    return overrides


async def cmd_test_config() -> None:
    """Test configuration loading."""
    settings = get_settings()

    output = CLIOutput(
        success=True,
        command="test-config",
        data={
            "environment": settings.environment,
            "catalog_api_url": settings.catalog.api_url,
            "catalog_site_url": settings.catalog.site_url,
            "default_query": settings.query.model_dump(),
            "content_store_url": settings.store.base_url,
            "upload_url": settings.store.upload_url,
            "api_token_configured": settings.store.api_token is not None,
            "max_concurrency": settings.pipeline.max_concurrency,
        },
    )
    print_json(output)


async def cmd_fetch_catalog(overrides: dict[str, Any]) -> None:
    """Fetch one catalog page and print its products."""
    from game_catalog.ingestion.contracts import CatalogQuery
    from game_catalog.ingestion.extractors import CatalogFetcher

    query = CatalogQuery.model_validate({**get_settings().query.model_dump(), **overrides})
    logger.info("Fetching catalog", **query.to_params())

    async with CatalogFetcher() as fetcher:
        result = await fetcher.extract(query)

    output = CLIOutput(
        success=result.success,
        command="fetch-catalog",
        data=result.model_dump(mode="json") if result.success else None,
        error=result.error_message,
    )
    print_json(output)


async def cmd_enrich(slug: str) -> None:
    """Fetch enrichment for one product slug."""
    from game_catalog.ingestion.extractors import DetailPageEnricher

    logger.info("Enriching product", slug=slug)

    async with DetailPageEnricher() as enricher:
        result = await enricher.extract(slug)

    output = CLIOutput(
        success=result.success,
        command="enrich",
        data=result.model_dump(mode="json") if result.success else None,
        error=result.error_message,
    )
    print_json(output)


async def cmd_populate(overrides: dict[str, Any], *, dry_run: bool = False) -> None:
    """
    Run the populate pipeline.

    Args:
        overrides: Catalog query overrides
        dry_run: Use in-memory repositories and skip media uploads
    """
    from game_catalog.ingestion.orchestrator import populate
    from game_catalog.ingestion.store import memory_repositories

    repositories = memory_repositories() if dry_run else None

    logger.info("Starting populate", dry_run=dry_run, **overrides)
    report = await populate(overrides, repositories=repositories, upload_media=not dry_run)

    output = CLIOutput(
        success=report.failed == 0,
        command="populate",
        data=report.to_dict(),
    )
    print_json(output)


def print_usage() -> None:
    """Print CLI usage information."""
    usage = """
Game Catalog Ingestion CLI
==========================

Usage: game-catalog <command> [arguments]

Commands:
  test-config                 Test configuration loading
  fetch-catalog               Fetch one catalog page
  enrich <slug>               Scrape description and rating for a product
  populate                    Run the full ingestion pipeline

Options (fetch-catalog, populate):
  --limit <n>                 Products per page
  --query <predicate>         Catalog filter, e.g. like:Witcher
  --order <order>             Sort order, e.g. desc:score
  --dry-run                   (populate) In-memory store, no uploads

Examples:
  game-catalog populate --limit 20 --query like:Witcher --order desc:trending
"""
    print(usage)


def main() -> None:
    """Main CLI entry point."""
    if len(sys.argv) < 2:
        print_usage()
        sys.exit(1)

    command = sys.argv[1]
    options = parse_options(sys.argv[2:])

    try:
        if command == "test-config":
            asyncio.run(cmd_test_config())

        elif command == "fetch-catalog":
            asyncio.run(cmd_fetch_catalog(query_overrides(options)))

        elif command == "enrich":
            if len(sys.argv) < 3:
                print("Error: slug required")
                sys.exit(1)
            asyncio.run(cmd_enrich(sys.argv[2]))

        elif command == "populate":
            asyncio.run(
                cmd_populate(query_overrides(options), dry_run=bool(options.get("dry_run")))
            )

        elif command in ("help", "--help", "-h"):
            print_usage()

        else:
            print(f"Unknown command: {command}")
            print_usage()
            sys.exit(1)

    except KeyboardInterrupt:
        print("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.exception("CLI error", error=str(e))
        output = CLIOutput(
            success=False,
            command=command,
            error=str(e),
        )
        print_json(output)
        sys.exit(1)


if __name__ == "__main__":
    main()
