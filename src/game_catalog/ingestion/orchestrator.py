"""
Populate pipeline that coordinates all ingestion components.

Fetches a catalog page, upserts its taxonomy as a group, then builds
each product's entry and uploads its media concurrently, collecting
a per-product outcome into a batch report.
"""

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from game_catalog.config import get_settings
from game_catalog.ingestion.builder import CatalogEntryBuilder
from game_catalog.ingestion.contracts import CatalogQuery, EntityId, Product
from game_catalog.ingestion.errors import IngestionError
from game_catalog.ingestion.extractors import CatalogFetcher, DetailPageEnricher
from game_catalog.ingestion.media import MediaUploader
from game_catalog.ingestion.normalizer import normalize
from game_catalog.ingestion.store import Repositories, http_repositories
from game_catalog.ingestion.upserter import IdempotentUpserter, UpsertSummary
from game_catalog.ingestion.utils.concurrency import gather_bounded
from game_catalog.ingestion.utils.rate_limiter import RateLimiter, RateLimiterConfig
from game_catalog.logger import get_logger


class OutcomeStatus(str, Enum):
    """What happened to one product."""

    CREATED = "created"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class ProductOutcome:
    """Result of processing a single product."""

    title: str
    status: OutcomeStatus
    entry_id: EntityId | None = None
    reason: str | None = None
    details: list[Any] = field(default_factory=list)
    enriched: bool = False
    missing_relations: list[dict[str, str]] = field(default_factory=list)
    uploads_attempted: int = 0
    uploads_failed: int = 0

    @property
    def is_degraded(self) -> bool:
        """Created, but without some enrichment, relation or asset."""
        return self.status == OutcomeStatus.CREATED and (
            not self.enriched or bool(self.missing_relations) or self.uploads_failed > 0
        )


@dataclass
class BatchReport:
    """Result of a complete populate run."""

    run_id: UUID
    started_at: datetime
    completed_at: datetime
    query: dict[str, Any]
    fetched: int
    rejected: int
    relations: UpsertSummary
    outcomes: list[ProductOutcome]

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def created(self) -> int:
        return self._count(OutcomeStatus.CREATED)

    @property
    def skipped(self) -> int:
        return self._count(OutcomeStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(OutcomeStatus.FAILED)

    @property
    def degraded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.is_degraded)

    @property
    def uploads_attempted(self) -> int:
        return sum(outcome.uploads_attempted for outcome in self.outcomes)

    @property
    def uploads_failed(self) -> int:
        return sum(outcome.uploads_failed for outcome in self.outcomes)

    @property
    def duration_seconds(self) -> float:
        """Get total duration in seconds."""
        return (self.completed_at - self.started_at).total_seconds()

    @property
    def fully_succeeded(self) -> bool:
        """Nothing failed and nothing was degraded."""
        return self.failed == 0 and self.degraded == 0 and not self.relations.failed

    def summary(self) -> dict[str, Any]:
        """Counts suitable for logging or CLI output."""
        return {
            "run_id": str(self.run_id),
            "fetched": self.fetched,
            "rejected": self.rejected,
            "created": self.created,
            "skipped": self.skipped,
            "failed": self.failed,
            "degraded": self.degraded,
            "relations_resolved": self.relations.resolved,
            "relations_failed": len(self.relations.failed),
            "uploads_attempted": self.uploads_attempted,
            "uploads_failed": self.uploads_failed,
            "duration_seconds": round(self.duration_seconds, 3),
        }

    def to_dict(self) -> dict[str, Any]:
        """Summary plus every product outcome."""
        return {
            **self.summary(),
            "query": self.query,
            "outcomes": [
                {**asdict(outcome), "status": outcome.status.value} for outcome in self.outcomes
            ],
        }


class PopulatePipeline:
    """
    Orchestrates the complete populate run.

    Example:
        >>> async with PopulatePipeline(repositories=http_repositories()) as pipeline:
        ...     report = await pipeline.populate({"limit": 20})
    """

    def __init__(
        self,
        *,
        repositories: Repositories,
        fetcher: CatalogFetcher | None = None,
        enricher: DetailPageEnricher | None = None,
        uploader: MediaUploader | None = None,
        upload_media: bool = True,
    ) -> None:
        self._settings = get_settings()
        self._repositories = repositories
        self._max_concurrency = self._settings.pipeline.max_concurrency
        self._logger = get_logger(__name__, component="pipeline")

        # Catalog and detail pages are both GOG, so they share one bucket
        rate_limiter = RateLimiter(
            RateLimiterConfig(requests_per_minute=self._settings.catalog.requests_per_minute)
        )
        self._fetcher = fetcher or CatalogFetcher(rate_limiter=rate_limiter)
        self._enricher = enricher or DetailPageEnricher(rate_limiter=rate_limiter)
        self._upload_media = upload_media
        self._uploader = uploader or MediaUploader()

        self._upserter = IdempotentUpserter(repositories, max_concurrency=self._max_concurrency)
        self._builder = CatalogEntryBuilder(repositories, self._upserter, self._enricher)

    async def close(self) -> None:
        """Close every HTTP client and repository."""
        await self._fetcher.close()
        await self._enricher.close()
        await self._uploader.close()
        for repository in self._repositories.values():
            await repository.close()

    async def __aenter__(self) -> "PopulatePipeline":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    def build_query(self, params: CatalogQuery | Mapping[str, Any] | None = None) -> CatalogQuery:
        """Configured default query with any overrides applied."""
        if isinstance(params, CatalogQuery):
            return params

        defaults = self._settings.query.model_dump()
        overrides = {key: value for key, value in (params or {}).items() if value is not None}
        return CatalogQuery.model_validate({**defaults, **overrides})

    async def populate(
        self,
        params: CatalogQuery | Mapping[str, Any] | None = None,
    ) -> BatchReport:
        """
        Run one ingestion pass.

        Raises:
            UpstreamFetchError: If the catalog itself cannot be fetched
            ParseError: If the catalog response cannot be decoded
        """
        query = self.build_query(params)
        run_id = uuid4()
        started_at = datetime.now(timezone.utc)

        self._logger.info("Starting populate", run_id=str(run_id), **query.to_params())

        page = await self._fetcher.fetch_page(query)
        products = page.products

        relations = await self._upserter.resolve_many(normalize(products))

        results = await gather_bounded(
            (self._process_product(product) for product in products),
            limit=self._max_concurrency,
        )

        outcomes: list[ProductOutcome] = []
        for product, result in zip(products, results):
            if isinstance(result, ProductOutcome):
                outcomes.append(result)
                continue
            self._logger.error(
                "Unexpected error processing product",
                title=product.title,
                error=repr(result),
            )
            outcomes.append(
                ProductOutcome(
                    title=product.title,
                    status=OutcomeStatus.FAILED,
                    reason=f"{type(result).__name__}: {result}",
                )
            )

        report = BatchReport(
            run_id=run_id,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc),
            query=query.model_dump(),
            fetched=len(products),
            rejected=page.rejected,
            relations=relations,
            outcomes=outcomes,
        )

        self._logger.info("Populate complete", **report.summary())
        return report

    async def _process_product(self, product: Product) -> ProductOutcome:
        """Create one entry and upload its media, never raising ingestion errors."""
        try:
            built = await self._builder.create_entry(product)
        except IngestionError as e:
            self._logger.error("Entry creation failed", title=product.title, **e.to_log())
            return ProductOutcome(
                title=product.title,
                status=OutcomeStatus.FAILED,
                reason=str(e),
                details=e.details,
            )

        if built is None:
            return ProductOutcome(title=product.title, status=OutcomeStatus.SKIPPED)

        outcome = ProductOutcome(
            title=product.title,
            status=OutcomeStatus.CREATED,
            entry_id=built.entry.id,
            enriched=built.entry.is_enriched,
            missing_relations=built.missing_relations,
        )

        if self._upload_media:
            media = await self._uploader.upload_entry_media(product, built.entry)
            outcome.uploads_attempted = media.attempted
            outcome.uploads_failed = len(media.failed)

        return outcome


async def populate(
    params: CatalogQuery | Mapping[str, Any] | None = None,
    *,
    repositories: Repositories | None = None,
    upload_media: bool = True,
) -> BatchReport:
    """
    Entry point for schedulers and manual triggers.

    Uses the configured content store unless repositories are given.
    """
    async with PopulatePipeline(
        repositories=repositories or http_repositories(),
        upload_media=upload_media,
    ) as pipeline:
        return await pipeline.populate(params)
