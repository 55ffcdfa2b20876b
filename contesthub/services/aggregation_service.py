"""
Aggregation service - one end-to-end fetch, normalize and dedupe cycle.

The consolidated primary source (CLIST) is tried first. If it fails, is
not configured, or yields no usable contests, the per-platform adapters
run concurrently instead. Every adapter failure is contained to that
adapter, and every normalization failure to that record, so a bad cycle
degrades to fewer contests (possibly none) rather than an exception.

Features:
- Explicit PrimaryThenFallback strategy, testable without adapters
- Per-adapter deadline so one hung upstream cannot stall the batch
- Two-state AdapterResult per source for health reporting and metrics
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

import structlog

from contesthub.config.settings import Settings, get_settings
from contesthub.ingestion.atcoder_adapter import AtCoderAdapter
from contesthub.ingestion.base_adapter import (
    AdapterResult,
    BaseSourceAdapter,
    SourceFetchError,
)
from contesthub.ingestion.clist_adapter import ClistAdapter
from contesthub.ingestion.codechef_adapter import CodeChefAdapter
from contesthub.ingestion.codeforces_adapter import CodeforcesAdapter
from contesthub.ingestion.deduplication import dedupe
from contesthub.ingestion.hackerrank_adapter import HackerRankAdapter
from contesthub.ingestion.http_client import RetryConfig
from contesthub.ingestion.kontests_adapter import KontestsAdapter
from contesthub.ingestion.leetcode_adapter import LeetCodeAdapter
from contesthub.ingestion.mock_adapter import create_mock_adapters
from contesthub.ingestion.normalizer import (
    NormalizationError,
    UnknownSourceError,
    normalize,
)
from contesthub.ingestion.schemas import Contest, Source, TaggedRecord
from contesthub.ingestion.topcoder_adapter import TopCoderAdapter
from contesthub.observability.logging import source_context
from contesthub.observability.metrics import MetricsCollector, get_metrics

logger = structlog.get_logger(__name__)

T = TypeVar("T")

ALL_SOURCES = "all"

FALLBACK_ADAPTER_CLASSES: dict[Source, type[BaseSourceAdapter]] = {
    Source.CODEFORCES: CodeforcesAdapter,
    Source.LEETCODE: LeetCodeAdapter,
    Source.CODECHEF: CodeChefAdapter,
    Source.ATCODER: AtCoderAdapter,
    Source.TOPCODER: TopCoderAdapter,
    Source.HACKERRANK: HackerRankAdapter,
    Source.KONTESTS: KontestsAdapter,
}


@dataclass
class StrategyOutcome(Generic[T]):
    """Items produced by a PrimaryThenFallback run and which stage produced them."""

    items: list[T]
    stage: str  # "primary" or "fallback"
    primary_error: str | None = None


class PrimaryThenFallback(Generic[T]):
    """
    Two-stage source strategy.

    Runs ``primary`` and returns its items if it succeeds with a non-empty
    list. If the primary is absent, raises, or returns nothing, runs
    ``fallback`` and returns whatever it produces (possibly []).

    Exceptions listed in ``propagate`` are never absorbed.

    Usage:
        strategy = PrimaryThenFallback(fetch_clist, fetch_platforms)
        outcome = await strategy.run()
    """

    def __init__(
        self,
        primary: Callable[[], Awaitable[list[T]]] | None,
        fallback: Callable[[], Awaitable[list[T]]],
        propagate: tuple[type[BaseException], ...] = (),
    ):
        self._primary = primary
        self._fallback = fallback
        self._propagate = propagate

    async def run(self) -> StrategyOutcome[T]:
        primary_error: str | None = None

        if self._primary is not None:
            try:
                items = await self._primary()
            except self._propagate:
                raise
            except Exception as e:
                primary_error = str(e) or type(e).__name__
                logger.warning("Primary source failed, falling back", error=primary_error)
            else:
                if items:
                    return StrategyOutcome(items=items, stage="primary")
                primary_error = "primary returned no items"
                logger.info("Primary source returned nothing, falling back")

        items = await self._fallback()
        return StrategyOutcome(items=items, stage="fallback", primary_error=primary_error)


@dataclass
class AggregationReport:
    """Per-cycle bookkeeping kept for the health and contests endpoints."""

    stage: str | None = None
    results: dict[Source, AdapterResult] = field(default_factory=dict)
    contest_count: int = 0
    finished_at: float | None = None

    @property
    def all_failed(self) -> bool:
        """True when every adapter attempted in the last cycle failed."""
        return bool(self.results) and not any(r.ok for r in self.results.values())

    def to_dict(self) -> dict:
        return {
            "stage": self.stage,
            "contestCount": self.contest_count,
            "sources": {s.value: r.to_dict() for s, r in self.results.items()},
        }


class ContestAggregator:
    """
    Orchestrates one aggregation cycle across all configured adapters.

    Usage:
        aggregator = ContestAggregator(fallbacks=adapters, primary=ClistAdapter())
        contests = await aggregator.aggregate(["all"])
    """

    def __init__(
        self,
        fallbacks: Mapping[Source, BaseSourceAdapter] | Iterable[BaseSourceAdapter],
        primary: BaseSourceAdapter | None = None,
        deadline_seconds: float | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize aggregator.

        Args:
            fallbacks: Per-platform adapters, run concurrently on fallback
            primary: Optional consolidated source tried first
            deadline_seconds: Upper bound for one adapter run (default from settings)
            metrics: Metrics collector (default global)
        """
        if isinstance(fallbacks, Mapping):
            adapters = list(fallbacks.values())
        else:
            adapters = list(fallbacks)
        self._fallbacks: dict[Source, BaseSourceAdapter] = {a.source: a for a in adapters}
        self._primary = primary
        self._deadline = (
            deadline_seconds
            if deadline_seconds is not None
            else get_settings().adapter_deadline_seconds
        )
        self._metrics = metrics or get_metrics()
        self._last_report = AggregationReport()

    @property
    def primary(self) -> BaseSourceAdapter | None:
        return self._primary

    @property
    def fallbacks(self) -> dict[Source, BaseSourceAdapter]:
        return dict(self._fallbacks)

    @property
    def last_report(self) -> AggregationReport:
        return self._last_report

    def select_adapters(self, requested: Sequence[str]) -> list[BaseSourceAdapter]:
        """
        Resolve requested source names to fallback adapters.

        ``all`` (or an empty request) selects every adapter. If none of the
        requested names match a configured adapter, every adapter runs.
        """
        names = {name.strip().lower() for name in requested if name and name.strip()}
        if not names or ALL_SOURCES in names:
            return list(self._fallbacks.values())

        selected = [a for s, a in self._fallbacks.items() if s.value in names]
        if not selected:
            logger.warning(
                "No configured adapters match request, running all",
                requested=sorted(names),
            )
            return list(self._fallbacks.values())
        return selected

    async def aggregate(self, requested: Sequence[str] = (ALL_SOURCES,)) -> list[Contest]:
        """
        Run one aggregation cycle.

        Args:
            requested: Source names for the fallback stage, or ["all"]

        Returns:
            Normalized, deduplicated contests in no particular order. An
            empty list means no source produced usable data this cycle.

        Raises:
            UnknownSourceError: Only on a programming error in source wiring
        """
        started = time.monotonic()
        report = AggregationReport()

        primary_call = None
        if self._primary is not None:
            primary_call = lambda: self._run_primary(report)  # noqa: E731

        strategy: PrimaryThenFallback[Contest] = PrimaryThenFallback(
            primary=primary_call,
            fallback=lambda: self._run_fallback(requested, report),
            propagate=(UnknownSourceError,),
        )
        outcome = await strategy.run()

        elapsed = time.monotonic() - started
        report.stage = outcome.stage
        report.contest_count = len(outcome.items)
        report.finished_at = time.time()
        self._last_report = report

        self._metrics.record_aggregation(outcome.stage, len(outcome.items), elapsed)
        logger.info(
            "Aggregation cycle completed",
            stage=outcome.stage,
            contests=len(outcome.items),
            failed_sources=[s.value for s, r in report.results.items() if not r.ok],
            elapsed_seconds=round(elapsed, 2),
        )
        return outcome.items

    async def probe_sources(self, include_primary: bool = True) -> list[AdapterResult]:
        """Run every adapter once without normalizing."""
        adapters = list(self._fallbacks.values())
        if include_primary and self._primary is not None:
            adapters.insert(0, self._primary)
        return list(await asyncio.gather(*(self._run_adapter(a, "health") for a in adapters)))

    async def _run_primary(self, report: AggregationReport) -> list[Contest]:
        result = await self._run_adapter(self._primary, "primary")
        report.results[result.source] = result
        if not result.ok:
            raise SourceFetchError(result.source, result.error or "unknown error")
        return self._normalize_results([result])

    async def _run_fallback(
        self, requested: Sequence[str], report: AggregationReport
    ) -> list[Contest]:
        adapters = self.select_adapters(requested)
        results = await asyncio.gather(*(self._run_adapter(a, "fallback") for a in adapters))
        for result in results:
            report.results[result.source] = result

        if not any(result.records for result in results):
            logger.warning("All data sources returned empty results")
            return []
        return self._normalize_results(results)

    async def _run_adapter(self, adapter: BaseSourceAdapter, stage: str) -> AdapterResult:
        """
        Run one adapter in isolation.

        Never raises (other than cancellation): failures, timeouts and
        non-list results all become a failed AdapterResult. Everything the
        adapter logs while running is tagged with its source and stage.
        """
        with source_context(adapter.source, stage):
            result = await self._fetch_within_deadline(adapter)
            if result.ok:
                logger.info(
                    "Source fetched",
                    records=len(result.records),
                    elapsed_seconds=round(result.elapsed_seconds, 2),
                )
            else:
                logger.warning(
                    "Source failed",
                    error=result.error,
                    elapsed_seconds=round(result.elapsed_seconds, 2),
                )
        self._metrics.record_source_fetch(
            result.source,
            result.outcome,
            count=len(result.records),
            latency=result.elapsed_seconds,
        )
        return result

    async def _fetch_within_deadline(self, adapter: BaseSourceAdapter) -> AdapterResult:
        started = time.monotonic()
        try:
            records = await asyncio.wait_for(adapter.fetch(), timeout=self._deadline)
        except asyncio.TimeoutError:
            return AdapterResult.failure(
                adapter.source,
                f"timed out after {self._deadline:.0f}s",
                time.monotonic() - started,
            )
        except Exception as e:
            return AdapterResult.failure(
                adapter.source, str(e) or type(e).__name__, time.monotonic() - started
            )

        elapsed = time.monotonic() - started
        if isinstance(records, list):
            return AdapterResult.success(adapter.source, records, elapsed)
        return AdapterResult.failure(
            adapter.source,
            f"adapter returned {type(records).__name__}, expected list",
            elapsed,
        )

    def _normalize_results(self, results: Iterable[AdapterResult]) -> list[Contest]:
        tagged = [
            TaggedRecord(source=result.source, raw=raw)
            for result in results
            if result.ok
            for raw in result.records
        ]

        contests: list[Contest] = []
        for record in tagged:
            try:
                contests.append(normalize(record.raw, record.source))
            except NormalizationError as e:
                logger.warning(
                    "Dropping malformed record",
                    source=record.source.value,
                    error=str(e),
                )
                self._metrics.record_normalization_error(record.source)

        unique = dedupe(contests)
        logger.debug(
            "Normalized records",
            raw=len(tagged),
            normalized=len(contests),
            unique=len(unique),
        )
        return unique


def create_adapters(
    settings: Settings | None = None,
    use_mock: bool = False,
) -> tuple[BaseSourceAdapter | None, dict[Source, BaseSourceAdapter]]:
    """
    Create the primary and fallback adapters from configuration.

    Returns:
        (primary adapter or None, fallback adapters keyed by source)
    """
    settings = settings or get_settings()

    if use_mock:
        logger.info("Using mock adapters")
        return None, dict(create_mock_adapters())

    retry = RetryConfig(
        max_retries=settings.max_http_retries,
        max_backoff_seconds=settings.max_backoff_seconds,
    )

    enabled = settings.enabled_source_names
    if ALL_SOURCES in enabled:
        wanted = list(FALLBACK_ADAPTER_CLASSES)
    else:
        wanted = [s for s in FALLBACK_ADAPTER_CLASSES if s.value in enabled]
        unknown = sorted(set(enabled) - {s.value for s in FALLBACK_ADAPTER_CLASSES})
        if unknown:
            logger.warning("Ignoring unknown sources in ENABLED_SOURCES", sources=unknown)

    fallbacks = {
        source: FALLBACK_ADAPTER_CLASSES[source](
            timeout=settings.source_timeout_seconds,
            retry_config=retry,
        )
        for source in wanted
    }

    primary: BaseSourceAdapter | None = None
    if settings.clist_configured:
        primary = ClistAdapter(
            username=settings.clist_username,
            api_key=settings.clist_api_key,
            timeout=settings.clist_timeout_seconds,
            retry_config=retry,
            rate_limit=settings.clist_rate_limit,
        )
    else:
        logger.info("CLIST credentials not configured, skipping primary source")

    logger.info(
        "Adapters created",
        primary=primary.source.value if primary else None,
        fallbacks=[s.value for s in fallbacks],
    )
    return primary, fallbacks


def create_aggregator(
    settings: Settings | None = None,
    use_mock: bool = False,
) -> ContestAggregator:
    settings = settings or get_settings()
    primary, fallbacks = create_adapters(settings, use_mock=use_mock)
    return ContestAggregator(
        fallbacks=fallbacks,
        primary=primary,
        deadline_seconds=settings.adapter_deadline_seconds,
    )
