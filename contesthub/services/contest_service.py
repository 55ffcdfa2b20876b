"""
Cached contest service - the single entry point for contest data.

Wraps a full ``["all"]`` aggregation behind one cache key with a fixed
revalidation window. The route layer, the webhook checker and the history
snapshotter all read through get_contests(), and filter, sort or paginate
the full set in memory afterwards.

Concurrent callers that miss the cache share one in-flight aggregation
instead of each triggering their own.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import structlog

from contesthub.cache.store import CacheEntry, CacheStore, InMemoryCacheStore, RedisCacheStore
from contesthub.config.settings import Settings, get_settings
from contesthub.ingestion.schemas import Contest
from contesthub.observability.metrics import MetricsCollector, get_metrics
from contesthub.services.aggregation_service import ALL_SOURCES, ContestAggregator

logger = structlog.get_logger(__name__)


def encode_contests(contests: list[Contest]) -> list[dict[str, Any]]:
    return [c.to_dict() for c in contests]


def decode_contests(data: list[dict[str, Any]]) -> list[Contest]:
    # Stored "status" is ignored and recomputed on read.
    return [Contest.model_validate(item) for item in data]


def create_cache_store(settings: Settings | None = None) -> CacheStore:
    """Build the configured cache backend."""
    settings = settings or get_settings()
    if settings.cache_backend == "redis":
        return RedisCacheStore(
            str(settings.redis_url),
            encode=encode_contests,
            decode=decode_contests,
        )
    return InMemoryCacheStore()


@dataclass
class CachedContests:
    """Contests plus where they came from."""

    contests: list[Contest]
    cached: bool
    stored_at: float


class ContestService:
    """
    Time-boxed memoization of the full aggregation.

    Usage:
        service = ContestService(aggregator)
        contests = await service.get_contests()
    """

    def __init__(
        self,
        aggregator: ContestAggregator,
        store: CacheStore | None = None,
        ttl_seconds: int | None = None,
        cache_key: str | None = None,
        clock: Callable[[], float] = time.time,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize contest service.

        Args:
            aggregator: Aggregator run on cache miss
            store: Cache backend (defaults to in-memory)
            ttl_seconds: Revalidation window (default from settings)
            cache_key: Key for the full contest set (default from settings)
            clock: Wall-clock source in unix seconds, injectable for tests
            metrics: Metrics collector (default global)
        """
        settings = get_settings()
        self._aggregator = aggregator
        self._store = store or InMemoryCacheStore()
        self._ttl = ttl_seconds if ttl_seconds is not None else settings.contests_cache_ttl_seconds
        self._key = cache_key or settings.contests_cache_key
        self._clock = clock
        self._metrics = metrics or get_metrics()
        self._inflight: asyncio.Task | None = None

    @property
    def aggregator(self) -> ContestAggregator:
        return self._aggregator

    @property
    def store(self) -> CacheStore:
        return self._store

    async def get_contests(self) -> list[Contest]:
        """Return the full deduplicated contest set, cached or freshly aggregated."""
        result = await self.get_contests_with_meta()
        return result.contests

    async def get_contests_with_meta(self) -> CachedContests:
        entry = await self._store.get(self._key)
        if entry is not None and not entry.is_expired(self._clock()):
            self._metrics.record_cache(hit=True)
            return CachedContests(entry.data, cached=True, stored_at=entry.stored_at)

        self._metrics.record_cache(hit=False)
        if self._inflight is None:
            task = asyncio.create_task(self._recompute(), name="contests_recompute")
            task.add_done_callback(self._clear_inflight)
            self._inflight = task
        else:
            logger.debug("Joining in-flight aggregation")

        # shield: one caller being cancelled must not cancel the shared run
        entry = await asyncio.shield(self._inflight)
        return CachedContests(entry.data, cached=False, stored_at=entry.stored_at)

    async def clear_cache(self) -> None:
        """Force the next get_contests() to recompute."""
        await self._store.delete(self._key)
        logger.info("Contest cache cleared", key=self._key)

    async def cache_info(self) -> dict[str, Any]:
        entry = await self._store.get(self._key)
        now = self._clock()
        info: dict[str, Any] = {
            "backend": self._store.name,
            "key": self._key,
            "ttlSeconds": self._ttl,
            "cached": False,
            "refreshing": self._inflight is not None,
        }
        if entry is not None and not entry.is_expired(now):
            info.update(
                cached=True,
                contestCount=len(entry.data),
                ageSeconds=round(now - entry.stored_at, 1),
                expiresAt=datetime.fromtimestamp(entry.expires_at, tz=timezone.utc).isoformat(),
            )
        return info

    async def close(self) -> None:
        if self._inflight is not None:
            self._inflight.cancel()
        await self._store.close()

    async def _recompute(self) -> CacheEntry:
        contests = await self._aggregator.aggregate([ALL_SOURCES])
        now = self._clock()
        entry = CacheEntry(data=contests, expires_at=now + self._ttl, stored_at=now)
        await self._store.set(self._key, entry)
        logger.info("Contest cache refreshed", contests=len(contests), ttl_seconds=self._ttl)
        return entry

    def _clear_inflight(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None
