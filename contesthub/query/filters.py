"""
In-memory filtering, sorting and pagination over the full contest set.

The cache always holds every contest; each request narrows that set here
instead of fragmenting the cache by query parameters.
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

from contesthub.ingestion.schemas import Contest, ContestStatus

SortField = Literal["startTime", "duration", "platform", "name"]
SortOrder = Literal["asc", "desc"]

SORT_FIELDS: tuple[str, ...] = ("startTime", "duration", "platform", "name")
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _sort_key(sort_by: str):
    if sort_by == "duration":
        return lambda c: c.duration
    if sort_by == "platform":
        return lambda c: c.platform.casefold()
    if sort_by == "name":
        return lambda c: c.name.casefold()
    return lambda c: c.start_time


def sort_contests(
    contests: Iterable[Contest],
    sort_by: str = "startTime",
    order: str = "asc",
) -> list[Contest]:
    """Stable sort; unknown fields sort by start time."""
    return sorted(contests, key=_sort_key(sort_by), reverse=(order == "desc"))


def filter_by_platforms(contests: Iterable[Contest], platforms: Sequence[str]) -> list[Contest]:
    """
    Case-insensitive platform filter.

    Exact matches win. When no contest matches a requested name exactly,
    that name falls back to a substring match ("code" -> CodeChef, Codeforces).
    """
    contests = list(contests)
    wanted = [p.strip().casefold() for p in platforms if p and p.strip()]
    if not wanted:
        return contests

    present = {c.platform.casefold() for c in contests}
    exact = {p for p in wanted if p in present}
    partial = [p for p in wanted if p not in present]

    def matches(contest: Contest) -> bool:
        platform = contest.platform.casefold()
        return platform in exact or any(p in platform for p in partial)

    return [c for c in contests if matches(c)]


def filter_by_status(
    contests: Iterable[Contest],
    statuses: Sequence[ContestStatus | str],
    now: datetime | None = None,
) -> list[Contest]:
    wanted = {ContestStatus(s) for s in statuses}
    if not wanted:
        return list(contests)
    if now is None:
        return [c for c in contests if c.status in wanted]
    return [c for c in contests if c.status_at(now) in wanted]


def filter_by_date_range(
    contests: Iterable[Contest],
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Contest]:
    """Keep contests whose start time lies in [start, end] (both inclusive)."""
    return [
        c
        for c in contests
        if (start is None or c.start_time >= start) and (end is None or c.start_time <= end)
    ]


def filter_by_search(contests: Iterable[Contest], text: str | None) -> list[Contest]:
    """Substring search over name and platform, case-insensitive."""
    if not text or not text.strip():
        return list(contests)
    needle = text.strip().casefold()
    return [c for c in contests if needle in c.name.casefold() or needle in c.platform.casefold()]


def filter_by_sources(contests: Iterable[Contest], sources: Sequence[str]) -> list[Contest]:
    """Keep contests whose id carries one of the given source prefixes."""
    prefixes = tuple(f"{s.strip().lower()}-" for s in sources if s and s.strip())
    if not prefixes or "all-" in prefixes:
        return list(contests)
    return [c for c in contests if c.id.lower().startswith(prefixes)]


def platform_stats(contests: Iterable[Contest]) -> dict[str, dict[str, int]]:
    """Per-platform totals and status counts."""
    stats: dict[str, dict[str, int]] = {}
    for contest in contests:
        bucket = stats.setdefault(
            contest.platform,
            {"total": 0, "upcoming": 0, "ongoing": 0, "ended": 0},
        )
        bucket["total"] += 1
        bucket[contest.status.value] += 1
    return stats


@dataclass
class ContestQuery:
    """Request-level view over the full contest set."""

    platforms: list[str] = field(default_factory=list)
    statuses: list[ContestStatus] = field(default_factory=list)
    sources: list[str] = field(default_factory=list)
    start_date: datetime | None = None
    end_date: datetime | None = None
    search: str | None = None
    sort_by: SortField = "startTime"
    order: SortOrder = "asc"
    page: int = 1
    limit: int = DEFAULT_LIMIT

    def __post_init__(self) -> None:
        if self.sort_by not in SORT_FIELDS:
            raise ValueError(f"sort_by must be one of {', '.join(SORT_FIELDS)}")
        if self.order not in ("asc", "desc"):
            raise ValueError("order must be 'asc' or 'desc'")
        self.page = max(1, int(self.page))
        self.limit = min(MAX_LIMIT, max(1, int(self.limit)))
        self.start_date = _as_utc(self.start_date)
        self.end_date = _as_utc(self.end_date)

    def filters_dict(self) -> dict[str, Any]:
        return {
            "platforms": self.platforms,
            "status": [s.value for s in self.statuses],
            "sources": self.sources,
            "startDate": self.start_date.isoformat() if self.start_date else None,
            "endDate": self.end_date.isoformat() if self.end_date else None,
            "search": self.search,
        }


@dataclass
class ContestPage:
    """One page of query results plus paging metadata."""

    contests: list[Contest]
    total: int
    page: int
    limit: int
    platform_stats: dict[str, dict[str, int]]

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0

    @property
    def count(self) -> int:
        return len(self.contests)


def apply_query(contests: Iterable[Contest], query: ContestQuery) -> ContestPage:
    """Filter, sort and paginate. Stats cover the full filtered set."""
    result = filter_by_sources(contests, query.sources)
    result = filter_by_platforms(result, query.platforms)
    result = filter_by_status(result, query.statuses)
    result = filter_by_date_range(result, query.start_date, query.end_date)
    result = filter_by_search(result, query.search)
    result = sort_contests(result, query.sort_by, query.order)

    offset = (query.page - 1) * query.limit
    return ContestPage(
        contests=result[offset : offset + query.limit],
        total=len(result),
        page=query.page,
        limit=query.limit,
        platform_stats=platform_stats(result),
    )
