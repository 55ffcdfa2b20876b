"""
Contest listing, cache administration and calendar export endpoints.
"""

import time
from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import Response

from contesthub.api.dependencies import get_aggregator, get_contest_service
from contesthub.api.models import (
    ContestActionRequest,
    ContestActionResponse,
    ContestsResponse,
    PlatformStats,
    SortingInfo,
)
from contesthub.api.rate_limit import default_limit, limiter
from contesthub.export.ical import generate_icalendar
from contesthub.ingestion.schemas import ContestStatus
from contesthub.query.filters import (
    DEFAULT_LIMIT,
    ContestQuery,
    apply_query,
    filter_by_platforms,
    filter_by_status,
    sort_contests,
)
from contesthub.services.aggregation_service import ContestAggregator
from contesthub.services.contest_service import ContestService

router = APIRouter()
logger = structlog.get_logger(__name__)

CLEAR_CACHE_ACTION = "clear-cache"
ICAL_DEFAULT_LIMIT = 50
ICAL_MAX_LIMIT = 200
ICAL_STATUSES = (ContestStatus.UPCOMING, ContestStatus.ONGOING)


def _split(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _parse_statuses(value: str | None, allowed=tuple(ContestStatus)) -> list[ContestStatus]:
    statuses = []
    for item in _split(value):
        try:
            parsed = ContestStatus(item.lower())
        except ValueError:
            parsed = None
        if parsed not in allowed:
            names = ", ".join(s.value for s in allowed)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid status '{item}'. Use one of: {names}",
            )
        statuses.append(parsed)
    return statuses


@router.get(
    "/contests",
    response_model=ContestsResponse,
    summary="List contests",
    description="Filter, sort and paginate the cached contest set.",
)
@limiter.limit(default_limit)
async def list_contests(
    request: Request,
    platform: str | None = Query(
        default=None,
        description="Comma-separated platform names (case-insensitive)",
    ),
    status_filter: str | None = Query(
        default=None,
        alias="status",
        description="Comma-separated statuses: upcoming, ongoing, ended",
    ),
    sources: str | None = Query(
        default=None,
        description="Comma-separated source names, e.g. codeforces,leetcode",
    ),
    start_date: datetime | None = Query(default=None, alias="startDate"),
    end_date: datetime | None = Query(default=None, alias="endDate"),
    search: str | None = Query(default=None, description="Substring of name or platform"),
    sort_by: str = Query(default="startTime", alias="sortBy"),
    order: str = Query(default="asc"),
    page: int = Query(default=1, description="Page number (values below 1 read as 1)"),
    limit: int = Query(default=DEFAULT_LIMIT, description="Page size, capped at 100"),
    service: ContestService = Depends(get_contest_service),
    aggregator: ContestAggregator = Depends(get_aggregator),
) -> ContestsResponse:
    """
    List contests from the full cached set.

    Returns 500 only when there are no contests at all and every source
    failed during the last aggregation cycle.
    """
    start_time = time.perf_counter()

    try:
        query = ContestQuery(
            platforms=_split(platform),
            statuses=_parse_statuses(status_filter),
            sources=_split(sources),
            start_date=start_date,
            end_date=end_date,
            search=search,
            sort_by=sort_by,
            order=order.lower(),
            page=page,
            limit=limit,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    result = await service.get_contests_with_meta()
    if not result.contests and aggregator.last_report.all_failed:
        logger.error("All data sources failed", report=aggregator.last_report.to_dict())
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="All data sources failed to fetch",
        )

    contest_page = apply_query(result.contests, query)
    latency_ms = (time.perf_counter() - start_time) * 1000

    logger.info(
        "Contests listed",
        total=contest_page.total,
        returned=contest_page.count,
        cached=result.cached,
        latency_ms=round(latency_ms, 2),
    )

    return ContestsResponse(
        contests=contest_page.contests,
        count=contest_page.count,
        total=contest_page.total,
        page=contest_page.page,
        limit=contest_page.limit,
        total_pages=contest_page.total_pages,
        platform_stats={
            name: PlatformStats(**counts)
            for name, counts in contest_page.platform_stats.items()
        },
        cached=result.cached,
        sorting=SortingInfo(sort_by=query.sort_by, order=query.order),
        filters=query.filters_dict(),
        latency_ms=round(latency_ms, 2),
    )


@router.post(
    "/contests",
    response_model=ContestActionResponse,
    summary="Contest cache administration",
)
async def contest_action(
    body: ContestActionRequest | None = None,
    service: ContestService = Depends(get_contest_service),
) -> ContestActionResponse:
    """Run an administrative action. A missing action clears the cache."""
    action = (body.action if body else None) or CLEAR_CACHE_ACTION
    if action != CLEAR_CACHE_ACTION:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown action '{action}'. Use '{CLEAR_CACHE_ACTION}'",
        )

    await service.clear_cache()
    return ContestActionResponse(action=action, message="Cache cleared successfully")


@router.get(
    "/contests/ical",
    summary="Contests as iCalendar",
    response_class=Response,
    responses={200: {"content": {"text/calendar": {}}}},
)
@limiter.limit(default_limit)
async def contests_ical(
    request: Request,
    platform: str | None = Query(default=None, description="Comma-separated platform names"),
    status_filter: str | None = Query(
        default=None,
        alias="status",
        description="upcoming or ongoing (default both)",
    ),
    limit: int = Query(default=ICAL_DEFAULT_LIMIT, description="Max events, capped at 200"),
    service: ContestService = Depends(get_contest_service),
) -> Response:
    statuses = _parse_statuses(status_filter, allowed=ICAL_STATUSES) or list(ICAL_STATUSES)
    limit = min(ICAL_MAX_LIMIT, max(1, limit))

    contests = await service.get_contests()
    contests = filter_by_platforms(contests, _split(platform))
    contests = filter_by_status(contests, statuses)
    contests = sort_contests(contests)[:limit]

    logger.info("Calendar exported", events=len(contests))
    return Response(
        content=generate_icalendar(contests),
        media_type="text/calendar; charset=utf-8",
        headers={
            "Content-Disposition": 'attachment; filename="contests.ics"',
            "Cache-Control": "public, max-age=300",
        },
    )
