"""
Health check endpoint probing every configured source.
"""

import time
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from contesthub import __version__
from contesthub.api.dependencies import get_aggregator, get_contest_service
from contesthub.api.models import HealthResponse, HealthSummary, SourceHealth
from contesthub.config.settings import get_settings
from contesthub.ingestion.base_adapter import AdapterResult
from contesthub.services.aggregation_service import ContestAggregator
from contesthub.services.contest_service import ContestService

router = APIRouter()
logger = structlog.get_logger(__name__)


def _source_health(result: AdapterResult) -> SourceHealth:
    return SourceHealth(
        status="healthy" if result.ok else "unhealthy",
        records=len(result.records),
        response_time_ms=round(result.elapsed_seconds * 1000, 2),
        error=result.error,
    )


def overall_status(healthy: int, total: int) -> str:
    if total and healthy == total:
        return "healthy"
    if healthy > 0:
        return "degraded"
    return "unhealthy"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Probe every source once and report cache state.",
    responses={503: {"model": HealthResponse}},
)
async def health_check(
    aggregator: ContestAggregator = Depends(get_aggregator),
    service: ContestService = Depends(get_contest_service),
) -> JSONResponse:
    """
    Check source availability.

    Status logic:
    - healthy: every probed source answered
    - degraded: some sources failed
    - unhealthy: no source answered

    Anything but healthy is reported with HTTP 503.
    """
    settings = get_settings()
    start_time = time.perf_counter()

    results = await aggregator.probe_sources(include_primary=settings.clist_configured)
    sources = {r.source.value: _source_health(r) for r in results}
    healthy = sum(1 for r in results if r.ok)
    status = overall_status(healthy, len(results))

    last_report = aggregator.last_report
    latency_ms = (time.perf_counter() - start_time) * 1000

    response = HealthResponse(
        status=status,
        timestamp=datetime.now(timezone.utc).isoformat(),
        sources=sources,
        summary=HealthSummary(
            total=len(results),
            healthy=healthy,
            unhealthy=len(results) - healthy,
        ),
        cache=await service.cache_info(),
        last_cycle=last_report.to_dict() if last_report.stage else None,
        environment=settings.environment,
        version=__version__,
        latency_ms=round(latency_ms, 2),
    )

    if status != "healthy":
        logger.warning("Health check degraded", status=status, healthy=healthy, total=len(results))

    return JSONResponse(
        status_code=200 if status == "healthy" else 503,
        content=response.model_dump(mode="json", by_alias=True),
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"},
    )
