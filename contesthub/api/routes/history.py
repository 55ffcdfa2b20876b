"""
Contest history endpoint: snapshot listing, lookup and analytics.
"""

from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel

from contesthub.api.dependencies import get_snapshot_store
from contesthub.api.models import AnalyticsResponse, HistoryListResponse, SnapshotResponse
from contesthub.api.rate_limit import default_limit, limiter
from contesthub.history.store import (
    InvalidSnapshotIdError,
    SnapshotNotFoundError,
    SnapshotStore,
)

router = APIRouter()
logger = structlog.get_logger(__name__)

HISTORY_ACTIONS = ("list", "snapshot", "analytics")


def _parse_date(value: str, name: str) -> datetime:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{name} must be an ISO 8601 date",
        )


@router.get(
    "/history",
    response_model=HistoryListResponse | SnapshotResponse | AnalyticsResponse,
    summary="Contest history",
    description="action=list (default), action=snapshot&snapshotId=..., "
    "or action=analytics&startDate=...&endDate=...",
)
@limiter.limit(default_limit)
async def get_history(
    request: Request,
    action: str = Query(default="list"),
    snapshot_id: str | None = Query(default=None, alias="snapshotId"),
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    store: SnapshotStore = Depends(get_snapshot_store),
) -> BaseModel:
    if action == "list":
        snapshots = await store.get_history()
        return HistoryListResponse.model_validate(
            {"snapshots": snapshots, "total": len(snapshots)}
        )

    if action == "snapshot":
        if not snapshot_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Snapshot ID is required",
            )
        try:
            snapshot = await store.get_snapshot(snapshot_id)
        except InvalidSnapshotIdError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except SnapshotNotFoundError:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Snapshot not found",
            )
        return SnapshotResponse.model_validate(snapshot)

    if action == "analytics":
        if not start_date or not end_date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Start date and end date are required",
            )
        start = _parse_date(start_date, "startDate")
        end = _parse_date(end_date, "endDate")
        analytics = await store.get_analytics(start, end)
        logger.info("History analytics computed", snapshots=analytics["snapshots"])
        return AnalyticsResponse.model_validate(analytics)

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Invalid action. Use: {', '.join(HISTORY_ACTIONS)}",
    )
