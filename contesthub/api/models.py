"""
Request and response models for the contests API.

Field names are snake_case in Python and camelCase on the wire.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from contesthub.ingestion.schemas import Contest


class APIModel(BaseModel):
    """Base model serializing with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(APIModel):
    """Response model for errors."""

    detail: str = Field(..., description="Error message")
    error_type: str = Field(default="error", description="Error type")


# Contest models


class PlatformStats(APIModel):
    """Status breakdown for one platform."""

    total: int = 0
    upcoming: int = 0
    ongoing: int = 0
    ended: int = 0


class SortingInfo(APIModel):
    sort_by: str = Field(..., description="startTime, duration, platform or name")
    order: str = Field(..., description="asc or desc")


class ContestsResponse(APIModel):
    """Response model for listing contests."""

    contests: list[Contest] = Field(..., description="Contests on the requested page")
    count: int = Field(..., description="Contests on this page")
    total: int = Field(..., description="Contests matching the filters")
    page: int = Field(..., ge=1, description="Current page (1-based)")
    limit: int = Field(..., ge=1, description="Page size")
    total_pages: int = Field(..., description="Number of pages for the filtered set")
    platform_stats: dict[str, PlatformStats] = Field(
        default_factory=dict,
        description="Per-platform status counts over the filtered set",
    )
    cached: bool = Field(..., description="Whether the full set came from the cache")
    sorting: SortingInfo
    filters: dict[str, Any] = Field(default_factory=dict, description="Applied filters")
    latency_ms: float = Field(..., description="Processing latency in milliseconds")


class ContestActionRequest(APIModel):
    """Administrative action on the contest cache."""

    action: str | None = Field(
        default=None,
        description="Only 'clear-cache' is supported",
        examples=["clear-cache"],
    )


class ContestActionResponse(APIModel):
    action: str
    message: str


# Webhook models


class WebhookCreateRequest(APIModel):
    """Request model for registering a webhook."""

    url: str = Field(..., min_length=1, description="Receiver endpoint (http or https)")
    events: list[str] | None = Field(default=None, description="Event types, default contest.new")
    platforms: list[str] | None = Field(default=None, description="Platform filter, empty for all")
    status: list[str] | None = Field(default=None, description="Status filter, empty for all")
    secret: str | None = Field(default=None, description="Sent as X-Webhook-Secret")


class WebhookItem(APIModel):
    """Public view of a registered webhook (secret never included)."""

    id: str
    url: str
    events: list[str]
    platforms: list[str]
    status: list[str]
    active: bool
    has_secret: bool
    created_at: str
    last_triggered: str | None = None
    trigger_count: int = 0
    failure_count: int = 0


class WebhookListResponse(APIModel):
    webhooks: list[WebhookItem]
    total: int


class WebhookDeleteResponse(APIModel):
    id: str
    message: str


# History models


class SnapshotMeta(APIModel):
    id: str
    timestamp: str
    contest_count: int


class HistoryListResponse(APIModel):
    snapshots: list[SnapshotMeta]
    total: int


class SnapshotResponse(SnapshotMeta):
    contests: list[dict[str, Any]] = Field(default_factory=list)


class AnalyticsPeriod(APIModel):
    start: str
    end: str


class AnalyticsResponse(APIModel):
    period: AnalyticsPeriod
    snapshots: int
    total_contests: int = Field(..., description="Unique contest ids across snapshots")
    platforms: dict[str, int] = Field(default_factory=dict)
    average_contests_per_snapshot: int


# Health models


class SourceHealth(APIModel):
    """Outcome of probing one source."""

    status: str = Field(..., description="healthy or unhealthy")
    records: int = 0
    response_time_ms: float = 0.0
    error: str | None = None


class HealthSummary(APIModel):
    total: int
    healthy: int
    unhealthy: int


class HealthResponse(APIModel):
    """Response model for health check."""

    status: str = Field(
        ...,
        description="Overall service status: healthy, degraded, or unhealthy",
    )
    timestamp: str
    sources: dict[str, SourceHealth] = Field(default_factory=dict)
    summary: HealthSummary
    cache: dict[str, Any] = Field(default_factory=dict, description="Contest cache state")
    last_cycle: dict[str, Any] | None = Field(
        default=None,
        description="Stage and per-source outcome of the last aggregation cycle",
    )
    environment: str
    version: str
    latency_ms: float
