"""Services that orchestrate aggregation, caching and monitoring."""

from contesthub.services.aggregation_service import (
    AggregationReport,
    ContestAggregator,
    PrimaryThenFallback,
    create_adapters,
    create_aggregator,
)
from contesthub.services.contest_service import ContestService, create_cache_store
from contesthub.services.monitor_service import MonitorService

__all__ = [
    "AggregationReport",
    "ContestAggregator",
    "ContestService",
    "MonitorService",
    "PrimaryThenFallback",
    "create_adapters",
    "create_aggregator",
    "create_cache_store",
]
