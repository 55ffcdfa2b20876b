"""
Dependency injection for FastAPI endpoints.

Services are constructed once per application (see ``build_services``),
stored on ``app.state.services`` by the lifespan handler, and handed to
endpoints through the getters below. Tests swap any of them out with
``app.dependency_overrides``.
"""

from dataclasses import dataclass

import structlog
from fastapi import Request

from contesthub.config.settings import Settings, get_settings
from contesthub.history.store import SnapshotStore
from contesthub.services.aggregation_service import ContestAggregator, create_aggregator
from contesthub.services.contest_service import ContestService, create_cache_store
from contesthub.services.monitor_service import MonitorService
from contesthub.webhooks.dispatcher import WebhookDispatcher
from contesthub.webhooks.registry import WebhookRegistry

logger = structlog.get_logger(__name__)


@dataclass
class ServiceContainer:
    """Process-wide services with a shared lifecycle."""

    settings: Settings
    aggregator: ContestAggregator
    contest_service: ContestService
    webhook_registry: WebhookRegistry
    dispatcher: WebhookDispatcher
    snapshot_store: SnapshotStore
    monitor: MonitorService

    async def close(self) -> None:
        await self.monitor.stop()
        await self.contest_service.close()


def build_services(settings: Settings | None = None, use_mock: bool = False) -> ServiceContainer:
    """
    Construct every service from configuration.

    Args:
        settings: Settings to use (default from environment)
        use_mock: Use offline mock adapters instead of real upstreams
    """
    settings = settings or get_settings()

    aggregator = create_aggregator(settings, use_mock=use_mock)
    contest_service = ContestService(
        aggregator,
        store=create_cache_store(settings),
        ttl_seconds=settings.contests_cache_ttl_seconds,
    )
    registry = WebhookRegistry()
    dispatcher = WebhookDispatcher(registry)
    snapshot_store = SnapshotStore(settings.history_dir)
    monitor = MonitorService(
        contest_service,
        dispatcher=dispatcher,
        snapshot_store=snapshot_store,
        interval_seconds=settings.monitor_interval_seconds,
    )

    logger.info(
        "Services built",
        cache_backend=settings.cache_backend,
        history_dir=settings.history_dir,
        mock=use_mock,
    )
    return ServiceContainer(
        settings=settings,
        aggregator=aggregator,
        contest_service=contest_service,
        webhook_registry=registry,
        dispatcher=dispatcher,
        snapshot_store=snapshot_store,
        monitor=monitor,
    )


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_contest_service(request: Request) -> ContestService:
    """Get the cached contest service."""
    return get_services(request).contest_service


def get_aggregator(request: Request) -> ContestAggregator:
    return get_services(request).aggregator


def get_webhook_registry(request: Request) -> WebhookRegistry:
    return get_services(request).webhook_registry


def get_snapshot_store(request: Request) -> SnapshotStore:
    return get_services(request).snapshot_store
