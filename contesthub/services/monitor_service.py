"""
Monitor service - periodic background checks over the cached contest set.

Each pass reads contests through ContestService, notifies webhooks about
newly listed contests and saves a history snapshot. The history retention
sweep runs at most once per day. A failing step is logged and the loop
carries on with the next one.

Usage:
    monitor = MonitorService(contest_service, dispatcher, snapshot_store)
    await monitor.start()  # Runs until stopped
"""

import asyncio
import time
from collections.abc import Callable
from typing import Any

import structlog

from contesthub.config.settings import get_settings
from contesthub.history.store import SnapshotStore
from contesthub.services.contest_service import ContestService
from contesthub.webhooks.dispatcher import WebhookDispatcher

logger = structlog.get_logger(__name__)

CLEANUP_INTERVAL_SECONDS = 24 * 60 * 60


class MonitorService:
    """Background loop wiring the cache, webhooks and history together."""

    def __init__(
        self,
        contest_service: ContestService,
        dispatcher: WebhookDispatcher | None = None,
        snapshot_store: SnapshotStore | None = None,
        interval_seconds: float | None = None,
        retention_days: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize monitor.

        Args:
            contest_service: Source of the full contest set
            dispatcher: Webhook dispatcher (skipped when None)
            snapshot_store: History store (skipped when None)
            interval_seconds: Pause between passes (default from settings)
            retention_days: Days of history kept by the sweep (default from settings)
            clock: Monotonic clock, injectable for tests
        """
        settings = get_settings()
        self._contest_service = contest_service
        self._dispatcher = dispatcher
        self._snapshot_store = snapshot_store
        self._interval = (
            interval_seconds
            if interval_seconds is not None
            else settings.monitor_interval_seconds
        )
        self._retention_days = retention_days or settings.history_retention_days
        self._clock = clock
        self._last_cleanup: float | None = None
        self._running = False
        self._task: asyncio.Task | None = None
        self._passes = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def passes(self) -> int:
        return self._passes

    async def start(self) -> None:
        """Run passes until stop() is called."""
        self._running = True
        logger.info("Starting monitor", interval_seconds=self._interval)

        try:
            while self._running:
                await self.run_once()
                await asyncio.sleep(self._interval)
        except asyncio.CancelledError:
            logger.info("Monitor cancelled")
        finally:
            self._running = False

    def start_background(self) -> asyncio.Task:
        """Schedule start() on the running loop and return the task."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.start(), name="contest_monitor")
        return self._task

    async def stop(self) -> None:
        logger.info("Stopping monitor")
        self._running = False
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None

    async def run_once(self) -> dict[str, Any]:
        """
        Execute one monitoring pass.

        Returns:
            Summary with contest count, deliveries, snapshot id and the
            number of snapshots removed (None for skipped steps)
        """
        summary: dict[str, Any] = {
            "contests": 0,
            "delivered": None,
            "snapshot": None,
            "removed": None,
        }

        try:
            contests = await self._contest_service.get_contests()
        except Exception as e:
            logger.error("Monitor failed to load contests", error=str(e))
            return summary
        summary["contests"] = len(contests)

        if self._dispatcher is not None:
            try:
                summary["delivered"] = await self._dispatcher.check_and_trigger(contests)
            except Exception as e:
                logger.error("Webhook check failed", error=str(e))

        if self._snapshot_store is not None:
            try:
                meta = await self._snapshot_store.save_snapshot(contests)
                summary["snapshot"] = meta["id"]
            except Exception as e:
                logger.error("Snapshot save failed", error=str(e))

            if self._cleanup_due():
                try:
                    summary["removed"] = await self._snapshot_store.cleanup(
                        self._retention_days
                    )
                    self._last_cleanup = self._clock()
                except Exception as e:
                    logger.error("History cleanup failed", error=str(e))

        self._passes += 1
        logger.info("Monitor pass completed", **summary)
        return summary

    def _cleanup_due(self) -> bool:
        if self._last_cleanup is None:
            return True
        return self._clock() - self._last_cleanup >= CLEANUP_INTERVAL_SECONDS
