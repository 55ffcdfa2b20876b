"""
Webhook delivery for newly seen contests.

Each check diffs the current contest ids against the ids seen on the
previous check and POSTs ``{event, contest, timestamp}`` to every active
webhook whose filters match a new contest.

Delivery is best effort: a failure increments the webhook's consecutive
failure counter, a success resets it, and reaching the limit deactivates
the webhook.
"""

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from contesthub.config.settings import get_settings
from contesthub.ingestion.schemas import Contest
from contesthub.observability.metrics import MetricsCollector, get_metrics
from contesthub.webhooks.registry import WebhookRegistry
from contesthub.webhooks.schemas import EVENT_CONTEST_NEW, Webhook

logger = structlog.get_logger(__name__)

USER_AGENT = "ContestHub-Webhook/1.0"


class WebhookDispatcher:
    """
    Detects new contests and notifies matching webhooks.

    The first check after startup only records a baseline (every contest
    would otherwise look new) unless ``notify_on_first_run`` is set.
    """

    def __init__(
        self,
        registry: WebhookRegistry,
        timeout: float | None = None,
        max_failures: int | None = None,
        notify_on_first_run: bool | None = None,
        metrics: MetricsCollector | None = None,
    ):
        settings = get_settings()
        self._registry = registry
        self._timeout = timeout if timeout is not None else settings.webhook_timeout_seconds
        self._max_failures = (
            max_failures if max_failures is not None else settings.webhook_max_failures
        )
        self._notify_on_first_run = (
            notify_on_first_run
            if notify_on_first_run is not None
            else settings.webhook_notify_on_first_run
        )
        self._metrics = metrics or get_metrics()
        self._seen_ids: set[str] | None = None

    @property
    def has_baseline(self) -> bool:
        return self._seen_ids is not None

    async def check_and_trigger(self, contests: Iterable[Contest]) -> int:
        """
        Notify webhooks about contests not seen on the previous check.

        Returns:
            Number of successful deliveries
        """
        contests = list(contests)
        current_ids = {c.id for c in contests}

        if self._seen_ids is None and not self._notify_on_first_run:
            self._seen_ids = current_ids
            logger.info("Webhook baseline recorded", contests=len(current_ids))
            return 0

        previous = self._seen_ids or set()
        new_contests = [c for c in contests if c.id not in previous]
        self._seen_ids = current_ids

        if not new_contests:
            return 0

        logger.info("New contests found", count=len(new_contests))
        delivered = 0
        for contest in new_contests:
            delivered += await self.trigger_for_contest(contest)
        return delivered

    async def trigger_for_contest(self, contest: Contest) -> int:
        delivered = 0
        for webhook in self._registry.active():
            if EVENT_CONTEST_NEW not in webhook.events or not webhook.matches(contest):
                continue
            payload = {
                "event": EVENT_CONTEST_NEW,
                "contest": contest.to_dict(),
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
            if await self.deliver(webhook, payload):
                delivered += 1
        return delivered

    async def deliver(self, webhook: Webhook, payload: dict[str, Any]) -> bool:
        """POST one payload and update the webhook's counters."""
        headers = {"User-Agent": USER_AGENT}
        if webhook.secret:
            headers["X-Webhook-Secret"] = webhook.secret

        error: str | None = None
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(webhook.url, json=payload, headers=headers)
            if not resp.is_success:
                error = f"status {resp.status_code}"
        except httpx.TimeoutException:
            error = "timeout"
        except httpx.HTTPError as e:
            error = f"{type(e).__name__}: {e}"

        self._metrics.record_webhook_delivery(error is None)

        if error is None:
            webhook.last_triggered = datetime.now(timezone.utc)
            webhook.trigger_count += 1
            webhook.failure_count = 0
            logger.info("Webhook delivered", webhook_id=webhook.id)
            return True

        webhook.failure_count += 1
        logger.warning(
            "Webhook delivery failed",
            webhook_id=webhook.id,
            error=error,
            failure_count=webhook.failure_count,
        )
        if webhook.failure_count >= self._max_failures:
            webhook.active = False
            logger.error(
                "Webhook deactivated",
                webhook_id=webhook.id,
                failures=webhook.failure_count,
            )
        return False
