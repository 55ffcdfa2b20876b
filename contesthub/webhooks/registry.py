"""
In-process webhook registry.

Constructed once per process and injected wherever webhooks are read or
managed. All validation happens here so the API and CLI share it.
"""

from collections.abc import Iterable
from typing import Any
from urllib.parse import urlparse

import structlog

from contesthub.webhooks.schemas import (
    EVENT_CONTEST_NEW,
    VALID_EVENTS,
    VALID_PLATFORMS,
    VALID_STATUSES,
    Webhook,
)

logger = structlog.get_logger(__name__)

UPDATABLE_FIELDS = frozenset({"url", "events", "platforms", "status", "secret", "active"})


class WebhookValidationError(ValueError):
    """Invalid webhook registration or update."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


def validate_url(url: Any) -> str:
    if not url or not isinstance(url, str):
        raise WebhookValidationError("URL is required")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise WebhookValidationError("Invalid URL format")
    return url


def _validate_members(
    values: Iterable[Any] | None,
    allowed: frozenset[str],
    label: str,
    lower: bool = False,
) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str) or not isinstance(values, (list, tuple)):
        raise WebhookValidationError(f"{label} must be a list")
    cleaned = []
    for value in values:
        if not isinstance(value, str):
            raise WebhookValidationError(f"Invalid {label}", {"allowed": sorted(allowed)})
        item = value.strip().lower() if lower else value.strip()
        if item not in allowed:
            raise WebhookValidationError(f"Invalid {label}", {"allowed": sorted(allowed)})
        if item not in cleaned:
            cleaned.append(item)
    return cleaned


class WebhookRegistry:
    """
    Registered webhooks keyed by id.

    Usage:
        registry = WebhookRegistry()
        hook = registry.register(url="https://example.com/hook", platforms=["codeforces"])
    """

    def __init__(self) -> None:
        self._webhooks: dict[str, Webhook] = {}

    def register(
        self,
        url: str,
        events: list[str] | None = None,
        platforms: list[str] | None = None,
        status: list[str] | None = None,
        secret: str | None = None,
    ) -> Webhook:
        """
        Validate and register a webhook.

        Raises:
            WebhookValidationError: On an invalid url, event, platform or status
        """
        webhook = Webhook(
            url=validate_url(url),
            events=_validate_members(events, VALID_EVENTS, "event type") or [EVENT_CONTEST_NEW],
            platforms=_validate_members(platforms, VALID_PLATFORMS, "platform", lower=True),
            statuses=_validate_members(status, VALID_STATUSES, "status", lower=True),
            secret=secret or None,
        )
        self._webhooks[webhook.id] = webhook
        logger.info("Webhook registered", webhook_id=webhook.id, url=webhook.url)
        return webhook

    def get(self, webhook_id: str) -> Webhook | None:
        return self._webhooks.get(webhook_id)

    def list_webhooks(self) -> list[Webhook]:
        return list(self._webhooks.values())

    def active(self) -> list[Webhook]:
        return [w for w in self._webhooks.values() if w.active]

    def update(self, webhook_id: str, updates: dict[str, Any]) -> Webhook | None:
        """
        Apply a partial update. Returns None if the webhook does not exist.

        Reactivating a webhook resets its consecutive failure count.

        Raises:
            WebhookValidationError: On unknown fields or invalid values
        """
        webhook = self._webhooks.get(webhook_id)
        if webhook is None:
            return None

        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise WebhookValidationError(
                "Unknown fields", {"fields": sorted(unknown), "allowed": sorted(UPDATABLE_FIELDS)}
            )

        if "url" in updates:
            webhook.url = validate_url(updates["url"])
        if "events" in updates:
            webhook.events = (
                _validate_members(updates["events"], VALID_EVENTS, "event type")
                or [EVENT_CONTEST_NEW]
            )
        if "platforms" in updates:
            webhook.platforms = _validate_members(
                updates["platforms"], VALID_PLATFORMS, "platform", lower=True
            )
        if "status" in updates:
            webhook.statuses = _validate_members(
                updates["status"], VALID_STATUSES, "status", lower=True
            )
        if "secret" in updates:
            webhook.secret = updates["secret"] or None
        if "active" in updates:
            if not isinstance(updates["active"], bool):
                raise WebhookValidationError("active must be a boolean")
            if updates["active"] and not webhook.active:
                webhook.failure_count = 0
            webhook.active = updates["active"]

        logger.info("Webhook updated", webhook_id=webhook_id, fields=sorted(updates))
        return webhook

    def delete(self, webhook_id: str) -> bool:
        removed = self._webhooks.pop(webhook_id, None) is not None
        if removed:
            logger.info("Webhook deleted", webhook_id=webhook_id)
        return removed

    def __len__(self) -> int:
        return len(self._webhooks)
