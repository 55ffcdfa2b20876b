"""Outbound webhooks for newly listed contests."""

from contesthub.webhooks.dispatcher import WebhookDispatcher
from contesthub.webhooks.registry import WebhookRegistry, WebhookValidationError
from contesthub.webhooks.schemas import EVENT_CONTEST_NEW, Webhook

__all__ = [
    "EVENT_CONTEST_NEW",
    "Webhook",
    "WebhookDispatcher",
    "WebhookRegistry",
    "WebhookValidationError",
]
