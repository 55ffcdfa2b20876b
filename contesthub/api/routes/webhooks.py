"""
Webhook registration endpoints.
"""

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, Request, status

from contesthub.api.dependencies import get_webhook_registry
from contesthub.api.models import (
    WebhookCreateRequest,
    WebhookDeleteResponse,
    WebhookItem,
    WebhookListResponse,
)
from contesthub.api.rate_limit import default_limit, limiter
from contesthub.webhooks.registry import WebhookRegistry, WebhookValidationError
from contesthub.webhooks.schemas import Webhook

router = APIRouter(prefix="/webhooks")
logger = structlog.get_logger(__name__)


def _item(webhook: Webhook) -> WebhookItem:
    return WebhookItem.model_validate(webhook.to_dict())


def _bad_request(error: WebhookValidationError) -> HTTPException:
    detail: dict[str, Any] = {"error": str(error)}
    if error.details:
        detail["details"] = error.details
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


@router.get("", response_model=WebhookListResponse, summary="List webhooks")
async def list_webhooks(
    registry: WebhookRegistry = Depends(get_webhook_registry),
) -> WebhookListResponse:
    webhooks = [_item(w) for w in registry.list_webhooks()]
    return WebhookListResponse(webhooks=webhooks, total=len(webhooks))


@router.post(
    "",
    response_model=WebhookItem,
    status_code=status.HTTP_201_CREATED,
    summary="Register a webhook",
)
@limiter.limit(default_limit)
async def create_webhook(
    request: Request,
    body: WebhookCreateRequest,
    registry: WebhookRegistry = Depends(get_webhook_registry),
) -> WebhookItem:
    """Register a webhook notified on ``contest.new`` events."""
    try:
        webhook = registry.register(
            url=body.url,
            events=body.events,
            platforms=body.platforms,
            status=body.status,
            secret=body.secret,
        )
    except WebhookValidationError as e:
        raise _bad_request(e)
    return _item(webhook)


@router.patch("/{webhook_id}", response_model=WebhookItem, summary="Update a webhook")
async def update_webhook(
    webhook_id: str,
    updates: dict[str, Any] = Body(...),
    registry: WebhookRegistry = Depends(get_webhook_registry),
) -> WebhookItem:
    """
    Partially update a webhook.

    Accepts any of url, events, platforms, status, secret and active.
    Setting ``active`` back to true resets the failure count.
    """
    try:
        webhook = registry.update(webhook_id, updates)
    except WebhookValidationError as e:
        raise _bad_request(e)
    if webhook is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Webhook not found")
    return _item(webhook)


@router.delete("/{webhook_id}", response_model=WebhookDeleteResponse, summary="Delete a webhook")
async def delete_webhook(
    webhook_id: str,
    registry: WebhookRegistry = Depends(get_webhook_registry),
) -> WebhookDeleteResponse:
    if not registry.delete(webhook_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Webhook not found")
    return WebhookDeleteResponse(id=webhook_id, message="Webhook deleted")
