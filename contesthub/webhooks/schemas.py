"""Schema definitions for webhook registrations.

A webhook lives for the lifetime of the process. Platform and status
filters are stored lower-cased; an empty filter matches everything.
"""

import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from contesthub.ingestion.normalizer import KNOWN_PLATFORMS
from contesthub.ingestion.schemas import Contest, ContestStatus, Source

EVENT_CONTEST_NEW = "contest.new"

VALID_EVENTS: frozenset[str] = frozenset({EVENT_CONTEST_NEW})

VALID_STATUSES: frozenset[str] = frozenset(s.value for s in ContestStatus)

VALID_PLATFORMS: frozenset[str] = frozenset(
    {name.lower() for name in KNOWN_PLATFORMS.values()}
    | {s.value for s in Source if s not in (Source.CLIST, Source.KONTESTS)}
)


def _generate_webhook_id() -> str:
    return f"wh_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Webhook:
    """A registered outbound webhook.

    Attributes:
        url: Receiver endpoint (http or https).
        events: Subscribed event types, subset of VALID_EVENTS.
        platforms: Lower-cased platform filter; empty means all.
        statuses: Status filter; empty means all.
        secret: Sent as ``X-Webhook-Secret`` when set.
        active: Inactive webhooks receive nothing until reactivated.
        failure_count: Consecutive failed deliveries.
    """

    url: str
    events: list[str] = field(default_factory=lambda: [EVENT_CONTEST_NEW])
    platforms: list[str] = field(default_factory=list)
    statuses: list[str] = field(default_factory=list)
    secret: str | None = None
    active: bool = True
    id: str = field(default_factory=_generate_webhook_id)
    created_at: datetime = field(default_factory=_utc_now)
    last_triggered: datetime | None = None
    trigger_count: int = 0
    failure_count: int = 0

    def matches(self, contest: Contest) -> bool:
        """Platform and status filters, both case-insensitive."""
        if self.platforms and contest.platform.lower() not in self.platforms:
            return False
        if self.statuses and contest.status.value not in self.statuses:
            return False
        return True

    def to_dict(self, include_secret: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "url": self.url,
            "events": list(self.events),
            "platforms": list(self.platforms),
            "status": list(self.statuses),
            "active": self.active,
            "hasSecret": self.secret is not None,
            "createdAt": self.created_at.isoformat(),
            "lastTriggered": self.last_triggered.isoformat() if self.last_triggered else None,
            "triggerCount": self.trigger_count,
            "failureCount": self.failure_count,
        }
        if include_secret:
            data["secret"] = self.secret
        return data
