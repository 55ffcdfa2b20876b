"""
Canonical contest schema for the contesthub pipeline.

CRITICAL: This schema flows through the cache, the query layer, webhooks and
history snapshots. Every normalizer MUST output this exact structure. The
serialized (camelCase) field names are part of the public API.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


class Source(str, Enum):
    """Upstream sources, one per adapter."""

    CLIST = "clist"
    CODEFORCES = "codeforces"
    LEETCODE = "leetcode"
    CODECHEF = "codechef"
    ATCODER = "atcoder"
    HACKERRANK = "hackerrank"
    TOPCODER = "topcoder"
    KONTESTS = "kontests"


class ContestStatus(str, Enum):
    """Lifecycle of a contest relative to the current wall-clock time."""

    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    ENDED = "ended"


def calculate_status(
    start_time: datetime,
    duration: int,
    now: datetime | None = None,
) -> ContestStatus:
    """
    Derive a contest's status from its start time and duration.

    upcoming iff now < start, ongoing iff start <= now < start + duration,
    ended otherwise.

    Args:
        start_time: Timezone-aware contest start
        duration: Contest length in seconds
        now: Reference time (defaults to current UTC time)

    Returns:
        ContestStatus
    """
    now = now or _utc_now()
    end_time = start_time + timedelta(seconds=duration)

    if now < start_time:
        return ContestStatus.UPCOMING
    if now < end_time:
        return ContestStatus.ONGOING
    return ContestStatus.ENDED


class Contest(BaseModel):
    """
    CANONICAL CONTEST SCHEMA

    Immutable once constructed. ``status`` is not stored: it is computed from
    ``start_time`` and ``duration`` every time it is read or serialized, so a
    contest served from cache minutes after aggregation still reports the
    right status.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(
        ...,
        min_length=1,
        description="Source-qualified identity: {source}-{native_id}",
        examples=["codeforces-1900", "leetcode-weekly-contest-400"],
    )
    platform: str = Field(..., min_length=1, description="Display name of the platform")
    name: str = Field(..., min_length=1, description="Contest title")
    start_time: datetime = Field(..., description="Contest start, UTC")
    duration: int = Field(..., ge=0, description="Contest length in seconds")
    url: str = Field(..., description="Link to the contest on its origin platform")

    @field_validator("start_time")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Treat naive datetimes as UTC and convert aware ones to UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @model_validator(mode="after")
    def check_end_time(self) -> "Contest":
        """The end time must be representable, otherwise status can never be computed."""
        try:
            self.start_time + timedelta(seconds=self.duration)
        except OverflowError as e:
            raise ValueError(f"duration {self.duration}s puts the contest end out of range") from e
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def status(self) -> ContestStatus:
        return calculate_status(self.start_time, self.duration)

    @property
    def end_time(self) -> datetime:
        return self.start_time + timedelta(seconds=self.duration)

    def status_at(self, now: datetime) -> ContestStatus:
        """Status relative to an explicit reference time."""
        return calculate_status(self.start_time, self.duration, now)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the public JSON shape (camelCase, ISO timestamps)."""
        return self.model_dump(mode="json", by_alias=True)


@dataclass(frozen=True)
class TaggedRecord:
    """A raw upstream record paired with the source that produced it."""

    source: Source
    raw: dict[str, Any]
