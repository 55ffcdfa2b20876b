"""
Mock adapter for testing and development.

Produces source-native raw records without touching the network, so the
whole pipeline (normalize, dedupe, cache, webhooks, history) can run
offline. Useful for:
- Running the CLI and API without network access (``--mock``)
- Tests that need call-count instrumentation or injected failures
"""

import asyncio
import time
from datetime import datetime, timedelta, timezone
from typing import Any

from contesthub.ingestion.base_adapter import BaseSourceAdapter, SourceFetchError
from contesthub.ingestion.http_client import HTTPClient
from contesthub.ingestion.schemas import Source

SAMPLE_CONTESTS = [
    # (native id, title, hours from now, duration in seconds)
    ("1001", "Round 1 (Div. 2)", 6, 7200),
    ("1002", "Educational Round", 30, 7200),
    ("1003", "Weekly Contest", 54, 5400),
]


def _iso(dt: datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


def sample_record(
    source: Source,
    native_id: str,
    title: str,
    start: datetime,
    duration: int,
) -> dict[str, Any]:
    """Build one raw record in the native shape of ``source``."""
    end = start + timedelta(seconds=duration)
    epoch = int(start.timestamp())

    if source is Source.CLIST:
        return {
            "id": int(native_id),
            "event": title,
            "start": epoch,
            "duration": duration,
            "href": f"https://codeforces.com/contest/{native_id}",
            "resource": "codeforces.com",
            "host": "codeforces.com",
        }
    if source is Source.CODEFORCES:
        return {
            "id": int(native_id),
            "name": title,
            "phase": "BEFORE",
            "startTimeSeconds": epoch,
            "durationSeconds": duration,
        }
    if source is Source.LEETCODE:
        slug = f"weekly-contest-{native_id}"
        return {"title": title, "titleSlug": slug, "startTime": epoch, "duration": duration}
    if source is Source.CODECHEF:
        return {
            "contest_code": f"START{native_id}",
            "contest_name": title,
            "contest_start_date_iso": _iso(start),
            "contest_end_date_iso": _iso(end),
        }
    if source is Source.ATCODER:
        hours, rem = divmod(duration, 3600)
        jst = start.astimezone(timezone(timedelta(hours=9)))
        return {
            "contest_id": f"abc{native_id}",
            "name": title,
            "start_time": jst.strftime("%Y-%m-%d %H:%M:%S%z"),
            "duration": f"{hours:02d}:{rem // 60:02d}",
        }
    if source is Source.HACKERRANK:
        return {
            "slug": f"contest-{native_id}",
            "name": title,
            "epoch_starttime": epoch,
            "epoch_endtime": int(end.timestamp()),
        }
    if source is Source.TOPCODER:
        return {
            "id": f"tc-{native_id}",
            "name": title,
            "startDate": _iso(start),
            "endDate": _iso(end),
        }
    return {
        "site": "CodeForces",
        "name": title,
        "start_time": _iso(start),
        "duration": str(float(duration)),
        "url": f"https://codeforces.com/contest/{native_id}",
    }


class MockSourceAdapter(BaseSourceAdapter):
    """
    Adapter that returns fixture records for any Source.

    Args:
        source: Which source to mimic
        records: Explicit raw records to return (defaults to generated samples)
        error: If set, every fetch raises SourceFetchError with this message
        latency: Simulated fetch latency in seconds
    """

    def __init__(
        self,
        source: Source = Source.CODEFORCES,
        records: list[dict[str, Any]] | None = None,
        error: str | None = None,
        latency: float = 0.0,
    ):
        super().__init__()
        self._source = source
        self._records = records
        self._error = error
        self._latency = latency
        self.call_count = 0

    @property
    def source(self) -> Source:
        return self._source

    async def fetch(self) -> list[dict[str, Any]]:
        self.call_count += 1
        if self._latency:
            await asyncio.sleep(self._latency)
        if self._error is not None:
            raise SourceFetchError(self.source, self._error)
        if self._records is not None:
            return list(self._records)
        return self._generate()

    async def _fetch_raw(self, client: HTTPClient) -> list[dict[str, Any]]:
        return self._generate()

    def _generate(self) -> list[dict[str, Any]]:
        # Anchor to the top of the hour so repeated fetches yield identical records.
        now = int(time.time())
        anchor = datetime.fromtimestamp(now - now % 3600, tz=timezone.utc)
        return [
            sample_record(self.source, native_id, title, anchor + timedelta(hours=hours), duration)
            for native_id, title, hours, duration in SAMPLE_CONTESTS
        ]


def create_mock_adapters(include_primary: bool = False) -> dict[Source, MockSourceAdapter]:
    """Create one mock adapter per source (the primary is optional)."""
    return {
        source: MockSourceAdapter(source=source)
        for source in Source
        if include_primary or source is not Source.CLIST
    }
