"""Codeforces adapter (https://codeforces.com/apiHelp)."""

import asyncio
import logging
from typing import Any

from contesthub.ingestion.base_adapter import BaseSourceAdapter, SourceFetchError
from contesthub.ingestion.http_client import HTTPClient
from contesthub.ingestion.schemas import Source

logger = logging.getLogger(__name__)

CODEFORCES_CONTESTS_URL = "https://codeforces.com/api/contest.list"

# BEFORE = not started, CODING = running
ACTIVE_PHASES = frozenset({"BEFORE", "CODING"})


class CodeforcesAdapter(BaseSourceAdapter):
    """
    Fetch regular and gym contests concurrently.

    One half failing is logged and the other half is still returned; only
    both failing fails the adapter.
    """

    @property
    def source(self) -> Source:
        return Source.CODEFORCES

    async def _fetch_raw(self, client: HTTPClient) -> list[dict[str, Any]]:
        regular, gym = await asyncio.gather(
            self._fetch_list(client, gym=False),
            self._fetch_list(client, gym=True),
            return_exceptions=True,
        )

        contests: list[dict[str, Any]] = []
        failures: list[BaseException] = []
        for label, outcome in (("regular", regular), ("gym", gym)):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.warning(f"Codeforces {label} contest list failed: {outcome}")
                failures.append(outcome)
            else:
                contests.extend(outcome)

        if len(failures) == 2:
            raise failures[0]
        return contests

    async def _fetch_list(self, client: HTTPClient, gym: bool) -> list[dict[str, Any]]:
        params = {"gym": "true"} if gym else None
        payload = await client.get_json(CODEFORCES_CONTESTS_URL, params=params)

        if payload.get("status") != "OK":
            raise SourceFetchError(
                self.source, f"API error: {payload.get('comment', 'unknown error')}"
            )
        result = payload.get("result")
        if not isinstance(result, list):
            raise SourceFetchError(self.source, "response has no 'result' list")

        return [c for c in result if c.get("phase") in ACTIVE_PHASES]
