"""HackerRank adapter using the public upcoming-contests endpoint."""

import time
from typing import Any

from contesthub.ingestion.base_adapter import BaseSourceAdapter, SourceFetchError
from contesthub.ingestion.http_client import HTTPClient
from contesthub.ingestion.schemas import Source

HACKERRANK_CONTESTS_URL = "https://www.hackerrank.com/rest/contests/upcoming"

RECENT_WINDOW_SECONDS = 7 * 24 * 60 * 60


class HackerRankAdapter(BaseSourceAdapter):
    """
    Fetch contests that have not started yet, plus contests that started
    within the last 7 days and are still running.
    """

    @property
    def source(self) -> Source:
        return Source.HACKERRANK

    async def _fetch_raw(self, client: HTTPClient) -> list[dict[str, Any]]:
        payload = await client.get_json(HACKERRANK_CONTESTS_URL)
        models = payload.get("models") if isinstance(payload, dict) else None
        if not isinstance(models, list):
            raise SourceFetchError(self.source, "response has no 'models' list")

        now = time.time()
        recent_cutoff = now - RECENT_WINDOW_SECONDS
        return [
            c
            for c in models
            if c.get("epoch_starttime", 0) > now
            or (
                c.get("epoch_starttime", 0) > recent_cutoff
                and c.get("epoch_endtime", 0) > now
            )
        ]
