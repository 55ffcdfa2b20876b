"""LeetCode adapter using the public GraphQL endpoint."""

import json
import time
from typing import Any

from contesthub.ingestion.base_adapter import BaseSourceAdapter, SourceFetchError
from contesthub.ingestion.http_client import HTTPClient
from contesthub.ingestion.schemas import Source

LEETCODE_GRAPHQL_URL = "https://leetcode.com/graphql"

CONTESTS_QUERY = """
query getContests {
  allContests {
    title
    titleSlug
    startTime
    duration
    originStartTime
  }
}
"""


class LeetCodeAdapter(BaseSourceAdapter):
    """Fetch contests whose start is still in the future."""

    @property
    def source(self) -> Source:
        return Source.LEETCODE

    async def _fetch_raw(self, client: HTTPClient) -> list[dict[str, Any]]:
        payload = await client.post_json(
            LEETCODE_GRAPHQL_URL,
            json_body={"query": CONTESTS_QUERY},
            headers={"Content-Type": "application/json"},
        )

        if payload.get("errors"):
            raise SourceFetchError(
                self.source, f"GraphQL errors: {json.dumps(payload['errors'])[:300]}"
            )
        contests = (payload.get("data") or {}).get("allContests")
        if not isinstance(contests, list):
            raise SourceFetchError(self.source, "response has no 'allContests' list")

        now = int(time.time())
        return [c for c in contests if c.get("startTime", 0) > now]
