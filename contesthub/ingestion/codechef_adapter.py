"""CodeChef adapter using the public contest list API."""

from typing import Any

from contesthub.ingestion.base_adapter import BaseSourceAdapter, SourceFetchError
from contesthub.ingestion.http_client import HTTPClient
from contesthub.ingestion.schemas import Source

CODECHEF_CONTESTS_URL = "https://www.codechef.com/api/list/contests/all"


class CodeChefAdapter(BaseSourceAdapter):
    """
    Fetch upcoming and running contests.

    The API groups contests into ``future``, ``present`` and ``past``
    buckets; past contests are dropped.
    """

    @property
    def source(self) -> Source:
        return Source.CODECHEF

    async def _fetch_raw(self, client: HTTPClient) -> list[dict[str, Any]]:
        payload = await client.get_json(CODECHEF_CONTESTS_URL)
        if not isinstance(payload, dict):
            raise SourceFetchError(self.source, "response is not an object")

        contests: list[dict[str, Any]] = []
        for bucket in ("future", "present"):
            items = payload.get(bucket)
            if isinstance(items, list):
                contests.extend(items)
        return contests
