"""Kontests adapter (https://kontests.net), a multi-judge contest feed."""

from typing import Any

from contesthub.ingestion.base_adapter import BaseSourceAdapter, SourceFetchError
from contesthub.ingestion.http_client import HTTPClient
from contesthub.ingestion.schemas import Source

KONTESTS_ALL_URL = "https://kontests.net/api/v1/all"


class KontestsAdapter(BaseSourceAdapter):
    @property
    def source(self) -> Source:
        return Source.KONTESTS

    async def _fetch_raw(self, client: HTTPClient) -> list[dict[str, Any]]:
        payload = await client.get_json(KONTESTS_ALL_URL)
        if not isinstance(payload, list):
            raise SourceFetchError(self.source, "response is not a list")
        return payload
