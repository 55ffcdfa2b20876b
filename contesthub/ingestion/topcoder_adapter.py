"""TopCoder adapter using the v5 challenges API."""

import logging
from datetime import datetime, timezone
from typing import Any

from contesthub.ingestion.base_adapter import BaseSourceAdapter, SourceFetchError
from contesthub.ingestion.http_client import HTTPClient
from contesthub.ingestion.normalizer import parse_timestamp
from contesthub.ingestion.schemas import Source

logger = logging.getLogger(__name__)

TOPCODER_CHALLENGES_URL = "https://api.topcoder.com/v5/challenges"


class TopCoderAdapter(BaseSourceAdapter):
    """Fetch active and upcoming Code-track challenges that have not ended."""

    @property
    def source(self) -> Source:
        return Source.TOPCODER

    async def _fetch_raw(self, client: HTTPClient) -> list[dict[str, Any]]:
        payload = await client.get_json(
            TOPCODER_CHALLENGES_URL,
            params={
                "status": "Active,Upcoming",
                "tracks": "Code",
                "perPage": "100",
                "sortBy": "startDate",
                "sortOrder": "asc",
            },
        )
        if not isinstance(payload, list):
            raise SourceFetchError(self.source, "response is not a list")

        now = datetime.now(timezone.utc)
        return [c for c in payload if self._ends_after(c, now)]

    @staticmethod
    def _ends_after(challenge: dict[str, Any], now: datetime) -> bool:
        try:
            end = parse_timestamp(challenge.get("endDate") or challenge["submissionEndDate"])
        except (KeyError, ValueError):
            logger.debug(f"Skipping TopCoder challenge without end date: {challenge.get('id')}")
            return False
        return end > now
