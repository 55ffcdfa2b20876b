"""
CLIST adapter: the consolidated primary source.

CLIST (https://clist.by) indexes contests from hundreds of judges behind one
authenticated API, so a successful non-empty fetch makes the per-platform
fallback adapters unnecessary for that cycle.

Rate limit: 10 requests per minute per account.
Authentication: ``Authorization: ApiKey <username>:<api_key>``.
"""

import logging
from typing import Any

from contesthub.config.settings import get_settings
from contesthub.ingestion.base_adapter import (
    BaseSourceAdapter,
    SourceConfigurationError,
    SourceFetchError,
)
from contesthub.ingestion.http_client import HTTPClient, RetryConfig
from contesthub.ingestion.schemas import Source

logger = logging.getLogger(__name__)

CLIST_CONTESTS_URL = "https://clist.by/api/v4/contest/"


class ClistAdapter(BaseSourceAdapter):
    """
    Fetch upcoming contests from CLIST v4.

    Missing credentials raise SourceConfigurationError at fetch time, which
    the aggregator treats like any other primary failure and falls back.
    """

    default_timeout = 15.0

    def __init__(
        self,
        username: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        retry_config: RetryConfig | None = None,
        rate_limit: int | None = None,
        limit: int = 100,
    ):
        settings = get_settings()
        super().__init__(
            timeout=timeout if timeout is not None else settings.clist_timeout_seconds,
            retry_config=retry_config,
            rate_limit=rate_limit if rate_limit is not None else settings.clist_rate_limit,
        )
        self._username = username if username is not None else settings.clist_username
        self._api_key = api_key if api_key is not None else settings.clist_api_key
        self._limit = limit

    @property
    def source(self) -> Source:
        return Source.CLIST

    @property
    def configured(self) -> bool:
        return bool(self._username and self._api_key)

    def _client_headers(self) -> dict[str, str] | None:
        if not self.configured:
            return None
        return {"Authorization": f"ApiKey {self._username}:{self._api_key}"}

    async def fetch(self) -> list[dict[str, Any]]:
        if not self.configured:
            raise SourceConfigurationError(
                self.source, "CLIST_USERNAME and CLIST_API_KEY must be set"
            )
        return await super().fetch()

    async def _fetch_raw(self, client: HTTPClient) -> list[dict[str, Any]]:
        await self._throttle()
        payload = await client.get_json(
            CLIST_CONTESTS_URL,
            params={
                "upcoming": "true",
                "format_time": "false",
                "limit": str(self._limit),
                "order_by": "start",
            },
        )

        objects = payload.get("objects") if isinstance(payload, dict) else None
        if not isinstance(objects, list):
            raise SourceFetchError(self.source, "response has no 'objects' list")

        logger.debug(f"CLIST returned {len(objects)} contests")
        return objects
