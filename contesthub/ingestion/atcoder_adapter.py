"""
AtCoder adapter.

AtCoder has no public contest API, so the contest listing page is scraped
with BeautifulSoup. Only the "upcoming" and "running" tables are read.

Each row is emitted as::

    {"contest_id": "abc336", "name": "AtCoder Beginner Contest 336",
     "start_time": "2024-01-13 21:00:00+0900", "duration": "01:40"}
"""

import asyncio
import logging
import re
from typing import Any

from bs4 import BeautifulSoup

from contesthub.ingestion.base_adapter import BaseSourceAdapter, SourceFetchError
from contesthub.ingestion.http_client import HTTPClient
from contesthub.ingestion.schemas import Source

logger = logging.getLogger(__name__)

ATCODER_CONTESTS_URL = "https://atcoder.jp/contests/"

CONTEST_TABLE_IDS = ("contest-table-action", "contest-table-upcoming")

_CONTEST_HREF = re.compile(r"^/contests/([A-Za-z0-9_\-]+)/?$")


def parse_contest_tables(html: str) -> list[dict[str, Any]]:
    """
    Extract contest rows from the AtCoder contest listing HTML.

    Raises:
        ValueError: If none of the expected contest tables are present
    """
    soup = BeautifulSoup(html, "html.parser")
    tables = [soup.find(id=table_id) for table_id in CONTEST_TABLE_IDS]
    tables = [t for t in tables if t is not None]
    if not tables:
        raise ValueError("no contest tables found in page")

    contests: list[dict[str, Any]] = []
    for table in tables:
        body = table.find("tbody")
        if body is None:
            continue
        for row in body.find_all("tr"):
            contest = _parse_row(row)
            if contest is not None:
                contests.append(contest)
    return contests


def _parse_row(row) -> dict[str, Any] | None:
    cells = row.find_all("td")
    if len(cells) < 3:
        return None

    time_tag = cells[0].find("time")
    link = None
    for anchor in cells[1].find_all("a", href=True):
        if _CONTEST_HREF.match(anchor["href"]):
            link = anchor
            break
    if time_tag is None or link is None:
        logger.debug("Skipping AtCoder row without time or contest link")
        return None

    return {
        "contest_id": _CONTEST_HREF.match(link["href"]).group(1),
        "name": link.get_text(strip=True),
        "start_time": time_tag.get_text(strip=True),
        "duration": cells[2].get_text(strip=True),
    }


class AtCoderAdapter(BaseSourceAdapter):
    """Scrape running and upcoming AtCoder contests."""

    @property
    def source(self) -> Source:
        return Source.ATCODER

    async def _fetch_raw(self, client: HTTPClient) -> list[dict[str, Any]]:
        response = await client.get(
            ATCODER_CONTESTS_URL,
            params={"lang": "en"},
            headers={"Accept": "text/html"},
        )
        try:
            return await asyncio.to_thread(parse_contest_tables, response.text)
        except ValueError as e:
            raise SourceFetchError(self.source, str(e)) from e
