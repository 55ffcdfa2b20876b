"""Pytest fixtures for contesthub tests."""

from datetime import datetime, timedelta, timezone

import pytest

from contesthub.config.settings import Settings, get_settings
from contesthub.ingestion.mock_adapter import MockSourceAdapter
from contesthub.ingestion.schemas import Contest, Source


@pytest.fixture(autouse=True)
def reset_settings():
    """Every test starts from freshly loaded settings."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings configured for testing."""
    return Settings(
        environment="development",
        log_level="DEBUG",
        redis_url="redis://localhost:6379/1",  # Use DB 1 for tests
        history_dir=str(tmp_path / "history"),
        clist_username=None,
        clist_api_key=None,
    )


@pytest.fixture
def now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def make_contest(
    contest_id: str = "codeforces-1900",
    platform: str = "Codeforces",
    name: str = "Codeforces Round 900 (Div. 2)",
    start_time: datetime | None = None,
    duration: int = 7200,
    url: str | None = None,
) -> Contest:
    """Helper to create a Contest with sensible defaults."""
    start_time = start_time or datetime.now(timezone.utc) + timedelta(days=1)
    return Contest(
        id=contest_id,
        platform=platform,
        name=name,
        start_time=start_time,
        duration=duration,
        url=url or f"https://example.com/{contest_id}",
    )


@pytest.fixture
def sample_contests(now) -> list[Contest]:
    """Contests across platforms and all three statuses."""
    return [
        make_contest("codeforces-1", "Codeforces", "Div. 2 Round", now + timedelta(hours=5)),
        make_contest("codeforces-2", "Codeforces", "Educational Round", now - timedelta(hours=1)),
        make_contest(
            "leetcode-weekly-contest-400",
            "LeetCode",
            "Weekly Contest 400",
            now + timedelta(days=2),
            duration=5400,
        ),
        make_contest("codechef-START1", "CodeChef", "Starters 1", now - timedelta(days=3)),
        make_contest("atcoder-abc300", "AtCoder", "ABC 300", now + timedelta(hours=30), 6000),
    ]


@pytest.fixture
def failing_adapter() -> MockSourceAdapter:
    return MockSourceAdapter(source=Source.LEETCODE, error="upstream down")


@pytest.fixture
def contest_factory():
    """Factory fixture building Contests with defaults."""
    return make_contest
