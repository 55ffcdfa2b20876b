"""Shared fixtures for API tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from contesthub.api.app import create_app
from contesthub.api.dependencies import build_services, get_contest_service
from contesthub.services.contest_service import CachedContests


@pytest.fixture
def services(test_settings):
    """Full service container over offline mock adapters."""
    return build_services(test_settings, use_mock=True)


@pytest.fixture
def app(services):
    return create_app(services=services)


@pytest.fixture
def client(app):
    """FastAPI TestClient over the mock-backed services."""
    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def stub_contest_service(sample_contests):
    """ContestService stand-in serving the sample contests from cache."""
    service = MagicMock()
    service.get_contests = AsyncMock(return_value=sample_contests)
    service.get_contests_with_meta = AsyncMock(
        return_value=CachedContests(sample_contests, cached=True, stored_at=0.0)
    )
    service.clear_cache = AsyncMock()
    service.cache_info = AsyncMock(return_value={"backend": "memory", "cached": True})
    return service


@pytest.fixture
def stub_client(app, stub_contest_service):
    """TestClient whose contest data is the deterministic sample set."""
    app.dependency_overrides[get_contest_service] = lambda: stub_contest_service

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
