"""Tests for the health endpoint."""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from contesthub.api.dependencies import get_aggregator
from contesthub.api.routes.health import overall_status
from contesthub.ingestion.mock_adapter import MockSourceAdapter
from contesthub.ingestion.schemas import Source
from contesthub.services.aggregation_service import ContestAggregator


def _client_with_adapters(app, adapters):
    aggregator = ContestAggregator(adapters, metrics=MagicMock())
    app.dependency_overrides[get_aggregator] = lambda: aggregator
    return TestClient(app)


class TestHealthEndpoint:
    """Test GET /health."""

    def test_all_sources_healthy(self, client):
        resp = client.get("/health")

        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["summary"] == {"total": 7, "healthy": 7, "unhealthy": 0}
        assert data["sources"]["codeforces"]["status"] == "healthy"
        assert data["sources"]["codeforces"]["records"] == 3
        assert data["environment"] == "development"
        assert "version" in data
        assert "latencyMs" in data

    def test_primary_excluded_when_unconfigured(self, client):
        assert "clist" not in client.get("/health").json()["sources"]

    def test_no_cache_header(self, client):
        resp = client.get("/health")
        assert "no-cache" in resp.headers["cache-control"]

    def test_reports_cache_state(self, client):
        client.get("/contests")

        data = client.get("/health").json()

        assert data["cache"]["backend"] == "memory"
        assert data["cache"]["cached"] is True
        assert data["lastCycle"]["stage"] == "fallback"

    def test_last_cycle_empty_before_first_fetch(self, client):
        assert client.get("/health").json()["lastCycle"] is None

    def test_degraded(self, app):
        adapters = [
            MockSourceAdapter(source=Source.CODEFORCES),
            MockSourceAdapter(source=Source.LEETCODE, error="HTTP 502"),
        ]

        with _client_with_adapters(app, adapters) as client:
            resp = client.get("/health")

        app.dependency_overrides.clear()
        assert resp.status_code == 503
        data = resp.json()
        assert data["status"] == "degraded"
        assert data["sources"]["leetcode"]["status"] == "unhealthy"
        assert data["sources"]["leetcode"]["error"] == "leetcode: HTTP 502"

    def test_unhealthy(self, app):
        adapters = [
            MockSourceAdapter(source=Source.CODEFORCES, error="down"),
            MockSourceAdapter(source=Source.ATCODER, error="down"),
        ]

        with _client_with_adapters(app, adapters) as client:
            resp = client.get("/health")

        app.dependency_overrides.clear()
        assert resp.status_code == 503
        assert resp.json()["status"] == "unhealthy"
        assert resp.json()["summary"]["healthy"] == 0


@pytest.mark.parametrize(
    "healthy,total,expected",
    [
        (3, 3, "healthy"),
        (1, 3, "degraded"),
        (0, 3, "unhealthy"),
        (0, 0, "unhealthy"),
    ],
)
def test_overall_status(healthy, total, expected):
    assert overall_status(healthy, total) == expected
