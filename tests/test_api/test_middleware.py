"""Tests for request/correlation ID middleware and app-level handlers."""

import re
from unittest.mock import MagicMock, AsyncMock

from fastapi.testclient import TestClient

from contesthub.api.dependencies import get_contest_service

# UUID v4 regex pattern
UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")


class TestCorrelationIdMiddleware:
    """Test X-Request-ID middleware behavior."""

    def test_generates_uuid_when_no_header(self, client):
        """Request without header gets a UUID v4 in response."""
        resp = client.get("/")

        request_id = resp.headers.get("X-Request-ID")
        assert request_id is not None
        assert UUID_RE.match(request_id), f"Expected UUID v4, got: {request_id}"

    def test_echoes_custom_request_id(self, client):
        resp = client.get("/", headers={"X-Request-ID": "custom-id-123"})
        assert resp.headers.get("X-Request-ID") == "custom-id-123"

    def test_echoes_correlation_id(self, client):
        """X-Correlation-ID is used when X-Request-ID is absent."""
        resp = client.get("/", headers={"X-Correlation-ID": "corr-456"})
        assert resp.headers.get("X-Request-ID") == "corr-456"

    def test_request_id_takes_precedence(self, client):
        resp = client.get(
            "/",
            headers={"X-Request-ID": "req-1", "X-Correlation-ID": "corr-2"},
        )
        assert resp.headers.get("X-Request-ID") == "req-1"

    def test_unique_ids_per_request(self, client):
        first = client.get("/").headers["X-Request-ID"]
        second = client.get("/").headers["X-Request-ID"]
        assert first != second


def test_root_endpoint(client):
    data = client.get("/").json()

    assert data["service"] == "ContestHub API"
    assert data["docs"] == "/docs"


def test_unhandled_exception_returns_500(app):
    service = MagicMock()
    service.get_contests_with_meta = AsyncMock(side_effect=RuntimeError("boom"))
    app.dependency_overrides[get_contest_service] = lambda: service

    with TestClient(app, raise_server_exceptions=False) as client:
        resp = client.get("/contests")

    app.dependency_overrides.clear()
    assert resp.status_code == 500
    assert resp.json() == {"detail": "Internal server error", "error_type": "internal"}
