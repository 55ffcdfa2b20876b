"""Tests for API rate limiting configuration."""

from fastapi.testclient import TestClient
from starlette.requests import Request

from contesthub.api.app import create_app
from contesthub.api.dependencies import build_services
from contesthub.api.rate_limit import _get_rate_limit_key, create_limiter, default_limit, limiter
from contesthub.config.settings import get_settings


def _request(headers=None, client=("192.168.1.100", 12345)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/contests",
        "headers": headers or [],
        "client": client,
    }
    return Request(scope)


class TestRateLimitKeyExtraction:
    """Tests for rate limit key function."""

    def test_falls_back_to_ip(self):
        assert _get_rate_limit_key(_request()) == "192.168.1.100"

    def test_uses_first_forwarded_hop(self):
        request = _request(headers=[(b"x-forwarded-for", b"203.0.113.7, 10.0.0.1")])
        assert _get_rate_limit_key(request) == "203.0.113.7"

    def test_blank_forwarded_header_ignored(self):
        request = _request(headers=[(b"x-forwarded-for", b" ")])
        assert _get_rate_limit_key(request) == "192.168.1.100"


class TestLimiterConfiguration:
    def test_disabled_by_default(self):
        assert create_limiter().enabled is False

    def test_enabled_from_env(self, monkeypatch):
        monkeypatch.setenv("RATE_LIMIT_ENABLED", "true")
        get_settings.cache_clear()

        assert create_limiter().enabled is True

    def test_default_limit_follows_settings(self, monkeypatch):
        monkeypatch.setenv("RATE_LIMIT_DEFAULT", "7/second")
        get_settings.cache_clear()

        assert default_limit() == "7/second"

    def test_app_without_limiter_when_disabled(self, services):
        app = create_app(services=services)
        assert not hasattr(app.state, "limiter")


class TestRateLimitEnforcement:
    def test_exceeding_limit_returns_429(self, monkeypatch, test_settings):
        monkeypatch.setenv("RATE_LIMIT_ENABLED", "true")
        monkeypatch.setenv("RATE_LIMIT_DEFAULT", "2/minute")
        get_settings.cache_clear()
        monkeypatch.setattr(limiter, "enabled", True)
        limiter.reset()

        app = create_app(services=build_services(test_settings, use_mock=True))
        try:
            with TestClient(app) as client:
                statuses = [client.get("/contests").status_code for _ in range(3)]
        finally:
            limiter.reset()

        assert statuses == [200, 200, 429]

    def test_unlimited_routes_unaffected(self, monkeypatch, test_settings):
        monkeypatch.setenv("RATE_LIMIT_ENABLED", "true")
        monkeypatch.setenv("RATE_LIMIT_DEFAULT", "1/minute")
        get_settings.cache_clear()
        monkeypatch.setattr(limiter, "enabled", True)
        limiter.reset()

        app = create_app(services=build_services(test_settings, use_mock=True))
        try:
            with TestClient(app) as client:
                statuses = [client.get("/").status_code for _ in range(3)]
        finally:
            limiter.reset()

        assert statuses == [200, 200, 200]
