"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from contesthub.config.settings import Settings, get_settings


class TestSettingsDefaults:
    def test_defaults(self):
        settings = Settings()

        assert settings.cache_backend == "memory"
        assert settings.contests_cache_ttl_seconds == 300
        assert settings.contests_cache_key == "all-contests-data"
        assert settings.history_dir == ".contest-cache"
        assert settings.history_index_limit == 100
        assert settings.monitor_enabled is False
        assert settings.rate_limit_enabled is False

    def test_clist_not_configured_by_default(self):
        assert Settings(clist_username=None, clist_api_key=None).clist_configured is False

    def test_clist_needs_both_credentials(self):
        assert Settings(clist_username="alice", clist_api_key=None).clist_configured is False
        assert Settings(clist_username="alice", clist_api_key="k").clist_configured is True


class TestSettingsFromEnvironment:
    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("CACHE_BACKEND", "redis")
        monkeypatch.setenv("CONTESTS_CACHE_TTL_SECONDS", "60")
        monkeypatch.setenv("MONITOR_ENABLED", "true")

        settings = Settings()

        assert settings.cache_backend == "redis"
        assert settings.contests_cache_ttl_seconds == 60
        assert settings.monitor_enabled is True

    def test_get_settings_is_cached(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("CONTESTS_CACHE_TTL_SECONDS", "42")

        assert get_settings() is first

        get_settings.cache_clear()
        assert get_settings().contests_cache_ttl_seconds == 42


class TestEnabledSources:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("all", ["all"]),
            ("Codeforces, LeetCode", ["codeforces", "leetcode"]),
            (" , ", ["all"]),
        ],
    )
    def test_parsing(self, raw, expected):
        assert Settings(enabled_sources=raw).enabled_source_names == expected


class TestSettingsValidation:
    @pytest.mark.parametrize(
        "field,value",
        [
            ("monitor_interval_seconds", 5),
            ("contests_cache_ttl_seconds", 0),
            ("source_timeout_seconds", 0),
            ("cache_backend", "memcached"),
            ("environment", "qa"),
        ],
    )
    def test_rejects_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            Settings(**{field: value})
