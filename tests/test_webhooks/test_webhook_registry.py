"""Tests for webhook registration and validation."""

from datetime import timedelta

import pytest

from contesthub.webhooks.registry import WebhookRegistry, WebhookValidationError, validate_url
from contesthub.webhooks.schemas import EVENT_CONTEST_NEW, Webhook


class TestValidateUrl:
    @pytest.mark.parametrize("url", ["https://example.com/hook", "http://localhost:9000/x"])
    def test_valid(self, url):
        assert validate_url(url) == url

    @pytest.mark.parametrize("url", [None, "", "ftp://example.com", "example.com/hook", "https://"])
    def test_invalid(self, url):
        with pytest.raises(WebhookValidationError):
            validate_url(url)


class TestWebhookRegistry:
    """Tests for WebhookRegistry."""

    def test_register_defaults(self):
        registry = WebhookRegistry()

        webhook = registry.register(url="https://example.com/hook")

        assert webhook.id.startswith("wh_")
        assert webhook.events == [EVENT_CONTEST_NEW]
        assert webhook.platforms == []
        assert webhook.active is True
        assert registry.get(webhook.id) is webhook
        assert len(registry) == 1

    def test_register_normalizes_filters(self):
        webhook = WebhookRegistry().register(
            url="https://example.com/hook",
            platforms=["Codeforces", "codeforces", " LeetCode "],
            status=["UPCOMING"],
        )

        assert webhook.platforms == ["codeforces", "leetcode"]
        assert webhook.statuses == ["upcoming"]

    def test_invalid_platform(self):
        with pytest.raises(WebhookValidationError) as exc_info:
            WebhookRegistry().register(url="https://example.com", platforms=["myspace"])

        assert exc_info.value.message == "Invalid platform"
        assert "codeforces" in exc_info.value.details["allowed"]

    def test_invalid_event(self):
        with pytest.raises(WebhookValidationError):
            WebhookRegistry().register(url="https://example.com", events=["contest.deleted"])

    def test_platforms_must_be_list(self):
        with pytest.raises(WebhookValidationError, match="must be a list"):
            WebhookRegistry().register(url="https://example.com", platforms="codeforces")

    def test_ids_unique(self):
        registry = WebhookRegistry()
        ids = {registry.register(url="https://example.com").id for _ in range(20)}
        assert len(ids) == 20

    def test_update(self):
        registry = WebhookRegistry()
        webhook = registry.register(url="https://example.com/hook")

        updated = registry.update(
            webhook.id, {"platforms": ["AtCoder"], "secret": "s3cret", "active": False}
        )

        assert updated.platforms == ["atcoder"]
        assert updated.secret == "s3cret"
        assert updated.active is False
        assert registry.active() == []

    def test_reactivation_resets_failures(self):
        registry = WebhookRegistry()
        webhook = registry.register(url="https://example.com/hook")
        webhook.active = False
        webhook.failure_count = 5

        registry.update(webhook.id, {"active": True})

        assert webhook.active is True
        assert webhook.failure_count == 0

    def test_update_unknown_field(self):
        registry = WebhookRegistry()
        webhook = registry.register(url="https://example.com/hook")

        with pytest.raises(WebhookValidationError) as exc_info:
            registry.update(webhook.id, {"color": "blue"})
        assert exc_info.value.details["fields"] == ["color"]

    def test_update_active_must_be_bool(self):
        registry = WebhookRegistry()
        webhook = registry.register(url="https://example.com/hook")

        with pytest.raises(WebhookValidationError):
            registry.update(webhook.id, {"active": "yes"})

    def test_update_missing(self):
        assert WebhookRegistry().update("wh_missing", {"active": True}) is None

    def test_delete(self):
        registry = WebhookRegistry()
        webhook = registry.register(url="https://example.com/hook")

        assert registry.delete(webhook.id) is True
        assert registry.delete(webhook.id) is False
        assert registry.list_webhooks() == []

    def test_list_and_active(self):
        registry = WebhookRegistry()
        first = registry.register(url="https://example.com/a")
        second = registry.register(url="https://example.com/b")
        registry.update(second.id, {"active": False})

        assert registry.list_webhooks() == [first, second]
        assert registry.active() == [first]
        assert len(registry) == 2


class TestWebhookSchema:
    def test_matches_filters(self, contest_factory, now):
        contest = contest_factory(platform="Codeforces", start_time=now + timedelta(hours=1))

        assert Webhook(url="u").matches(contest) is True
        assert Webhook(url="u", platforms=["codeforces"]).matches(contest) is True
        assert Webhook(url="u", platforms=["leetcode"]).matches(contest) is False
        assert Webhook(url="u", statuses=["upcoming"]).matches(contest) is True
        assert Webhook(url="u", statuses=["ended"]).matches(contest) is False

    def test_to_dict_hides_secret(self):
        data = Webhook(url="https://example.com", secret="s").to_dict()

        assert data["hasSecret"] is True
        assert "secret" not in data
        assert data["lastTriggered"] is None
        assert data["status"] == []
