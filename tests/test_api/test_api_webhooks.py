"""Tests for webhook registration endpoints."""

HOOK_URL = "https://hooks.example.com/contests"


def _create(client, **body):
    body.setdefault("url", HOOK_URL)
    return client.post("/webhooks", json=body)


class TestWebhookEndpoints:
    """Tests for /webhooks."""

    def test_create(self, client):
        resp = _create(client, platforms=["Codeforces"], status=["upcoming"], secret="s3cret")

        assert resp.status_code == 201
        data = resp.json()
        assert data["id"].startswith("wh_")
        assert data["url"] == HOOK_URL
        assert data["events"] == ["contest.new"]
        assert data["platforms"] == ["codeforces"]
        assert data["status"] == ["upcoming"]
        assert data["hasSecret"] is True
        assert "secret" not in data
        assert data["triggerCount"] == 0

    def test_create_registers_in_service(self, client, services):
        webhook_id = _create(client).json()["id"]

        assert services.webhook_registry.get(webhook_id) is not None

    def test_create_invalid_url(self, client):
        resp = _create(client, url="not-a-url")

        assert resp.status_code == 400
        assert resp.json()["detail"]["error"] == "Invalid URL format"

    def test_create_invalid_platform(self, client):
        resp = _create(client, platforms=["myspace"])

        assert resp.status_code == 400
        detail = resp.json()["detail"]
        assert detail["error"] == "Invalid platform"
        assert "leetcode" in detail["details"]["allowed"]

    def test_create_missing_url(self, client):
        assert client.post("/webhooks", json={}).status_code == 422

    def test_list(self, client):
        _create(client)
        _create(client, url="https://other.example.com/hook")

        data = client.get("/webhooks").json()

        assert data["total"] == 2
        assert {w["url"] for w in data["webhooks"]} == {HOOK_URL, "https://other.example.com/hook"}

    def test_list_empty(self, client):
        assert client.get("/webhooks").json() == {"webhooks": [], "total": 0}

    def test_patch(self, client):
        webhook_id = _create(client).json()["id"]

        resp = client.patch(f"/webhooks/{webhook_id}", json={"active": False, "platforms": ["AtCoder"]})

        assert resp.status_code == 200
        assert resp.json()["active"] is False
        assert resp.json()["platforms"] == ["atcoder"]

    def test_patch_unknown_field(self, client):
        webhook_id = _create(client).json()["id"]

        resp = client.patch(f"/webhooks/{webhook_id}", json={"color": "blue"})

        assert resp.status_code == 400
        assert resp.json()["detail"]["details"]["fields"] == ["color"]

    def test_patch_missing(self, client):
        resp = client.patch("/webhooks/wh_missing", json={"active": True})

        assert resp.status_code == 404
        assert resp.json()["detail"] == "Webhook not found"

    def test_delete(self, client):
        webhook_id = _create(client).json()["id"]

        resp = client.delete(f"/webhooks/{webhook_id}")

        assert resp.status_code == 200
        assert resp.json()["id"] == webhook_id
        assert client.get("/webhooks").json()["total"] == 0

    def test_delete_missing(self, client):
        assert client.delete("/webhooks/wh_missing").status_code == 404
