"""Tests for the cache store backends."""

import json
import time
from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as redis

from contesthub.cache.store import CacheEntry, InMemoryCacheStore, RedisCacheStore
from contesthub.services.contest_service import decode_contests, encode_contests


class TestCacheEntry:
    def test_not_expired_until_after_expiry(self):
        entry = CacheEntry(data=[], expires_at=100.0)

        assert entry.is_expired(99.0) is False
        assert entry.is_expired(100.0) is False
        assert entry.is_expired(100.1) is True

    def test_defaults_to_wall_clock(self):
        assert CacheEntry(data=[], expires_at=time.time() + 60).is_expired() is False


class TestInMemoryCacheStore:
    """Tests for InMemoryCacheStore."""

    @pytest.mark.asyncio
    async def test_set_get_returns_same_object(self):
        store = InMemoryCacheStore()
        data = [1, 2, 3]
        await store.set("k", CacheEntry(data=data, expires_at=10.0))

        entry = await store.get("k")

        assert entry.data is data
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_missing_key(self):
        assert await InMemoryCacheStore().get("missing") is None

    @pytest.mark.asyncio
    async def test_expired_entry_still_returned(self):
        """Freshness is decided by the caller."""
        store = InMemoryCacheStore()
        await store.set("k", CacheEntry(data="x", expires_at=0.0))

        assert (await store.get("k")).is_expired(1.0) is True

    @pytest.mark.asyncio
    async def test_delete_and_clear(self):
        store = InMemoryCacheStore()
        await store.set("a", CacheEntry(data=1, expires_at=1.0))
        await store.set("b", CacheEntry(data=2, expires_at=1.0))

        assert await store.delete("a") is True
        assert await store.delete("a") is False
        await store.clear()
        assert len(store) == 0


def _redis_store(client) -> RedisCacheStore:
    return RedisCacheStore(
        "redis://localhost:6379/1",
        encode=encode_contests,
        decode=decode_contests,
        client=client,
    )


class TestRedisCacheStore:
    """Tests for RedisCacheStore against a mocked client."""

    @pytest.mark.asyncio
    async def test_set_uses_setex_with_prefix(self, sample_contests):
        client = MagicMock()
        client.setex = AsyncMock()
        store = _redis_store(client)
        now = time.time()

        await store.set("all", CacheEntry(data=sample_contests, expires_at=now + 300, stored_at=now))

        key, ttl, payload = client.setex.call_args.args
        assert key == "contesthub:all"
        assert 299 <= ttl <= 300
        decoded = json.loads(payload)
        assert decoded["data"][0]["id"] == sample_contests[0].id
        assert decoded["data"][0]["startTime"]

    @pytest.mark.asyncio
    async def test_get_decodes_contests(self, sample_contests):
        payload = json.dumps(
            {"data": encode_contests(sample_contests), "expiresAt": 500.0, "storedAt": 200.0}
        )
        client = MagicMock()
        client.get = AsyncMock(return_value=payload)
        store = _redis_store(client)

        entry = await store.get("all")

        client.get.assert_awaited_once_with("contesthub:all")
        assert entry.expires_at == 500.0
        assert entry.stored_at == 200.0
        assert [c.id for c in entry.data] == [c.id for c in sample_contests]

    @pytest.mark.asyncio
    async def test_get_miss(self):
        client = MagicMock()
        client.get = AsyncMock(return_value=None)

        assert await _redis_store(client).get("all") is None

    @pytest.mark.asyncio
    async def test_read_error_degrades_to_miss(self):
        client = MagicMock()
        client.get = AsyncMock(side_effect=redis.ConnectionError("refused"))

        assert await _redis_store(client).get("all") is None

    @pytest.mark.asyncio
    async def test_write_error_is_swallowed(self, sample_contests):
        client = MagicMock()
        client.setex = AsyncMock(side_effect=redis.ConnectionError("refused"))
        store = _redis_store(client)

        await store.set("all", CacheEntry(data=sample_contests, expires_at=time.time() + 60))

    @pytest.mark.asyncio
    async def test_undecodable_entry_is_miss(self):
        client = MagicMock()
        client.get = AsyncMock(return_value="not json")

        assert await _redis_store(client).get("all") is None

    @pytest.mark.asyncio
    async def test_delete(self):
        client = MagicMock()
        client.delete = AsyncMock(return_value=1)

        assert await _redis_store(client).delete("all") is True
        client.delete.assert_awaited_once_with("contesthub:all")

    @pytest.mark.asyncio
    async def test_close(self):
        client = MagicMock()
        client.aclose = AsyncMock()
        store = _redis_store(client)

        await store.close()
        await store.close()

        client.aclose.assert_awaited_once()
