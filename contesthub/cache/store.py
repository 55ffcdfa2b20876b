"""
Pluggable key/value stores for time-boxed cached values.

Entries carry their own absolute expiry. Stores never decide freshness:
callers compare ``expires_at`` against their clock, so an in-memory store
and a Redis store behave identically under a fake clock in tests.

Backends:
- InMemoryCacheStore: process-local dict (default, tests)
- RedisCacheStore: redis.asyncio with a JSON codec and SETEX expiry
"""

import asyncio
import json
import logging
import math
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import redis.asyncio as redis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A cached value and the unix time after which it is stale."""

    data: Any
    expires_at: float
    stored_at: float = 0.0

    def is_expired(self, now: float | None = None) -> bool:
        now = time.time() if now is None else now
        return now > self.expires_at


class CacheStore(ABC):
    """Abstract async key/value store for CacheEntry values."""

    name: str = "abstract"

    @abstractmethod
    async def get(self, key: str) -> CacheEntry | None:
        """Return the entry for key (possibly expired) or None."""
        ...

    @abstractmethod
    async def set(self, key: str, entry: CacheEntry) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete key; return True if it existed."""
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...

    async def close(self) -> None:
        """Release backend resources."""
        return None


class InMemoryCacheStore(CacheStore):
    """
    Dict-backed store.

    Values are held by reference, so a hit returns the very object that
    was stored.
    """

    name = "memory"

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    async def set(self, key: str, entry: CacheEntry) -> None:
        async with self._lock:
            self._entries[key] = entry

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._entries.pop(key, None) is not None

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class RedisCacheStore(CacheStore):
    """
    Redis-backed store.

    Each entry is one JSON string ``{"data": ..., "expiresAt": ..., "storedAt": ...}``
    written with SETEX so Redis also evicts it physically. ``encode`` and
    ``decode`` convert ``data`` to and from JSON-ready values.

    Redis errors on read are logged and reported as a miss; errors on
    write are logged and dropped, so a Redis outage degrades to
    recomputing on every request instead of failing requests.
    """

    name = "redis"

    def __init__(
        self,
        redis_url: str,
        key_prefix: str = "contesthub:",
        encode: Callable[[Any], Any] | None = None,
        decode: Callable[[Any], Any] | None = None,
        client: redis.Redis | None = None,
    ):
        self._redis_url = redis_url
        self._prefix = key_prefix
        self._encode = encode or (lambda data: data)
        self._decode = decode or (lambda data: data)
        self._redis: redis.Redis | None = client

    def _client(self) -> redis.Redis:
        if self._redis is None:
            self._redis = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
        return self._redis

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> CacheEntry | None:
        try:
            raw = await self._client().get(self._key(key))
        except redis.RedisError as e:
            logger.warning(f"Redis cache read failed for {key}: {e}")
            return None
        if raw is None:
            return None

        try:
            payload = json.loads(raw)
            return CacheEntry(
                data=self._decode(payload["data"]),
                expires_at=float(payload["expiresAt"]),
                stored_at=float(payload.get("storedAt", 0.0)),
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding undecodable cache entry {key}: {e}")
            return None

    async def set(self, key: str, entry: CacheEntry) -> None:
        ttl = max(1, math.ceil(entry.expires_at - time.time()))
        payload = json.dumps(
            {
                "data": self._encode(entry.data),
                "expiresAt": entry.expires_at,
                "storedAt": entry.stored_at,
            }
        )
        try:
            await self._client().setex(self._key(key), ttl, payload)
        except redis.RedisError as e:
            logger.warning(f"Redis cache write failed for {key}: {e}")

    async def delete(self, key: str) -> bool:
        return bool(await self._client().delete(self._key(key)))

    async def clear(self) -> None:
        client = self._client()
        keys = [k async for k in client.scan_iter(match=f"{self._prefix}*")]
        if keys:
            await client.delete(*keys)

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
            logger.info("Redis cache connection closed")
