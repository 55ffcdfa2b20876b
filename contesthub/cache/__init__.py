"""Time-boxed cache stores."""

from contesthub.cache.store import (
    CacheEntry,
    CacheStore,
    InMemoryCacheStore,
    RedisCacheStore,
)

__all__ = [
    "CacheEntry",
    "CacheStore",
    "InMemoryCacheStore",
    "RedisCacheStore",
]
