"""Client-side cache feature.

TTL cache over a persistent key-value store, with in-memory and Redis
store adapters.
"""

from .entities import CacheEntry, CacheKey, KeyValueStore
from .adapters import JSONCacheSerializer, MemoryKeyValueStore, RedisKeyValueStore
from .services import CacheStore, CacheSnapshot

__all__ = [
    "CacheEntry",
    "CacheKey",
    "KeyValueStore",
    "JSONCacheSerializer",
    "MemoryKeyValueStore",
    "RedisKeyValueStore",
    "CacheStore",
    "CacheSnapshot",
]
