"""Persistent store adapters and the cache serializer."""

from .json_serializer import CacheJSONEncoder, JSONCacheSerializer
from .memory_store import MemoryKeyValueStore
from .redis_store import RedisKeyValueStore

__all__ = [
    "CacheJSONEncoder",
    "JSONCacheSerializer",
    "MemoryKeyValueStore",
    "RedisKeyValueStore",
]
