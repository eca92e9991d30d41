"""Redis-backed persistent store.

Keys are stored as plain Redis strings under an optional prefix. Redis
failures are re-raised as CacheStoreUnavailableError; the cache store above
turns those into misses.
"""

import logging
from typing import List, Optional

from redis import asyncio as redis_asyncio
from redis.exceptions import RedisError

from ....core.exceptions import CacheStoreUnavailableError

logger = logging.getLogger(__name__)


class RedisKeyValueStore:
    """Persistent store on top of ``redis.asyncio``."""

    def __init__(self, redis_client, key_prefix: str = "", scan_count: int = 500):
        """Initialize Redis store.

        Args:
            redis_client: Async Redis client (``redis.asyncio.Redis``)
            key_prefix: Prefix added to every Redis key
            scan_count: Batch size hint for SCAN when listing keys
        """
        self._redis = redis_client
        self._key_prefix = key_prefix
        self._scan_count = scan_count

    @classmethod
    def from_url(cls, url: str, key_prefix: str = "") -> "RedisKeyValueStore":
        """Create a store with a client connected to url."""
        client = redis_asyncio.from_url(url, decode_responses=True)
        return cls(client, key_prefix=key_prefix)

    def _redis_key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    def _strip_prefix(self, redis_key) -> str:
        if isinstance(redis_key, bytes):
            redis_key = redis_key.decode("utf-8")
        return redis_key[len(self._key_prefix):]

    async def get_item(self, key: str) -> Optional[str]:
        try:
            value = await self._redis.get(self._redis_key(key))
        except RedisError as e:
            logger.error(f"Redis GET failed for {key}: {e}")
            raise CacheStoreUnavailableError(f"Redis GET failed: {e}", details={"key": key}) from e

        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set_item(self, key: str, value: str) -> None:
        try:
            await self._redis.set(self._redis_key(key), value)
        except RedisError as e:
            logger.error(f"Redis SET failed for {key}: {e}")
            raise CacheStoreUnavailableError(f"Redis SET failed: {e}", details={"key": key}) from e

    async def remove_item(self, key: str) -> None:
        try:
            await self._redis.delete(self._redis_key(key))
        except RedisError as e:
            logger.error(f"Redis DEL failed for {key}: {e}")
            raise CacheStoreUnavailableError(f"Redis DEL failed: {e}", details={"key": key}) from e

    async def keys(self, prefix: str = "") -> List[str]:
        pattern = f"{self._redis_key(prefix)}*"
        try:
            return [
                self._strip_prefix(redis_key)
                async for redis_key in self._redis.scan_iter(match=pattern, count=self._scan_count)
            ]
        except RedisError as e:
            logger.error(f"Redis SCAN failed for {pattern}: {e}")
            raise CacheStoreUnavailableError(f"Redis SCAN failed: {e}", details={"pattern": pattern}) from e

    async def close(self) -> None:
        """Close the underlying Redis connection."""
        await self._redis.aclose()
