"""Cache store with caller-supplied TTLs on top of a persistent key-value store.

Every cache-layer failure (store unavailable, corrupt bytes, values that will
not serialize) degrades to a miss or a skipped write. Only the populate
callable of ``get_or_set`` can raise through this class.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Union

from ....config.settings import EvolveSettings, get_settings
from ....core.exceptions import CacheError
from ....utils.datetime import now_ms
from ..adapters.json_serializer import JSONCacheSerializer
from ..adapters.memory_store import MemoryKeyValueStore
from ..adapters.redis_store import RedisKeyValueStore
from ..entities.cache_entry import CacheEntry
from ..entities.cache_key import CacheKey, KEY_SEPARATOR
from ..entities.protocols import KeyValueStore

logger = logging.getLogger(__name__)

KeyLike = Union[CacheKey, str]
Decoder = Callable[[Any], Any]

CLEANUP_THRESHOLD = 0.9


@dataclass(frozen=True)
class CacheSnapshot:
    """Raw stored text of one key, captured for a byte-exact restore.

    ``raw`` is None when the key was absent. ``captured`` is False when the
    store could not be read; restoring such a snapshot drops the key.
    """

    key: str
    raw: Optional[str]
    captured: bool = True


class CacheStore:
    """TTL cache over an injected persistent store.

    Entries are JSON envelopes ``{"stored_at": <ms>, "value": <payload>}``.
    Freshness is decided per read: an entry is stale once
    ``now - stored_at > ttl_ms``. Stale bytes are left in place since another
    caller with a longer TTL may still consider them fresh.
    """

    def __init__(
        self,
        store: KeyValueStore,
        namespace: str = "evolve",
        clock: Callable[[], int] = now_ms,
        serializer: Optional[JSONCacheSerializer] = None,
        single_flight: bool = False,
        max_item_bytes: Optional[int] = None,
        max_total_bytes: Optional[int] = None,
    ):
        """Initialize cache store.

        Args:
            store: Persistent key-value store holding the JSON text
            namespace: Key prefix owned by this cache, used for scans and cleanup
            clock: Returns the current time in epoch milliseconds
            serializer: JSON serializer (defaults to JSONCacheSerializer)
            single_flight: Share one populate call between concurrent misses on a key
            max_item_bytes: Values larger than this are not cached
            max_total_bytes: Cleanup runs when a write would exceed this
        """
        self._store = store
        self._namespace = namespace.lower()
        self._clock = clock
        self._serializer = serializer or JSONCacheSerializer()
        self._single_flight = single_flight
        self._max_item_bytes = max_item_bytes
        self._max_total_bytes = max_total_bytes

        self._sizes: Dict[str, int] = {}
        self._hits: Dict[str, int] = {}
        self._in_flight: Dict[str, asyncio.Future] = {}
        self._stats = {
            "hits": 0,
            "misses": 0,
            "sets": 0,
            "errors": 0,
            "evictions": 0,
        }

    @classmethod
    def from_settings(
        cls,
        settings: Optional[EvolveSettings] = None,
        store: Optional[KeyValueStore] = None,
    ) -> "CacheStore":
        """Create a cache store configured from settings.

        Without an explicit store, Redis is used when ``redis_url`` is set and
        an in-memory store otherwise.
        """
        settings = settings or get_settings()
        if store is None:
            if settings.redis_url:
                store = RedisKeyValueStore.from_url(settings.redis_url)
            else:
                logger.info("No redis_url configured, using in-memory cache store")
                store = MemoryKeyValueStore()

        return cls(
            store,
            namespace=settings.cache_namespace,
            single_flight=settings.cache_single_flight,
            max_item_bytes=settings.max_item_bytes,
            max_total_bytes=settings.max_total_bytes,
        )

    @property
    def namespace(self) -> str:
        return self._namespace

    def key_for(self, user_id, resource: str) -> Optional[CacheKey]:
        """Build a key in this cache's namespace, or None without a user."""
        return CacheKey.for_user(self._namespace, user_id, resource)

    # Reads

    async def get(self, key: KeyLike, ttl_ms: int, decode: Optional[Decoder] = None) -> Any:
        """Return the cached value if fresh, otherwise None.

        Args:
            key: Cache key
            ttl_ms: Maximum acceptable age in milliseconds
            decode: Optional conversion of the stored payload; if it raises the
                payload is treated as absent

        Raises:
            ValueError: ttl_ms is negative
        """
        _, value = await self._lookup(str(key), ttl_ms, decode)
        return value

    async def get_or_set(
        self,
        key: KeyLike,
        ttl_ms: int,
        populate: Callable[[], Awaitable[Any]],
        decode: Optional[Decoder] = None,
    ) -> Any:
        """Return the fresh cached value or populate, store and return it.

        A stored JSON null is a hit. Exceptions from ``populate`` (and from
        ``decode`` applied to a freshly populated value) propagate.
        """
        full_key = str(key)
        found, value = await self._lookup(full_key, ttl_ms, decode)
        if found:
            return value

        if not self._single_flight:
            return await self._populate(full_key, populate, decode)

        task = self._in_flight.get(full_key)
        if task is None:
            task = asyncio.ensure_future(self._populate(full_key, populate, decode))
            self._in_flight[full_key] = task

            def _forget(done: asyncio.Future, in_flight_key: str = full_key) -> None:
                if self._in_flight.get(in_flight_key) is done:
                    del self._in_flight[in_flight_key]

            task.add_done_callback(_forget)
        else:
            logger.debug(f"Joining in-flight populate for {full_key}")

        return await asyncio.shield(task)

    async def _populate(self, key: str, populate: Callable[[], Awaitable[Any]], decode: Optional[Decoder]) -> Any:
        value = await populate()
        # Decode first so a payload that does not map is never cached
        decoded = decode(value) if decode is not None else value
        await self.set(key, value)
        return decoded

    async def _lookup(self, key: str, ttl_ms: int, decode: Optional[Decoder]) -> Tuple[bool, Any]:
        if ttl_ms < 0:
            raise ValueError(f"TTL must be non-negative, got {ttl_ms}")

        entry = await self._read_entry(key)
        if entry is None:
            self._stats["misses"] += 1
            logger.debug(f"Cache miss for {key}")
            return False, None

        if not entry.is_fresh(self._clock(), ttl_ms):
            self._stats["misses"] += 1
            logger.debug(f"Cache entry for {key} is stale (ttl={ttl_ms}ms)")
            return False, None

        value = entry.value
        if decode is not None:
            try:
                value = decode(value)
            except Exception as e:
                self._stats["misses"] += 1
                logger.warning(f"Cached payload for {key} is incompatible, treating as miss: {e}")
                return False, None

        self._stats["hits"] += 1
        self._hits[key] = self._hits.get(key, 0) + 1
        logger.debug(f"Cache hit for {key}")
        return True, value

    async def _read_entry(self, key: str) -> Optional[CacheEntry]:
        """Read and parse the stored envelope. Corrupt entries are removed."""
        try:
            raw = await self._store.get_item(key)
        except Exception as e:
            self._stats["errors"] += 1
            logger.warning(f"Failed to read cache key {key}: {e}")
            return None

        if raw is None:
            return None

        try:
            entry = CacheEntry.from_raw(key, raw)
        except CacheError as e:
            self._stats["errors"] += 1
            logger.warning(f"Removing corrupt cache entry {key}: {e.message}")
            await self._remove(key)
            return None

        self._sizes[key] = len(raw.encode("utf-8"))
        return entry

    # Writes

    async def set(self, key: KeyLike, value: Any) -> bool:
        """Store value with ``stored_at = now``, replacing any previous entry.

        Returns False when the value could not be cached. Never raises.
        """
        full_key = str(key)
        entry = CacheEntry(key=full_key, value=value, stored_at=self._clock())
        try:
            raw = self._serializer.serialize(entry.to_envelope(), key=full_key)
        except CacheError as e:
            self._stats["errors"] += 1
            logger.error(f"Cannot cache {full_key}: {e.message}")
            return False

        size = len(raw.encode("utf-8"))
        if self._max_item_bytes is not None and size > self._max_item_bytes:
            logger.warning(
                f"Item {full_key} too large ({size / 1024:.2f}KB), not caching"
            )
            # Drop the previous value so readers do not see an older version
            await self._remove(full_key)
            return False

        if self._max_total_bytes is not None:
            projected = self.total_bytes - self._sizes.get(full_key, 0) + size
            if projected > self._max_total_bytes:
                await self.cleanup(exclude=full_key)

        try:
            await self._store.set_item(full_key, raw)
        except Exception as e:
            self._stats["errors"] += 1
            logger.error(f"Failed to write cache key {full_key}: {e}")
            return False

        self._sizes[full_key] = size
        self._hits.pop(full_key, None)
        self._stats["sets"] += 1
        return True

    async def clear(self, key: KeyLike) -> bool:
        """Remove one entry. Returns False if the store failed."""
        return await self._remove(str(key))

    async def clear_user_cache(self, user_id) -> int:
        """Remove every entry belonging to user_id. Returns the number removed."""
        prefix = CacheKey.user_prefix(self._namespace, user_id)
        if prefix is None:
            return 0
        removed = await self._remove_matching(prefix, lambda k: k.startswith(prefix))
        logger.info(f"Cleared {removed} cache items for user {user_id}")
        return removed

    async def invalidate_pattern(self, pattern: str) -> int:
        """Remove every entry in this namespace whose key contains pattern."""
        removed = await self._remove_matching(self._namespace_prefix, lambda k: pattern in k)
        logger.info(f"Invalidated {removed} cache items matching '{pattern}'")
        return removed

    async def _remove_matching(self, prefix: str, predicate: Callable[[str], bool]) -> int:
        try:
            keys = await self._store.keys(prefix)
        except Exception as e:
            self._stats["errors"] += 1
            logger.error(f"Failed to list cache keys with prefix {prefix}: {e}")
            return 0

        removed = 0
        for key in keys:
            if predicate(key) and await self._remove(key):
                removed += 1
        return removed

    async def _remove(self, key: str) -> bool:
        try:
            await self._store.remove_item(key)
        except Exception as e:
            self._stats["errors"] += 1
            logger.warning(f"Failed to remove cache key {key}: {e}")
            return False
        self._sizes.pop(key, None)
        self._hits.pop(key, None)
        return True

    # Raw snapshots

    async def snapshot(self, key: KeyLike) -> CacheSnapshot:
        """Capture the exact stored text of key."""
        full_key = str(key)
        try:
            raw = await self._store.get_item(full_key)
        except Exception as e:
            self._stats["errors"] += 1
            logger.warning(f"Failed to snapshot cache key {full_key}: {e}")
            return CacheSnapshot(key=full_key, raw=None, captured=False)
        return CacheSnapshot(key=full_key, raw=raw)

    async def restore(self, snapshot: CacheSnapshot) -> bool:
        """Put back exactly what a snapshot captured, removing the key if it was absent."""
        if not snapshot.captured:
            logger.warning(f"No snapshot captured for {snapshot.key}, dropping the entry")
            return await self._remove(snapshot.key)

        if snapshot.raw is None:
            return await self._remove(snapshot.key)

        try:
            await self._store.set_item(snapshot.key, snapshot.raw)
        except Exception as e:
            self._stats["errors"] += 1
            logger.error(f"Failed to restore cache key {snapshot.key}: {e}")
            return False
        self._sizes[snapshot.key] = len(snapshot.raw.encode("utf-8"))
        return True

    # Size management

    @property
    def _namespace_prefix(self) -> str:
        return f"{self._namespace}{KEY_SEPARATOR}"

    @property
    def total_bytes(self) -> int:
        return sum(self._sizes.values())

    async def initialize(self) -> None:
        """Seed size accounting from what the persistent store already holds."""
        try:
            keys = await self._store.keys(self._namespace_prefix)
        except Exception as e:
            self._stats["errors"] += 1
            logger.error(f"Failed to scan cache store: {e}")
            return

        self._sizes.clear()
        for key in keys:
            try:
                raw = await self._store.get_item(key)
            except Exception as e:
                self._stats["errors"] += 1
                logger.warning(f"Failed to read cache key {key} during initialize: {e}")
                continue
            if raw is not None:
                self._sizes[key] = len(raw.encode("utf-8"))

        logger.debug(f"Cache initialized with {len(self._sizes)} items, {self.total_bytes} bytes")

    async def cleanup(self, exclude: Optional[str] = None) -> int:
        """Evict entries until usage is below 90% of the size limit.

        Least-read entries go first, oldest first among equals. Read counts
        are kept in memory only, so after a restart eviction is by age.

        Corrupt entries are always removed. Returns the number of evictions.
        """
        if self._max_total_bytes is None:
            return 0

        try:
            keys = await self._store.keys(self._namespace_prefix)
        except Exception as e:
            self._stats["errors"] += 1
            logger.error(f"Cache cleanup failed to list keys: {e}")
            return 0

        entries = []
        for key in keys:
            if key == exclude:
                continue
            entry = await self._read_entry(key)
            if entry is not None:
                entries.append(entry)
        entries.sort(key=lambda entry: (self._hits.get(entry.key, 0), entry.stored_at))

        target = self._max_total_bytes * CLEANUP_THRESHOLD
        evicted = 0
        for entry in entries:
            if self.total_bytes <= target:
                break
            if await self._remove(entry.key):
                evicted += 1

        if evicted:
            self._stats["evictions"] += evicted
            logger.info(f"Cache cleanup evicted {evicted} items, {self.total_bytes} bytes remain")
        return evicted

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        return {
            **self._stats,
            "item_count": len(self._sizes),
            "total_bytes": self.total_bytes,
            "in_flight": len(self._in_flight),
        }
