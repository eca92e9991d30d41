"""Tests for the TTL cache store."""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from evolve_commons.config.settings import EvolveSettings
from evolve_commons.core.exceptions import CacheStoreUnavailableError
from evolve_commons.features.cache.adapters.memory_store import MemoryKeyValueStore
from evolve_commons.features.cache.adapters.redis_store import RedisKeyValueStore
from evolve_commons.features.cache.entities.cache_key import CacheKey
from evolve_commons.features.cache.services.cache_store import CacheSnapshot, CacheStore

MINUTE = 60 * 1000
KEY = "evolve_user1_workout_history"


class UnreadableStore(MemoryKeyValueStore):
    """Store whose reads always fail."""

    async def get_item(self, key):
        raise CacheStoreUnavailableError("down")


class TestCacheStoreReads:
    """Freshness and failure handling on the read path."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ttl", [0, 1, 15 * MINUTE, 10 ** 12])
    async def test_never_written_key_is_absent(self, cache, ttl):
        """Keys that were never written are absent for any TTL."""
        assert await cache.get("evolve_user1_nothing", ttl) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [{"id": 1}, [1, 2, 3], "text", 0, False, {"nested": {"a": [None]}}])
    @pytest.mark.parametrize("ttl", [0, 5, 15 * MINUTE])
    async def test_set_then_get_returns_value(self, cache, value, ttl):
        """A value just written is returned for any TTL >= 0."""
        assert await cache.set(KEY, value) is True
        assert await cache.get(KEY, ttl) == value

    @pytest.mark.asyncio
    async def test_expired_entry_is_absent_but_bytes_remain(self, cache, store, clock):
        """Once elapsed time exceeds the TTL the entry reads as absent without being deleted."""
        await cache.set(KEY, {"id": 1})
        clock.advance(minutes=15)
        assert await cache.get(KEY, 15 * MINUTE) == {"id": 1}

        clock.advance(ms=1)
        assert await cache.get(KEY, 15 * MINUTE) is None
        assert KEY in store.raw()

    @pytest.mark.asyncio
    async def test_ttl_is_judged_per_reader(self, cache, clock):
        """The same entry can be stale for one caller and fresh for another."""
        await cache.set(KEY, ["a"])
        clock.advance(minutes=20)

        assert await cache.get(KEY, 15 * MINUTE) is None
        assert await cache.get(KEY, 30 * MINUTE) == ["a"]

    @pytest.mark.asyncio
    async def test_negative_ttl_rejected(self, cache):
        with pytest.raises(ValueError):
            await cache.get(KEY, -1)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", [
        "not json at all",
        "[1, 2, 3]",
        '{"value": 1}',
        '{"stored_at": "yesterday", "value": 1}',
    ])
    async def test_corrupt_payload_is_miss_and_removed(self, cache, store, raw):
        """Corrupt or foreign payloads behave like absent entries and are cleaned up."""
        await store.set_item(KEY, raw)

        assert await cache.get(KEY, 15 * MINUTE) is None
        assert KEY not in store.raw()
        assert cache.get_stats()["errors"] == 1

    @pytest.mark.asyncio
    async def test_decode_failure_is_miss(self, cache):
        """A payload the caller cannot decode is treated as absent."""
        await cache.set(KEY, {"unexpected": "shape"})

        def decode(payload):
            return payload["id"]

        assert await cache.get(KEY, 15 * MINUTE, decode=decode) is None

    @pytest.mark.asyncio
    async def test_decode_applied_on_hit(self, cache):
        await cache.set(KEY, {"id": 7})
        assert await cache.get(KEY, 15 * MINUTE, decode=lambda p: p["id"]) == 7

    @pytest.mark.asyncio
    async def test_store_failure_on_read_is_miss(self, clock):
        """Errors raised by the persistent store degrade to a miss."""
        failing = AsyncMock()
        failing.get_item.side_effect = CacheStoreUnavailableError("down")
        cache = CacheStore(failing, clock=clock)

        assert await cache.get(KEY, 15 * MINUTE) is None
        assert cache.get_stats()["errors"] == 1

    @pytest.mark.asyncio
    async def test_accepts_cache_key_objects(self, cache):
        key = CacheKey.for_user("evolve", "User1", "workout_history")
        await cache.set(key, [1])
        assert await cache.get(KEY, MINUTE) == [1]


class TestCacheStoreWrites:
    """Write path, envelope format and size limits."""

    @pytest.mark.asyncio
    async def test_envelope_format(self, cache, store, clock):
        """Entries are stored as JSON with the write time and no schema tag."""
        await cache.set(KEY, {"completed": False})

        envelope = json.loads(store.raw()[KEY])
        assert envelope == {"stored_at": clock.now, "value": {"completed": False}}

    @pytest.mark.asyncio
    async def test_set_overwrites_and_refreshes_stored_at(self, cache, clock):
        await cache.set(KEY, 1)
        clock.advance(minutes=10)
        await cache.set(KEY, 2)
        clock.advance(minutes=10)

        assert await cache.get(KEY, 15 * MINUTE) == 2

    @pytest.mark.asyncio
    async def test_unserializable_value_returns_false(self, cache, store):
        """Values JSON cannot represent are skipped instead of raising."""
        assert await cache.set(KEY, {"callback": object()}) is False
        assert KEY not in store.raw()

    @pytest.mark.asyncio
    async def test_store_failure_on_write_returns_false(self, clock):
        failing = AsyncMock()
        failing.set_item.side_effect = CacheStoreUnavailableError("down")
        cache = CacheStore(failing, clock=clock)

        assert await cache.set(KEY, {"id": 1}) is False

    @pytest.mark.asyncio
    async def test_oversized_item_not_cached(self, store, clock):
        """Items above the size limit are not stored and drop any older copy."""
        cache = CacheStore(store, clock=clock, max_item_bytes=100)
        await cache.set(KEY, "small")

        assert await cache.set(KEY, "x" * 500) is False
        assert await cache.get(KEY, MINUTE) is None

    @pytest.mark.asyncio
    async def test_cleanup_evicts_oldest_entries(self, store, clock):
        """Exceeding the total size evicts the oldest entries until below 90% of it."""
        cache = CacheStore(store, clock=clock, max_total_bytes=400)
        for i in range(6):
            await cache.set(f"evolve_user1_item{i}", "x" * 40)
            clock.advance(ms=1)

        assert cache.total_bytes > 0
        stats = cache.get_stats()
        assert stats["evictions"] > 0
        assert cache.total_bytes <= 400
        # newest entry survives
        assert await cache.get("evolve_user1_item5", MINUTE) == "x" * 40
        assert await cache.get("evolve_user1_item0", MINUTE) is None

    @pytest.mark.asyncio
    async def test_cleanup_evicts_least_read_entries_first(self, store, clock):
        cache = CacheStore(store, clock=clock, max_total_bytes=400)
        for i in range(5):
            await cache.set(f"evolve_user1_item{i}", "x" * 40)
            clock.advance(ms=1)
        assert await cache.get("evolve_user1_item0", MINUTE) == "x" * 40
        assert await cache.get("evolve_user1_item0", MINUTE) == "x" * 40

        await cache.set("evolve_user1_item5", "x" * 40)

        assert await cache.get("evolve_user1_item0", MINUTE) == "x" * 40
        assert await cache.get("evolve_user1_item1", MINUTE) is None
        assert await cache.get("evolve_user1_item2", MINUTE) == "x" * 40

    @pytest.mark.asyncio
    async def test_initialize_seeds_size_accounting(self, clock):
        store = MemoryKeyValueStore({
            "evolve_user1_a": json.dumps({"stored_at": 1, "value": "abc"}),
            "other_app_key": "ignored",
        })
        cache = CacheStore(store, clock=clock)

        await cache.initialize()

        stats = cache.get_stats()
        assert stats["item_count"] == 1
        assert stats["total_bytes"] == len(store.raw()["evolve_user1_a"])


class TestGetOrSet:
    """Get-or-populate semantics."""

    @pytest.mark.asyncio
    async def test_second_call_within_ttl_is_a_hit(self, cache):
        populate = AsyncMock(return_value={"id": 1})

        assert await cache.get_or_set(KEY, 15 * MINUTE, populate) == {"id": 1}
        assert await cache.get_or_set(KEY, 15 * MINUTE, populate) == {"id": 1}
        populate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_scenario_fifteen_minute_ttl(self, cache, store, clock):
        """Populate at 0, hit at minute 5, repopulate at minute 16."""
        populate = AsyncMock(return_value={"id": 1})

        assert await cache.get_or_set(KEY, 15 * MINUTE, populate) == {"id": 1}
        assert json.loads(store.raw()[KEY])["value"] == {"id": 1}

        clock.advance(minutes=5)
        assert await cache.get_or_set(KEY, 15 * MINUTE, populate) == {"id": 1}
        assert populate.await_count == 1

        clock.advance(minutes=11)
        assert await cache.get_or_set(KEY, 15 * MINUTE, populate) == {"id": 1}
        assert populate.await_count == 2

    @pytest.mark.asyncio
    async def test_cached_null_is_a_hit(self, cache):
        """A stored JSON null counts as a cached value."""
        populate = AsyncMock(return_value=None)

        assert await cache.get_or_set(KEY, MINUTE, populate) is None
        assert await cache.get_or_set(KEY, MINUTE, populate) is None
        populate.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_populate_failure_propagates_and_keeps_old_bytes(self, cache, store, clock, remote_read_error):
        await cache.set(KEY, {"id": 1})
        clock.advance(minutes=20)
        populate = AsyncMock(side_effect=remote_read_error)

        with pytest.raises(type(remote_read_error)):
            await cache.get_or_set(KEY, 15 * MINUTE, populate)
        assert json.loads(store.raw()[KEY])["value"] == {"id": 1}

    @pytest.mark.asyncio
    async def test_decode_applied_to_populated_value(self, cache):
        populate = AsyncMock(return_value={"id": 3})
        assert await cache.get_or_set(KEY, MINUTE, populate, decode=lambda p: p["id"]) == 3
        assert await cache.get_or_set(KEY, MINUTE, populate, decode=lambda p: p["id"]) == 3

    @pytest.mark.asyncio
    async def test_undecodable_populated_value_is_not_cached(self, cache, store):
        populate = AsyncMock(return_value={"unexpected": True})

        with pytest.raises(KeyError):
            await cache.get_or_set(KEY, MINUTE, populate, decode=lambda p: p["id"])
        assert KEY not in store.raw()

    @pytest.mark.asyncio
    async def test_without_single_flight_concurrent_misses_each_populate(self, cache):
        calls = 0

        async def populate():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0)
            return calls

        await asyncio.gather(*(cache.get_or_set(KEY, MINUTE, populate) for _ in range(3)))
        assert calls == 3

    @pytest.mark.asyncio
    async def test_single_flight_shares_populate(self, store, clock):
        """Concurrent misses share one populate call when single-flight is on."""
        cache = CacheStore(store, clock=clock, single_flight=True)
        release = asyncio.Event()
        calls = 0

        async def populate():
            nonlocal calls
            calls += 1
            await release.wait()
            return {"id": calls}

        tasks = [asyncio.ensure_future(cache.get_or_set(KEY, MINUTE, populate)) for _ in range(3)]
        await asyncio.sleep(0)
        release.set()
        results = await asyncio.gather(*tasks)

        assert calls == 1
        assert results == [{"id": 1}] * 3
        assert cache.get_stats()["in_flight"] == 0

    @pytest.mark.asyncio
    async def test_single_flight_forgets_failed_populate(self, store, clock):
        """A failed in-flight populate is not reused by the next caller."""
        cache = CacheStore(store, clock=clock, single_flight=True)
        failing = AsyncMock(side_effect=RuntimeError("boom"))
        succeeding = AsyncMock(return_value="ok")

        with pytest.raises(RuntimeError):
            await cache.get_or_set(KEY, MINUTE, failing)
        assert await cache.get_or_set(KEY, MINUTE, succeeding) == "ok"

    @pytest.mark.asyncio
    async def test_single_flight_repopulates_after_expiry(self, store, clock):
        cache = CacheStore(store, clock=clock, single_flight=True)
        populate = AsyncMock(side_effect=["first", "second"])

        assert await cache.get_or_set(KEY, MINUTE, populate) == "first"
        clock.advance(minutes=2)
        assert await cache.get_or_set(KEY, MINUTE, populate) == "second"


class TestInvalidation:
    """Clearing, user sign-out and pattern invalidation."""

    @pytest.mark.asyncio
    async def test_clear_single_key(self, cache):
        await cache.set(KEY, 1)
        assert await cache.clear(KEY) is True
        assert await cache.get(KEY, MINUTE) is None

    @pytest.mark.asyncio
    async def test_clear_user_cache_only_touches_that_user(self, cache, store):
        await cache.set("evolve_alice_workout_plan", 1)
        await cache.set("evolve_alice_journal_entries", 2)
        await cache.set("evolve_bob_workout_plan", 3)

        removed = await cache.clear_user_cache("alice")

        assert removed == 2
        assert list(store.raw()) == ["evolve_bob_workout_plan"]

    @pytest.mark.asyncio
    async def test_clear_user_cache_ignores_lookalike_user(self, cache, store):
        """Keys of user "a" never match the prefix of a user whose id extends it."""
        await cache.set(cache.key_for("a", "b_workout_plan"), 1)
        await cache.set(cache.key_for("ab", "workout_plan"), 2)

        assert cache.key_for("a_b", "workout_plan") is None
        assert await cache.clear_user_cache("a_b") == 0
        assert await cache.clear_user_cache("a") == 1
        assert list(store.raw()) == ["evolve_ab_workout_plan"]

    @pytest.mark.asyncio
    async def test_invalidate_pattern(self, cache, store):
        await cache.set("evolve_alice_workout_plan", 1)
        await cache.set("evolve_bob_workout_plan", 2)
        await cache.set("evolve_bob_meal_plan", 3)

        removed = await cache.invalidate_pattern("workout")

        assert removed == 2
        assert list(store.raw()) == ["evolve_bob_meal_plan"]


class TestSnapshots:
    """Raw snapshot and restore."""

    @pytest.mark.asyncio
    async def test_restore_is_byte_exact(self, cache, store, clock):
        await cache.set(KEY, {"completed": False})
        before = store.raw()[KEY]
        snapshot = await cache.snapshot(KEY)

        clock.advance(minutes=3)
        await cache.set(KEY, {"completed": True})
        await cache.restore(snapshot)

        assert store.raw()[KEY] == before

    @pytest.mark.asyncio
    async def test_restore_of_absent_key_removes_it(self, cache, store):
        snapshot = await cache.snapshot(KEY)
        assert snapshot == CacheSnapshot(key=KEY, raw=None)

        await cache.set(KEY, "optimistic")
        await cache.restore(snapshot)

        assert KEY not in store.raw()

    @pytest.mark.asyncio
    async def test_failed_snapshot_drops_entry_on_restore(self, clock):
        backing = UnreadableStore()
        cache = CacheStore(backing, clock=clock)

        snapshot = await cache.snapshot(KEY)
        assert snapshot.captured is False

        await backing.set_item(KEY, "optimistic")
        await cache.restore(snapshot)
        assert KEY not in backing.raw()


class TestFromSettings:
    """Building a cache store from settings."""

    def test_memory_store_without_redis(self, settings):
        cache = CacheStore.from_settings(settings)

        assert isinstance(cache._store, MemoryKeyValueStore)
        assert cache.namespace == "evolve"
        assert cache._single_flight is True
        assert cache._max_item_bytes == settings.max_item_bytes

    def test_redis_store_when_configured(self):
        settings = EvolveSettings(_env_file=None, redis_url="redis://localhost:6379/0", cache_namespace="wellness")
        cache = CacheStore.from_settings(settings)

        assert isinstance(cache._store, RedisKeyValueStore)
        assert cache.namespace == "wellness"

    def test_explicit_store_wins(self, settings, store):
        assert CacheStore.from_settings(settings, store=store)._store is store
