"""Optimistic mutation coordinator.

Applies a change to shared state and its cached copy immediately, confirms it
with the remote data service, and puts both back exactly as they were if the
remote write fails.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar, Union

from ...cache.entities.cache_key import CacheKey
from ...cache.services.cache_store import CacheSnapshot, CacheStore
from ..entities.mutation import MutationOperation, MutationState
from ..entities.reactive_state import ReactiveState

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OptimisticMutationCoordinator:
    """Runs mutations through Idle -> Applied -> Committed | RolledBack.

    By default mutations on the same resource are not queued: each one works on
    whatever value is in memory when it starts and a rollback restores only its
    own snapshot. With ``serialize_per_key`` mutations sharing a cache key run
    one at a time in the order they were issued.
    """

    def __init__(self, cache: Optional[CacheStore] = None, serialize_per_key: bool = False):
        self._cache = cache
        self._serialize_per_key = serialize_per_key
        self._key_locks: Dict[str, asyncio.Lock] = {}
        self._key_waiters: Dict[str, int] = {}
        self._stats = {"applied": 0, "committed": 0, "rolled_back": 0}

    async def mutate(
        self,
        target_state: ReactiveState[T],
        optimistic_update: Callable[[Optional[T]], T],
        remote_write: Callable[[T], Awaitable[Optional[T]]],
        cache_key: Optional[Union[CacheKey, str]] = None,
        encode: Optional[Callable[[T], Any]] = None,
        name: str = "mutation",
    ) -> T:
        """Build a MutationOperation and execute it."""
        operation = MutationOperation(
            target_state=target_state,
            optimistic_update=optimistic_update,
            remote_write=remote_write,
            cache_key=cache_key,
            encode=encode,
            name=name,
        )
        return await self.execute(operation)

    async def execute(self, operation: MutationOperation[T]) -> T:
        """Execute a mutation and return the committed value.

        Raises:
            ValueError: The operation has already been executed
            Exception: Whatever the remote write raised, after rollback
        """
        if operation.state is not MutationState.IDLE:
            raise ValueError(f"Mutation '{operation.name}' already executed ({operation.state.value})")

        if not self._serialize_per_key or operation.cache_key is None:
            return await self._run(operation)

        key = str(operation.cache_key)
        lock = self._key_locks.setdefault(key, asyncio.Lock())
        self._key_waiters[key] = self._key_waiters.get(key, 0) + 1
        try:
            async with lock:
                return await self._run(operation)
        finally:
            self._key_waiters[key] -= 1
            if self._key_waiters[key] == 0:
                del self._key_waiters[key]
                del self._key_locks[key]

    async def _run(self, operation: MutationOperation[T]) -> T:
        state = operation.target_state
        previous = state.value
        next_value = operation.optimistic_update(previous)

        # Applied: state changes before anything awaits
        operation.previous_value = previous
        operation.optimistic_value = next_value
        state.set(next_value)
        operation.state = MutationState.APPLIED
        self._stats["applied"] += 1

        cache_key = str(operation.cache_key) if operation.cache_key is not None else None
        snapshot: Optional[CacheSnapshot] = None

        try:
            if cache_key is not None and self._cache is not None:
                snapshot = await self._cache.snapshot(cache_key)
                await self._cache.set(cache_key, operation.encode_value(next_value))

            canonical = await operation.remote_write(next_value)
        except Exception as e:
            await self._roll_back(operation, snapshot, e)
            raise

        committed = next_value
        if canonical is not None and canonical != next_value:
            # Server returned something different (e.g. assigned ids)
            committed = canonical
            state.set(canonical)
            if cache_key is not None and self._cache is not None:
                await self._cache.set(cache_key, operation.encode_value(canonical))

        operation.committed_value = committed
        operation.state = MutationState.COMMITTED
        self._stats["committed"] += 1
        logger.debug(f"Mutation '{operation.name}' committed")
        return committed

    async def _roll_back(
        self,
        operation: MutationOperation[T],
        snapshot: Optional[CacheSnapshot],
        error: Exception,
    ) -> None:
        operation.target_state.set(operation.previous_value)
        if snapshot is not None and self._cache is not None:
            await self._cache.restore(snapshot)

        operation.error = error
        operation.state = MutationState.ROLLED_BACK
        self._stats["rolled_back"] += 1
        logger.warning(f"Mutation '{operation.name}' rolled back: {error}")

    def get_stats(self) -> Dict[str, int]:
        return dict(self._stats)
