"""Optimistic mutation entity."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

from ...cache.entities.cache_key import CacheKey
from .reactive_state import ReactiveState

T = TypeVar("T")


class MutationState(str, Enum):
    """Lifecycle of a single mutation call."""
    IDLE = "idle"
    APPLIED = "applied"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass
class MutationOperation(Generic[T]):
    """One optimistic change to a piece of shared state.

    ``remote_write`` receives the optimistic value and returns the committed
    value, or None when the backend has nothing canonical to report. When
    ``cache_key`` is set the cached copy follows the state through every
    transition, written through ``encode``.
    """

    target_state: ReactiveState[T]
    optimistic_update: Callable[[Optional[T]], T]
    remote_write: Callable[[T], Awaitable[Optional[T]]]
    cache_key: Optional[Union[CacheKey, str]] = None
    encode: Optional[Callable[[T], Any]] = None
    name: str = "mutation"

    state: MutationState = field(default=MutationState.IDLE, init=False)
    previous_value: Optional[T] = field(default=None, init=False, repr=False)
    optimistic_value: Optional[T] = field(default=None, init=False, repr=False)
    committed_value: Optional[T] = field(default=None, init=False, repr=False)
    error: Optional[BaseException] = field(default=None, init=False, repr=False)

    @property
    def is_settled(self) -> bool:
        return self.state in (MutationState.COMMITTED, MutationState.ROLLED_BACK)

    def encode_value(self, value: T) -> Any:
        return self.encode(value) if self.encode is not None else value
