"""Observable in-memory state holder."""

import logging
from typing import Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Subscriber = Callable[[T], None]


class ReactiveState(Generic[T]):
    """Holds the current value of a shared collection and notifies subscribers.

    Subscribers are called synchronously on every ``set``, so a value set
    before an await is visible to them before the caller suspends.
    """

    def __init__(self, initial: Optional[T] = None):
        self._value = initial
        self._version = 0
        self._subscribers: List[Subscriber] = []

    @property
    def value(self) -> Optional[T]:
        return self._value

    @property
    def version(self) -> int:
        """Number of times the value has been replaced."""
        return self._version

    def set(self, value: T) -> None:
        self._value = value
        self._version += 1
        for subscriber in list(self._subscribers):
            try:
                subscriber(value)
            except Exception:
                logger.exception("State subscriber failed")

    def update(self, fn: Callable[[Optional[T]], T]) -> T:
        """Replace the value with fn(current) and return the new value."""
        new_value = fn(self._value)
        self.set(new_value)
        return new_value

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a subscriber. Returns a callable that unsubscribes it."""
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def __repr__(self) -> str:
        return f"ReactiveState(version={self._version}, value={self._value!r})"
