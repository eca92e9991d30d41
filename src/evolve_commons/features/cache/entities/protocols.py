"""Protocols for the persistent store the cache sits on."""

from typing import List, Optional, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """Async string store keyed by string.

    Implementations should survive process restarts where the host allows it.
    Any method may raise; the cache store absorbs those failures.
    """

    async def get_item(self, key: str) -> Optional[str]:
        """Return the stored text or None when the key is missing."""
        ...

    async def set_item(self, key: str, value: str) -> None:
        """Store text under key, replacing any previous value."""
        ...

    async def remove_item(self, key: str) -> None:
        """Remove key. Missing keys are ignored."""
        ...

    async def keys(self, prefix: str = "") -> List[str]:
        """List stored keys starting with prefix."""
        ...
