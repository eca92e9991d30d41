"""In-memory persistent store for development and tests."""

import asyncio
from collections import OrderedDict
from typing import Dict, List, Optional


class MemoryKeyValueStore:
    """Process-local string store guarded by an asyncio lock.

    Nothing survives a restart; use it where durability does not matter.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = OrderedDict(initial or {})
        self._lock = asyncio.Lock()

    async def get_item(self, key: str) -> Optional[str]:
        async with self._lock:
            return self._data.get(key)

    async def set_item(self, key: str, value: str) -> None:
        async with self._lock:
            self._data[key] = value

    async def remove_item(self, key: str) -> None:
        async with self._lock:
            self._data.pop(key, None)

    async def keys(self, prefix: str = "") -> List[str]:
        async with self._lock:
            return [k for k in self._data if k.startswith(prefix)]

    def raw(self) -> Dict[str, str]:
        """Copy of everything stored, for inspection in tests."""
        return dict(self._data)

    def __len__(self) -> int:
        return len(self._data)
