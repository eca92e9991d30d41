"""Cache entities."""

from .cache_entry import CacheEntry
from .cache_key import CacheKey, KEY_SEPARATOR
from .protocols import KeyValueStore

__all__ = ["CacheEntry", "CacheKey", "KEY_SEPARATOR", "KeyValueStore"]
