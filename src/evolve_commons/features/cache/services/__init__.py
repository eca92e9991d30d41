"""Cache services."""

from .cache_store import CacheStore, CacheSnapshot

__all__ = ["CacheStore", "CacheSnapshot"]
