"""Evolve-Commons - client-side data layer for the Evolve wellness app.

A TTL cache over a persistent key-value store, an optimistic mutation
coordinator with exact rollback, an offset feed paginator and the wellness
feature services built on them.
"""

# Initialize logging configuration on import
from .config.logging_config import setup_logging
setup_logging()

from .__version__ import __version__

from .config import EvolveSettings, get_settings

from .core.exceptions import (
    # Base Exception
    EvolveCommonsError,

    # Common Exceptions
    ConfigurationError,
    CacheError,
    RemoteServiceError,
    RemoteReadError,
    RemoteWriteError,
    MappingError,
    NotAuthenticatedError,

    # Utility Functions
    create_error_response,
)

from .features.cache import (
    CacheKey,
    CacheStore,
    KeyValueStore,
    MemoryKeyValueStore,
    RedisKeyValueStore,
)

from .features.mutations import (
    MutationOperation,
    MutationState,
    OptimisticMutationCoordinator,
    ReactiveState,
)

from .features.pagination import FeedPaginator, FeedState

from .features.remote import PostgrestDataService, RemoteDataService, RemoteQuery

__all__ = [
    "__version__",
    "EvolveSettings",
    "get_settings",
    "EvolveCommonsError",
    "ConfigurationError",
    "CacheError",
    "RemoteServiceError",
    "RemoteReadError",
    "RemoteWriteError",
    "MappingError",
    "NotAuthenticatedError",
    "create_error_response",
    "CacheKey",
    "CacheStore",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "RedisKeyValueStore",
    "MutationOperation",
    "MutationState",
    "OptimisticMutationCoordinator",
    "ReactiveState",
    "FeedPaginator",
    "FeedState",
    "PostgrestDataService",
    "RemoteDataService",
    "RemoteQuery",
]
