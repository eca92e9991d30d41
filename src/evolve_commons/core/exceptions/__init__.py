"""Exception hierarchy for evolve-commons."""

from .base import EvolveCommonsError, create_error_response
from .domain import (
    ConfigurationError,
    CacheError,
    CacheSerializationError,
    CacheDeserializationError,
    CacheStoreUnavailableError,
    RemoteServiceError,
    RemoteReadError,
    RemoteWriteError,
    MappingError,
    NotAuthenticatedError,
)

__all__ = [
    "EvolveCommonsError",
    "create_error_response",
    "ConfigurationError",
    "CacheError",
    "CacheSerializationError",
    "CacheDeserializationError",
    "CacheStoreUnavailableError",
    "RemoteServiceError",
    "RemoteReadError",
    "RemoteWriteError",
    "MappingError",
    "NotAuthenticatedError",
]
