"""Domain-specific exceptions for evolve-commons.

Cache-layer errors are absorbed inside the cache store and never reach callers;
they exist so adapters and serializers can report failures with context.
Remote and mapping errors are surfaced to feature services and the UI.
"""

from typing import Any, Dict, Optional

from .base import EvolveCommonsError


# Configuration Errors
class ConfigurationError(EvolveCommonsError):
    """Raised when there's a configuration issue."""
    pass


# Cache Errors
class CacheError(EvolveCommonsError):
    """Base class for cache-layer errors."""
    pass


class CacheSerializationError(CacheError):
    """Raised when a value cannot be serialized for the persistent store."""

    def __init__(self, message: str, key: Optional[str] = None, original_error: Optional[Exception] = None):
        details: Dict[str, Any] = {}
        if key:
            details["key"] = key
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__
        super().__init__(message, error_code="CACHE_SERIALIZATION_ERROR", details=details)


class CacheDeserializationError(CacheError):
    """Raised when stored bytes cannot be turned back into a cache entry."""

    def __init__(self, message: str, key: Optional[str] = None, original_error: Optional[Exception] = None):
        details: Dict[str, Any] = {}
        if key:
            details["key"] = key
        if original_error:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__
        super().__init__(message, error_code="CACHE_DESERIALIZATION_ERROR", details=details)


class CacheStoreUnavailableError(CacheError):
    """Raised by persistent store adapters when the backend cannot be reached."""
    pass


# Remote Data Service Errors
class RemoteServiceError(EvolveCommonsError):
    """Base class for remote data service errors."""

    def __init__(
        self,
        message: str,
        resource: Optional[str] = None,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
    ):
        details: Dict[str, Any] = {}
        if resource:
            details["resource"] = resource
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, error_code=error_code, details=details)
        self.resource = resource
        self.status_code = status_code


class RemoteReadError(RemoteServiceError):
    """Raised when reading from the remote data service fails."""

    def __init__(self, message: str, resource: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, resource=resource, status_code=status_code, error_code="REMOTE_READ_ERROR")


class RemoteWriteError(RemoteServiceError):
    """Raised when a remote write fails; triggers optimistic rollback."""

    def __init__(self, message: str, resource: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, resource=resource, status_code=status_code, error_code="REMOTE_WRITE_ERROR")


# Mapping Errors
class MappingError(EvolveCommonsError):
    """Raised when a record cannot be mapped to or from its domain shape."""

    def __init__(self, message: str, entity: Optional[str] = None, field: Optional[str] = None):
        details: Dict[str, Any] = {}
        if entity:
            details["entity"] = entity
        if field:
            details["field"] = field
        super().__init__(message, error_code="MAPPING_ERROR", details=details)
        self.entity = entity
        self.field = field


# Session Errors
class NotAuthenticatedError(EvolveCommonsError):
    """Raised when an operation needs an authenticated user and there is none."""
    pass
