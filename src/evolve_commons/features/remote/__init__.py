"""Remote data service feature."""

from .entities import Record, RemoteDataService, RemoteQuery
from .adapters import PostgrestDataService

__all__ = ["Record", "RemoteDataService", "RemoteQuery", "PostgrestDataService"]
