"""Remote data service entities."""

from .protocols import Record, RemoteDataService
from .query import RemoteQuery

__all__ = ["Record", "RemoteDataService", "RemoteQuery"]
