"""Remote data service adapters."""

from .postgrest_adapter import PostgrestDataService

__all__ = ["PostgrestDataService"]
