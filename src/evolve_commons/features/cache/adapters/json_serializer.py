"""JSON serializer for cached payloads.

Values are written as plain JSON with no type tags. Dates and datetimes become
ISO-8601 strings and are re-materialized by whoever reads them back.
"""

import json
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from ....core.exceptions import CacheSerializationError, CacheDeserializationError


class CacheJSONEncoder(json.JSONEncoder):
    """JSON encoder for the common non-JSON types found in domain objects."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        elif isinstance(obj, Decimal):
            return float(obj)
        elif isinstance(obj, UUID):
            return str(obj)
        elif isinstance(obj, Enum):
            return obj.value
        elif isinstance(obj, (set, frozenset)):
            return list(obj)
        elif isinstance(obj, bytes):
            return obj.hex()
        elif is_dataclass(obj) and not isinstance(obj, type):
            return asdict(obj)

        return super().default(obj)


class JSONCacheSerializer:
    """Compact JSON text serializer used by the cache store."""

    def __init__(self, ensure_ascii: bool = False, sort_keys: bool = False):
        self._ensure_ascii = ensure_ascii
        self._sort_keys = sort_keys

    def serialize(self, value: Any, key: str = None) -> str:
        """Serialize value to JSON text.

        Raises:
            CacheSerializationError: The value holds something JSON cannot represent.
        """
        try:
            return json.dumps(
                value,
                cls=CacheJSONEncoder,
                ensure_ascii=self._ensure_ascii,
                separators=(",", ":"),
                sort_keys=self._sort_keys,
                allow_nan=False,
            )
        except (TypeError, ValueError, OverflowError) as e:
            raise CacheSerializationError(
                f"JSON serialization failed: {e}", key=key, original_error=e
            ) from e

    def deserialize(self, data: str, key: str = None) -> Any:
        """Deserialize JSON text.

        Raises:
            CacheDeserializationError: The text is not valid JSON.
        """
        try:
            return json.loads(data)
        except (TypeError, ValueError) as e:
            raise CacheDeserializationError(
                f"JSON deserialization failed: {e}", key=key, original_error=e
            ) from e
