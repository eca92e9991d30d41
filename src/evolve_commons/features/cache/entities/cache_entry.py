"""Cache entry entity and its stored envelope."""

import json
from dataclasses import dataclass
from typing import Any

from ....core.exceptions import CacheDeserializationError


@dataclass(frozen=True)
class CacheEntry:
    """A cached payload and the time the store wrote it.

    ``stored_at`` is epoch milliseconds taken from the store's clock at write
    time. TTL is never part of the entry; each reader judges freshness.
    """

    key: str
    value: Any
    stored_at: int

    def age_ms(self, now: int) -> int:
        return now - self.stored_at

    def is_fresh(self, now: int, ttl_ms: int) -> bool:
        """Fresh while the age does not exceed the caller's TTL."""
        return self.age_ms(now) <= ttl_ms

    def to_envelope(self) -> dict:
        return {"stored_at": self.stored_at, "value": self.value}

    @classmethod
    def from_raw(cls, key: str, raw: str) -> "CacheEntry":
        """Parse stored JSON text into an entry.

        Raises:
            CacheDeserializationError: The text is not a valid envelope.
        """
        try:
            envelope = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise CacheDeserializationError(
                f"Stored value is not valid JSON: {e}", key=key, original_error=e
            ) from e

        if not isinstance(envelope, dict) or "stored_at" not in envelope or "value" not in envelope:
            raise CacheDeserializationError("Stored value is not a cache envelope", key=key)

        stored_at = envelope["stored_at"]
        if isinstance(stored_at, bool) or not isinstance(stored_at, (int, float)):
            raise CacheDeserializationError(
                f"Invalid stored_at in cache envelope: {stored_at!r}", key=key
            )

        return cls(key=key, value=envelope["value"], stored_at=int(stored_at))
