"""Datetime helpers.

The cache stores timestamps as ISO-8601 strings; read paths that care about
temporal ordering re-materialize them with ``parse_datetime``.
"""

import time
from datetime import date, datetime, timezone
from typing import Optional, Union


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def now_ms() -> int:
    """Current wall clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def parse_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO-8601 string into an aware datetime.

    Accepts the trailing ``Z`` emitted by most backends. Naive values are
    assumed to be UTC. Raises ValueError for unparseable strings.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif not isinstance(value, str):
        raise TypeError(f"Expected an ISO-8601 string, got {type(value).__name__}")
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def parse_date(value: Union[str, date, None]) -> Optional[date]:
    """Parse a ``YYYY-MM-DD`` string (or the date part of a timestamp)."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise TypeError(f"Expected an ISO-8601 date string, got {type(value).__name__}")
    return date.fromisoformat(value.strip()[:10])
