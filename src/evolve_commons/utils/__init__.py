"""Shared utilities."""

from .datetime import utc_now, now_ms, parse_datetime, parse_date

__all__ = ["utc_now", "now_ms", "parse_datetime", "parse_date"]
