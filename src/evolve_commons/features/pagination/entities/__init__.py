"""Pagination entities."""

from .feed_state import FeedPageRequest, FeedState

__all__ = ["FeedPageRequest", "FeedState"]
