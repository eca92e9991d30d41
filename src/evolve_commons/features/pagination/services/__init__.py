"""Pagination services."""

from .feed_paginator import FeedPaginator, PageFetcher

__all__ = ["FeedPaginator", "PageFetcher"]
