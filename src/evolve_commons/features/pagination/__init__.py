"""Feed pagination feature."""

from .entities import FeedPageRequest, FeedState
from .services import FeedPaginator, PageFetcher

__all__ = ["FeedPageRequest", "FeedState", "FeedPaginator", "PageFetcher"]
