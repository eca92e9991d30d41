"""Offset paginator for newest-first feeds."""

import logging
from typing import Any, Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar, Union

from ...cache.entities.cache_key import CacheKey
from ...cache.services.cache_store import CacheStore
from ...mutations.entities.reactive_state import ReactiveState
from ..entities.feed_state import FeedPageRequest, FeedState

logger = logging.getLogger(__name__)

T = TypeVar('T')

PageFetcher = Callable[[FeedPageRequest], Awaitable[Sequence[T]]]


class FeedPaginator(Generic[T]):
    """Loads a feed page by page and keeps the rendered list in ``feed``.

    The first page may be served from the cache while the remote fetch runs;
    the remote page then replaces the list outright. Later pages are fetched
    at ``offset = len(items)`` and appended. A ``load_more`` issued while one
    is already running is ignored, and pages that arrive after a newer
    ``load_initial`` are dropped.

    Remote failures keep the items already shown and are reported through
    ``FeedState.error``.
    """

    def __init__(
        self,
        fetch_page: PageFetcher,
        page_size: int,
        cache: Optional[CacheStore] = None,
        cache_key: Optional[Union[CacheKey, str]] = None,
        cache_ttl_ms: Optional[int] = None,
        encode: Optional[Callable[[T], Any]] = None,
        decode: Optional[Callable[[Any], T]] = None,
    ):
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        if cache is not None and cache_key is not None and cache_ttl_ms is None:
            raise ValueError("cache_ttl_ms is required when caching the first page")

        self._fetch_page = fetch_page
        self._page_size = page_size
        self._cache = cache
        self._cache_key = str(cache_key) if cache_key is not None else None
        self._cache_ttl_ms = cache_ttl_ms
        self._encode = encode
        self._decode = decode

        self._generation = 0
        self._more_token: Optional[object] = None
        self.feed: ReactiveState[FeedState[T]] = ReactiveState(FeedState())

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def state(self) -> FeedState[T]:
        return self.feed.value

    @property
    def items(self) -> List[T]:
        return list(self.state.items)

    @property
    def has_more(self) -> bool:
        return self.state.has_more

    @property
    def is_loading_more(self) -> bool:
        return self._more_token is not None

    def _has_more(self, page: Sequence[T]) -> bool:
        return len(page) >= self._page_size

    def _publish(self, **changes) -> FeedState[T]:
        new_state = self.state.evolve(**changes)
        self.feed.set(new_state)
        return new_state

    def _decode_page(self, payload: Any) -> List[T]:
        if not isinstance(payload, list):
            raise TypeError(f"Cached feed page must be a list, got {type(payload).__name__}")
        if self._decode is None:
            return payload
        return [self._decode(item) for item in payload]

    def _encode_page(self, page: Sequence[T]) -> List[Any]:
        if self._encode is None:
            return list(page)
        return [self._encode(item) for item in page]

    @property
    def _caching(self) -> bool:
        return self._cache is not None and self._cache_key is not None

    async def load_initial(self) -> FeedState[T]:
        """Load the first page, rendering a cached copy first when there is one."""
        self._generation += 1
        generation = self._generation
        self._more_token = None
        self._publish(is_loading=True, is_loading_more=False, error=None)

        if self._caching:
            cached = await self._cache.get(self._cache_key, self._cache_ttl_ms, decode=self._decode_page)
            if cached is not None and generation == self._generation:
                logger.debug(f"Rendering {len(cached)} cached feed items from {self._cache_key}")
                self._publish(items=tuple(cached), has_more=self._has_more(cached), from_cache=True)

        try:
            page = list(await self._fetch_page(FeedPageRequest(offset=0, limit=self._page_size)))
        except Exception as e:
            logger.warning(f"Failed to load feed: {e}")
            if generation == self._generation:
                return self._publish(is_loading=False, error=e)
            return self.state

        if generation != self._generation:
            logger.debug("Discarding superseded first page")
            return self.state

        new_state = self._publish(
            items=tuple(page),
            has_more=self._has_more(page),
            is_loading=False,
            from_cache=False,
            error=None,
        )
        if self._caching:
            await self._cache.set(self._cache_key, self._encode_page(page))
        return new_state

    async def load_more(self) -> FeedState[T]:
        """Append the next page. Ignored while a page is loading or when nothing is left."""
        if self._more_token is not None or self.state.is_loading or not self.state.has_more:
            return self.state

        token = object()
        self._more_token = token
        generation = self._generation
        request = FeedPageRequest(offset=len(self.state.items), limit=self._page_size)
        self._publish(is_loading_more=True, error=None)

        try:
            page = list(await self._fetch_page(request))
        except Exception as e:
            logger.warning(f"Failed to load more feed items at offset {request.offset}: {e}")
            if self._more_token is token:
                self._more_token = None
                return self._publish(is_loading_more=False, error=e)
            return self.state

        if self._more_token is not token or generation != self._generation:
            logger.debug(f"Discarding stale page at offset {request.offset}")
            return self.state

        self._more_token = None
        return self._publish(
            items=self.state.items + tuple(page),
            has_more=self._has_more(page),
            is_loading_more=False,
        )

    def reset(self) -> None:
        """Forget everything loaded; in-flight pages are discarded."""
        self._generation += 1
        self._more_token = None
        self.feed.set(FeedState())
