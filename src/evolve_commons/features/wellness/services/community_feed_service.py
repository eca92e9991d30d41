"""Community achievement feed."""

import logging
from typing import Iterable, List, Optional, Set

from ...pagination.entities.feed_state import FeedPageRequest, FeedState
from ...pagination.services.feed_paginator import FeedPaginator
from ...remote.entities.query import RemoteQuery
from ..entities.mappers import AchievementFeedMapper
from ..entities.models import AchievementFeedItem
from .base import WellnessService

logger = logging.getLogger(__name__)

EARNED_TABLE = "earned_achievements"
FEED_RESOURCE = "community_feed"
FEED_COLUMNS = "id, earned_at, achievement_id, profiles (name, profile_picture_url, gender)"


class CommunityFeedService(WellnessService):
    """Newest-first feed of achievements earned by everyone.

    Rows without a visible profile, or for achievements this client does not
    know about (when ``known_achievements`` is given), are left out.
    """

    def __init__(self, *args, known_achievements: Optional[Iterable[str]] = None, **kwargs):
        self._known_achievements: Optional[Set[str]] = (
            set(known_achievements) if known_achievements is not None else None
        )
        self.paginator: Optional[FeedPaginator[AchievementFeedItem]] = None
        super().__init__(*args, **kwargs)

    def reset(self) -> None:
        if self.paginator is not None:
            self.paginator.reset()
        self.paginator = None

    @property
    def state(self) -> FeedState[AchievementFeedItem]:
        return self.paginator.state if self.paginator is not None else FeedState()

    async def fetch_page(self, request: FeedPageRequest) -> List[AchievementFeedItem]:
        query = RemoteQuery(
            select=FEED_COLUMNS,
            order_by="earned_at",
            descending=True,
            limit=request.limit,
            offset=request.offset,
        )
        rows = await self.remote.read(EARNED_TABLE, query)

        items = []
        for row in rows:
            item = AchievementFeedMapper.from_earned_row(row)
            if item is None:
                continue
            if self._known_achievements is not None and item.achievement_id not in self._known_achievements:
                continue
            items.append(item)
        return items

    def _build_paginator(self) -> FeedPaginator[AchievementFeedItem]:
        return FeedPaginator(
            self.fetch_page,
            page_size=self.settings.feed_page_size,
            cache=self.cache,
            cache_key=self.session.key(FEED_RESOURCE),
            cache_ttl_ms=self.settings.ttl_feed_ms,
            encode=AchievementFeedMapper.to_record,
            decode=AchievementFeedMapper.to_domain,
        )

    async def load(self) -> FeedState[AchievementFeedItem]:
        """Load the first page; the cached copy renders first when fresh."""
        if self.paginator is None:
            self.paginator = self._build_paginator()
        return await self.paginator.load_initial()

    async def load_more(self) -> FeedState[AchievementFeedItem]:
        if self.paginator is None:
            return self.state
        return await self.paginator.load_more()
