"""Authenticated user session as seen by the wellness services."""

import logging
from typing import Optional, Union
from uuid import UUID

from ....core.exceptions import NotAuthenticatedError
from ...cache.entities.cache_key import CacheKey
from ...cache.services.cache_store import CacheStore
from ...mutations.entities.reactive_state import ReactiveState

logger = logging.getLogger(__name__)


class UserSession:
    """Holds the signed-in user id and builds that user's cache keys.

    Services subscribe to ``user`` to reset their state when the user changes.
    """

    def __init__(self, cache: CacheStore, user_id: Union[str, UUID, None] = None):
        self._cache = cache
        self.user: ReactiveState[Optional[str]] = ReactiveState(str(user_id) if user_id else None)

    @property
    def user_id(self) -> Optional[str]:
        return self.user.value

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def require_user(self) -> str:
        """Return the user id or raise NotAuthenticatedError."""
        if self.user_id is None:
            raise NotAuthenticatedError("No user is signed in")
        return self.user_id

    def key(self, resource: str) -> Optional[CacheKey]:
        """Cache key for resource, or None when nobody is signed in."""
        return self._cache.key_for(self.user_id, resource)

    def sign_in(self, user_id: Union[str, UUID]) -> None:
        if str(user_id) != self.user_id:
            self.user.set(str(user_id))

    async def sign_out(self) -> int:
        """Forget the user and drop every cache entry they own."""
        user_id = self.user_id
        if user_id is None:
            return 0
        self.user.set(None)
        removed = await self._cache.clear_user_cache(user_id)
        logger.info(f"User {user_id} signed out")
        return removed
