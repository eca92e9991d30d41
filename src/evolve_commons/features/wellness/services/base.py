"""Shared wiring for wellness feature services."""

import logging
from typing import Optional

from ....config.settings import EvolveSettings, get_settings
from ...cache.services.cache_store import CacheStore
from ...mutations.services.mutation_coordinator import OptimisticMutationCoordinator
from ...remote.entities.protocols import RemoteDataService
from ..entities.session import UserSession

logger = logging.getLogger(__name__)


class WellnessService:
    """Base class holding the cache, remote service and coordinator.

    Subclasses implement ``reset`` to clear their state; it runs whenever the
    signed-in user changes.
    """

    def __init__(
        self,
        session: UserSession,
        cache: CacheStore,
        remote: RemoteDataService,
        coordinator: Optional[OptimisticMutationCoordinator] = None,
        settings: Optional[EvolveSettings] = None,
    ):
        self.session = session
        self.cache = cache
        self.remote = remote
        self.settings = settings or get_settings()
        self.coordinator = coordinator or OptimisticMutationCoordinator(
            cache, serialize_per_key=self.settings.serialize_mutations
        )
        self._unsubscribe = session.user.subscribe(self._on_user_changed)

    def _on_user_changed(self, user_id: Optional[str]) -> None:
        logger.debug(f"{type(self).__name__} resetting for user {user_id}")
        self.reset()

    def reset(self) -> None:
        raise NotImplementedError

    def close(self) -> None:
        """Stop following session changes."""
        self._unsubscribe()
