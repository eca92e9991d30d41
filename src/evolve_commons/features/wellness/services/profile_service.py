"""The signed-in user's profile."""

import logging
from dataclasses import fields, replace
from typing import Any, Optional

from ....core.exceptions import MappingError, RemoteReadError
from ...mutations.entities.reactive_state import ReactiveState
from ...remote.entities.query import RemoteQuery
from ..entities.mappers import ProfileMapper
from ..entities.models import UserProfile
from .base import WellnessService

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"
PROFILE_RESOURCE = "profile"

_PROFILE_FIELDS = frozenset(f.name for f in fields(UserProfile))


def _decode_profile(payload) -> Optional[UserProfile]:
    return ProfileMapper.to_domain(payload) if payload is not None else None


class ProfileService(WellnessService):
    """Profile of the signed-in user, cached for a few minutes.

    A user without a profile row is not cached, so the row shows up as soon
    as onboarding creates it.
    """

    def __init__(self, *args, **kwargs):
        self.profile: ReactiveState[Optional[UserProfile]] = ReactiveState(None)
        super().__init__(*args, **kwargs)

    def reset(self) -> None:
        self.profile.set(None)

    @property
    def is_onboarding_complete(self) -> bool:
        profile = self.profile.value
        return profile is not None and profile.is_onboarded

    async def load(self) -> bool:
        """Load the profile. False when nobody is signed in, no profile exists or the read failed."""
        key = self.session.key(PROFILE_RESOURCE)
        if key is None:
            self.reset()
            return False

        cached = await self.cache.get(key, self.settings.ttl_profile_ms, decode=_decode_profile)
        if cached is not None:
            self.profile.set(cached)
            return True

        user_id = self.session.user_id
        try:
            row = await self.remote.read_single(PROFILES_TABLE, RemoteQuery.where(id=user_id))
            profile = _decode_profile(row)
        except (RemoteReadError, MappingError) as e:
            logger.warning(f"Could not load profile for {user_id}: {e.message}")
            return False

        if profile is None:
            logger.info(f"No profile yet for {user_id}")
            self.profile.set(None)
            return False

        await self.cache.set(key, ProfileMapper.to_record(profile))
        self.profile.set(profile)
        return True

    async def update_profile(self, **changes: Any) -> Optional[UserProfile]:
        """Apply changes to the loaded profile and PATCH only those columns.

        ``id`` and ``email`` are never changed. Returns None when no profile
        is loaded.

        Raises:
            ValueError: A change names a field the profile does not have
            RemoteWriteError: The update failed; profile and cache are restored
        """
        user_id = self.session.require_user()
        if self.profile.value is None:
            return None

        unknown = set(changes) - _PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Unknown profile fields: {', '.join(sorted(unknown))}")
        for column in ProfileMapper.READ_ONLY:
            changes.pop(column, None)
        if "dietary_preferences" in changes:
            changes["dietary_preferences"] = tuple(changes["dietary_preferences"] or ())
        if not changes:
            return self.profile.value

        loaded = self.profile.value

        async def save(profile: UserProfile) -> UserProfile:
            record = ProfileMapper.to_update(profile)
            row = await self.remote.write(
                PROFILES_TABLE,
                {column: record[column] for column in changes},
                match={"id": user_id},
            )
            return ProfileMapper.to_domain(row)

        return await self.coordinator.mutate(
            self.profile,
            lambda current: replace(current or loaded, **changes),
            save,
            cache_key=self.session.key(PROFILE_RESOURCE),
            encode=ProfileMapper.to_record,
            name="update_profile",
        )
