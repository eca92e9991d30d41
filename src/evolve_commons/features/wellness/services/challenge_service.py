"""Personal challenges and the achievements a user has earned."""

import logging
from typing import FrozenSet, Iterable, Tuple, Union

from ....core.exceptions import MappingError, RemoteReadError
from ....utils.datetime import utc_now
from ...mutations.entities.reactive_state import ReactiveState
from ...remote.entities.query import RemoteQuery
from ..entities.mappers import ChallengeMapper, achievement_ids
from ..entities.models import Challenge, ChallengeType
from .base import WellnessService

logger = logging.getLogger(__name__)

CHALLENGES_TABLE = "challenges"
EARNED_TABLE = "earned_achievements"
CHALLENGES_RESOURCE = "challenges"
EARNED_RESOURCE = "earned_achievements"


def _decode_challenges(payload) -> Tuple[Challenge, ...]:
    return tuple(ChallengeMapper.list_to_domain(payload))


class ChallengeService(WellnessService):
    """Challenges (newest first) and the ids of earned achievements."""

    def __init__(self, *args, **kwargs):
        self.challenges: ReactiveState[Tuple[Challenge, ...]] = ReactiveState(())
        self.earned_achievement_ids: ReactiveState[FrozenSet[str]] = ReactiveState(frozenset())
        super().__init__(*args, **kwargs)

    def reset(self) -> None:
        self.challenges.set(())
        self.earned_achievement_ids.set(frozenset())

    async def load(self) -> bool:
        """Load earned achievements and challenges through the cache.

        Each one is published as soon as it is loaded; False when nobody is
        signed in or either read failed.
        """
        earned_key = self.session.key(EARNED_RESOURCE)
        challenges_key = self.session.key(CHALLENGES_RESOURCE)
        if earned_key is None or challenges_key is None:
            self.reset()
            return False

        user_id = self.session.user_id

        async def fetch_earned():
            rows = await self.remote.read(
                EARNED_TABLE, RemoteQuery.where(user_id=user_id).columns("achievement_id")
            )
            return [row.get("achievement_id") for row in rows]

        async def fetch_challenges():
            query = RemoteQuery.where(user_id=user_id).ordered("created_at", descending=True)
            return await self.remote.read(CHALLENGES_TABLE, query)

        try:
            earned = await self.cache.get_or_set(
                earned_key, self.settings.ttl_history_ms, fetch_earned, decode=achievement_ids
            )
        except (RemoteReadError, MappingError) as e:
            logger.warning(f"Could not load earned achievements for {user_id}: {e.message}")
            return False
        self.earned_achievement_ids.set(earned)

        try:
            challenges = await self.cache.get_or_set(
                challenges_key, self.settings.ttl_feed_ms, fetch_challenges, decode=_decode_challenges
            )
        except (RemoteReadError, MappingError) as e:
            logger.warning(f"Could not load challenges for {user_id}: {e.message}")
            return False
        self.challenges.set(challenges)
        return True

    async def add_challenge(
        self,
        title: str,
        description: str,
        challenge_type: Union[ChallengeType, str],
        metric: str,
        goal: float,
        is_ai_generated: bool = False,
    ) -> Challenge:
        """Prepend a new challenge at zero progress and swap in the stored row once saved.

        Raises:
            ValueError: Unknown challenge type
            RemoteWriteError: The insert failed; the list and cache are restored
        """
        user_id = self.session.require_user()
        pending = Challenge(
            title=title,
            description=description,
            type=ChallengeType(challenge_type),
            metric=metric,
            goal=goal,
            is_ai_generated=is_ai_generated,
            user_id=user_id,
            created_at=utc_now(),
        )

        async def insert(challenges: Tuple[Challenge, ...]) -> Tuple[Challenge, ...]:
            row = await self.remote.write(CHALLENGES_TABLE, ChallengeMapper.to_record(pending))
            return (ChallengeMapper.to_domain(row),) + challenges[1:]

        challenges = await self.coordinator.mutate(
            self.challenges,
            lambda current: (pending,) + tuple(current or ()),
            insert,
            cache_key=self.session.key(CHALLENGES_RESOURCE),
            encode=ChallengeMapper.list_to_record,
            name="add_challenge",
        )
        return challenges[0]

    async def record_achievements(self, ids: Iterable[str]) -> FrozenSet[str]:
        """Mark achievements earned. Ids already earned are skipped.

        Each new id is upserted on (user_id, achievement_id) so repeating a
        partly failed call is safe.
        """
        user_id = self.session.require_user()
        earned = self.earned_achievement_ids.value
        new_ids = [achievement_id for achievement_id in dict.fromkeys(ids) if achievement_id not in earned]
        if not new_ids:
            return earned

        earned_at = utc_now().isoformat()

        async def save(_: FrozenSet[str]) -> None:
            for achievement_id in new_ids:
                await self.remote.write(
                    EARNED_TABLE,
                    {"user_id": user_id, "achievement_id": achievement_id, "earned_at": earned_at},
                    on_conflict="user_id, achievement_id",
                )
            return None

        result = await self.coordinator.mutate(
            self.earned_achievement_ids,
            lambda current: frozenset(current or ()) | frozenset(new_ids),
            save,
            cache_key=self.session.key(EARNED_RESOURCE),
            encode=sorted,
            name="record_achievements",
        )
        logger.info(f"User {user_id} earned {', '.join(new_ids)}")
        return result
