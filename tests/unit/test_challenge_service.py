"""Tests for ChallengeService."""

import pytest

from evolve_commons.core.exceptions import RemoteWriteError
from evolve_commons.features.wellness.entities.models import ChallengeType
from evolve_commons.features.wellness.services.challenge_service import (
    CHALLENGES_RESOURCE,
    EARNED_RESOURCE,
    ChallengeService,
)


@pytest.fixture
def challenge_rows(user_id):
    base = {"user_id": user_id, "description": "d", "progress": 0, "is_completed": False}
    return [
        {
            **base,
            "id": "c-1",
            "title": "Walk",
            "type": "fitness",
            "metric": "steps",
            "goal": 10000,
            "created_at": "2024-05-01T08:00:00+00:00",
        },
        {
            **base,
            "id": "c-2",
            "title": "Hydrate",
            "type": "nutrition",
            "metric": "glasses",
            "goal": 8,
            "created_at": "2024-05-03T08:00:00+00:00",
        },
    ]


@pytest.fixture
def earned_rows(user_id):
    return [
        {"id": 1, "user_id": user_id, "achievement_id": "first_workout", "earned_at": "2024-05-01T09:00:00Z"},
        {"id": 2, "user_id": "someone-else", "achievement_id": "streak_7", "earned_at": "2024-05-02T09:00:00Z"},
    ]


@pytest.fixture
def challenges(session, cache, settings, make_remote, challenge_rows, earned_rows):
    remote = make_remote({"challenges": challenge_rows, "earned_achievements": earned_rows})
    return ChallengeService(session, cache, remote, settings=settings)


class TestLoad:

    @pytest.mark.asyncio
    async def test_load_newest_first(self, challenges, cache, session, settings):
        assert await challenges.load() is True

        assert [c.title for c in challenges.challenges.value] == ["Hydrate", "Walk"]
        assert challenges.earned_achievement_ids.value == frozenset({"first_workout"})
        cached = await cache.get(session.key(EARNED_RESOURCE), settings.ttl_history_ms)
        assert cached == ["first_workout"]

    @pytest.mark.asyncio
    async def test_second_load_served_from_cache(self, challenges):
        await challenges.load()
        await challenges.load()

        assert len(challenges.remote.read_calls) == 2

    @pytest.mark.asyncio
    async def test_earned_kept_when_challenges_read_fails(self, challenges, remote_read_error):
        read = challenges.remote.read

        async def failing_challenges(resource, query=None):
            if resource == "challenges":
                raise remote_read_error
            return await read(resource, query)

        challenges.remote.read = failing_challenges

        assert await challenges.load() is False
        assert challenges.earned_achievement_ids.value == frozenset({"first_workout"})
        assert challenges.challenges.value == ()


class TestAddChallenge:

    @pytest.mark.asyncio
    async def test_prepends_stored_challenge(self, challenges, cache, session, settings, user_id):
        await challenges.load()

        saved = await challenges.add_challenge("Meditate", "10 minutes", "mindfulness", "minutes", 70)

        assert saved.id == "challenges-1"
        assert saved.type is ChallengeType.MINDFULNESS
        assert saved.progress == 0
        assert saved.is_completed is False
        assert [c.title for c in challenges.challenges.value] == ["Meditate", "Hydrate", "Walk"]
        _, payload, _, _ = challenges.remote.write_calls[-1]
        assert payload["user_id"] == user_id
        cached = await cache.get(session.key(CHALLENGES_RESOURCE), settings.ttl_feed_ms)
        assert [record["title"] for record in cached] == ["Meditate", "Hydrate", "Walk"]

    @pytest.mark.asyncio
    async def test_unknown_type(self, challenges):
        await challenges.load()

        with pytest.raises(ValueError):
            await challenges.add_challenge("Sleep", "8 hours", "sleep", "hours", 8)
        assert challenges.remote.write_calls == []

    @pytest.mark.asyncio
    async def test_failed_insert_rolls_back(self, challenges, remote_write_error):
        await challenges.load()
        challenges.remote.fail_writes = remote_write_error

        with pytest.raises(RemoteWriteError):
            await challenges.add_challenge("Meditate", "10 minutes", ChallengeType.MINDFULNESS, "minutes", 70)

        assert [c.title for c in challenges.challenges.value] == ["Hydrate", "Walk"]


class TestRecordAchievements:

    @pytest.mark.asyncio
    async def test_only_new_ids_written(self, challenges, cache, session, settings, user_id):
        await challenges.load()

        earned = await challenges.record_achievements(["first_workout", "streak_7", "streak_7"])

        assert earned == frozenset({"first_workout", "streak_7"})
        assert len(challenges.remote.write_calls) == 1
        resource, payload, _, on_conflict = challenges.remote.write_calls[0]
        assert resource == "earned_achievements"
        assert payload["achievement_id"] == "streak_7"
        assert payload["user_id"] == user_id
        assert on_conflict == "user_id, achievement_id"
        cached = await cache.get(session.key(EARNED_RESOURCE), settings.ttl_history_ms)
        assert cached == ["first_workout", "streak_7"]

    @pytest.mark.asyncio
    async def test_nothing_new(self, challenges):
        await challenges.load()

        earned = await challenges.record_achievements(["first_workout"])

        assert earned == frozenset({"first_workout"})
        assert challenges.remote.write_calls == []

    @pytest.mark.asyncio
    async def test_failed_write_rolls_back(self, challenges, remote_write_error):
        await challenges.load()
        challenges.remote.fail_writes = remote_write_error

        with pytest.raises(RemoteWriteError):
            await challenges.record_achievements(["streak_7"])

        assert challenges.earned_achievement_ids.value == frozenset({"first_workout"})
