"""Pytest configuration and fixtures for evolve-commons tests."""

import copy
from typing import Any, Dict, List, Optional

import pytest

from evolve_commons.config.settings import EvolveSettings, MINUTE_MS
from evolve_commons.core.exceptions import RemoteReadError, RemoteWriteError
from evolve_commons.features.cache.adapters.memory_store import MemoryKeyValueStore
from evolve_commons.features.cache.services.cache_store import CacheStore
from evolve_commons.features.mutations.services.mutation_coordinator import OptimisticMutationCoordinator
from evolve_commons.features.remote.entities.query import RemoteQuery
from evolve_commons.features.wellness.entities.session import UserSession

USER_ID = "0b7d3c1e-5a2f-4c9e-8d61-2f4e9a7c1b30"


class FakeClock:
    """Settable epoch-millisecond clock."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int = 0, minutes: int = 0) -> None:
        self.now += ms + minutes * MINUTE_MS


class FakeRemoteDataService:
    """In-memory remote data service with equality filters, ordering and windows."""

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables: Dict[str, List[Dict[str, Any]]] = copy.deepcopy(tables or {})
        self.read_calls: List[tuple] = []
        self.write_calls: List[tuple] = []
        self.fail_reads: Optional[Exception] = None
        self.fail_writes: Optional[Exception] = None
        self._next_id = 1

    def _matches(self, row: Dict[str, Any], filters: Dict[str, Any]) -> bool:
        return all(row.get(column) == value for column, value in filters.items())

    async def read(self, resource: str, query: Optional[RemoteQuery] = None) -> List[Dict[str, Any]]:
        query = query or RemoteQuery()
        self.read_calls.append((resource, query))
        if self.fail_reads is not None:
            raise self.fail_reads

        rows = [row for row in self.tables.get(resource, []) if self._matches(row, query.filters)]
        if query.order_by:
            rows.sort(key=lambda row: row.get(query.order_by), reverse=query.descending)
        start = query.offset or 0
        end = start + query.limit if query.limit is not None else None
        return copy.deepcopy(rows[start:end])

    async def read_single(self, resource: str, query: Optional[RemoteQuery] = None) -> Optional[Dict[str, Any]]:
        query = query or RemoteQuery()
        rows = await self.read(resource, query.window(query.offset or 0, 1))
        return rows[0] if rows else None

    async def write(self, resource, payload, match=None, on_conflict=None) -> Dict[str, Any]:
        self.write_calls.append((resource, copy.deepcopy(payload), match, on_conflict))
        if self.fail_writes is not None:
            raise self.fail_writes

        table = self.tables.setdefault(resource, [])
        if match:
            matching = [row for row in table if self._matches(row, match)]
            if not matching:
                raise RemoteWriteError(f"Write to {resource} matched no rows", resource=resource)
            for row in matching:
                row.update(copy.deepcopy(payload))
            return copy.deepcopy(matching[0])

        if on_conflict:
            columns = [c.strip() for c in on_conflict.split(",")]
            for row in table:
                if all(row.get(c) == payload.get(c) for c in columns):
                    row.update(copy.deepcopy(payload))
                    return copy.deepcopy(row)

        row = copy.deepcopy(payload)
        row.setdefault("id", f"{resource}-{self._next_id}")
        row.setdefault("created_at", "2024-05-01T12:00:00+00:00")
        self._next_id += 1
        table.append(row)
        return copy.deepcopy(row)


@pytest.fixture
def clock():
    """Fake clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def store():
    """Empty in-memory persistent store."""
    return MemoryKeyValueStore()


@pytest.fixture
def cache(store, clock):
    """Cache store over the in-memory store and fake clock."""
    return CacheStore(store, namespace="evolve", clock=clock)


@pytest.fixture
def settings():
    """Default settings, ignoring any local .env file."""
    return EvolveSettings(_env_file=None)


@pytest.fixture
def remote():
    """Empty fake remote data service."""
    return FakeRemoteDataService()


@pytest.fixture
def session(cache):
    """Session with a signed-in user."""
    return UserSession(cache, user_id=USER_ID)


@pytest.fixture
def coordinator(cache):
    """Mutation coordinator writing through the cache."""
    return OptimisticMutationCoordinator(cache)


@pytest.fixture
def remote_read_error():
    return RemoteReadError("backend unavailable", resource="test", status_code=503)


@pytest.fixture
def remote_write_error():
    return RemoteWriteError("backend rejected write", resource="test", status_code=500)


@pytest.fixture
def user_id():
    return USER_ID


@pytest.fixture
def make_remote():
    """Build a fake remote data service preloaded with tables."""
    return FakeRemoteDataService


def _meal_record(name: str, calories: float, is_logged: bool = False) -> Dict[str, Any]:
    return {
        "name": name,
        "time": "08:00",
        "macros": {"calories": calories, "protein": 20, "carbs": 30, "fat": 10},
        "ingredients": ["oats", "milk"],
        "instructions": ["Mix", "Serve"],
        "is_logged": is_logged,
    }


@pytest.fixture
def workout_record():
    """A stored workouts row."""
    return {
        "id": "w-1",
        "user_id": USER_ID,
        "name": "Morning Run",
        "type": "Cardio",
        "duration": 30,
        "description": "Easy pace",
        "date": "2024-05-01",
        "video_url": None,
        "created_at": "2024-05-01T07:00:00+00:00",
    }


@pytest.fixture
def workout_plan_record():
    """A three-day workout plan with two workout days."""
    workout = {"name": "Squats", "type": "Strength", "duration": 40, "description": "5x5"}
    return [
        {"day": 1, "type": "workout", "is_completed": False, "workout": workout},
        {"day": 2, "type": "rest", "is_completed": False, "workout": None},
        {"day": 3, "type": "workout", "is_completed": False, "workout": {**workout, "name": "Deadlifts"}},
    ]


@pytest.fixture
def meal_plan_record():
    """A two-day weekly meal plan; only Monday has a snack."""
    return [
        {
            "day_of_week": "Monday",
            "breakfast": _meal_record("Porridge", 350),
            "lunch": _meal_record("Salad", 500),
            "dinner": _meal_record("Salmon", 650),
            "snack": _meal_record("Apple", 90),
            "daily_totals": {"calories": 1590, "protein": 80, "carbs": 120, "fat": 40},
        },
        {
            "day_of_week": "Tuesday",
            "breakfast": _meal_record("Eggs", 300),
            "lunch": _meal_record("Wrap", 550),
            "dinner": _meal_record("Curry", 700),
            "snack": None,
            "daily_totals": {"calories": 1550, "protein": 60, "carbs": 90, "fat": 30},
        },
    ]


@pytest.fixture
def profile_record():
    """A stored profiles row for an onboarded user."""
    return {
        "id": USER_ID,
        "name": "Ada",
        "email": "ada@example.com",
        "username": None,
        "age": 34,
        "gender": "female",
        "height": 168.0,
        "weight": 71.0,
        "activity_level": "moderate",
        "goal": "maintain",
        "dietary_preferences": ["vegetarian"],
        "nationality": None,
        "last_period_start_date": "2024-04-20",
        "cycle_length": 28,
        "onboarding_date": "2024-04-01",
        "profile_picture_url": None,
    }
