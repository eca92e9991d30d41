"""Workout history and workout plan."""

import logging
from dataclasses import replace
from typing import Awaitable, Callable, Optional, Tuple

from ....core.exceptions import MappingError, RemoteReadError
from ...mutations.entities.reactive_state import ReactiveState
from ...remote.entities.query import RemoteQuery
from ..entities.mappers import WorkoutMapper, WorkoutPlanMapper, plan_payload
from ..entities.models import DayType, Workout, WorkoutPlan
from .base import WellnessService

logger = logging.getLogger(__name__)

WORKOUTS_TABLE = "workouts"
WORKOUT_PLANS_TABLE = "workout_plans"
HISTORY_RESOURCE = "workout_history"
PLAN_RESOURCE = "workout_plan"

PlanGenerator = Callable[[str], Awaitable[WorkoutPlan]]


def _decode_history(payload) -> Tuple[Workout, ...]:
    return tuple(WorkoutMapper.list_to_domain(payload))


def _decode_plan(payload) -> Optional[WorkoutPlan]:
    return WorkoutPlanMapper.to_domain(payload) if payload is not None else None


def plan_needs_regeneration(plan: Optional[WorkoutPlan]) -> bool:
    """True when there is no plan or every workout day in it is completed."""
    if not plan:
        return True
    completed = sum(1 for day in plan if day.is_completed)
    workout_days = sum(1 for day in plan if day.type is DayType.WORKOUT)
    return completed >= workout_days


class FitnessService(WellnessService):
    """Workout history (newest first) and the current workout plan."""

    def __init__(self, *args, **kwargs):
        self.history: ReactiveState[Tuple[Workout, ...]] = ReactiveState(())
        self.plan: ReactiveState[Optional[WorkoutPlan]] = ReactiveState(None)
        self._generating = False
        super().__init__(*args, **kwargs)

    def reset(self) -> None:
        self.history.set(())
        self.plan.set(None)

    @property
    def is_generating(self) -> bool:
        return self._generating

    async def load(self) -> bool:
        """Load history and plan through the cache.

        Returns False when nobody is signed in or the remote read failed; the
        values already shown stay in place.
        """
        history_key = self.session.key(HISTORY_RESOURCE)
        plan_key = self.session.key(PLAN_RESOURCE)
        if history_key is None or plan_key is None:
            self.reset()
            return False

        user_id = self.session.user_id

        async def fetch_history():
            query = (
                RemoteQuery.where(user_id=user_id)
                .ordered("created_at", descending=True)
                .window(0, self.settings.history_limit)
            )
            return await self.remote.read(WORKOUTS_TABLE, query)

        async def fetch_plan():
            row = await self.remote.read_single(
                WORKOUT_PLANS_TABLE, RemoteQuery.where(user_id=user_id).columns("plan")
            )
            return plan_payload(row)

        try:
            history = await self.cache.get_or_set(
                history_key, self.settings.ttl_history_ms, fetch_history, decode=_decode_history
            )
        except (RemoteReadError, MappingError) as e:
            logger.warning(f"Could not load workout history for {user_id}: {e.message}")
            return False
        self.history.set(history)

        try:
            plan = await self.cache.get_or_set(
                plan_key, self.settings.ttl_plan_ms, fetch_plan, decode=_decode_plan
            )
        except (RemoteReadError, MappingError) as e:
            logger.warning(f"Could not load workout plan for {user_id}: {e.message}")
            return False
        self.plan.set(plan)
        return True

    async def log_workout(self, workout: Workout) -> Workout:
        """Prepend a workout right away and swap in the stored row once saved."""
        user_id = self.session.require_user()
        pending = replace(workout, user_id=user_id)

        async def insert(history: Tuple[Workout, ...]) -> Tuple[Workout, ...]:
            row = await self.remote.write(WORKOUTS_TABLE, WorkoutMapper.to_record(pending))
            return (WorkoutMapper.to_domain(row),) + history[1:]

        history = await self.coordinator.mutate(
            self.history,
            lambda current: (pending,) + tuple(current or ()),
            insert,
            cache_key=self.session.key(HISTORY_RESOURCE),
            encode=WorkoutMapper.list_to_record,
            name="log_workout",
        )
        return history[0]

    async def mark_workout_complete(self, day: int) -> Optional[WorkoutPlan]:
        """Mark a plan day completed. Does nothing when no plan is loaded."""
        user_id = self.session.require_user()
        if not self.plan.value:
            return None

        async def save(plan: WorkoutPlan) -> None:
            await self.remote.write(
                WORKOUT_PLANS_TABLE,
                {"plan": WorkoutPlanMapper.to_record(plan)},
                match={"user_id": user_id},
            )
            return None

        return await self.coordinator.mutate(
            self.plan,
            lambda plan: tuple(d.completed() if d.day == day else d for d in plan),
            save,
            cache_key=self.session.key(PLAN_RESOURCE),
            encode=WorkoutPlanMapper.to_record,
            name="mark_workout_complete",
        )

    async def regenerate_plan(self, generator: PlanGenerator, force: bool = False) -> Optional[WorkoutPlan]:
        """Replace the plan with a freshly generated one.

        Skipped while a generation is running, and unless forced, while the
        current plan still has workout days left to complete.
        """
        user_id = self.session.require_user()
        if self._generating:
            return None
        if not force and not plan_needs_regeneration(self.plan.value):
            logger.debug("Current workout plan still has incomplete days, not regenerating")
            return self.plan.value

        self._generating = True
        try:
            new_plan = tuple(await generator(user_id))

            async def save(plan: WorkoutPlan) -> None:
                await self.remote.write(
                    WORKOUT_PLANS_TABLE,
                    {"user_id": user_id, "plan": WorkoutPlanMapper.to_record(plan)},
                    on_conflict="user_id",
                )
                return None

            return await self.coordinator.mutate(
                self.plan,
                lambda _: new_plan,
                save,
                cache_key=self.session.key(PLAN_RESOURCE),
                encode=WorkoutPlanMapper.to_record,
                name="regenerate_workout_plan",
            )
        finally:
            self._generating = False
