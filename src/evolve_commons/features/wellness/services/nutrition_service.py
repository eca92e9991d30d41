"""Weekly meal plan."""

import logging
from typing import Awaitable, Callable, Optional

from ....core.exceptions import MappingError, RemoteReadError
from ....utils.datetime import utc_now
from ...mutations.entities.reactive_state import ReactiveState
from ...remote.entities.query import RemoteQuery
from ..entities.mappers import MealPlanMapper, plan_payload
from ..entities.models import MealPlanMeal, MealSlot, WeeklyMealPlan
from .base import WellnessService

logger = logging.getLogger(__name__)

MEALS_TABLE = "meals"
MEAL_PLANS_TABLE = "meal_plans"
PLAN_RESOURCE = "meal_plan"

MealPlanGenerator = Callable[[str], Awaitable[WeeklyMealPlan]]


def _decode_plan(payload) -> Optional[WeeklyMealPlan]:
    return MealPlanMapper.to_domain(payload) if payload is not None else None


class NutritionService(WellnessService):
    """The signed-in user's weekly meal plan."""

    def __init__(self, *args, **kwargs):
        self.meal_plan: ReactiveState[Optional[WeeklyMealPlan]] = ReactiveState(None)
        self._generating = False
        super().__init__(*args, **kwargs)

    def reset(self) -> None:
        self.meal_plan.set(None)

    async def load(self) -> bool:
        """Load the meal plan through the cache. False when nothing fresh was loaded."""
        key = self.session.key(PLAN_RESOURCE)
        if key is None:
            self.reset()
            return False

        user_id = self.session.user_id

        async def fetch_plan():
            row = await self.remote.read_single(
                MEAL_PLANS_TABLE, RemoteQuery.where(user_id=user_id).columns("plan")
            )
            return plan_payload(row)

        try:
            plan = await self.cache.get_or_set(key, self.settings.ttl_plan_ms, fetch_plan, decode=_decode_plan)
        except (RemoteReadError, MappingError) as e:
            logger.warning(f"Could not load meal plan for {user_id}: {e.message}")
            return False

        self.meal_plan.set(plan)
        return True

    def _meal_record(self, user_id: str, slot: MealSlot, meal: MealPlanMeal) -> dict:
        return {
            "user_id": user_id,
            "date": utc_now().date().isoformat(),
            "meal_type": slot.value.capitalize(),
            "name": meal.name,
            "calories": meal.macros.calories,
            "protein": meal.macros.protein,
            "carbs": meal.macros.carbs,
            "fat": meal.macros.fat,
            "ingredients": list(meal.ingredients),
            "instructions": list(meal.instructions),
        }

    async def mark_meal_logged(self, day_of_week: str, slot: MealSlot) -> Optional[WeeklyMealPlan]:
        """Log a planned meal and flag it in the plan.

        Does nothing when there is no plan, the day is not in it, the slot is
        empty or the meal is already logged.
        """
        user_id = self.session.require_user()
        plan = self.meal_plan.value
        if not plan:
            return None

        day = next((d for d in plan if d.day_of_week == day_of_week), None)
        meal = day.meal(slot) if day else None
        if meal is None or meal.is_logged:
            return None

        async def save(updated: WeeklyMealPlan) -> None:
            await self.remote.write(MEALS_TABLE, self._meal_record(user_id, slot, meal))
            await self.remote.write(
                MEAL_PLANS_TABLE,
                {"plan": MealPlanMapper.to_record(updated)},
                match={"user_id": user_id},
            )
            return None

        return await self.coordinator.mutate(
            self.meal_plan,
            lambda current: tuple(
                d.with_meal(slot, meal.logged()) if d.day_of_week == day_of_week else d
                for d in current
            ),
            save,
            cache_key=self.session.key(PLAN_RESOURCE),
            encode=MealPlanMapper.to_record,
            name="mark_meal_logged",
        )

    async def regenerate_plan(self, generator: MealPlanGenerator) -> Optional[WeeklyMealPlan]:
        """Replace the meal plan with a freshly generated one."""
        user_id = self.session.require_user()
        if self._generating:
            return None

        self._generating = True
        try:
            new_plan = tuple(await generator(user_id))

            async def save(plan: WeeklyMealPlan) -> None:
                await self.remote.write(
                    MEAL_PLANS_TABLE,
                    {"user_id": user_id, "plan": MealPlanMapper.to_record(plan)},
                    on_conflict="user_id",
                )
                return None

            return await self.coordinator.mutate(
                self.meal_plan,
                lambda _: new_plan,
                save,
                cache_key=self.session.key(PLAN_RESOURCE),
                encode=MealPlanMapper.to_record,
                name="regenerate_meal_plan",
            )
        finally:
            self._generating = False
