"""Record <-> domain mapping for wellness aggregates.

Records are the snake_case JSON shapes used both by the remote data service
and by the cache. Each mapper handles every field explicitly; a missing
required field raises MappingError instead of yielding a half-built object.
Unknown extra fields in a record are ignored.
"""

from datetime import date, datetime
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence

from ....core.exceptions import MappingError
from ....utils.datetime import parse_date, parse_datetime
from ...remote.entities.protocols import Record
from .models import (
    AchievementFeedItem,
    Challenge,
    ChallengeType,
    DailyLog,
    DayType,
    JournalEntry,
    Macros,
    MealPlanDay,
    MealPlanMeal,
    Mood,
    UserProfile,
    WeightEntry,
    Workout,
    WorkoutPlan,
    WorkoutPlanDay,
    WeeklyMealPlan,
)

_MISSING = object()


def _require(record: Any, name: str, entity: str) -> Any:
    if not isinstance(record, dict):
        raise MappingError(f"{entity} record must be an object, got {type(record).__name__}", entity=entity)
    value = record.get(name, _MISSING)
    if value is _MISSING or value is None:
        raise MappingError(f"{entity} record is missing '{name}'", entity=entity, field=name)
    return value


def _number(record: Record, name: str, entity: str, kind=float):
    value = _require(record, name, entity)
    if isinstance(value, bool):
        raise MappingError(f"{entity}.{name} must be a number", entity=entity, field=name)
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise MappingError(f"{entity}.{name} must be a number: {value!r}", entity=entity, field=name) from e


def _strings(record: Record, name: str, entity: str) -> tuple:
    value = record.get(name) or []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise MappingError(f"{entity}.{name} must be a list of strings", entity=entity, field=name)
    return tuple(value)


def _timestamp(value: Any, name: str, entity: str) -> Optional[datetime]:
    try:
        return parse_datetime(value)
    except (TypeError, ValueError) as e:
        raise MappingError(f"{entity}.{name} is not a timestamp: {value!r}", entity=entity, field=name) from e


def _list(payload: Any, entity: str) -> list:
    if not isinstance(payload, list):
        raise MappingError(f"{entity} must be a list, got {type(payload).__name__}", entity=entity)
    return payload


def _date(record: Record, name: str, entity: str, required: bool = True) -> Optional[date]:
    value = _require(record, name, entity) if required else record.get(name)
    try:
        return parse_date(value)
    except (TypeError, ValueError) as e:
        raise MappingError(f"{entity}.{name} is not a date: {value!r}", entity=entity, field=name) from e


def _optional_number(record: Record, name: str, entity: str, kind=float):
    if record.get(name) is None:
        return None
    return _number(record, name, entity, kind=kind)


class MacrosMapper:
    ENTITY = "Macros"

    @classmethod
    def to_domain(cls, record: Record) -> Macros:
        return Macros(
            calories=_number(record, "calories", cls.ENTITY),
            protein=_number(record, "protein", cls.ENTITY),
            carbs=_number(record, "carbs", cls.ENTITY),
            fat=_number(record, "fat", cls.ENTITY),
        )

    @staticmethod
    def to_record(macros: Macros) -> Record:
        return {
            "calories": macros.calories,
            "protein": macros.protein,
            "carbs": macros.carbs,
            "fat": macros.fat,
        }


class WorkoutMapper:
    ENTITY = "Workout"

    @classmethod
    def to_domain(cls, record: Record) -> Workout:
        name = _require(record, "name", cls.ENTITY)
        created_at = record.get("created_at")
        return Workout(
            name=name,
            type=_require(record, "type", cls.ENTITY),
            duration=_number(record, "duration", cls.ENTITY, kind=int),
            description=_require(record, "description", cls.ENTITY),
            id=record.get("id"),
            user_id=record.get("user_id"),
            date=record.get("date"),
            video_url=record.get("video_url"),
            created_at=_timestamp(created_at, "created_at", cls.ENTITY) if created_at else None,
        )

    @staticmethod
    def to_record(workout: Workout) -> Record:
        record: Record = {
            "name": workout.name,
            "type": workout.type,
            "duration": workout.duration,
            "description": workout.description,
            "date": workout.date,
            "video_url": workout.video_url,
        }
        # Server-assigned columns are only sent once they exist
        if workout.id is not None:
            record["id"] = workout.id
        if workout.user_id is not None:
            record["user_id"] = workout.user_id
        if workout.created_at is not None:
            record["created_at"] = workout.created_at.isoformat()
        return record

    @classmethod
    def list_to_domain(cls, payload: Any) -> List[Workout]:
        return [cls.to_domain(record) for record in _list(payload, "Workout history")]

    @classmethod
    def list_to_record(cls, workouts: Iterable[Workout]) -> List[Record]:
        return [cls.to_record(workout) for workout in workouts]


class WorkoutPlanMapper:
    ENTITY = "WorkoutPlanDay"

    @classmethod
    def day_to_domain(cls, record: Record) -> WorkoutPlanDay:
        raw_type = _require(record, "type", cls.ENTITY)
        try:
            day_type = DayType(raw_type)
        except ValueError as e:
            raise MappingError(f"Unknown plan day type {raw_type!r}", entity=cls.ENTITY, field="type") from e

        workout = record.get("workout")
        if day_type is DayType.WORKOUT and workout is None:
            raise MappingError("Workout day has no workout", entity=cls.ENTITY, field="workout")

        return WorkoutPlanDay(
            day=_number(record, "day", cls.ENTITY, kind=int),
            type=day_type,
            is_completed=bool(record.get("is_completed", False)),
            workout=WorkoutMapper.to_domain(workout) if workout is not None else None,
        )

    @staticmethod
    def day_to_record(day: WorkoutPlanDay) -> Record:
        return {
            "day": day.day,
            "type": day.type.value,
            "is_completed": day.is_completed,
            "workout": WorkoutMapper.to_record(day.workout) if day.workout else None,
        }

    @classmethod
    def to_domain(cls, payload: Any) -> WorkoutPlan:
        return tuple(cls.day_to_domain(record) for record in _list(payload, "Workout plan"))

    @classmethod
    def to_record(cls, plan: Sequence[WorkoutPlanDay]) -> List[Record]:
        return [cls.day_to_record(day) for day in plan]


class MealPlanMapper:
    ENTITY = "MealPlanDay"
    MEAL_ENTITY = "MealPlanMeal"

    @classmethod
    def meal_to_domain(cls, record: Record) -> MealPlanMeal:
        return MealPlanMeal(
            name=_require(record, "name", cls.MEAL_ENTITY),
            time=_require(record, "time", cls.MEAL_ENTITY),
            macros=MacrosMapper.to_domain(_require(record, "macros", cls.MEAL_ENTITY)),
            ingredients=_strings(record, "ingredients", cls.MEAL_ENTITY),
            instructions=_strings(record, "instructions", cls.MEAL_ENTITY),
            is_logged=bool(record.get("is_logged", False)),
        )

    @staticmethod
    def meal_to_record(meal: MealPlanMeal) -> Record:
        return {
            "name": meal.name,
            "time": meal.time,
            "macros": MacrosMapper.to_record(meal.macros),
            "ingredients": list(meal.ingredients),
            "instructions": list(meal.instructions),
            "is_logged": meal.is_logged,
        }

    @classmethod
    def day_to_domain(cls, record: Record) -> MealPlanDay:
        snack = record.get("snack") if isinstance(record, dict) else None
        return MealPlanDay(
            day_of_week=_require(record, "day_of_week", cls.ENTITY),
            breakfast=cls.meal_to_domain(_require(record, "breakfast", cls.ENTITY)),
            lunch=cls.meal_to_domain(_require(record, "lunch", cls.ENTITY)),
            dinner=cls.meal_to_domain(_require(record, "dinner", cls.ENTITY)),
            daily_totals=MacrosMapper.to_domain(_require(record, "daily_totals", cls.ENTITY)),
            snack=cls.meal_to_domain(snack) if snack is not None else None,
        )

    @classmethod
    def day_to_record(cls, day: MealPlanDay) -> Record:
        return {
            "day_of_week": day.day_of_week,
            "breakfast": cls.meal_to_record(day.breakfast),
            "lunch": cls.meal_to_record(day.lunch),
            "dinner": cls.meal_to_record(day.dinner),
            "snack": cls.meal_to_record(day.snack) if day.snack else None,
            "daily_totals": MacrosMapper.to_record(day.daily_totals),
        }

    @classmethod
    def to_domain(cls, payload: Any) -> WeeklyMealPlan:
        return tuple(cls.day_to_domain(record) for record in _list(payload, "Meal plan"))

    @classmethod
    def to_record(cls, plan: Sequence[MealPlanDay]) -> List[Record]:
        return [cls.day_to_record(day) for day in plan]


class JournalEntryMapper:
    ENTITY = "JournalEntry"

    @classmethod
    def to_domain(cls, record: Record) -> JournalEntry:
        raw_date = _require(record, "date", cls.ENTITY)
        try:
            entry_date = parse_date(raw_date)
        except (TypeError, ValueError) as e:
            raise MappingError(f"JournalEntry.date is not a date: {raw_date!r}", entity=cls.ENTITY, field="date") from e

        return JournalEntry(
            date=entry_date,
            title=_require(record, "title", cls.ENTITY),
            content=_require(record, "content", cls.ENTITY),
            id=record.get("id"),
            user_id=record.get("user_id"),
            summary=record.get("summary"),
            themes=_strings(record, "themes", cls.ENTITY),
            suggestion=record.get("suggestion"),
        )

    @staticmethod
    def to_record(entry: JournalEntry) -> Record:
        record: Record = {
            "date": entry.date.isoformat(),
            "title": entry.title,
            "content": entry.content,
            "summary": entry.summary,
            "themes": list(entry.themes),
            "suggestion": entry.suggestion,
        }
        if entry.id is not None:
            record["id"] = entry.id
        if entry.user_id is not None:
            record["user_id"] = entry.user_id
        return record

    @classmethod
    def list_to_domain(cls, payload: Any) -> List[JournalEntry]:
        return [cls.to_domain(record) for record in _list(payload, "Journal entries")]

    @classmethod
    def list_to_record(cls, entries: Iterable[JournalEntry]) -> List[Record]:
        return [cls.to_record(entry) for entry in entries]


class AchievementFeedMapper:
    """Feed items: cached records, plus the joined row read from the backend."""

    ENTITY = "AchievementFeedItem"

    @classmethod
    def to_domain(cls, record: Record) -> AchievementFeedItem:
        return AchievementFeedItem(
            id=str(_require(record, "id", cls.ENTITY)),
            user_name=_require(record, "user_name", cls.ENTITY),
            achievement_id=_require(record, "achievement_id", cls.ENTITY),
            timestamp=_timestamp(_require(record, "timestamp", cls.ENTITY), "timestamp", cls.ENTITY),
            profile_picture_url=record.get("profile_picture_url"),
            gender=record.get("gender"),
        )

    @staticmethod
    def to_record(item: AchievementFeedItem) -> Record:
        return {
            "id": item.id,
            "user_name": item.user_name,
            "achievement_id": item.achievement_id,
            "timestamp": item.timestamp.isoformat(),
            "profile_picture_url": item.profile_picture_url,
            "gender": item.gender,
        }

    @classmethod
    def from_earned_row(cls, row: Record) -> Optional[AchievementFeedItem]:
        """Map an ``earned_achievements`` row joined with ``profiles``.

        Returns None for rows whose profile is not visible.
        """
        profile = row.get("profiles") if isinstance(row, dict) else None
        if isinstance(profile, list):
            profile = profile[0] if profile else None
        if not profile:
            return None

        return AchievementFeedItem(
            id=str(_require(row, "id", cls.ENTITY)),
            user_name=_require(profile, "name", "Profile"),
            achievement_id=_require(row, "achievement_id", cls.ENTITY),
            timestamp=_timestamp(_require(row, "earned_at", cls.ENTITY), "earned_at", cls.ENTITY),
            profile_picture_url=profile.get("profile_picture_url"),
            gender=profile.get("gender"),
        )


class ProfileMapper:
    ENTITY = "UserProfile"
    # Never sent back on update
    READ_ONLY = ("id", "email")

    @classmethod
    def to_domain(cls, record: Record) -> UserProfile:
        return UserProfile(
            id=str(_require(record, "id", cls.ENTITY)),
            name=_require(record, "name", cls.ENTITY),
            email=record.get("email"),
            username=record.get("username"),
            age=_optional_number(record, "age", cls.ENTITY, kind=int),
            gender=record.get("gender"),
            height=_optional_number(record, "height", cls.ENTITY),
            weight=_optional_number(record, "weight", cls.ENTITY),
            activity_level=record.get("activity_level"),
            goal=record.get("goal"),
            dietary_preferences=_strings(record, "dietary_preferences", cls.ENTITY),
            nationality=record.get("nationality"),
            last_period_start_date=_date(record, "last_period_start_date", cls.ENTITY, required=False),
            cycle_length=_optional_number(record, "cycle_length", cls.ENTITY, kind=int),
            onboarding_date=record.get("onboarding_date"),
            profile_picture_url=record.get("profile_picture_url"),
        )

    @staticmethod
    def to_record(profile: UserProfile) -> Record:
        last_period = profile.last_period_start_date
        return {
            "id": profile.id,
            "name": profile.name,
            "email": profile.email,
            "username": profile.username,
            "age": profile.age,
            "gender": profile.gender,
            "height": profile.height,
            "weight": profile.weight,
            "activity_level": profile.activity_level,
            "goal": profile.goal,
            "dietary_preferences": list(profile.dietary_preferences),
            "nationality": profile.nationality,
            "last_period_start_date": last_period.isoformat() if last_period else None,
            "cycle_length": profile.cycle_length,
            "onboarding_date": profile.onboarding_date,
            "profile_picture_url": profile.profile_picture_url,
        }

    @classmethod
    def to_update(cls, profile: UserProfile) -> Record:
        """Record for a PATCH: everything except the read-only columns."""
        record = cls.to_record(profile)
        for column in cls.READ_ONLY:
            record.pop(column, None)
        return record


class ChallengeMapper:
    ENTITY = "Challenge"

    @classmethod
    def to_domain(cls, record: Record) -> Challenge:
        raw_type = _require(record, "type", cls.ENTITY)
        try:
            challenge_type = ChallengeType(raw_type)
        except ValueError as e:
            raise MappingError(f"Unknown challenge type {raw_type!r}", entity=cls.ENTITY, field="type") from e

        created_at = record.get("created_at")
        return Challenge(
            title=_require(record, "title", cls.ENTITY),
            description=_require(record, "description", cls.ENTITY),
            type=challenge_type,
            metric=_require(record, "metric", cls.ENTITY),
            goal=_number(record, "goal", cls.ENTITY),
            progress=_optional_number(record, "progress", cls.ENTITY) or 0,
            is_completed=bool(record.get("is_completed", False)),
            is_ai_generated=bool(record.get("is_ai_generated", False)),
            id=record.get("id"),
            user_id=record.get("user_id"),
            created_at=_timestamp(created_at, "created_at", cls.ENTITY) if created_at else None,
        )

    @staticmethod
    def to_record(challenge: Challenge) -> Record:
        record: Record = {
            "title": challenge.title,
            "description": challenge.description,
            "type": challenge.type.value,
            "metric": challenge.metric,
            "goal": challenge.goal,
            "progress": challenge.progress,
            "is_completed": challenge.is_completed,
            "is_ai_generated": challenge.is_ai_generated,
        }
        if challenge.id is not None:
            record["id"] = challenge.id
        if challenge.user_id is not None:
            record["user_id"] = challenge.user_id
        if challenge.created_at is not None:
            record["created_at"] = challenge.created_at.isoformat()
        return record

    @classmethod
    def list_to_domain(cls, payload: Any) -> List[Challenge]:
        return [cls.to_domain(record) for record in _list(payload, "Challenges")]

    @classmethod
    def list_to_record(cls, challenges: Iterable[Challenge]) -> List[Record]:
        return [cls.to_record(challenge) for challenge in challenges]


class WeightEntryMapper:
    ENTITY = "WeightEntry"

    @classmethod
    def to_domain(cls, record: Record) -> WeightEntry:
        return WeightEntry(
            date=_date(record, "date", cls.ENTITY),
            weight=_number(record, "weight", cls.ENTITY),
            id=record.get("id"),
            user_id=record.get("user_id"),
        )

    @staticmethod
    def to_record(entry: WeightEntry) -> Record:
        record: Record = {"date": entry.date.isoformat(), "weight": entry.weight}
        if entry.id is not None:
            record["id"] = entry.id
        if entry.user_id is not None:
            record["user_id"] = entry.user_id
        return record

    @classmethod
    def list_to_domain(cls, payload: Any) -> List[WeightEntry]:
        return [cls.to_domain(record) for record in _list(payload, "Weight history")]

    @classmethod
    def list_to_record(cls, entries: Iterable[WeightEntry]) -> List[Record]:
        return [cls.to_record(entry) for entry in entries]


class DailyLogMapper:
    ENTITY = "DailyLog"

    @classmethod
    def to_domain(cls, record: Record) -> DailyLog:
        raw_mood = _require(record, "mood", cls.ENTITY)
        try:
            mood = Mood(raw_mood)
        except ValueError as e:
            raise MappingError(f"Unknown mood {raw_mood!r}", entity=cls.ENTITY, field="mood") from e

        return DailyLog(
            date=_date(record, "date", cls.ENTITY),
            mood=mood,
            symptoms=_strings(record, "symptoms", cls.ENTITY),
            has_period=bool(record.get("has_period", False)),
            id=record.get("id"),
            user_id=record.get("user_id"),
        )

    @staticmethod
    def to_record(log: DailyLog) -> Record:
        record: Record = {
            "date": log.date.isoformat(),
            "mood": log.mood.value,
            "symptoms": list(log.symptoms),
            "has_period": log.has_period,
        }
        if log.id is not None:
            record["id"] = log.id
        if log.user_id is not None:
            record["user_id"] = log.user_id
        return record

    @classmethod
    def list_to_domain(cls, payload: Any) -> List[DailyLog]:
        return [cls.to_domain(record) for record in _list(payload, "Daily logs")]

    @classmethod
    def list_to_record(cls, logs: Iterable[DailyLog]) -> List[Record]:
        return [cls.to_record(log) for log in logs]


def plan_payload(record: Optional[Dict[str, Any]]) -> Any:
    """The ``plan`` column of a plan row, or None when the user has no plan."""
    if record is None:
        return None
    return record.get("plan")


def achievement_ids(payload: Any) -> FrozenSet[str]:
    """Earned achievement ids, cached as a list of strings."""
    ids = _list(payload, "Earned achievements")
    if not all(isinstance(item, str) for item in ids):
        raise MappingError("Earned achievement ids must be strings", entity="EarnedAchievement", field="achievement_id")
    return frozenset(ids)
