"""Wellness domain aggregates.

All aggregates are frozen dataclasses: an update builds a new object, so a
captured previous value can always be restored exactly.
"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple


class DayType(str, Enum):
    """Kind of day in a workout plan."""
    WORKOUT = "workout"
    REST = "rest"


class MealSlot(str, Enum):
    """Meal positions within a meal plan day."""
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    SNACK = "snack"


@dataclass(frozen=True)
class Macros:
    calories: float
    protein: float
    carbs: float
    fat: float


@dataclass(frozen=True)
class Workout:
    """A logged workout, or the workout planned for a plan day."""

    name: str
    type: str
    duration: int  # minutes
    description: str
    id: Optional[str] = None
    user_id: Optional[str] = None
    date: Optional[str] = None
    video_url: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class WorkoutPlanDay:
    day: int
    type: DayType
    is_completed: bool = False
    workout: Optional[Workout] = None

    def completed(self) -> "WorkoutPlanDay":
        return replace(self, is_completed=True)


@dataclass(frozen=True)
class MealPlanMeal:
    name: str
    time: str
    macros: Macros
    ingredients: Tuple[str, ...] = field(default_factory=tuple)
    instructions: Tuple[str, ...] = field(default_factory=tuple)
    is_logged: bool = False

    def logged(self) -> "MealPlanMeal":
        return replace(self, is_logged=True)


@dataclass(frozen=True)
class MealPlanDay:
    day_of_week: str
    breakfast: MealPlanMeal
    lunch: MealPlanMeal
    dinner: MealPlanMeal
    daily_totals: Macros
    snack: Optional[MealPlanMeal] = None

    def meal(self, slot: MealSlot) -> Optional[MealPlanMeal]:
        return getattr(self, slot.value)

    def with_meal(self, slot: MealSlot, meal: MealPlanMeal) -> "MealPlanDay":
        return replace(self, **{slot.value: meal})


@dataclass(frozen=True)
class JournalEntry:
    date: date
    title: str
    content: str
    id: Optional[str] = None
    user_id: Optional[str] = None
    summary: Optional[str] = None
    themes: Tuple[str, ...] = field(default_factory=tuple)
    suggestion: Optional[str] = None


@dataclass(frozen=True)
class AchievementFeedItem:
    """One earned achievement shown in the community feed."""

    id: str
    user_name: str
    achievement_id: str
    timestamp: datetime
    profile_picture_url: Optional[str] = None
    gender: Optional[str] = None


@dataclass(frozen=True)
class UserProfile:
    """The signed-in user's profile. Body measurements are cm and kg."""

    id: str
    name: str
    email: Optional[str] = None
    username: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    height: Optional[float] = None
    weight: Optional[float] = None
    activity_level: Optional[str] = None
    goal: Optional[str] = None
    dietary_preferences: Tuple[str, ...] = field(default_factory=tuple)
    nationality: Optional[str] = None
    last_period_start_date: Optional[date] = None
    cycle_length: Optional[int] = None
    onboarding_date: Optional[str] = None
    profile_picture_url: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.username or self.name

    @property
    def is_onboarded(self) -> bool:
        return bool(self.onboarding_date)


class ChallengeType(str, Enum):
    FITNESS = "fitness"
    NUTRITION = "nutrition"
    MINDFULNESS = "mindfulness"


@dataclass(frozen=True)
class Challenge:
    """A personal challenge, newest first in the challenge list."""

    title: str
    description: str
    type: ChallengeType
    metric: str
    goal: float
    progress: float = 0
    is_completed: bool = False
    is_ai_generated: bool = False
    id: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None


class Mood(str, Enum):
    ENERGETIC = "energetic"
    HAPPY = "happy"
    NEUTRAL = "neutral"
    IRRITABLE = "irritable"
    SAD = "sad"
    FATIGUED = "fatigued"


@dataclass(frozen=True)
class WeightEntry:
    date: date
    weight: float
    id: Optional[str] = None
    user_id: Optional[str] = None


@dataclass(frozen=True)
class DailyLog:
    """Mood and symptoms for one day."""

    date: date
    mood: Mood
    symptoms: Tuple[str, ...] = field(default_factory=tuple)
    has_period: bool = False
    id: Optional[str] = None
    user_id: Optional[str] = None


WorkoutPlan = Tuple[WorkoutPlanDay, ...]
WeeklyMealPlan = Tuple[MealPlanDay, ...]
