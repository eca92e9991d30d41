"""Wellness entities."""

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
    MealSlot,
    Mood,
    UserProfile,
    WeeklyMealPlan,
    WeightEntry,
    Workout,
    WorkoutPlan,
    WorkoutPlanDay,
)
from .mappers import (
    AchievementFeedMapper,
    ChallengeMapper,
    DailyLogMapper,
    JournalEntryMapper,
    MacrosMapper,
    MealPlanMapper,
    ProfileMapper,
    WeightEntryMapper,
    WorkoutMapper,
    WorkoutPlanMapper,
)
from .session import UserSession

__all__ = [
    "AchievementFeedItem",
    "Challenge",
    "ChallengeType",
    "DailyLog",
    "DayType",
    "JournalEntry",
    "Macros",
    "MealPlanDay",
    "MealPlanMeal",
    "MealSlot",
    "Mood",
    "UserProfile",
    "WeeklyMealPlan",
    "WeightEntry",
    "Workout",
    "WorkoutPlan",
    "WorkoutPlanDay",
    "AchievementFeedMapper",
    "ChallengeMapper",
    "DailyLogMapper",
    "JournalEntryMapper",
    "MacrosMapper",
    "MealPlanMapper",
    "ProfileMapper",
    "WeightEntryMapper",
    "WorkoutMapper",
    "WorkoutPlanMapper",
    "UserSession",
]
