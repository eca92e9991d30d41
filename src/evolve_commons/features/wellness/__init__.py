"""Wellness features: profile, fitness, nutrition, journal, challenges, daily logs and the community feed."""

from .entities import (
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
    WeightEntry,
    Workout,
    WorkoutPlanDay,
    UserSession,
)
from .services import (
    ChallengeService,
    CommunityFeedService,
    FitnessService,
    JournalService,
    NutritionService,
    ProfileService,
    WellnessLogService,
)

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
    "WeightEntry",
    "Workout",
    "WorkoutPlanDay",
    "UserSession",
    "ChallengeService",
    "CommunityFeedService",
    "FitnessService",
    "JournalService",
    "NutritionService",
    "ProfileService",
    "WellnessLogService",
]
