"""Wellness feature services."""

from .base import WellnessService
from .challenge_service import ChallengeService
from .community_feed_service import CommunityFeedService
from .fitness_service import FitnessService, plan_needs_regeneration
from .journal_service import JournalService, upsert_by_date
from .nutrition_service import NutritionService
from .profile_service import ProfileService
from .wellness_log_service import WellnessLogService, replace_by_date

__all__ = [
    "WellnessService",
    "ChallengeService",
    "CommunityFeedService",
    "FitnessService",
    "plan_needs_regeneration",
    "JournalService",
    "upsert_by_date",
    "NutritionService",
    "ProfileService",
    "WellnessLogService",
    "replace_by_date",
]
