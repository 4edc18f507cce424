"""
Gamification system for TutorHub students

This module implements:
- XP and leveling (titles from Beginner to Grandmaster)
- Daily login streaks
- Badges unlocked from student counters
- Notification events for the UI layer
"""

from tutorhub.gamification.xp_system import LEVELS, calculate_level, get_xp_for_activity
from tutorhub.gamification.streak_system import compute_streak
from tutorhub.gamification.achievement_system import BADGES, evaluate_badges, get_badge
from tutorhub.gamification.events import (
    BadgeUnlocked,
    EventBus,
    GamificationEvent,
    GamificationUpdated,
    LevelUp,
    XPGained,
    build_notifications,
)

__all__ = [
    "LEVELS",
    "calculate_level",
    "get_xp_for_activity",
    "compute_streak",
    "BADGES",
    "evaluate_badges",
    "get_badge",
    "BadgeUnlocked",
    "EventBus",
    "GamificationEvent",
    "GamificationUpdated",
    "LevelUp",
    "XPGained",
    "build_notifications",
]
