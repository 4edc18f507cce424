"""Pydantic models for the gamification engine"""
from tutorhub.models.gamification import (
    BadgeDefinition,
    BadgeTier,
    Level,
    LevelInfo,
    StreakResult,
    StudentGamification,
    XPAwardResult,
    XPReason,
    XPTransaction,
)

__all__ = [
    "BadgeDefinition",
    "BadgeTier",
    "Level",
    "LevelInfo",
    "StreakResult",
    "StudentGamification",
    "XPAwardResult",
    "XPReason",
    "XPTransaction",
]
