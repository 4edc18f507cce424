"""Gamification models: student record, levels, badges and operation results"""
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class XPReason(str, Enum):
    """Why XP was awarded"""
    SESSION_COMPLETED = "session_completed"
    QUIZ_COMPLETED = "quiz_completed"
    PERFECT_QUIZ = "perfect_quiz"
    GOAL_ACHIEVED = "goal_achieved"
    REVIEW_SUBMITTED = "review_submitted"
    LOGIN_BONUS = "login_bonus"
    STREAK_BONUS = "streak_bonus"


class BadgeTier(str, Enum):
    """Badge tiers/difficulty levels"""
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"


class StudentGamification(BaseModel):
    """Per-student gamification record"""
    student_id: str
    xp: int = Field(default=0, ge=0)
    level: int = 1  # derived from xp, recomputed on read
    streak: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    last_active_date: Optional[date] = None
    badges: list[str] = Field(default_factory=list)

    # Counters used as badge predicates
    total_logins: int = Field(default=0, ge=0)
    sessions_completed: int = Field(default=0, ge=0)
    quizzes_completed: int = Field(default=0, ge=0)
    perfect_quizzes: int = Field(default=0, ge=0)
    goals_completed: int = Field(default=0, ge=0)
    reviews_submitted: int = Field(default=0, ge=0)
    total_study_hours: float = Field(default=0.0, ge=0)

    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


# Counters that callers may bump alongside an XP award
STAT_FIELDS = (
    "sessions_completed",
    "quizzes_completed",
    "perfect_quizzes",
    "goals_completed",
    "reviews_submitted",
    "total_study_hours",
)


class Level(BaseModel):
    """Row of the level table"""
    level: int
    title: str
    xp_required: int


class LevelInfo(BaseModel):
    """Resolved level for an XP total"""
    level: int
    title: str
    xp_required: int
    next_level_xp: int
    xp_in_level: int
    progress: int  # 0-100


class BadgeDefinition(BaseModel):
    """Badge definition (criteria are evaluated, never stored per student)"""
    id: str
    name: str
    description: str
    icon: str
    tier: BadgeTier
    criteria: dict[str, Any]


class XPTransaction(BaseModel):
    """Immutable XP ledger entry"""
    id: str
    student_id: str
    reason: XPReason
    xp_amount: int
    description: str
    created_at: datetime = Field(default_factory=_utcnow)


class XPAwardResult(BaseModel):
    """Outcome of an XP award"""
    student_id: str
    reason: XPReason
    description: str
    xp_awarded: int
    old_xp: int
    new_xp: int
    leveled_up: bool
    old_level: int
    new_level: int
    title: str
    newly_unlocked_badges: list[BadgeDefinition] = Field(default_factory=list)


class StreakResult(BaseModel):
    """Outcome of a daily login streak update"""
    student_id: str
    streak: int
    longest_streak: int
    xp_awarded: int  # 0 means the day was already credited
    milestone_reached: Optional[int] = None
    leveled_up: bool = False
    level: int = 1
    title: str = ""
    newly_unlocked_badges: list[BadgeDefinition] = Field(default_factory=list)
    message: str = ""
