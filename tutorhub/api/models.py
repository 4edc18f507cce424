"""Pydantic models for API request/response validation"""
from datetime import date, datetime
from typing import Dict, List, Optional, Union
from pydantic import BaseModel, Field

from tutorhub.models.gamification import BadgeDefinition, Level, XPReason, XPTransaction


class StreakRequest(BaseModel):
    """Request to credit a daily login"""
    today: Optional[date] = Field(
        default=None,
        description="Calendar day of the login (defaults to today in the configured timezone)"
    )


class XPAwardRequest(BaseModel):
    """Request to award XP"""
    reason: XPReason = Field(..., description="Activity that earned the XP")
    amount: Optional[int] = Field(
        default=None,
        description="Positive XP amount up to 10000 (defaults to the standard amount for the reason)"
    )
    description: Optional[str] = Field(default=None, description="Shown in the XP history")
    stat_increment: Optional[Dict[str, Union[int, float]]] = Field(
        default=None,
        description="Extra counter increments, e.g. {\"total_study_hours\": 1.5}"
    )


class StudentGamificationResponse(BaseModel):
    """Student record with resolved level"""
    student_id: str
    xp: int
    level: int
    title: str
    next_level_xp: int
    progress: int
    streak: int
    longest_streak: int
    last_active_date: Optional[date]
    badges: List[str]
    total_logins: int
    sessions_completed: int
    quizzes_completed: int
    perfect_quizzes: int
    goals_completed: int
    reviews_submitted: int
    total_study_hours: float


class LeaderboardEntry(BaseModel):
    """One leaderboard row"""
    rank: int
    student_id: str
    xp: int
    level: int
    title: str
    streak: int
    last_active_date: Optional[date]


class LeaderboardResponse(BaseModel):
    """Leaderboard response"""
    entries: List[LeaderboardEntry]


class XPHistoryResponse(BaseModel):
    """Recent XP transactions"""
    student_id: str
    transactions: List[XPTransaction]


class LockedBadge(BaseModel):
    """Locked badge with progress"""
    badge: BadgeDefinition
    progress: Dict[str, int]


class BadgesResponse(BaseModel):
    """Student badges"""
    student_id: str
    unlocked: List[BadgeDefinition]
    locked: List[LockedBadge] = Field(default_factory=list)
    total_unlocked: int
    total_badges: int


class LevelsResponse(BaseModel):
    """Level table"""
    levels: List[Level]


class BadgeCatalogResponse(BaseModel):
    """Badge catalog"""
    badges: List[BadgeDefinition]


class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str = Field(..., description="Service status")
    store: str = Field(..., description="Store backend status")
    timestamp: datetime = Field(..., description="Check timestamp")
