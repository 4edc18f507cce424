"""
Daily Login Streak System

Tracks consecutive calendar days on which a student logged in.

Rules:
- Same day as the last credited login: no change, no XP (idempotent)
- Next calendar day: streak continues (+1)
- Gap of 2+ days: streak resets to 1
- A day before the last credited one: ignored, never moves the date back
- First ever login: streak starts at 1

Every credited day earns the daily login bonus; reaching 7 and 30 days adds
a milestone bonus on top.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# streak length -> bonus XP
STREAK_MILESTONES = {7: 50, 30: 200}


@dataclass(frozen=True)
class StreakChange:
    """Result of comparing today against the last credited day"""
    credited: bool
    streak: int
    broken: bool = False
    milestone: Optional[int] = None
    milestone_bonus: int = 0
    backdated: bool = False


def compute_streak(current_streak: int, last_active_date: Optional[date], today: date) -> StreakChange:
    """
    Work out the new streak for a login on ``today``

    Args:
        current_streak: Streak stored on the record
        last_active_date: Last credited day, None if the student never logged in
        today: Calendar day of this login

    Returns:
        StreakChange; ``credited`` is False when today was already counted or
        lies before the last credited day
    """
    if last_active_date is None:
        new_streak = 1
        broken = False
    elif last_active_date == today:
        return StreakChange(credited=False, streak=current_streak)
    elif today < last_active_date:
        return StreakChange(credited=False, streak=current_streak, backdated=True)
    elif last_active_date == today - timedelta(days=1):
        new_streak = current_streak + 1
        broken = False
    else:
        # Gap of 2+ days
        new_streak = 1
        broken = current_streak > 0

    bonus = STREAK_MILESTONES.get(new_streak, 0)
    return StreakChange(
        credited=True,
        streak=new_streak,
        broken=broken,
        milestone=new_streak if bonus else None,
        milestone_bonus=bonus,
    )


def format_streak_message(streak: int, xp_awarded: int, milestone: Optional[int] = None) -> str:
    """
    Short user-facing streak message

    Args:
        streak: Current streak length
        xp_awarded: XP credited for this login (0 when already counted today)
        milestone: Milestone reached by this login, if any
    """
    if xp_awarded == 0:
        return f"Already checked in today. Streak: {streak} days 🔥"
    if streak == 1:
        message = f"Streak started! Day 1 🎉 +{xp_awarded} XP"
    else:
        message = f"Streak continues! Day {streak} 🔥 +{xp_awarded} XP"
    if milestone:
        message += f"\n🏆 {milestone}-day milestone reached!"
    return message
