"""
XP and Leveling System

Resolves levels and titles from total XP and knows the default XP amount for
each kind of activity.

Leveling Table:
- Level 1 Beginner: 0 XP
- Level 2 Learner: 100 XP
- Level 3 Explorer: 300 XP
- Level 4 Achiever: 600 XP
- Level 5 Scholar: 1000 XP
- Level 6 Expert: 1500 XP
- Level 7 Master: 2500 XP
- Level 8 Champion: 4000 XP
- Level 9 Legend: 6000 XP
- Level 10 Grandmaster: 10000 XP (max, higher XP clamps here)

XP Award Rules:
- Session completed: 50 XP
- Quiz completed: 25 XP
- Perfect quiz: 50 XP
- Learning goal achieved: 100 XP
- Review submitted: 15 XP
- Daily login: 10 XP (configurable)
- Streak milestones: 50-200 XP
"""

from typing import Dict, Optional
import logging

from tutorhub.models.gamification import Level, LevelInfo, XPReason

logger = logging.getLogger(__name__)


LEVELS: list[Level] = [
    Level(level=1, title="Beginner", xp_required=0),
    Level(level=2, title="Learner", xp_required=100),
    Level(level=3, title="Explorer", xp_required=300),
    Level(level=4, title="Achiever", xp_required=600),
    Level(level=5, title="Scholar", xp_required=1000),
    Level(level=6, title="Expert", xp_required=1500),
    Level(level=7, title="Master", xp_required=2500),
    Level(level=8, title="Champion", xp_required=4000),
    Level(level=9, title="Legend", xp_required=6000),
    Level(level=10, title="Grandmaster", xp_required=10000),
]

MAX_LEVEL = LEVELS[-1].level

# Default XP per reason; None means the amount is decided by the caller
XP_AMOUNTS: Dict[XPReason, Optional[int]] = {
    XPReason.SESSION_COMPLETED: 50,
    XPReason.QUIZ_COMPLETED: 25,
    XPReason.PERFECT_QUIZ: 50,
    XPReason.GOAL_ACHIEVED: 100,
    XPReason.REVIEW_SUBMITTED: 15,
    XPReason.LOGIN_BONUS: 10,
    XPReason.STREAK_BONUS: None,
}

# Largest amount a single award may carry
MAX_XP_AWARD = 10_000

# Counters bumped when XP is awarded for a reason
REASON_COUNTERS: Dict[XPReason, Dict[str, int]] = {
    XPReason.SESSION_COMPLETED: {"sessions_completed": 1},
    XPReason.QUIZ_COMPLETED: {"quizzes_completed": 1},
    XPReason.PERFECT_QUIZ: {"quizzes_completed": 1, "perfect_quizzes": 1},
    XPReason.GOAL_ACHIEVED: {"goals_completed": 1},
    XPReason.REVIEW_SUBMITTED: {"reviews_submitted": 1},
}


def _validate_level_table(levels: list[Level]) -> None:
    if not levels or levels[0].xp_required != 0 or levels[0].level != 1:
        raise ValueError("Level table must start at level 1 with a 0 XP threshold")
    for previous, current in zip(levels, levels[1:]):
        if current.xp_required <= previous.xp_required or current.level != previous.level + 1:
            raise ValueError(f"Level table is not strictly increasing at level {current.level}")


_validate_level_table(LEVELS)


def calculate_level(xp: int) -> LevelInfo:
    """
    Calculate level and title from total XP

    The level is the highest one whose threshold is <= xp. XP above the top
    threshold clamps to the max level; negative XP resolves to level 1.

    Returns:
        LevelInfo with level, title, the current and next thresholds, XP earned
        within the level and progress (0-100) toward the next one
    """
    current = LEVELS[0]
    for entry in LEVELS:
        if xp >= entry.xp_required:
            current = entry
        else:
            break

    if current.level < MAX_LEVEL:
        next_level_xp = LEVELS[current.level].xp_required
    else:
        next_level_xp = current.xp_required

    xp_in_level = max(0, xp - current.xp_required)
    xp_needed = next_level_xp - current.xp_required
    if xp_needed > 0:
        progress = min(100, round(xp_in_level / xp_needed * 100))
    else:
        progress = 100

    return LevelInfo(
        level=current.level,
        title=current.title,
        xp_required=current.xp_required,
        next_level_xp=next_level_xp,
        xp_in_level=xp_in_level,
        progress=progress,
    )


def get_xp_for_activity(reason: XPReason) -> Optional[int]:
    """
    Default XP amount for an activity

    Returns:
        XP amount, or None when the caller must supply one (streak bonuses)
    """
    return XP_AMOUNTS.get(XPReason(reason))


def get_stat_increment(reason: XPReason) -> Dict[str, int]:
    """Counters that an award for this reason increments"""
    return dict(REASON_COUNTERS.get(XPReason(reason), {}))
