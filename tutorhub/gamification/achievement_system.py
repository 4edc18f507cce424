"""
Badge System

Static badge catalog plus a pure evaluator over a student's counters.

Categories:
- Sessions and quizzes (completion counts)
- Consistency (longest login streak, total logins)
- Milestones (levels)

Badges are append-only: once an id is in a student's badge list it is never
removed, and already unlocked badges are skipped on every evaluation.
"""

from typing import Dict, List, Optional
import logging

from tutorhub.gamification.xp_system import calculate_level
from tutorhub.models.gamification import BadgeDefinition, BadgeTier, StudentGamification

logger = logging.getLogger(__name__)


BADGES: List[BadgeDefinition] = [
    BadgeDefinition(
        id="first_steps", name="First Steps", description="Complete your first session",
        icon="👣", tier=BadgeTier.BRONZE,
        criteria={"type": "counter", "field": "sessions_completed", "value": 1},
    ),
    BadgeDefinition(
        id="quiz_whiz", name="Quiz Whiz", description="Complete 5 quizzes",
        icon="🧠", tier=BadgeTier.SILVER,
        criteria={"type": "counter", "field": "quizzes_completed", "value": 5},
    ),
    BadgeDefinition(
        id="perfect_score", name="Perfect Score", description="Get 100% on a quiz",
        icon="💯", tier=BadgeTier.GOLD,
        criteria={"type": "counter", "field": "perfect_quizzes", "value": 1},
    ),
    BadgeDefinition(
        id="goal_getter", name="Goal Getter", description="Complete your first learning goal",
        icon="🎯", tier=BadgeTier.BRONZE,
        criteria={"type": "counter", "field": "goals_completed", "value": 1},
    ),
    BadgeDefinition(
        id="streak_starter", name="Streak Starter", description="3-day streak",
        icon="🔥", tier=BadgeTier.BRONZE,
        criteria={"type": "streak", "value": 3},
    ),
    BadgeDefinition(
        id="week_warrior", name="Week Warrior", description="7-day streak",
        icon="⚔️", tier=BadgeTier.SILVER,
        criteria={"type": "streak", "value": 7},
    ),
    BadgeDefinition(
        id="monthly_master", name="Monthly Master", description="30-day streak",
        icon="👑", tier=BadgeTier.GOLD,
        criteria={"type": "streak", "value": 30},
    ),
    BadgeDefinition(
        id="session_pro", name="Session Pro", description="Complete 10 sessions",
        icon="🎓", tier=BadgeTier.SILVER,
        criteria={"type": "counter", "field": "sessions_completed", "value": 10},
    ),
    BadgeDefinition(
        id="knowledge_seeker", name="Knowledge Seeker", description="Complete 25 quizzes",
        icon="📚", tier=BadgeTier.GOLD,
        criteria={"type": "counter", "field": "quizzes_completed", "value": 25},
    ),
    BadgeDefinition(
        id="regular_visitor", name="Regular Visitor", description="Log in on 10 different days",
        icon="📅", tier=BadgeTier.BRONZE,
        criteria={"type": "counter", "field": "total_logins", "value": 10},
    ),
    BadgeDefinition(
        id="helpful_reviewer", name="Helpful Reviewer", description="Review a tutor",
        icon="✍️", tier=BadgeTier.BRONZE,
        criteria={"type": "counter", "field": "reviews_submitted", "value": 1},
    ),
    BadgeDefinition(
        id="dedicated_learner", name="Dedicated Learner", description="Reach Level 5",
        icon="⭐", tier=BadgeTier.SILVER,
        criteria={"type": "level", "value": 5},
    ),
    BadgeDefinition(
        id="top_scholar", name="Top Scholar", description="Reach Level 10",
        icon="🏆", tier=BadgeTier.GOLD,
        criteria={"type": "level", "value": 10},
    ),
]

_BADGES_BY_ID: Dict[str, BadgeDefinition] = {badge.id: badge for badge in BADGES}


def get_badge(badge_id: str) -> Optional[BadgeDefinition]:
    """Look up a badge definition by id"""
    return _BADGES_BY_ID.get(badge_id)


def _current_value(record: StudentGamification, criteria: Dict) -> float:
    """Value of the stat a criteria dict looks at"""
    criteria_type = criteria["type"]

    if criteria_type == "counter":
        return getattr(record, criteria["field"])
    elif criteria_type == "streak":
        # Longest streak, so a broken streak never hides an earned badge
        return max(record.longest_streak, record.streak)
    elif criteria_type == "level":
        return calculate_level(record.xp).level

    raise ValueError(f"Unknown badge criteria type: {criteria_type}")


def is_badge_earned(badge: BadgeDefinition, record: StudentGamification) -> bool:
    """Check a single badge predicate against a record"""
    return _current_value(record, badge.criteria) >= badge.criteria["value"]


def evaluate_badges(record: StudentGamification) -> List[BadgeDefinition]:
    """
    Find badges the record now qualifies for but has not unlocked yet

    Pure function: the record is not modified.

    Returns:
        Newly earned badges in catalog order
    """
    unlocked = set(record.badges)
    return [
        badge for badge in BADGES
        if badge.id not in unlocked and is_badge_earned(badge, record)
    ]


def get_badge_progress(badge: BadgeDefinition, record: StudentGamification) -> Dict[str, int]:
    """
    Progress toward a badge

    Returns:
        {'current': int, 'required': int, 'percentage': int}
    """
    required = badge.criteria["value"]
    current = _current_value(record, badge.criteria)
    if badge.id in record.badges:
        percentage = 100
    else:
        percentage = min(100, int(current / required * 100)) if required else 100

    return {
        "current": int(min(current, required)),
        "required": required,
        "percentage": percentage,
    }


def get_student_badges(record: StudentGamification, include_locked: bool = False) -> Dict[str, object]:
    """
    Student's badges, optionally with progress toward locked ones

    Returns:
        {
            'unlocked': [BadgeDefinition, ...] (unlock order),
            'locked': [{'badge': BadgeDefinition, 'progress': {...}}] (if include_locked=True),
            'total_unlocked': int,
            'total_badges': int
        }
    """
    unlocked = [_BADGES_BY_ID[badge_id] for badge_id in record.badges if badge_id in _BADGES_BY_ID]

    result: Dict[str, object] = {
        "unlocked": unlocked,
        "total_unlocked": len(unlocked),
        "total_badges": len(BADGES),
    }

    if include_locked:
        locked = [
            {"badge": badge, "progress": get_badge_progress(badge, record)}
            for badge in BADGES
            if badge.id not in record.badges
        ]
        # Closest to completion first
        locked.sort(key=lambda item: item["progress"]["percentage"], reverse=True)
        result["locked"] = locked

    return result
