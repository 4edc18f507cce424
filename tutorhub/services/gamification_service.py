"""
GamificationService - Gamification Business Logic

Entry point used by the rest of the tutoring platform: daily login streaks,
XP awards with level-up and badge detection, record reads and the
leaderboard.

Every mutation is a single read-modify-write transaction on the student's
record; notification events are published only after it commits.
"""

import logging
import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union
from zoneinfo import ZoneInfo

from tutorhub.config import DAILY_LOGIN_XP, GAMIFICATION_TIMEZONE, LEADERBOARD_MAX_LIMIT
from tutorhub.db.store import GamificationStore
from tutorhub.exceptions import RecordNotFoundError, ValidationError
from tutorhub.gamification.achievement_system import evaluate_badges, get_student_badges
from tutorhub.gamification.events import EventBus, GamificationUpdated, build_notifications
from tutorhub.gamification.streak_system import compute_streak, format_streak_message
from tutorhub.gamification.xp_system import (
    MAX_XP_AWARD, calculate_level, get_stat_increment, get_xp_for_activity
)
from tutorhub.models.gamification import (
    STAT_FIELDS,
    BadgeDefinition,
    LevelInfo,
    StreakResult,
    StudentGamification,
    XPAwardResult,
    XPReason,
    XPTransaction,
)
from tutorhub.monitoring.prometheus_metrics import (
    record_badge_unlocked,
    record_level_up,
    record_streak_update,
    record_xp_awarded,
)

logger = logging.getLogger(__name__)

STUDENT_ID_PATTERN = re.compile(r"^[^\s/]{1,128}$")

# Reasons that only the streak updater may credit
STREAK_REASONS = {XPReason.LOGIN_BONUS, XPReason.STREAK_BONUS}

DEFAULT_DESCRIPTIONS = {
    XPReason.SESSION_COMPLETED: "Completed a tutoring session",
    XPReason.QUIZ_COMPLETED: "Completed a quiz",
    XPReason.PERFECT_QUIZ: "Perfect quiz score",
    XPReason.GOAL_ACHIEVED: "Achieved a learning goal",
    XPReason.REVIEW_SUBMITTED: "Reviewed a tutor",
}


class GamificationService:
    """
    Service for gamification features.

    Responsibilities:
    - Daily login streak tracking
    - XP awarding and level-up detection
    - Badge evaluation and unlocking
    - Record reads, XP history and leaderboard
    - Publishing notification events to UI collaborators
    """

    def __init__(
        self,
        store: GamificationStore,
        event_bus: Optional[EventBus] = None,
        timezone: Union[str, ZoneInfo] = GAMIFICATION_TIMEZONE,
        daily_login_xp: int = DAILY_LOGIN_XP,
        leaderboard_max_limit: int = LEADERBOARD_MAX_LIMIT
    ):
        """
        Initialize GamificationService.

        Args:
            store: Persistence backend
            event_bus: Where notification events are published (new bus if omitted)
            timezone: IANA timezone defining calendar days for streaks
            daily_login_xp: XP credited once per calendar day on login
            leaderboard_max_limit: Largest allowed leaderboard size
        """
        self.store = store
        self.events = event_bus or EventBus()
        self.timezone = ZoneInfo(timezone) if isinstance(timezone, str) else timezone
        self.daily_login_xp = daily_login_xp
        self.leaderboard_max_limit = leaderboard_max_limit
        logger.debug(f"GamificationService initialized (timezone={self.timezone.key})")

    # ------------------------------------------------------------------
    # Levels
    # ------------------------------------------------------------------

    @staticmethod
    def calculate_level(xp: int) -> LevelInfo:
        return calculate_level(xp)

    def today(self) -> date:
        """Current calendar day in the configured timezone"""
        return datetime.now(self.timezone).date()

    # ------------------------------------------------------------------
    # Streaks
    # ------------------------------------------------------------------

    async def update_streak(self, student_id: str, today: Optional[date] = None) -> StreakResult:
        """
        Credit a daily login.

        Idempotent per calendar day: the second call on the same day changes
        nothing and reports xp_awarded=0, which callers use to suppress
        celebrations.

        Args:
            student_id: Student identifier
            today: Calendar day of the login (defaults to today in the configured timezone)

        Returns:
            StreakResult

        Raises:
            ValidationError: Malformed student id or date
            StorageError: Store failed; nothing was changed
        """
        self._validate_student_id(student_id, "update_streak")
        if today is None:
            today = self.today()
        elif isinstance(today, datetime) or not isinstance(today, date):
            raise ValidationError(
                "today must be a calendar date",
                field="today",
                value=str(today),
                student_id=student_id,
                operation="update_streak"
            )

        async with self.store.transaction(student_id) as tx:
            record = tx.record
            previous_date = record.last_active_date
            old_streak = record.streak
            old_level = calculate_level(record.xp)

            change = compute_streak(record.streak, previous_date, today)

            if not change.credited:
                result = StreakResult(
                    student_id=student_id,
                    streak=record.streak,
                    longest_streak=record.longest_streak,
                    xp_awarded=0,
                    level=old_level.level,
                    title=old_level.title,
                    message=format_streak_message(record.streak, 0),
                )
                outcome = "backdated" if change.backdated else "already_credited"
            else:
                xp_awarded = self.daily_login_xp + change.milestone_bonus

                record.streak = change.streak
                record.longest_streak = max(record.longest_streak, change.streak)
                record.last_active_date = today
                record.total_logins += 1
                record.xp += xp_awarded

                tx.log_xp(XPReason.LOGIN_BONUS, self.daily_login_xp, "Daily login bonus")
                if change.milestone_bonus:
                    tx.log_xp(
                        XPReason.STREAK_BONUS,
                        change.milestone_bonus,
                        f"{change.milestone}-day streak bonus!"
                    )

                new_level = calculate_level(record.xp)
                record.level = new_level.level
                new_badges = self._unlock_badges(record)

                result = StreakResult(
                    student_id=student_id,
                    streak=record.streak,
                    longest_streak=record.longest_streak,
                    xp_awarded=xp_awarded,
                    milestone_reached=change.milestone,
                    leveled_up=new_level.level > old_level.level,
                    level=new_level.level,
                    title=new_level.title,
                    newly_unlocked_badges=new_badges,
                    message=format_streak_message(record.streak, xp_awarded, change.milestone),
                )
                if previous_date is None:
                    outcome = "started"
                elif change.broken:
                    outcome = "reset"
                else:
                    outcome = "continued"

        record_streak_update(outcome)
        if result.xp_awarded:
            record_xp_awarded(XPReason.LOGIN_BONUS.value, self.daily_login_xp)
            if change.milestone_bonus:
                record_xp_awarded(XPReason.STREAK_BONUS.value, change.milestone_bonus)
            self._record_progress_metrics(result.leveled_up, result.newly_unlocked_badges)

            logger.info(
                f"Updated login streak for student {student_id}: "
                f"{old_streak} → {result.streak} days ({outcome}), +{result.xp_awarded} XP"
            )
            await self._publish(result)
        else:
            logger.debug(f"Student {student_id} already credited for {today}")

        return result

    # ------------------------------------------------------------------
    # XP
    # ------------------------------------------------------------------

    async def award_xp(
        self,
        student_id: str,
        reason: Union[XPReason, str],
        amount: Optional[int] = None,
        description: Optional[str] = None,
        stat_increment: Optional[Dict[str, Any]] = None
    ) -> XPAwardResult:
        """
        Award XP for an activity and unlock any badges it earns.

        Args:
            student_id: Student identifier
            reason: Activity that earned the XP
            amount: Positive XP amount (defaults to the reason's standard amount)
            description: Human-readable description for the XP history
            stat_increment: Extra counter increments, e.g. {"total_study_hours": 1.5}

        Returns:
            XPAwardResult with level-up flag and badges unlocked by this call

        Raises:
            ValidationError: Bad student id, reason, amount or stat increment
            StorageError: Store failed; nothing was changed
        """
        self._validate_student_id(student_id, "award_xp")
        reason = self._validate_reason(student_id, reason)
        if amount is None:
            amount = get_xp_for_activity(reason)
        self._validate_amount(student_id, amount)
        increments = self._merge_increments(student_id, reason, stat_increment)
        description = description or DEFAULT_DESCRIPTIONS.get(reason, reason.value)

        async with self.store.transaction(student_id) as tx:
            record = tx.record
            old_xp = record.xp
            old_level = calculate_level(old_xp)

            record.xp += amount
            for field_name, increment in increments.items():
                setattr(record, field_name, getattr(record, field_name) + increment)
            tx.log_xp(reason, amount, description)

            new_level = calculate_level(record.xp)
            record.level = new_level.level
            new_badges = self._unlock_badges(record)

            result = XPAwardResult(
                student_id=student_id,
                reason=reason,
                description=description,
                xp_awarded=amount,
                old_xp=old_xp,
                new_xp=record.xp,
                leveled_up=old_level.level < new_level.level,
                old_level=old_level.level,
                new_level=new_level.level,
                title=new_level.title,
                newly_unlocked_badges=new_badges,
            )

        record_xp_awarded(reason.value, amount)
        self._record_progress_metrics(result.leveled_up, result.newly_unlocked_badges)

        logger.info(
            f"Awarded {amount} XP to student {student_id} for {reason.value}. "
            f"Total: {result.new_xp} XP, Level: {result.new_level}"
        )
        if result.leveled_up:
            logger.info(f"Student {student_id} leveled up from {result.old_level} to {result.new_level}!")

        await self._publish(result)
        return result

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_student_gamification(self, student_id: str) -> StudentGamification:
        """
        Read a student's record with its level recomputed from XP.

        Raises:
            RecordNotFoundError: Student has no gamification record yet
        """
        self._validate_student_id(student_id, "get_student_gamification")
        record = await self.store.get(student_id)
        if record is None:
            raise RecordNotFoundError(
                f"No gamification record for student {student_id}",
                record_type="StudentGamification",
                record_id=student_id,
                student_id=student_id,
                operation="get_student_gamification"
            )
        return self._with_level(record)

    async def get_leaderboard(self, limit: int = 10) -> List[StudentGamification]:
        """Top students by XP; ties go to the earliest last active date"""
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= self.leaderboard_max_limit:
            raise ValidationError(
                f"limit must be between 1 and {self.leaderboard_max_limit}",
                field="limit",
                value=limit,
                operation="get_leaderboard"
            )
        records = await self.store.leaderboard(limit)
        return [self._with_level(record) for record in records]

    async def get_xp_history(self, student_id: str, limit: int = 20) -> List[XPTransaction]:
        """Newest-first XP transactions"""
        self._validate_student_id(student_id, "get_xp_history")
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError(
                "limit must be a positive integer",
                field="limit",
                value=limit,
                student_id=student_id,
                operation="get_xp_history"
            )
        return await self.store.list_xp_transactions(student_id, limit)

    async def get_badges(self, student_id: str, include_locked: bool = False) -> Dict[str, Any]:
        """Unlocked badges, plus progress toward locked ones if requested"""
        record = await self.get_student_gamification(student_id)
        return get_student_badges(record, include_locked=include_locked)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _with_level(record: StudentGamification) -> StudentGamification:
        record.level = calculate_level(record.xp).level
        return record

    @staticmethod
    def _unlock_badges(record: StudentGamification) -> List[BadgeDefinition]:
        new_badges = evaluate_badges(record)
        record.badges.extend(badge.id for badge in new_badges)
        return new_badges

    async def _publish(self, result: Union[XPAwardResult, StreakResult]) -> None:
        events = build_notifications(result)
        events.append(GamificationUpdated(student_id=result.student_id))
        await self.events.publish_all(events)

    @staticmethod
    def _record_progress_metrics(leveled_up: bool, badges: List[BadgeDefinition]) -> None:
        if leveled_up:
            record_level_up()
        for badge in badges:
            record_badge_unlocked(badge.id)

    @staticmethod
    def _validate_student_id(student_id: Any, operation: str) -> None:
        if not isinstance(student_id, str) or not STUDENT_ID_PATTERN.match(student_id):
            raise ValidationError(
                "student id must be 1-128 characters without whitespace or '/'",
                field="student_id",
                value=student_id,
                operation=operation
            )

    @staticmethod
    def _validate_reason(student_id: str, reason: Union[XPReason, str]) -> XPReason:
        try:
            reason = XPReason(reason)
        except ValueError:
            raise ValidationError(
                f"unknown XP reason '{reason}'",
                field="reason",
                value=reason,
                student_id=student_id,
                operation="award_xp"
            )
        if reason in STREAK_REASONS:
            raise ValidationError(
                f"'{reason.value}' is credited by the daily login streak only",
                field="reason",
                value=reason.value,
                student_id=student_id,
                operation="award_xp"
            )
        return reason

    @staticmethod
    def _validate_amount(student_id: str, amount: Any) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValidationError(
                "XP amount must be a positive integer",
                field="amount",
                value=amount,
                student_id=student_id,
                operation="award_xp"
            )
        if amount > MAX_XP_AWARD:
            raise ValidationError(
                f"XP amount must not exceed {MAX_XP_AWARD}",
                field="amount",
                value=amount,
                student_id=student_id,
                operation="award_xp"
            )

    @staticmethod
    def _merge_increments(
        student_id: str,
        reason: XPReason,
        stat_increment: Optional[Dict[str, Any]]
    ) -> Dict[str, Any]:
        increments: Dict[str, Any] = get_stat_increment(reason)
        for field_name, value in (stat_increment or {}).items():
            valid_number = (
                isinstance(value, (int, float))
                and not isinstance(value, bool)
                and value >= 0
                and (field_name == "total_study_hours" or isinstance(value, int))
            )
            if field_name not in STAT_FIELDS or not valid_number:
                raise ValidationError(
                    f"invalid stat increment {field_name}={value!r}",
                    field="stat_increment",
                    value={field_name: value},
                    student_id=student_id,
                    operation="award_xp"
                )
            increments[field_name] = increments.get(field_name, 0) + value
        return increments
