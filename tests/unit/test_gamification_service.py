"""Unit tests for GamificationService (tutorhub/services/gamification_service.py)"""
import pytest
from contextlib import asynccontextmanager
from datetime import date
from unittest.mock import AsyncMock, patch

from tutorhub.exceptions import (
    RecordNotFoundError,
    StorageUnavailableError,
    ValidationError,
)
from tutorhub.gamification.events import BadgeUnlocked, GamificationUpdated, LevelUp, XPGained
from tutorhub.gamification.xp_system import MAX_XP_AWARD
from tutorhub.models.gamification import XPReason
from tutorhub.services.gamification_service import GamificationService


# ============================================================================
# award_xp Tests
# ============================================================================

@pytest.mark.asyncio
async def test_award_xp_crosses_level(service, seed_record, student_id):
    """Test 300 XP + 500 for a quiz reaches exactly 800 and levels up"""
    await seed_record(student_id, xp=300)

    result = await service.award_xp(student_id, XPReason.QUIZ_COMPLETED, amount=500)

    assert result.new_xp == 800
    assert result.old_level == 3
    assert result.new_level == 4
    assert result.leveled_up is True
    assert result.title == "Achiever"


@pytest.mark.asyncio
async def test_award_xp_within_level(service, seed_record, student_id):
    """Test an award that stays in the same bracket does not level up"""
    await seed_record(student_id, xp=100)

    result = await service.award_xp(student_id, XPReason.REVIEW_SUBMITTED)

    assert result.xp_awarded == 15
    assert result.leveled_up is False


@pytest.mark.asyncio
async def test_award_xp_level_up_reported_once(service, student_id):
    """Test only the crossing call reports the level-up"""
    first = await service.award_xp(student_id, XPReason.GOAL_ACHIEVED)
    second = await service.award_xp(student_id, XPReason.SESSION_COMPLETED)

    assert first.leveled_up is True  # 0 -> 100
    assert second.leveled_up is False  # 100 -> 150


@pytest.mark.asyncio
async def test_award_xp_default_amount_and_counters(service, memory_store, student_id):
    """Test default amount and counter increments for the reason"""
    result = await service.award_xp(student_id, "perfect_quiz")

    assert result.xp_awarded == 50
    assert result.reason == XPReason.PERFECT_QUIZ

    record = await memory_store.get(student_id)
    assert record.quizzes_completed == 1
    assert record.perfect_quizzes == 1
    assert "perfect_score" in record.badges


@pytest.mark.asyncio
async def test_award_xp_unlocks_badges_once(service, student_id):
    """Test a badge is returned only by the call that unlocks it"""
    first = await service.award_xp(student_id, XPReason.SESSION_COMPLETED)
    second = await service.award_xp(student_id, XPReason.SESSION_COMPLETED)

    assert [badge.id for badge in first.newly_unlocked_badges] == ["first_steps"]
    assert second.newly_unlocked_badges == []


@pytest.mark.asyncio
async def test_award_xp_stat_increment(service, memory_store, student_id):
    """Test extra counters such as study hours"""
    await service.award_xp(
        student_id,
        XPReason.SESSION_COMPLETED,
        stat_increment={"total_study_hours": 1.5}
    )

    record = await memory_store.get(student_id)
    assert record.total_study_hours == 1.5
    assert record.sessions_completed == 1


@pytest.mark.asyncio
async def test_award_xp_writes_ledger(service, memory_store, student_id):
    """Test every award is logged newest first"""
    await service.award_xp(student_id, XPReason.QUIZ_COMPLETED)
    await service.award_xp(student_id, XPReason.GOAL_ACHIEVED, description="Finished algebra unit")

    history = await service.get_xp_history(student_id)

    assert [t.reason for t in history] == [XPReason.GOAL_ACHIEVED, XPReason.QUIZ_COMPLETED]
    assert history[0].description == "Finished algebra unit"
    assert history[1].description == "Completed a quiz"


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [0, -10, True, 2.5, "50"])
async def test_award_xp_rejects_invalid_amount(service, memory_store, student_id, amount):
    """Test zero, negative and non-integer amounts fail fast"""
    with pytest.raises(ValidationError) as exc_info:
        await service.award_xp(student_id, XPReason.QUIZ_COMPLETED, amount=amount)

    assert exc_info.value.reason == "validation"
    assert exc_info.value.field == "amount"
    assert await memory_store.get(student_id) is None


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [MAX_XP_AWARD + 1, 2 ** 31, 10 ** 30])
async def test_award_xp_rejects_amount_above_cap(service, memory_store, student_id, amount):
    """Test oversized awards are refused before they reach storage"""
    with pytest.raises(ValidationError) as exc_info:
        await service.award_xp(student_id, XPReason.SESSION_COMPLETED, amount=amount)

    assert exc_info.value.field == "amount"
    assert exc_info.value.retryable is False
    assert await memory_store.get(student_id) is None


@pytest.mark.asyncio
async def test_award_xp_accepts_amount_at_cap(service, student_id):
    """Test the cap itself is a valid award"""
    result = await service.award_xp(student_id, XPReason.SESSION_COMPLETED, amount=MAX_XP_AWARD)
    assert result.xp_awarded == MAX_XP_AWARD
    assert result.new_xp == MAX_XP_AWARD


@pytest.mark.asyncio
@pytest.mark.parametrize("student", ["", "has space", "a/b", "x" * 129, None, 42])
async def test_award_xp_rejects_malformed_student_id(service, student):
    """Test malformed student identifiers are rejected"""
    with pytest.raises(ValidationError) as exc_info:
        await service.award_xp(student, XPReason.QUIZ_COMPLETED)
    assert exc_info.value.field == "student_id"


@pytest.mark.asyncio
@pytest.mark.parametrize("reason", ["login_bonus", "streak_bonus", "bogus"])
async def test_award_xp_rejects_reserved_or_unknown_reason(service, student_id, reason):
    """Test streak-only and unknown reasons are rejected"""
    with pytest.raises(ValidationError) as exc_info:
        await service.award_xp(student_id, reason, amount=10)
    assert exc_info.value.field == "reason"


@pytest.mark.asyncio
@pytest.mark.parametrize("increment", [
    {"xp": 10},
    {"sessions_completed": -1},
    {"sessions_completed": 1.5},
    {"total_study_hours": True},
])
async def test_award_xp_rejects_bad_stat_increment(service, memory_store, student_id, increment):
    """Test stat increments are limited to known non-negative counters"""
    with pytest.raises(ValidationError):
        await service.award_xp(student_id, XPReason.SESSION_COMPLETED, stat_increment=increment)
    assert await memory_store.get(student_id) is None


@pytest.mark.asyncio
async def test_award_xp_storage_failure_leaves_record_untouched(service, seed_record, memory_store, student_id):
    """Test a failed commit reports a retryable error and publishes nothing"""
    await seed_record(student_id, xp=40)
    published = []
    service.events.subscribe(published.append)

    original_transaction = memory_store.transaction

    @asynccontextmanager
    async def failing_transaction(sid, create=True):
        async with original_transaction(sid, create) as tx:
            yield tx
            raise StorageUnavailableError(operation="commit", student_id=sid)

    with patch.object(memory_store, "transaction", failing_transaction):
        with pytest.raises(StorageUnavailableError) as exc_info:
            await service.award_xp(student_id, XPReason.GOAL_ACHIEVED)

    assert exc_info.value.retryable is True
    record = await memory_store.get(student_id)
    assert record.xp == 40
    assert record.goals_completed == 0
    assert await memory_store.list_xp_transactions(student_id) == []
    assert published == []


# ============================================================================
# Event Tests
# ============================================================================

@pytest.mark.asyncio
async def test_award_xp_event_order(service, recorded_events, student_id):
    """Test XP gain, then level-up, then badges, then the refresh signal"""
    await service.award_xp(student_id, XPReason.SESSION_COMPLETED, amount=1000)

    types = [type(event) for event in recorded_events]
    assert types[0] is XPGained
    assert types[1] is LevelUp
    assert all(t is BadgeUnlocked for t in types[2:-1])
    assert types[-1] is GamificationUpdated

    badge_ids = [event.badge.id for event in recorded_events[2:-1]]
    assert badge_ids == ["first_steps", "dedicated_learner"]
    assert recorded_events[1].level == 5


@pytest.mark.asyncio
async def test_same_day_streak_publishes_nothing(service, recorded_events, student_id, base_day):
    """Test an already credited day triggers no notifications"""
    await service.update_streak(student_id, today=base_day)
    recorded_events.clear()

    await service.update_streak(student_id, today=base_day)

    assert recorded_events == []


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_fail_award(service, memory_store, student_id):
    """Test subscriber errors are logged and ignored"""
    service.events.subscribe(AsyncMock(side_effect=RuntimeError("toast service down")))

    result = await service.award_xp(student_id, XPReason.QUIZ_COMPLETED)

    assert result.new_xp == 25
    assert (await memory_store.get(student_id)).xp == 25


# ============================================================================
# Read Tests
# ============================================================================

@pytest.mark.asyncio
async def test_get_student_gamification_not_found(service):
    """Test missing records raise a not-found error"""
    with pytest.raises(RecordNotFoundError) as exc_info:
        await service.get_student_gamification("stu_missing")
    assert exc_info.value.reason == "not_found"


@pytest.mark.asyncio
async def test_get_student_gamification_recomputes_level(service, seed_record, student_id):
    """Test level on read is derived from XP, not the stored value"""
    await seed_record(student_id, xp=1500, level=1)

    record = await service.get_student_gamification(student_id)

    assert record.level == 6


@pytest.mark.asyncio
async def test_get_leaderboard_tie_break(service, seed_record):
    """Test equal XP ranks the earlier last active date first"""
    await seed_record("stu_a", xp=100, last_active_date=date(2024, 1, 1))
    await seed_record("stu_b", xp=300, last_active_date=date(2024, 1, 9))
    await seed_record("stu_c", xp=300, last_active_date=date(2024, 1, 5))

    leaderboard = await service.get_leaderboard(limit=10)

    assert [r.student_id for r in leaderboard] == ["stu_c", "stu_b", "stu_a"]
    assert [r.xp for r in leaderboard] == [300, 300, 100]


@pytest.mark.asyncio
async def test_get_leaderboard_is_bounded(service, seed_record):
    """Test limit caps the result size"""
    for i in range(5):
        await seed_record(f"stu_{i}", xp=i * 10)

    leaderboard = await service.get_leaderboard(limit=2)

    assert [r.student_id for r in leaderboard] == ["stu_4", "stu_3"]


@pytest.mark.asyncio
@pytest.mark.parametrize("limit", [0, -1, 101, True])
async def test_get_leaderboard_rejects_bad_limit(service, limit):
    """Test limit must be within 1..max"""
    with pytest.raises(ValidationError):
        await service.get_leaderboard(limit=limit)


@pytest.mark.asyncio
async def test_get_badges_includes_progress(service, student_id):
    """Test badge listing for a student"""
    await service.award_xp(student_id, XPReason.QUIZ_COMPLETED)

    badges = await service.get_badges(student_id, include_locked=True)

    assert badges["total_unlocked"] == 0
    quiz_whiz = next(item for item in badges["locked"] if item["badge"].id == "quiz_whiz")
    assert quiz_whiz["progress"]["current"] == 1


def test_service_timezone_defines_today():
    """Test the configured timezone is used for the calendar day"""
    service = GamificationService(AsyncMock(), timezone="Europe/Berlin")
    assert service.timezone.key == "Europe/Berlin"
    assert isinstance(service.today(), date)


def test_calculate_level_exposed_on_service():
    """Test level lookup is available without a store"""
    assert GamificationService.calculate_level(0).level == 1
