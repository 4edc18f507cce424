"""Unit tests for gamification events (tutorhub/gamification/events.py)"""
import pytest
from unittest.mock import AsyncMock, Mock, patch

from tutorhub.gamification.achievement_system import get_badge
from tutorhub.gamification.events import (
    BadgeUnlocked,
    EventBus,
    GamificationUpdated,
    LevelUp,
    XPGained,
    build_notifications,
)
from tutorhub.models.gamification import StreakResult, XPAwardResult, XPReason


def _award(**overrides) -> XPAwardResult:
    data = dict(
        student_id="stu_123",
        reason=XPReason.QUIZ_COMPLETED,
        description="Completed a quiz",
        xp_awarded=25,
        old_xp=0,
        new_xp=25,
        leveled_up=False,
        old_level=1,
        new_level=1,
        title="Beginner",
    )
    data.update(overrides)
    return XPAwardResult(**data)


# ============================================================================
# build_notifications Tests
# ============================================================================

def test_build_notifications_xp_only():
    """Test a plain award produces one XP event"""
    events = build_notifications(_award())

    assert len(events) == 1
    assert isinstance(events[0], XPGained)
    assert events[0].amount == 25
    assert events[0].reason == XPReason.QUIZ_COMPLETED


def test_build_notifications_level_up_before_badges():
    """Test level-up comes before badge unlocks"""
    badges = [get_badge("first_steps"), get_badge("dedicated_learner")]
    events = build_notifications(_award(
        xp_awarded=1000, new_xp=1000, leveled_up=True, new_level=5, title="Scholar",
        newly_unlocked_badges=badges
    ))

    assert [e.event_type for e in events] == ["XPGained", "LevelUp", "BadgeUnlocked", "BadgeUnlocked"]
    assert events[1] == LevelUp(student_id="stu_123", level=5, title="Scholar")
    assert [e.badge.id for e in events[2:]] == ["first_steps", "dedicated_learner"]


def test_build_notifications_streak_already_credited():
    """Test a zero-XP streak result produces nothing"""
    result = StreakResult(student_id="stu_123", streak=4, longest_streak=4, xp_awarded=0)
    assert build_notifications(result) == []


def test_build_notifications_streak_milestone():
    """Test milestone logins are reported as streak bonuses"""
    result = StreakResult(
        student_id="stu_123", streak=7, longest_streak=7, xp_awarded=60,
        milestone_reached=7, message="Streak continues!"
    )
    events = build_notifications(result)

    assert events[0].reason == XPReason.STREAK_BONUS
    assert events[0].amount == 60


# ============================================================================
# EventBus Tests
# ============================================================================

@pytest.mark.asyncio
async def test_publish_sync_and_async_subscribers():
    """Test both plain and coroutine callbacks receive events"""
    bus = EventBus()
    sync_callback = Mock()
    async_callback = AsyncMock()
    bus.subscribe(sync_callback)
    bus.subscribe(async_callback)

    event = GamificationUpdated(student_id="stu_123")
    await bus.publish(event)

    sync_callback.assert_called_once_with(event)
    async_callback.assert_awaited_once_with(event)


@pytest.mark.asyncio
async def test_unsubscribe():
    """Test unsubscribed callbacks stop receiving events"""
    bus = EventBus()
    callback = Mock()
    unsubscribe = bus.subscribe(callback)
    assert bus.subscriber_count == 1

    unsubscribe()
    unsubscribe()  # second call is a no-op
    await bus.publish(GamificationUpdated(student_id="stu_123"))

    assert bus.subscriber_count == 0
    callback.assert_not_called()


@pytest.mark.asyncio
async def test_failing_subscriber_is_isolated():
    """Test one failing subscriber does not block the others"""
    bus = EventBus()
    received = []
    bus.subscribe(Mock(side_effect=RuntimeError("boom")))
    bus.subscribe(received.append)

    with patch("tutorhub.resilience.best_effort.record_side_effect_failure") as mock_record:
        await bus.publish_all([
            XPGained(student_id="stu_123", amount=10),
            BadgeUnlocked(student_id="stu_123", badge=get_badge("first_steps")),
        ])

    assert [e.event_type for e in received] == ["XPGained", "BadgeUnlocked"]
    mock_record.assert_any_call("deliver_XPGained")
    assert mock_record.call_count == 2
