"""
Gamification events and in-process publish/subscribe

Engine results are turned into an ordered list of notification events for
the UI layer:

1. XPGained (amount, reason)
2. LevelUp (new level, title) when the award crossed a threshold
3. BadgeUnlocked, one per newly unlocked badge

Level-up always comes before badges, since a badge may depend on the new
level. After every successful mutation a GamificationUpdated event is also
published so open sessions can refresh their cached record.

Subscribers are called in subscription order. A failing subscriber is logged
and skipped; it never affects the engine operation or other subscribers.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Optional, Union
import logging

from tutorhub.models.gamification import BadgeDefinition, StreakResult, XPAwardResult, XPReason
from tutorhub.resilience.best_effort import run_best_effort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GamificationEvent:
    """Base event"""
    student_id: str
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc), compare=False)

    @property
    def event_type(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class XPGained(GamificationEvent):
    amount: int = 0
    reason: Optional[XPReason] = None
    description: str = ""


@dataclass(frozen=True)
class LevelUp(GamificationEvent):
    level: int = 1
    title: str = ""


@dataclass(frozen=True)
class BadgeUnlocked(GamificationEvent):
    badge: Optional[BadgeDefinition] = None


@dataclass(frozen=True)
class GamificationUpdated(GamificationEvent):
    """Record changed; cached copies are stale"""


Subscriber = Callable[[GamificationEvent], Union[None, Awaitable[None]]]


def build_notifications(result: Union[XPAwardResult, StreakResult]) -> List[GamificationEvent]:
    """
    Ordered notification events for an engine result

    Returns an empty list for a streak update that credited nothing, so
    repeated same-day logins never trigger celebrations.
    """
    events: List[GamificationEvent] = []

    if isinstance(result, XPAwardResult):
        events.append(XPGained(
            student_id=result.student_id,
            amount=result.xp_awarded,
            reason=result.reason,
            description=result.description,
        ))
        new_level = result.new_level
    else:
        if result.xp_awarded == 0:
            return events
        reason = XPReason.STREAK_BONUS if result.milestone_reached else XPReason.LOGIN_BONUS
        events.append(XPGained(
            student_id=result.student_id,
            amount=result.xp_awarded,
            reason=reason,
            description=result.message,
        ))
        new_level = result.level

    if result.leveled_up:
        events.append(LevelUp(student_id=result.student_id, level=new_level, title=result.title))

    for badge in result.newly_unlocked_badges:
        events.append(BadgeUnlocked(student_id=result.student_id, badge=badge))

    return events


class EventBus:
    """
    In-process publish/subscribe for gamification events.

    Example:
        bus = EventBus()
        unsubscribe = bus.subscribe(lambda event: print(event.event_type))
        await bus.publish(XPGained(student_id="stu_1", amount=10))
        unsubscribe()
    """

    def __init__(self):
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that removes it"""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, event: GamificationEvent) -> None:
        """Deliver an event to every subscriber, best-effort"""
        # Copy so callbacks may unsubscribe while being notified
        for callback in list(self._subscribers):
            await run_best_effort(
                _bind(callback, event),
                operation=f"deliver_{event.event_type}"
            )

    async def publish_all(self, events: List[GamificationEvent]) -> None:
        """Deliver events in order"""
        for event in events:
            await self.publish(event)


def _bind(callback: Subscriber, event: GamificationEvent) -> Callable[[], Any]:
    return lambda: callback(event)
