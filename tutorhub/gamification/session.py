"""
Per-session gamification state

One StudentSession lives from login to logout. It owns everything the UI
used to keep in module globals or browser storage: the cached record and the
ids of announcements the student dismissed.

The cached record is marked stale whenever the engine publishes a
GamificationUpdated event for this student; callers re-read it lazily
(e.g. when the page regains focus). This is only a staleness heuristic, the
store stays the source of truth.
"""

from typing import TYPE_CHECKING, Callable, Optional, Set
import logging

from tutorhub.exceptions import RecordNotFoundError
from tutorhub.gamification.events import GamificationEvent, GamificationUpdated
from tutorhub.models.gamification import StreakResult, StudentGamification

if TYPE_CHECKING:
    from tutorhub.services.gamification_service import GamificationService

logger = logging.getLogger(__name__)


class StudentSession:
    """
    Session-scoped gamification state for one student.

    Example:
        async with StudentSession(service, "stu_123") as session:
            await session.check_in()
            record = await session.get_record()
    """

    def __init__(self, service: "GamificationService", student_id: str):
        self.service = service
        self.student_id = student_id
        self._record: Optional[StudentGamification] = None
        self._stale = True
        self._dismissed_announcements: Set[str] = set()
        self._unsubscribe: Optional[Callable[[], None]] = None

    @property
    def active(self) -> bool:
        return self._unsubscribe is not None

    @property
    def is_stale(self) -> bool:
        return self._stale

    @property
    def record(self) -> Optional[StudentGamification]:
        """Cached record, possibly stale; None before the first login"""
        return self._record

    async def start(self) -> Optional[StudentGamification]:
        """Begin the session: subscribe to updates and load the record"""
        if not self.active:
            self._unsubscribe = self.service.events.subscribe(self._on_event)
            logger.debug(f"Session started for student {self.student_id}")
        return await self.refresh()

    async def check_in(self) -> StreakResult:
        """Credit today's login for this student"""
        return await self.service.update_streak(self.student_id)

    async def refresh(self) -> Optional[StudentGamification]:
        """Re-read the record from the store"""
        try:
            self._record = await self.service.get_student_gamification(self.student_id)
        except RecordNotFoundError:
            self._record = None
        self._stale = False
        return self._record

    async def get_record(self) -> Optional[StudentGamification]:
        """Cached record, re-read first if an update was published since the last read"""
        if self._stale:
            return await self.refresh()
        return self._record

    def dismiss_announcement(self, announcement_id: str) -> None:
        self._dismissed_announcements.add(announcement_id)

    def is_dismissed(self, announcement_id: str) -> bool:
        return announcement_id in self._dismissed_announcements

    def close(self) -> None:
        """End the session (logout): unsubscribe and drop all cached state"""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._record = None
        self._stale = True
        self._dismissed_announcements.clear()
        logger.debug(f"Session closed for student {self.student_id}")

    def _on_event(self, event: GamificationEvent) -> None:
        if isinstance(event, GamificationUpdated) and event.student_id == self.student_id:
            self._stale = True

    async def __aenter__(self) -> "StudentSession":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()
