"""
Gamification store interface

A store persists one StudentGamification record per student plus an
append-only XP ledger. All mutations go through ``transaction()``, which
gives the caller exclusive read-modify-write access to a single record:

    async with store.transaction(student_id) as tx:
        tx.record.xp += 10
        tx.log_xp(XPReason.LOGIN_BONUS, 10, "Daily login bonus")

Changes (record and ledger rows) are committed together only if the block
exits normally. An exception inside the block discards everything.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from datetime import date
from typing import List, Optional
from uuid import uuid4
import logging

from tutorhub.models.gamification import StudentGamification, XPReason, XPTransaction

logger = logging.getLogger(__name__)


class StoreTransaction:
    """Unit of work over a single student's record"""

    def __init__(self, record: StudentGamification, created: bool = False):
        self.record = record
        self.created = created
        self.pending_xp: List[XPTransaction] = []
        self._original = record.model_copy(deep=True)

    def log_xp(self, reason: XPReason, amount: int, description: str) -> XPTransaction:
        """Queue an XP ledger row to be written with the record"""
        transaction = XPTransaction(
            id=str(uuid4()),
            student_id=self.record.student_id,
            reason=reason,
            xp_amount=amount,
            description=description,
        )
        self.pending_xp.append(transaction)
        return transaction

    @property
    def has_changes(self) -> bool:
        return self.created or bool(self.pending_xp) or self.record != self._original


def leaderboard_sort_key(record: StudentGamification):
    """Descending XP, then earliest last active date (never-active last), then id"""
    return (
        -record.xp,
        record.last_active_date is None,
        record.last_active_date or date.max,
        record.student_id,
    )


class GamificationStore(ABC):
    """Persistence boundary for gamification records"""

    @abstractmethod
    def transaction(
        self,
        student_id: str,
        create: bool = True
    ) -> AbstractAsyncContextManager[StoreTransaction]:
        """
        Exclusive read-modify-write access to one record.

        Args:
            student_id: Record key
            create: Lazily create a default record if none exists

        Raises:
            RecordNotFoundError: Record missing and create=False
            StorageError: Backing store failed; nothing was written
        """

    @abstractmethod
    async def get(self, student_id: str) -> Optional[StudentGamification]:
        """Read a record without locking, None if absent"""

    @abstractmethod
    async def list_xp_transactions(self, student_id: str, limit: int = 20) -> List[XPTransaction]:
        """Newest-first XP ledger rows for a student"""

    @abstractmethod
    async def leaderboard(self, limit: int) -> List[StudentGamification]:
        """Top records ordered by ``leaderboard_sort_key``"""

    async def close(self) -> None:
        """Release resources held by the store"""
