"""
In-memory gamification store

Keeps records in process memory. Each student has an asyncio.Lock so
concurrent transactions on the same record serialize; transactions work on a
copy of the record and only replace the stored one on successful exit.

Used for tests and local development (STORE_BACKEND=memory). Nothing is
persisted across restarts.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, List, Optional
import logging

from tutorhub.db.store import GamificationStore, StoreTransaction, leaderboard_sort_key
from tutorhub.exceptions import RecordNotFoundError
from tutorhub.models.gamification import StudentGamification, XPTransaction
from tutorhub.monitoring.prometheus_metrics import track_store_operation

logger = logging.getLogger(__name__)


class InMemoryGamificationStore(GamificationStore):
    """In-process store with per-record locking"""

    def __init__(self):
        self._records: Dict[str, StudentGamification] = {}
        self._xp_transactions: Dict[str, List[XPTransaction]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        logger.debug("InMemoryGamificationStore initialized")

    def _lock_for(self, student_id: str) -> asyncio.Lock:
        lock = self._locks.get(student_id)
        if lock is None:
            lock = self._locks[student_id] = asyncio.Lock()
        return lock

    @staticmethod
    def _not_found(student_id: str) -> RecordNotFoundError:
        return RecordNotFoundError(
            f"No gamification record for student {student_id}",
            record_type="StudentGamification",
            record_id=student_id,
            student_id=student_id,
        )

    @asynccontextmanager
    async def transaction(self, student_id: str, create: bool = True) -> AsyncIterator[StoreTransaction]:
        # No lock is created for an id that will not be stored
        if not create and student_id not in self._records:
            raise self._not_found(student_id)

        async with self._lock_for(student_id):
            existing = self._records.get(student_id)
            if existing is None:
                if not create:
                    raise self._not_found(student_id)
                tx = StoreTransaction(StudentGamification(student_id=student_id), created=True)
            else:
                tx = StoreTransaction(existing.model_copy(deep=True))

            yield tx

            if not tx.has_changes:
                return

            with track_store_operation("commit"):
                tx.record.updated_at = datetime.now(timezone.utc)
                self._records[student_id] = tx.record
                self._xp_transactions.setdefault(student_id, []).extend(tx.pending_xp)

            if tx.created:
                logger.info(f"Created gamification record for student {student_id}")

    async def get(self, student_id: str) -> Optional[StudentGamification]:
        record = self._records.get(student_id)
        return record.model_copy(deep=True) if record else None

    async def list_xp_transactions(self, student_id: str, limit: int = 20) -> List[XPTransaction]:
        transactions = self._xp_transactions.get(student_id, [])
        newest_first = list(reversed(transactions))
        return [t.model_copy() for t in newest_first[:limit]]

    async def leaderboard(self, limit: int) -> List[StudentGamification]:
        ranked = sorted(self._records.values(), key=leaderboard_sort_key)
        return [record.model_copy(deep=True) for record in ranked[:limit]]

    def clear(self) -> None:
        """Remove all data"""
        self._records.clear()
        self._xp_transactions.clear()
        self._locks.clear()
