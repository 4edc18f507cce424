"""PostgreSQL gamification store"""
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional
import logging

import psycopg

from tutorhub.db.connection import Database, db
from tutorhub.db.store import GamificationStore, StoreTransaction
from tutorhub.exceptions import RecordNotFoundError, StorageUnavailableError, wrap_storage_exception
from tutorhub.models.gamification import StudentGamification, XPTransaction
from tutorhub.monitoring.prometheus_metrics import track_store_operation

logger = logging.getLogger(__name__)

RECORD_COLUMNS = """
    student_id, xp, streak, longest_streak, last_active_date, badges,
    total_logins, sessions_completed, quizzes_completed, perfect_quizzes,
    goals_completed, reviews_submitted, total_study_hours, created_at, updated_at
"""


def _row_to_record(row: dict) -> StudentGamification:
    data = dict(row)
    data["badges"] = list(data.get("badges") or [])
    return StudentGamification(**data)


class PostgresGamificationStore(GamificationStore):
    """
    Store backed by the ``student_gamification`` and ``xp_transactions`` tables.

    Each transaction runs in one database transaction and locks the student's
    row with SELECT ... FOR UPDATE, so concurrent logins from several devices
    serialize on the row instead of double-crediting.
    """

    def __init__(self, database: Database = db):
        self.database = database

    def _ensure_ready(self, operation: str) -> None:
        if not self.database.is_initialized:
            raise StorageUnavailableError("Database pool not initialized", operation=operation)

    @asynccontextmanager
    async def transaction(self, student_id: str, create: bool = True) -> AsyncIterator[StoreTransaction]:
        self._ensure_ready("transaction")
        try:
            async with self.database.connection() as conn:
                async with conn.transaction():
                    async with conn.cursor() as cur:
                        created = False
                        if create:
                            await cur.execute(
                                """
                                INSERT INTO student_gamification (student_id)
                                VALUES (%s)
                                ON CONFLICT (student_id) DO NOTHING
                                RETURNING student_id
                                """,
                                (student_id,)
                            )
                            created = await cur.fetchone() is not None

                        await cur.execute(
                            f"""
                            SELECT {RECORD_COLUMNS}
                            FROM student_gamification
                            WHERE student_id = %s
                            FOR UPDATE
                            """,
                            (student_id,)
                        )
                        row = await cur.fetchone()
                        if row is None:
                            raise RecordNotFoundError(
                                f"No gamification record for student {student_id}",
                                record_type="StudentGamification",
                                record_id=student_id,
                                student_id=student_id,
                            )

                        tx = StoreTransaction(_row_to_record(row), created=created)
                        yield tx

                        if tx.has_changes:
                            with track_store_operation("commit"):
                                await self._write(cur, tx)

            if created:
                logger.info(f"Created gamification record for student {student_id}")

        except psycopg.Error as e:
            raise wrap_storage_exception(e, operation="transaction", student_id=student_id)

    async def _write(self, cur, tx: StoreTransaction) -> None:
        record = tx.record
        await cur.execute(
            """
            UPDATE student_gamification
            SET xp = %s,
                streak = %s,
                longest_streak = %s,
                last_active_date = %s,
                badges = %s,
                total_logins = %s,
                sessions_completed = %s,
                quizzes_completed = %s,
                perfect_quizzes = %s,
                goals_completed = %s,
                reviews_submitted = %s,
                total_study_hours = %s,
                updated_at = CURRENT_TIMESTAMP
            WHERE student_id = %s
            """,
            (
                record.xp,
                record.streak,
                record.longest_streak,
                record.last_active_date,
                record.badges,
                record.total_logins,
                record.sessions_completed,
                record.quizzes_completed,
                record.perfect_quizzes,
                record.goals_completed,
                record.reviews_submitted,
                record.total_study_hours,
                record.student_id,
            )
        )

        for transaction in tx.pending_xp:
            await cur.execute(
                """
                INSERT INTO xp_transactions (id, student_id, reason, xp_amount, description, created_at)
                VALUES (%s, %s, %s, %s, %s, %s)
                """,
                (
                    transaction.id,
                    transaction.student_id,
                    transaction.reason.value,
                    transaction.xp_amount,
                    transaction.description,
                    transaction.created_at,
                )
            )

    async def get(self, student_id: str) -> Optional[StudentGamification]:
        self._ensure_ready("get")
        try:
            with track_store_operation("get"):
                async with self.database.connection() as conn:
                    async with conn.cursor() as cur:
                        await cur.execute(
                            f"SELECT {RECORD_COLUMNS} FROM student_gamification WHERE student_id = %s",
                            (student_id,)
                        )
                        row = await cur.fetchone()
                        return _row_to_record(row) if row else None
        except psycopg.Error as e:
            raise wrap_storage_exception(e, operation="get", student_id=student_id)

    async def list_xp_transactions(self, student_id: str, limit: int = 20) -> List[XPTransaction]:
        self._ensure_ready("list_xp_transactions")
        try:
            with track_store_operation("list_xp_transactions"):
                async with self.database.connection() as conn:
                    async with conn.cursor() as cur:
                        await cur.execute(
                            """
                            SELECT id, student_id, reason, xp_amount, description, created_at
                            FROM xp_transactions
                            WHERE student_id = %s
                            ORDER BY created_at DESC
                            LIMIT %s
                            """,
                            (student_id, limit)
                        )
                        rows = await cur.fetchall()
                        return [XPTransaction(**{**row, "id": str(row["id"])}) for row in rows]
        except psycopg.Error as e:
            raise wrap_storage_exception(e, operation="list_xp_transactions", student_id=student_id)

    async def leaderboard(self, limit: int) -> List[StudentGamification]:
        self._ensure_ready("leaderboard")
        try:
            with track_store_operation("leaderboard"):
                async with self.database.connection() as conn:
                    async with conn.cursor() as cur:
                        await cur.execute(
                            f"""
                            SELECT {RECORD_COLUMNS}
                            FROM student_gamification
                            ORDER BY xp DESC, last_active_date ASC NULLS LAST, student_id ASC
                            LIMIT %s
                            """,
                            (limit,)
                        )
                        rows = await cur.fetchall()
                        return [_row_to_record(row) for row in rows]
        except psycopg.Error as e:
            raise wrap_storage_exception(e, operation="leaderboard")

    async def close(self) -> None:
        await self.database.close_pool()
