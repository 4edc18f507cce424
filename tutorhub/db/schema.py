"""PostgreSQL schema for the gamification store"""
import logging

from tutorhub.db.connection import Database

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS student_gamification (
    student_id          TEXT PRIMARY KEY,
    xp                  BIGINT NOT NULL DEFAULT 0 CHECK (xp >= 0),
    streak              INTEGER NOT NULL DEFAULT 0 CHECK (streak >= 0),
    longest_streak      INTEGER NOT NULL DEFAULT 0 CHECK (longest_streak >= 0),
    last_active_date    DATE,
    badges              TEXT[] NOT NULL DEFAULT '{}',
    total_logins        INTEGER NOT NULL DEFAULT 0 CHECK (total_logins >= 0),
    sessions_completed  INTEGER NOT NULL DEFAULT 0 CHECK (sessions_completed >= 0),
    quizzes_completed   INTEGER NOT NULL DEFAULT 0 CHECK (quizzes_completed >= 0),
    perfect_quizzes     INTEGER NOT NULL DEFAULT 0 CHECK (perfect_quizzes >= 0),
    goals_completed     INTEGER NOT NULL DEFAULT 0 CHECK (goals_completed >= 0),
    reviews_submitted   INTEGER NOT NULL DEFAULT 0 CHECK (reviews_submitted >= 0),
    total_study_hours   DOUBLE PRECISION NOT NULL DEFAULT 0 CHECK (total_study_hours >= 0),
    created_at          TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at          TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_student_gamification_leaderboard
    ON student_gamification (xp DESC, last_active_date ASC NULLS LAST, student_id);

CREATE TABLE IF NOT EXISTS xp_transactions (
    id          UUID PRIMARY KEY,
    student_id  TEXT NOT NULL REFERENCES student_gamification (student_id),
    reason      TEXT NOT NULL,
    xp_amount   BIGINT NOT NULL CHECK (xp_amount > 0),
    description TEXT NOT NULL DEFAULT '',
    created_at  TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_xp_transactions_student
    ON xp_transactions (student_id, created_at DESC);
"""


async def ensure_schema(database: Database) -> None:
    """Create gamification tables if they do not exist"""
    async with database.connection() as conn:
        await conn.execute(SCHEMA_SQL)
        await conn.commit()
    logger.info("Gamification schema ensured")
