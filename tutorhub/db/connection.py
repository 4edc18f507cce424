"""PostgreSQL connection pool for the gamification store"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from tutorhub.config import DATABASE_URL, DB_POOL_MAX_SIZE, DB_POOL_MIN_SIZE

logger = logging.getLogger(__name__)


class Database:
    """
    Owns one AsyncConnectionPool.

    Connections handed out by ``connection()`` return rows as dicts, which is
    what the store's row mappers expect.
    """

    def __init__(
        self,
        connection_string: str = DATABASE_URL,
        min_size: int = DB_POOL_MIN_SIZE,
        max_size: int = DB_POOL_MAX_SIZE
    ):
        self.connection_string = connection_string
        self.min_size = min_size
        self.max_size = max_size
        self._pool: Optional[AsyncConnectionPool] = None

    @property
    def is_initialized(self) -> bool:
        return self._pool is not None

    async def init_pool(self) -> None:
        """Open the pool (no-op if already open)"""
        if self._pool is not None:
            return
        logger.info(f"Opening gamification DB pool (min={self.min_size}, max={self.max_size})")
        pool = AsyncConnectionPool(
            self.connection_string,
            min_size=self.min_size,
            max_size=self.max_size,
            open=False
        )
        await pool.open()
        self._pool = pool

    async def close_pool(self) -> None:
        if self._pool:
            logger.info("Closing gamification DB pool")
            await self._pool.close()
            self._pool = None

    async def check_connection(self) -> bool:
        """Round-trip a trivial query; False if the pool is closed or the server is unreachable"""
        if not self._pool:
            return False
        try:
            async with self.connection() as conn:
                await conn.execute("SELECT 1")
            return True
        except psycopg.Error as e:
            logger.warning(f"Database health check failed: {e}")
            return False

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Borrow a connection with dict rows"""
        if not self._pool:
            raise RuntimeError("Database pool not initialized")

        async with self._pool.connection() as conn:
            conn.row_factory = dict_row
            yield conn


# Shared instance used by PostgresGamificationStore
db = Database()
