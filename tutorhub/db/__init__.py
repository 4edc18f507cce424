"""Persistence layer for gamification records"""
import logging

from tutorhub.config import STORE_BACKEND
from tutorhub.db.memory_store import InMemoryGamificationStore
from tutorhub.db.postgres_store import PostgresGamificationStore
from tutorhub.db.store import GamificationStore, StoreTransaction

logger = logging.getLogger(__name__)


def create_store(backend: str = STORE_BACKEND) -> GamificationStore:
    """Build the configured store ('postgres' or 'memory')"""
    if backend == "memory":
        logger.warning("Using in-memory gamification store - data is NOT persisted")
        return InMemoryGamificationStore()
    if backend == "postgres":
        return PostgresGamificationStore()
    raise ValueError(f"Unknown store backend: {backend}")


__all__ = [
    "GamificationStore",
    "StoreTransaction",
    "InMemoryGamificationStore",
    "PostgresGamificationStore",
    "create_store",
]
