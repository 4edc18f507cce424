"""Global test fixtures for the gamification engine"""
import pytest
from datetime import date
from uuid import uuid4

from tutorhub.db.memory_store import InMemoryGamificationStore
from tutorhub.gamification.events import EventBus
from tutorhub.models.gamification import StudentGamification
from tutorhub.services.gamification_service import GamificationService


# ============================================================================
# Store & Service Fixtures
# ============================================================================

@pytest.fixture
def memory_store():
    """Empty in-memory store"""
    return InMemoryGamificationStore()


@pytest.fixture
def event_bus():
    """Fresh event bus"""
    return EventBus()


@pytest.fixture
def recorded_events(event_bus):
    """Every event published on ``event_bus``, in order"""
    events = []
    event_bus.subscribe(events.append)
    return events


@pytest.fixture
def service(memory_store, event_bus):
    """GamificationService over the in-memory store, calendar days in UTC"""
    return GamificationService(memory_store, event_bus, timezone="UTC")


# ============================================================================
# Student Fixtures
# ============================================================================

@pytest.fixture
def student_id():
    """Standard test student ID"""
    return "stu_123"


@pytest.fixture
def unique_student_id():
    """Generate unique student ID for test isolation"""
    return f"stu_{uuid4().hex[:12]}"


@pytest.fixture
def base_day():
    """Fixed calendar day used as 'today' in streak tests"""
    return date(2024, 1, 10)


@pytest.fixture
def make_record():
    """Factory for StudentGamification records"""
    def _make(student_id: str = "stu_123", **fields) -> StudentGamification:
        return StudentGamification(student_id=student_id, **fields)
    return _make


@pytest.fixture
def seed_record(memory_store):
    """Store a record directly, bypassing the service"""
    async def _seed(student_id: str = "stu_123", **fields) -> StudentGamification:
        async with memory_store.transaction(student_id) as tx:
            for name, value in fields.items():
                setattr(tx.record, name, value)
        return await memory_store.get(student_id)
    return _seed
