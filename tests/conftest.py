"""
Pytest configuration and shared fixtures.
"""

import pytest
import pytest_asyncio
from datetime import date, datetime
from unittest.mock import AsyncMock, Mock

from src.database.connection import Database
from src.models import Task, TaskStatus, TimerState, Project, User, UserRole

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)


@pytest.fixture
def mock_database():
    """Mock database with session context manager."""
    db = Mock()
    session = AsyncMock()

    # Mock session context manager
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=None)

    # Mock session methods
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.add = Mock()
    session.add_all = Mock()

    db.session = Mock(return_value=session)

    return db, session


@pytest_asyncio.fixture
async def sqlite_db(tmp_path):
    """Real database on a sqlite file; a file (not :memory:) so concurrent sessions share it."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'planner.db'}")
    await db.initialize()
    yield db
    await db.close()


@pytest.fixture
def sample_project():
    """Sample project."""
    return Project(
        id="proj-1",
        name="Bridge Deck",
        marking="BRD-001",
        client_id="cust-1",
        marking_color="#1a2b3c",
        start_date=date(2026, 1, 5),
        end_date=date(2026, 3, 1),
        client="Acme Builders",
    )


@pytest.fixture
def sample_task():
    """Sample task with two workers and one logged day."""
    return Task(
        id="task-1",
        name="Pour slab",
        project_id="proj-1",
        start_date=date(2026, 1, 10),
        deadline=date(2026, 1, 20),
        status=TaskStatus.PLANNED,
        timer_state=TimerState.STOPPED,
        assigned_worker_ids=["w-1", "w-2"],
        daily_time_spent={"w-1": {"2026-01-10": {"time": 3600, "notes": "formwork up"}}},
        active_timers={},
    )


@pytest.fixture
def sample_worker():
    """Sample worker user."""
    return User(
        id="w-1",
        name="Jana Novak",
        email="jana@example.com",
        role=UserRole.WORKER,
        age=34,
        skills=["carpentry"],
        experience=8,
        efficiency=1.1,
        created_at=datetime(2026, 1, 1),
    )
