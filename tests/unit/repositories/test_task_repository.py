"""
Unit tests for TaskRepository.

Each table step runs in its own session; these tests check what each step
writes and that the first failing step stops the sequence.
"""

import pytest
from unittest.mock import MagicMock
from datetime import date

from src.database.exceptions import DatabaseOperationError, EntityNotFoundError
from src.database.models import TaskDB, TaskWorkerDB, TaskNoteDB, TaskDailyTimeDB
from src.database.repositories.tasks import TaskRepository
from src.models import DailyTimeRecord, Task, TaskCreate, TaskStatus, TimerState


@pytest.fixture
def task_repository(mock_database):
    """Create TaskRepository with mocked database and notifier."""
    db, session = mock_database
    notifier = MagicMock()
    return TaskRepository(db, notifier), session, notifier


def _task_input(**overrides):
    fields = dict(
        name="Pour slab",
        project_id="p-1",
        start_date=date(2026, 1, 10),
        assigned_worker_ids=["w-1", "w-2"],
        notes="  bring the pump  ",
    )
    fields.update(overrides)
    return TaskCreate(**fields)


# ============================================================
# CREATE TESTS
# ============================================================

@pytest.mark.asyncio
async def test_create_task_writes_each_table(task_repository):
    repo, session, _ = task_repository

    task = await repo.create(_task_input(), actor_id="u-1")

    row = session.add.call_args_list[0][0][0]
    assert isinstance(row, TaskDB)
    assert row.status == TaskStatus.PLANNED.value
    assert row.timer_state == TimerState.STOPPED.value

    links = session.add_all.call_args[0][0]
    assert [(link.task_id, link.user_id) for link in links] == [(row.task_id, "w-1"), (row.task_id, "w-2")]

    note = session.add.call_args_list[1][0][0]
    assert isinstance(note, TaskNoteDB)
    assert note.note_text == "bring the pump"
    assert note.user_id == "u-1"
    assert note.note_date == date(2026, 1, 10)

    assert task.daily_time_spent == {"u-1": {"2026-01-10": DailyTimeRecord(time=0, notes="bring the pump")}}


@pytest.mark.asyncio
async def test_create_task_without_workers_or_note(task_repository):
    repo, session, notifier = task_repository

    task = await repo.create(_task_input(assigned_worker_ids=[], notes="   "), actor_id="u-1")

    session.add.assert_called_once()
    session.add_all.assert_not_called()
    assert task.daily_time_spent == {}
    notifier.notify_task_assigned.assert_called_once_with([], task)


@pytest.mark.asyncio
async def test_create_stops_at_first_failing_step(task_repository):
    repo, session, notifier = task_repository
    session.add_all.side_effect = Exception("link insert failed")

    with pytest.raises(DatabaseOperationError) as exc_info:
        await repo.create(_task_input(), actor_id="u-1")

    assert exc_info.value.table == "taskworker"
    # Task row was added, the note step never ran
    assert session.add.call_count == 1
    notifier.notify_task_assigned.assert_not_called()


# ============================================================
# UPDATE TESTS
# ============================================================

@pytest.mark.asyncio
async def test_update_missing_task(task_repository):
    repo, session, _ = task_repository
    session.execute.return_value = MagicMock(rowcount=0)

    with pytest.raises(EntityNotFoundError):
        await repo.update(Task(id="ghost", name="x", project_id="p-1"))


@pytest.mark.asyncio
async def test_update_replaces_time_and_notes(task_repository):
    repo, session, _ = task_repository
    session.execute.return_value = MagicMock(rowcount=1)
    task = Task(
        id="t-1", name="Slab", project_id="p-1", assigned_worker_ids=["w-1"],
        daily_time_spent={
            "w-1": {
                "2026-01-10": DailyTimeRecord(time=5400, notes=" poured "),
                "2026-01-11": DailyTimeRecord(time=0, notes=""),
            },
        },
    )

    await repo.update(task)

    added = [call[0][0] for call in session.add_all.call_args_list]
    links, time_rows, note_rows = added
    assert isinstance(links[0], TaskWorkerDB)
    assert len(time_rows) == 1
    assert isinstance(time_rows[0], TaskDailyTimeDB)
    assert time_rows[0].hours == 1.5
    assert time_rows[0].spent_date == date(2026, 1, 10)
    assert [n.note_text for n in note_rows] == ["poured"]


@pytest.mark.asyncio
async def test_update_without_daily_time_skips_side_tables(task_repository):
    repo, session, _ = task_repository
    session.execute.return_value = MagicMock(rowcount=1)

    await repo.update(Task(id="t-1", name="Slab", project_id="p-1", daily_time_spent=None))

    # task row update + worker link delete only
    assert session.execute.await_count == 2
    session.add_all.assert_not_called()
