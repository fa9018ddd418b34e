"""
Unit tests for AppState: views, local state updates and timers.
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

from src.database.exceptions import DatabaseOperationError, EntityNotFoundError
from src.database.repositories import ItemType
from src.models import (
    ActiveTimer,
    AppData,
    AppIntegrations,
    AuditAction,
    AuditLog,
    AuditLogCreate,
    AuditTargetType,
    DailyTimeRecord,
    ErpData,
    Project,
    Task,
    TaskStatus,
    TimerState,
    User,
    UserRole,
)
from src.services.app_state import AppState, add_elapsed

# 2026-01-10 08:00:00 UTC
START_MS = int(datetime(2026, 1, 10, 8, 0, tzinfo=timezone.utc).timestamp() * 1000)


class FakeClock:
    def __init__(self, now_ms: int):
        self.now = now_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


def _echo(value):
    return value


@pytest.fixture
def clock():
    return FakeClock(START_MS)


@pytest.fixture
def state(clock):
    tasks = Mock()
    tasks.create = AsyncMock()
    tasks.update = AsyncMock(side_effect=_echo)
    tasks.soft_delete = AsyncMock()
    projects = Mock()
    projects.create = AsyncMock()
    projects.update = AsyncMock(side_effect=_echo)
    projects.soft_delete = AsyncMock()
    users = Mock()
    users.update = AsyncMock(side_effect=_echo)
    audit = Mock()
    audit.add = AsyncMock()
    recycle_bin = Mock()
    recycle_bin.restore = AsyncMock()
    recycle_bin.permanently_delete = AsyncMock()
    system = Mock()
    system.set_timezone = AsyncMock()
    loader = Mock()
    loader.fetch_app_data = AsyncMock()
    loader.fetch_erp_data = AsyncMock(return_value=ErpData())
    erp = Mock()

    app_state = AppState(
        loader=loader,
        tasks=tasks,
        projects=projects,
        users=users,
        audit=audit,
        recycle_bin=recycle_bin,
        system=system,
        erp=erp,
        audit_log_limit=3,
        clock=clock,
    )
    app_state.projects = [
        Project(id="p-1", name="Bridge"),
        Project(id="p-2", name="Old", deleted_at=datetime(2026, 1, 1)),
    ]
    app_state.tasks = [
        Task(id="t-1", name="Slab", project_id="p-1", assigned_worker_ids=["w-1", "w-2"]),
        Task(id="t-2", name="Walls", project_id="p-1", assigned_worker_ids=["w-2"]),
        Task(id="t-3", name="Gone", project_id="p-2", assigned_worker_ids=["w-1"]),
        Task(id="t-4", name="Binned", project_id="p-1", deleted_at=datetime(2026, 1, 2)),
    ]
    app_state.users = [
        User(id="w-1", name="zoe", role=UserRole.WORKER),
        User(id="w-2", name="Adam", role=UserRole.WORKER),
        User(id="a-1", name="Mira", role=UserRole.ADMINISTRATOR),
        User(id="w-3", name="Left", role=UserRole.WORKER, deleted_at=datetime(2026, 1, 3)),
    ]
    return app_state


# ============================================================
# VIEWS
# ============================================================

def test_active_tasks_exclude_deleted_tasks_and_projects(state):
    assert [t.id for t in state.active_tasks] == ["t-1", "t-2"]


def test_workers_are_active_and_sorted_by_name(state):
    assert [u.id for u in state.workers] == ["w-2", "w-1"]


def test_deleted_views(state):
    assert [p.id for p in state.deleted_projects] == ["p-2"]
    assert [t.id for t in state.deleted_tasks] == ["t-4"]
    assert [u.id for u in state.deleted_users] == ["w-3"]


def test_tasks_for_worker_and_project(state):
    assert [t.id for t in state.tasks_for_worker("w-1")] == ["t-1"]
    assert [t.id for t in state.tasks_for_project("p-1")] == ["t-1", "t-2"]


def test_get_task_unknown_raises(state):
    with pytest.raises(EntityNotFoundError):
        state.get_task("nope")


# ============================================================
# REFRESH
# ============================================================

@pytest.mark.asyncio
async def test_refresh_replaces_collections(state):
    state.loader.fetch_app_data.return_value = AppData(
        projects=[Project(id="p-9", name="Fresh")],
        integrations=AppIntegrations(timezone="Europe/Prague"),
    )

    await state.refresh()

    assert [p.id for p in state.projects] == ["p-9"]
    assert state.tasks == []
    assert state.integrations.timezone == "Europe/Prague"
    assert state.error is None
    assert state.last_refreshed_at is not None
    state.erp.load.assert_called_once()


@pytest.mark.asyncio
async def test_failed_refresh_keeps_previous_data(state):
    state.loader.fetch_app_data.side_effect = DatabaseOperationError("Failed to fetch Users")

    with pytest.raises(DatabaseOperationError):
        await state.refresh()

    assert [p.id for p in state.projects] == ["p-1", "p-2"]
    assert "Users" in state.error
    assert state.loading is False


# ============================================================
# WRITES
# ============================================================

@pytest.mark.asyncio
async def test_failed_update_leaves_local_state_untouched(state):
    state.task_repo.update.side_effect = DatabaseOperationError("Failed to update task")
    renamed = state.get_task("t-1").model_copy(update={"name": "Renamed"})

    with pytest.raises(DatabaseOperationError):
        await state.update_task(renamed)

    assert state.get_task("t-1").name == "Slab"


@pytest.mark.asyncio
async def test_update_without_daily_time_keeps_loaded_time(state):
    logged = {"w-1": {"2026-01-09": DailyTimeRecord(time=600)}}
    state.tasks[0] = state.tasks[0].model_copy(update={"daily_time_spent": logged})
    edit = state.get_task("t-1").model_copy(update={"name": "Slab B", "daily_time_spent": None})

    updated = await state.update_task(edit)

    assert updated.name == "Slab B"
    assert updated.daily_time_spent["w-1"]["2026-01-09"].time == 600


@pytest.mark.asyncio
async def test_soft_delete_and_restore_project(state):
    await state.delete_project("p-1")
    assert state.active_projects == []
    state.project_repo.soft_delete.assert_awaited_once_with("p-1")

    await state.restore_project("p-1")
    assert [p.id for p in state.active_projects] == ["p-1"]
    state.recycle_bin.restore.assert_awaited_once_with(ItemType.PROJECT, "p-1")


@pytest.mark.asyncio
async def test_permanently_delete_project_drops_its_tasks(state):
    await state.permanently_delete_project("p-1")

    assert [p.id for p in state.projects] == ["p-2"]
    assert [t.id for t in state.tasks] == ["t-3"]


@pytest.mark.asyncio
async def test_permanently_delete_user_strips_assignments_and_timers(state):
    state.tasks[0] = state.tasks[0].model_copy(update={
        "timer_state": TimerState.RUNNING,
        "active_timers": {"w-1": ActiveTimer(start_time=START_MS)},
    })

    await state.permanently_delete_user("w-1")

    slab = state.get_task("t-1")
    assert slab.assigned_worker_ids == ["w-2"]
    assert slab.active_timers == {}
    assert slab.timer_state is TimerState.PAUSED
    assert state.get_task("t-3").assigned_worker_ids == []
    assert "w-1" not in [u.id for u in state.users]


@pytest.mark.asyncio
async def test_permanently_delete_user_drops_their_time_from_unassigned_tasks(state):
    # w-1 logged time on Walls without being assigned to it
    state.tasks[1] = state.tasks[1].model_copy(update={
        "daily_time_spent": {
            "w-1": {"2026-01-09": DailyTimeRecord(time=600, notes="helped out")},
            "w-2": {"2026-01-09": DailyTimeRecord(time=3600)},
        },
        "active_timers": {"w-1": ActiveTimer(start_time=START_MS), "w-2": ActiveTimer(start_time=START_MS)},
    })

    await state.permanently_delete_user("w-1")
    walls = await state.pause_timer("t-2", "w-2")

    assert "w-1" not in walls.daily_time_spent
    assert "w-1" not in walls.active_timers
    written = state.task_repo.update.await_args.args[0]
    assert set(written.daily_time_spent) == {"w-2"}


@pytest.mark.asyncio
async def test_audit_log_is_prepended_and_capped(state):
    state.audit_logs = [
        AuditLog(id=f"a-{i}", timestamp=datetime(2026, 1, i + 1), action=AuditAction.LOGIN) for i in range(3)
    ]
    new_log = AuditLog(id="a-new", timestamp=datetime(2026, 2, 1), action=AuditAction.CREATE_TASK)
    state.audit_repo.add.return_value = new_log

    await state.add_audit_log(AuditLogCreate(
        actor_id="a-1", actor_name="Mira", action=AuditAction.CREATE_TASK, target_type=AuditTargetType.TASK,
    ))

    assert [log.id for log in state.audit_logs] == ["a-new", "a-0", "a-1"]


@pytest.mark.asyncio
async def test_update_timezone(state):
    await state.update_timezone("Europe/Berlin")

    state.system_repo.set_timezone.assert_awaited_once_with("Europe/Berlin")
    assert state.integrations.timezone == "Europe/Berlin"


# ============================================================
# TIMERS
# ============================================================

def test_add_elapsed_does_not_mutate_task(sample_task):
    daily = add_elapsed(sample_task, "w-1", 60, "2026-01-10", "more")

    assert daily["w-1"]["2026-01-10"].time == 3660
    assert daily["w-1"]["2026-01-10"].notes == "more"
    assert sample_task.daily_time_spent["w-1"]["2026-01-10"].time == 3600


@pytest.mark.asyncio
async def test_start_timer(state):
    task = await state.start_timer("t-1", "w-1")

    assert task.timer_state is TimerState.RUNNING
    assert task.status is TaskStatus.IN_PROGRESS
    assert task.active_timers["w-1"].start_time == START_MS
    assert state.get_task("t-1").timer_state is TimerState.RUNNING


@pytest.mark.asyncio
async def test_pause_adds_elapsed_to_todays_entry(state, clock):
    await state.start_timer("t-1", "w-1")
    clock.advance(90)

    task = await state.pause_timer("t-1", "w-1")

    assert task.daily_time_spent["w-1"]["2026-01-10"].time == 90
    assert task.active_timers == {}
    assert task.timer_state is TimerState.PAUSED


@pytest.mark.asyncio
async def test_pause_one_of_two_workers_keeps_running(state, clock):
    await state.start_timer("t-1", "w-1")
    await state.start_timer("t-1", "w-2")
    clock.advance(30)

    task = await state.pause_timer("t-1", "w-1")

    assert task.timer_state is TimerState.RUNNING
    assert list(task.active_timers) == ["w-2"]


@pytest.mark.asyncio
async def test_pause_without_running_timer_is_noop(state):
    task = await state.pause_timer("t-2", "w-2")

    assert task.timer_state is TimerState.STOPPED
    state.task_repo.update.assert_not_awaited()


@pytest.mark.asyncio
async def test_end_day_records_notes(state, clock):
    await state.start_timer("t-1", "w-2")
    clock.advance(3600)

    task = await state.end_day_and_add_notes("t-1", "w-2", "Shuttering finished")

    record = task.daily_time_spent["w-2"]["2026-01-10"]
    assert record.time == 3600
    assert record.notes == "Shuttering finished"


@pytest.mark.asyncio
async def test_end_timer_completes_and_books_every_worker(state, clock):
    await state.start_timer("t-1", "w-1")
    clock.advance(60)
    await state.start_timer("t-1", "w-2")
    clock.advance(60)

    task = await state.end_timer("t-1")

    assert task.status is TaskStatus.COMPLETED
    assert task.timer_state is TimerState.STOPPED
    assert task.active_timers == {}
    assert task.daily_time_spent["w-1"]["2026-01-10"].time == 120
    assert task.daily_time_spent["w-2"]["2026-01-10"].time == 60
