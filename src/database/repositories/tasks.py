"""
Task repository with side-table orchestration.

A task is stored across four tables: the task row, worker links, daily time
rows and note rows. Create and update write them one table at a time, each
in its own session:

- The first failing write raises and the remaining steps are skipped.
- Steps already committed stay committed; nothing is compensated.
- Updates replace all worker links, and all time and note rows when a
  daily_time_spent map is supplied. Concurrent edits of the same task can
  therefore overwrite each other (last writer wins).

After a successful create or update the assigned workers are notified in
the background; the notification never affects the result.
"""

import logging
import uuid
from typing import Optional, List

from sqlalchemy import select, update, delete

from .base import BaseRepository
from .recycle_bin import ItemType, set_deleted_at
from ..app_data import build_daily_time_index
from ..connection import Database
from ..exceptions import EntityNotFoundError
from ..models import TaskDB, TaskWorkerDB, TaskDailyTimeDB, TaskNoteDB
from ..transformers import task_from_row, active_timers_to_column
from ...models import Task, TaskCreate, DailyTimeRecord, TaskStatus, TimerState
from ...utils.datetime_utils import utc_now, to_date_key, parse_date_key

logger = logging.getLogger(__name__)


def unique_worker_ids(worker_ids: List[str]) -> List[str]:
    """Drop repeated ids, keeping the first occurrence order."""
    return list(dict.fromkeys(worker_ids))


class TaskRepository(BaseRepository):
    """Repository for task operations."""

    def __init__(self, db: Database, notifier=None):
        super().__init__(db)
        self.notifier = notifier

    def _notify(self, task: Task) -> None:
        if self.notifier is not None:
            self.notifier.notify_task_assigned(task.assigned_worker_ids, task)

    async def _insert_worker_links(self, task_id: str, worker_ids: List[str]) -> None:
        async with self.unit("taskworker", "insert") as session:
            session.add_all([TaskWorkerDB(task_id=task_id, user_id=user_id) for user_id in worker_ids])

    # ==================== TASK CRUD ====================

    async def create(self, data: TaskCreate, actor_id: str) -> Task:
        """Insert the task, its worker links and its initial note."""
        task_id = str(uuid.uuid4())

        async with self.unit("task", "insert") as session:
            row = TaskDB(
                task_id=task_id,
                name=data.name,
                project_id=data.project_id,
                task_type=data.task_type_id,
                mold_type=data.mold_type_id,
                start_date=data.start_date,
                end_date=data.deadline,
                status=TaskStatus.PLANNED.value,
                timer_state=TimerState.STOPPED.value,
                number_molds=data.number_of_molds,
                active_timers={},
            )
            session.add(row)
            await session.flush()

        worker_ids = unique_worker_ids(data.assigned_worker_ids)
        if worker_ids:
            await self._insert_worker_links(task_id, worker_ids)

        note = data.notes.strip() if data.notes else ""
        start_key = to_date_key(data.start_date)
        if note:
            async with self.unit("tasknote", "insert") as session:
                session.add(TaskNoteDB(
                    note_id=str(uuid.uuid4()),
                    task_id=task_id,
                    user_id=actor_id,
                    note_date=data.start_date,
                    note_text=note,
                ))

        task = task_from_row(row)
        task.assigned_worker_ids = worker_ids
        if note:
            task.daily_time_spent = {actor_id: {start_key: DailyTimeRecord(time=0, notes=note)}}

        logger.info(f"Created task {task_id} ({task.name}) with {len(task.assigned_worker_ids)} workers")
        self._notify(task)
        return task

    async def update(self, task: Task) -> Task:
        """Update the task row and replace its side-table rows."""
        async with self.unit("task", "update") as session:
            result = await session.execute(
                update(TaskDB)
                .where(TaskDB.task_id == task.id)
                .values(
                    name=task.name,
                    task_type=task.task_type_id,
                    mold_type=task.mold_type_id,
                    start_date=task.start_date,
                    end_date=task.deadline,
                    status=TaskStatus(task.status).value,
                    timer_state=TimerState(task.timer_state).value,
                    active_timers=active_timers_to_column(task),
                    number_molds=task.number_of_molds,
                    updated_at=utc_now(),
                )
            )
            if result.rowcount == 0:
                raise EntityNotFoundError(f"Task {task.id} not found")

        task.assigned_worker_ids = unique_worker_ids(task.assigned_worker_ids)
        async with self.unit("taskworker", "delete") as session:
            await session.execute(delete(TaskWorkerDB).where(TaskWorkerDB.task_id == task.id))

        if task.assigned_worker_ids:
            await self._insert_worker_links(task.id, task.assigned_worker_ids)

        if task.daily_time_spent is not None:
            await self._replace_daily_time(task)

        logger.info(f"Updated task {task.id} ({task.name})")
        self._notify(task)
        return task

    async def _replace_daily_time(self, task: Task) -> None:
        async with self.unit("taskdailytime", "delete") as session:
            await session.execute(delete(TaskDailyTimeDB).where(TaskDailyTimeDB.task_id == task.id))

        async with self.unit("tasknote", "delete") as session:
            await session.execute(delete(TaskNoteDB).where(TaskNoteDB.task_id == task.id))

        time_rows = []
        note_rows = []
        for worker_id, days in task.daily_time_spent.items():
            for day, record in days.items():
                if record.time > 0:
                    time_rows.append(TaskDailyTimeDB(
                        time_spent_id=str(uuid.uuid4()),
                        task_id=task.id,
                        user_id=worker_id,
                        spent_date=parse_date_key(day),
                        hours=record.time / 3600,
                    ))
                if record.notes and record.notes.strip():
                    note_rows.append(TaskNoteDB(
                        note_id=str(uuid.uuid4()),
                        task_id=task.id,
                        user_id=worker_id,
                        note_date=parse_date_key(day),
                        note_text=record.notes.strip(),
                    ))

        if time_rows:
            async with self.unit("taskdailytime", "insert") as session:
                session.add_all(time_rows)

        if note_rows:
            async with self.unit("tasknote", "insert") as session:
                session.add_all(note_rows)

    async def soft_delete(self, task_id: str) -> None:
        await set_deleted_at(self.db, ItemType.TASK, task_id, utc_now())

    # ==================== QUERIES ====================

    async def get_by_id(self, task_id: str) -> Optional[Task]:
        """Task with assigned workers and daily time; None if absent."""
        async with self.unit("task", "select") as session:
            row = (await session.execute(
                select(TaskDB).where(TaskDB.task_id == task_id)
            )).scalar_one_or_none()
            if row is None:
                return None

            worker_ids = (await session.execute(
                select(TaskWorkerDB.user_id).where(TaskWorkerDB.task_id == task_id)
            )).scalars().all()
            time_rows = (await session.execute(
                select(TaskDailyTimeDB).where(TaskDailyTimeDB.task_id == task_id)
            )).scalars().all()
            note_rows = (await session.execute(
                select(TaskNoteDB).where(TaskNoteDB.task_id == task_id)
            )).scalars().all()

        task = task_from_row(row)
        task.assigned_worker_ids = list(worker_ids)
        task.daily_time_spent = build_daily_time_index(time_rows, note_rows).get(task_id, {})
        return task
