"""
Soft delete, restore and permanent (cascading) delete.

Soft delete stamps deleted_at and is reversible. Permanent delete removes a
project, task or user together with every row that references it:

- Independent dependent deletes (worker links, daily time, notes) are
  dispatched together, each in its own session, and all of them are awaited
  before the first error, in dispatch order, is raised.
- Parents are only deleted after their dependents.
- Audit log rows of a deleted user are kept with their actor nulled.
"""

import asyncio
import logging
from enum import Enum
from typing import List, Optional, Sequence
from datetime import datetime

from sqlalchemy import select, update, delete

from .base import BaseRepository, unit_of_work
from ..connection import Database
from ..exceptions import EntityNotFoundError
from ..models import (
    ProjectDB,
    TaskDB,
    UserDB,
    TaskWorkerDB,
    TaskDailyTimeDB,
    TaskNoteDB,
    AuditLogDB,
)
from ...utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

DEPENDENT_TABLES = (TaskWorkerDB, TaskDailyTimeDB, TaskNoteDB)


class ItemType(str, Enum):
    """Kinds of item the recycle bin handles."""
    PROJECT = "project"
    TASK = "task"
    USER = "user"

    @property
    def model(self):
        return {
            ItemType.PROJECT: ProjectDB,
            ItemType.TASK: TaskDB,
            ItemType.USER: UserDB,
        }[self]

    @property
    def id_column(self):
        return {
            ItemType.PROJECT: ProjectDB.project_id,
            ItemType.TASK: TaskDB.task_id,
            ItemType.USER: UserDB.user_id,
        }[self]


async def set_deleted_at(db: Database, item_type: ItemType, item_id: str, value: Optional[datetime]) -> None:
    """Stamp or clear deleted_at on one row."""
    model = item_type.model
    operation = "soft delete" if value else "restore"
    async with unit_of_work(db, model.__tablename__, operation) as session:
        result = await session.execute(
            update(model)
            .where(item_type.id_column == item_id)
            .values(deleted_at=value)
        )
        if result.rowcount == 0:
            raise EntityNotFoundError(f"{item_type.value} {item_id} not found")
    logger.info(f"{operation.capitalize()}: {item_type.value} {item_id}")


class RecycleBinRepository(BaseRepository):
    """Repository for soft-deleted items and permanent deletion."""

    async def soft_delete(self, item_type: ItemType, item_id: str) -> None:
        await set_deleted_at(self.db, ItemType(item_type), item_id, utc_now())

    async def restore(self, item_type: ItemType, item_id: str) -> None:
        await set_deleted_at(self.db, ItemType(item_type), item_id, None)

    async def permanently_delete(self, item_type: ItemType, item_id: str) -> None:
        item_type = ItemType(item_type)
        if item_type is ItemType.PROJECT:
            await self._delete_project(item_id)
        elif item_type is ItemType.TASK:
            await self._delete_task(item_id)
        else:
            await self._delete_user(item_id)
        logger.info(f"Permanently deleted {item_type.value} {item_id}")

    # ==================== CASCADES ====================

    async def _delete_rows(self, model, column, values: Sequence[str]) -> None:
        async with self.unit(model.__tablename__, "delete") as session:
            if len(values) == 1:
                await session.execute(delete(model).where(column == values[0]))
            else:
                await session.execute(delete(model).where(column.in_(values)))

    async def _fan_out(self, *deletes) -> None:
        """Run independent deletes together; raise the first failure after all finish."""
        results = await asyncio.gather(*deletes, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                raise result

    async def _delete_task_dependents(self, task_ids: List[str]) -> None:
        await self._fan_out(*[
            self._delete_rows(model, model.task_id, task_ids) for model in DEPENDENT_TABLES
        ])

    async def _delete_project(self, project_id: str) -> None:
        async with self.unit("task", "select") as session:
            result = await session.execute(select(TaskDB.task_id).where(TaskDB.project_id == project_id))
            task_ids = list(result.scalars().all())

        if task_ids:
            await self._delete_task_dependents(task_ids)
            await self._delete_rows(TaskDB, TaskDB.task_id, task_ids)

        await self._delete_rows(ProjectDB, ProjectDB.project_id, [project_id])

    async def _delete_task(self, task_id: str) -> None:
        await self._delete_task_dependents([task_id])
        await self._delete_rows(TaskDB, TaskDB.task_id, [task_id])

    async def _delete_user(self, user_id: str) -> None:
        await self._fan_out(*[
            self._delete_rows(model, model.user_id, [user_id]) for model in DEPENDENT_TABLES
        ])

        async with self.unit("auditlogs", "anonymize") as session:
            await session.execute(
                update(AuditLogDB)
                .where(AuditLogDB.user_id == user_id)
                .values(user_id=None)
            )

        await self._delete_rows(UserDB, UserDB.user_id, [user_id])
