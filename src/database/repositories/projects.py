"""
Project repository.

The marking colour is kept as "#rrggbb" on the Project object and as three
0-255 channel columns in the project table.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import select, update

from .base import BaseRepository
from .recycle_bin import ItemType, set_deleted_at
from ..exceptions import EntityNotFoundError
from ..models import ProjectDB, CustomerDB
from ..transformers import project_from_row, color_columns
from ...models import Project, ProjectCreate
from ...utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


class ProjectRepository(BaseRepository):
    """Repository for project operations."""

    async def create(self, data: ProjectCreate) -> Project:
        """Create a new project. Colour and date order are checked by ProjectCreate."""
        project_id = str(uuid.uuid4())
        async with self.unit("project", "insert") as session:
            row = ProjectDB(
                project_id=project_id,
                name=data.name,
                marking=data.marking,
                client_id=data.client_id,
                start_date=data.start_date,
                end_date=data.end_date,
                **color_columns(data.marking_color),
            )
            session.add(row)
            await session.flush()

            customer_name = None
            if data.client_id:
                customer_name = (await session.execute(
                    select(CustomerDB.customer_name).where(CustomerDB.customer_id == data.client_id)
                )).scalar_one_or_none()

        logger.info(f"Created project: {data.name}")
        return project_from_row(row, customer_name)

    async def update(self, project: Project) -> Project:
        async with self.unit("project", "update") as session:
            result = await session.execute(
                update(ProjectDB)
                .where(ProjectDB.project_id == project.id)
                .values(
                    name=project.name,
                    marking=project.marking,
                    client_id=project.client_id,
                    start_date=project.start_date,
                    end_date=project.end_date,
                    archived_at=project.archived_at,
                    updated_at=utc_now(),
                    **color_columns(project.marking_color),
                )
            )
            if result.rowcount == 0:
                raise EntityNotFoundError(f"Project {project.id} not found")

        logger.info(f"Updated project {project.id}")
        return project

    async def soft_delete(self, project_id: str) -> None:
        await set_deleted_at(self.db, ItemType.PROJECT, project_id, utc_now())

    async def get_by_id(self, project_id: str) -> Optional[Project]:
        """Project with its customer name; None if absent."""
        async with self.unit("project", "select") as session:
            result = await session.execute(
                select(ProjectDB, CustomerDB.customer_name)
                .outerjoin(CustomerDB, ProjectDB.client_id == CustomerDB.customer_id)
                .where(ProjectDB.project_id == project_id)
            )
            found = result.first()

        if found is None:
            return None
        row, customer_name = found
        return project_from_row(row, customer_name)
