"""
Audit log repository.

Entries record who did what to which project, task or user. The target's
display name is stored in the generic content column. Entries outlive their
actor: deleting a user nulls user_id instead of removing the rows.
"""

import logging
import uuid
from typing import List

from sqlalchemy import select, update

from .base import BaseRepository
from ..models import AuditLogDB, UserDB
from ..transformers import audit_log_from_row
from ...models import AuditLog, AuditLogCreate, AuditAction, AuditTargetType
from ...utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)


class AuditRepository(BaseRepository):
    """Repository for audit log operations."""

    async def add(self, data: AuditLogCreate) -> AuditLog:
        """Insert one entry; the returned log carries the caller's actor name."""
        async with self.unit("auditlogs", "insert") as session:
            row = AuditLogDB(
                au_id=str(uuid.uuid4()),
                timestamp=utc_now(),
                user_id=data.actor_id,
                event=AuditAction(data.action).value,
                content=data.target_name or None,
                subject_type=AuditTargetType(data.target_type).value,
                subject_id=data.target_id or None,
            )
            session.add(row)
            await session.flush()

        logger.debug(f"Audit log: {row.event} on {row.subject_type}/{row.subject_id} by {data.actor_name}")
        return audit_log_from_row(row, data.actor_name)

    async def get_recent(self, limit: int = 500) -> List[AuditLog]:
        """Newest entries first, with actor names joined in."""
        async with self.unit("auditlogs", "select") as session:
            result = await session.execute(
                select(AuditLogDB, UserDB.name)
                .outerjoin(UserDB, AuditLogDB.user_id == UserDB.user_id)
                .order_by(AuditLogDB.timestamp.desc())
                .limit(limit)
            )
            return [audit_log_from_row(row, name) for row, name in result.all()]

    async def anonymize_actor(self, user_id: str) -> int:
        """Null the actor on every entry of a user; returns the number of rows touched."""
        async with self.unit("auditlogs", "anonymize") as session:
            result = await session.execute(
                update(AuditLogDB)
                .where(AuditLogDB.user_id == user_id)
                .values(user_id=None)
            )
            return result.rowcount
