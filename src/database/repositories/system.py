"""System settings repository (the singleton timezone row)."""

import logging
from typing import Optional

from sqlalchemy import select, delete

from .base import BaseRepository
from ..exceptions import ValidationError
from ..models import SystemTimezoneDB
from ...utils.datetime_utils import is_valid_timezone

logger = logging.getLogger(__name__)


class SystemSettingsRepository(BaseRepository):
    """Repository for system-wide settings."""

    async def get_timezone(self) -> Optional[str]:
        """The stored timezone, or None when none has been set."""
        async with self.unit("system_timezone", "select") as session:
            result = await session.execute(select(SystemTimezoneDB.sys_tmz).limit(1))
            return result.scalar_one_or_none()

    async def set_timezone(self, timezone: str) -> None:
        """Replace the stored timezone: delete every row, then insert one."""
        if not is_valid_timezone(timezone):
            raise ValidationError(f"Unknown timezone: {timezone}")

        async with self.unit("system_timezone", "delete") as session:
            await session.execute(delete(SystemTimezoneDB))

        async with self.unit("system_timezone", "insert") as session:
            session.add(SystemTimezoneDB(sys_tmz=timezone))

        logger.info(f"System timezone set to {timezone}")
