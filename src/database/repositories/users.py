"""
User repository.

Passwords are stored as bcrypt hashes and never returned on User objects.
Worker-only attributes (age, skills, experience, efficiency) are persisted
only for users with the Worker role.
"""

import logging
import uuid
from typing import Optional, Tuple

from sqlalchemy import select, update

from .base import BaseRepository
from .recycle_bin import ItemType, set_deleted_at
from ..connection import Database
from ..exceptions import EntityNotFoundError
from ..models import UserDB
from ..transformers import user_from_row
from ...models import User, UserCreate, UserRole
from ...utils.datetime_utils import utc_now
from ...utils.passwords import hash_password

logger = logging.getLogger(__name__)


def _worker_attributes(role: UserRole, source) -> dict:
    is_worker = UserRole(role) is UserRole.WORKER
    return {
        "age": source.age if is_worker else None,
        "skills": source.skills if is_worker else None,
        "experience": source.experience if is_worker else None,
        "efficiency_coeff": source.efficiency if is_worker else None,
    }


class UserRepository(BaseRepository):
    """Repository for user operations."""

    def __init__(self, db: Database, bcrypt_rounds: int = 12):
        super().__init__(db)
        self.bcrypt_rounds = bcrypt_rounds

    async def create(self, data: UserCreate) -> User:
        user_id = str(uuid.uuid4())
        async with self.unit("users", "insert") as session:
            row = UserDB(
                user_id=user_id,
                name=data.name,
                email=data.email,
                password_hash=hash_password(data.password, self.bcrypt_rounds),
                role=UserRole(data.role).value,
                two_factor=False,
                **_worker_attributes(data.role, data),
            )
            session.add(row)
            await session.flush()

        logger.info(f"Created user {user_id} ({data.name}, {UserRole(data.role).value})")
        return user_from_row(row)

    async def update(self, user: User) -> User:
        """Update profile fields. The password is changed only via set_password_hash."""
        async with self.unit("users", "update") as session:
            result = await session.execute(
                update(UserDB)
                .where(UserDB.user_id == user.id)
                .values(
                    name=user.name,
                    email=user.email,
                    role=UserRole(user.role).value,
                    daily_availability=user.daily_availability,
                    archived_at=user.archived_at,
                    updated_at=utc_now(),
                    **_worker_attributes(user.role, user),
                )
            )
            if result.rowcount == 0:
                raise EntityNotFoundError(f"User {user.id} not found")

        logger.info(f"Updated user {user.id}")
        return user

    async def soft_delete(self, user_id: str) -> None:
        await set_deleted_at(self.db, ItemType.USER, user_id, utc_now())

    async def set_password_hash(self, user_id: str, password_hash: str) -> None:
        async with self.unit("users", "update") as session:
            result = await session.execute(
                update(UserDB)
                .where(UserDB.user_id == user_id)
                .values(password_hash=password_hash, updated_at=utc_now())
            )
            if result.rowcount == 0:
                raise EntityNotFoundError(f"User {user_id} not found")
        logger.info(f"Password changed for user {user_id}")

    # ==================== LOOKUPS ====================

    async def _get_with_hash(self, *criteria) -> Optional[Tuple[User, str]]:
        async with self.unit("users", "select") as session:
            row = (await session.execute(
                select(UserDB).where(*criteria, UserDB.deleted_at.is_(None)).limit(1)
            )).scalar_one_or_none()
        if row is None:
            return None
        return user_from_row(row), row.password_hash or ""

    async def get_by_id(self, user_id: str) -> Optional[User]:
        found = await self._get_with_hash(UserDB.user_id == user_id)
        return found[0] if found else None

    async def get_by_name(self, name: str) -> Optional[Tuple[User, str]]:
        """Login lookup: (user, password hash), or None when no such user."""
        return await self._get_with_hash(UserDB.name == name)

    async def get_by_email(self, email: str) -> Optional[Tuple[User, str]]:
        return await self._get_with_hash(UserDB.email == email)

    async def get_credentials_by_id(self, user_id: str) -> Optional[Tuple[User, str]]:
        return await self._get_with_hash(UserDB.user_id == user_id)
