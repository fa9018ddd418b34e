"""
Shared unit-of-work helper for repositories.

Every table read or write runs in its own session. Failures are logged and
re-raised as DatabaseConstraintError / DatabaseOperationError naming the
table and operation; errors already in the DatabaseError family pass through.
"""

import logging
from typing import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..connection import Database
from ..exceptions import (
    DatabaseError,
    DatabaseConstraintError,
    DatabaseOperationError,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def unit_of_work(db: Database, table: str, operation: str) -> AsyncGenerator[AsyncSession, None]:
    try:
        async with db.session() as session:
            yield session

    except DatabaseError:
        raise

    except IntegrityError as e:
        logger.error(f"Constraint violation on {operation} {table}: {e}")
        raise DatabaseConstraintError(
            f"Cannot {operation} {table}: duplicate or constraint violation",
            table=table,
            operation=operation,
        ) from e

    except Exception as e:
        logger.error(f"CRITICAL: {operation} on {table} failed: {e}", exc_info=True)
        raise DatabaseOperationError(
            f"Failed to {operation} {table}: {e}",
            table=table,
            operation=operation,
        ) from e


class BaseRepository:
    """Holds the injected database handle."""

    def __init__(self, db: Database):
        self.db = db

    def unit(self, table: str, operation: str):
        return unit_of_work(self.db, table, operation)
