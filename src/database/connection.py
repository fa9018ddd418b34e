"""
Database connection and session management.

A `Database` is constructed explicitly by the process entry point and passed
to every repository. PostgreSQL (asyncpg) uses a QueuePool; sqlite
(aiosqlite) is used for local runs and tests.
"""

import logging
from typing import AsyncGenerator, Optional, Dict, Any
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
    AsyncEngine,
)
from sqlalchemy.pool import NullPool

from .exceptions import DatabaseConnectionError
from .models import Base, WATCHED_TABLES

logger = logging.getLogger(__name__)


NOTIFY_FUNCTION = """
CREATE OR REPLACE FUNCTION notify_table_change() RETURNS trigger AS $$
BEGIN
    PERFORM pg_notify(TG_ARGV[0], json_build_object('table', TG_TABLE_NAME, 'operation', TG_OP)::text);
    RETURN NULL;
END;
$$ LANGUAGE plpgsql
"""


def normalize_database_url(database_url: str) -> str:
    """Force the async driver for postgres URLs."""
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return database_url


class Database:
    """Database connection manager."""

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        pool_size: int = 10,
        max_overflow: int = 20,
        pool_timeout: int = 30,
        pool_recycle: int = 3600,
        notify_channel: Optional[str] = None,
    ):
        self.database_url = normalize_database_url(database_url) if database_url else ""
        self.echo = echo
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self.pool_recycle = pool_recycle
        self.notify_channel = notify_channel
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._initialized = False

    @classmethod
    def from_settings(cls, settings) -> "Database":
        return cls(
            settings.database_url,
            echo=settings.database_echo,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
            notify_channel=settings.change_notify_channel,
        )

    @property
    def is_postgres(self) -> bool:
        return self.database_url.startswith("postgresql")

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Create the engine and the tables. Raises DatabaseConnectionError on failure."""
        if self._initialized:
            return

        if not self.database_url:
            raise DatabaseConnectionError("DATABASE_URL not configured")

        try:
            if self.is_postgres:
                self.engine = create_async_engine(
                    self.database_url,
                    echo=self.echo,
                    pool_size=self.pool_size,
                    max_overflow=self.max_overflow,
                    pool_timeout=self.pool_timeout,
                    pool_recycle=self.pool_recycle,
                    pool_pre_ping=True,
                    connect_args={"server_settings": {"application_name": "formwork-planner"}},
                )
                logger.info(
                    f"Database pool config: size={self.pool_size}, "
                    f"max_overflow={self.max_overflow}, timeout={self.pool_timeout}s"
                )
            else:
                # A fresh connection per session lets sqlite serve concurrent sessions
                self.engine = create_async_engine(
                    self.database_url,
                    echo=self.echo,
                    poolclass=NullPool,
                )

            self.session_factory = async_sessionmaker(
                bind=self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
            )

            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            if self.is_postgres and self.notify_channel:
                await self._install_change_triggers()

            self._initialized = True
            logger.info("Database initialized successfully")

        except DatabaseConnectionError:
            raise
        except Exception as e:
            logger.error(f"Database initialization failed: {e}", exc_info=True)
            raise DatabaseConnectionError(f"Database initialization failed: {e}") from e

    async def _install_change_triggers(self):
        """Install one NOTIFY trigger per watched table."""
        if not self.notify_channel.replace("_", "").isalnum():
            raise ValueError(f"Invalid notify channel: {self.notify_channel}")

        async with self.engine.begin() as conn:
            await conn.execute(text(NOTIFY_FUNCTION))
            for table_name in WATCHED_TABLES:
                trigger = f"{table_name}_change_notify"
                await conn.execute(text(f"DROP TRIGGER IF EXISTS {trigger} ON {table_name}"))
                await conn.execute(text(
                    f"CREATE TRIGGER {trigger} AFTER INSERT OR UPDATE OR DELETE ON {table_name} "
                    f"FOR EACH STATEMENT EXECUTE FUNCTION notify_table_change('{self.notify_channel}')"
                ))
        logger.info(f"Change triggers installed on {len(WATCHED_TABLES)} tables")

    async def close(self):
        """Close database connection."""
        if self.engine:
            await self.engine.dispose()
            self._initialized = False
            logger.info("Database connection closed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """One unit of work: commit on success, roll back on error."""
        if not self._initialized or not self.session_factory:
            raise DatabaseConnectionError("Database not initialized")

        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception as e:
                await session.rollback()
                logger.error(f"Database session error: {e}")
                raise

    async def health_check(self) -> Dict[str, Any]:
        """Perform health check on database."""
        try:
            async with self.session() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()

            return {
                "status": "healthy",
                "initialized": self._initialized,
                "pool": self.get_pool_status(),
            }
        except Exception as e:
            return {
                "status": "unhealthy",
                "error": str(e),
            }

    def get_pool_status(self) -> Dict[str, Any]:
        """Connection pool status for monitoring."""
        if not self.engine:
            return {"status": "not_initialized"}

        pool = self.engine.pool
        if isinstance(pool, NullPool):
            return {"pool_type": "NullPool", "status": "no_pooling"}

        checked_out = pool.checkedout()
        max_connections = self.pool_size + self.max_overflow
        utilization = checked_out / max(max_connections, 1)

        return {
            "pool_type": type(pool).__name__,
            "status": "critical" if utilization > 0.9 else "warning" if utilization > 0.8 else "healthy",
            "size": pool.size(),
            "checked_out": checked_out,
            "overflow": pool.overflow(),
            "max_connections": max_connections,
            "utilization": f"{utilization:.1%}",
        }
