"""
Realtime change feed.

ChangeFeed is an in-process pub/sub of ChangeEvent(table, operation).
PostgresChangeListener LISTENs on the channel the database triggers NOTIFY
on and republishes each notification into the feed.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import List, Optional

import asyncpg

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    operation: str = "UPDATE"


class ChangeFeed:
    """Fan change events out to every subscriber queue."""

    def __init__(self):
        self._subscribers: List[asyncio.Queue] = []

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event: ChangeEvent) -> None:
        for queue in self._subscribers:
            queue.put_nowait(event)


def parse_notification(payload: str) -> ChangeEvent:
    """Trigger payloads are {"table": ..., "operation": ...}; anything else counts as a change of unknown table."""
    try:
        data = json.loads(payload)
        return ChangeEvent(table=data.get("table", "unknown"), operation=data.get("operation", "UPDATE"))
    except (ValueError, AttributeError):
        return ChangeEvent(table="unknown")


def asyncpg_dsn(database_url: str) -> str:
    """SQLAlchemy URL -> plain DSN asyncpg understands."""
    return database_url.replace("postgresql+asyncpg://", "postgresql://", 1)


class PostgresChangeListener:
    """Forward PostgreSQL NOTIFY messages into a ChangeFeed."""

    def __init__(self, database_url: str, channel: str, feed: ChangeFeed):
        self.dsn = asyncpg_dsn(database_url)
        self.channel = channel
        self.feed = feed
        self._connection: Optional[asyncpg.Connection] = None

    def _on_notification(self, connection, pid, channel, payload) -> None:
        event = parse_notification(payload)
        logger.debug(f"Change notification: {event.operation} on {event.table}")
        self.feed.publish(event)

    async def start(self) -> None:
        self._connection = await asyncpg.connect(self.dsn)
        await self._connection.add_listener(self.channel, self._on_notification)
        logger.info(f"Listening for table changes on channel {self.channel}")

    async def stop(self) -> None:
        if self._connection is not None:
            try:
                await self._connection.remove_listener(self.channel, self._on_notification)
            finally:
                await self._connection.close()
                self._connection = None
            logger.info("Change listener stopped")
