"""
Unit tests for the change feed and the debounced refresh loop.
"""

import asyncio
import json
import pytest
from unittest.mock import AsyncMock, Mock

from src.services.change_feed import ChangeEvent, ChangeFeed, parse_notification, asyncpg_dsn
from src.services.refresh import RefreshLoop


@pytest.fixture
def state():
    state = Mock()
    state.refresh = AsyncMock()
    return state


# ============================================================
# CHANGE FEED
# ============================================================

@pytest.mark.asyncio
async def test_feed_fans_out_to_every_subscriber():
    feed = ChangeFeed()
    first, second = feed.subscribe(), feed.subscribe()

    feed.publish(ChangeEvent("task", "INSERT"))

    assert first.get_nowait() == ChangeEvent("task", "INSERT")
    assert second.get_nowait() == ChangeEvent("task", "INSERT")


@pytest.mark.asyncio
async def test_unsubscribed_queue_gets_nothing():
    feed = ChangeFeed()
    queue = feed.subscribe()
    feed.unsubscribe(queue)

    feed.publish(ChangeEvent("project"))

    assert queue.empty()
    assert feed.subscriber_count == 0


def test_parse_notification():
    payload = json.dumps({"table": "taskworker", "operation": "DELETE"})

    assert parse_notification(payload) == ChangeEvent("taskworker", "DELETE")


@pytest.mark.parametrize("payload", ["not json", "[1, 2]", ""])
def test_parse_notification_tolerates_garbage(payload):
    assert parse_notification(payload).table == "unknown"


def test_asyncpg_dsn_strips_driver():
    assert asyncpg_dsn("postgresql+asyncpg://u:p@db/planner") == "postgresql://u:p@db/planner"


# ============================================================
# REFRESH LOOP
# ============================================================

@pytest.mark.asyncio
async def test_burst_of_changes_refreshes_once(state):
    feed = ChangeFeed()
    loop = RefreshLoop(state, feed, debounce_seconds=0.05)
    loop.start()

    for table in ("task", "taskworker", "taskdailytime", "tasknote"):
        feed.publish(ChangeEvent(table))
    await asyncio.sleep(0.3)

    assert state.refresh.await_count == 1
    assert loop.refresh_count == 1
    await loop.stop()


@pytest.mark.asyncio
async def test_separate_bursts_refresh_separately(state):
    feed = ChangeFeed()
    loop = RefreshLoop(state, feed, debounce_seconds=0.05)
    loop.start()

    feed.publish(ChangeEvent("task"))
    await asyncio.sleep(0.3)
    feed.publish(ChangeEvent("project"))
    await asyncio.sleep(0.3)

    assert state.refresh.await_count == 2
    await loop.stop()


@pytest.mark.asyncio
async def test_failed_refresh_keeps_loop_alive(state):
    state.refresh.side_effect = [RuntimeError("db down"), None]
    feed = ChangeFeed()
    loop = RefreshLoop(state, feed, debounce_seconds=0.05)
    loop.start()

    feed.publish(ChangeEvent("task"))
    await asyncio.sleep(0.3)
    assert loop.running

    feed.publish(ChangeEvent("task"))
    await asyncio.sleep(0.3)

    assert state.refresh.await_count == 2
    assert loop.refresh_count == 1
    await loop.stop()


@pytest.mark.asyncio
async def test_stop_unsubscribes(state):
    feed = ChangeFeed()
    loop = RefreshLoop(state, feed, debounce_seconds=0.05)
    loop.start()
    assert feed.subscriber_count == 1

    await loop.stop()

    assert feed.subscriber_count == 0
    assert not loop.running
