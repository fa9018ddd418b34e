"""
Unit tests for detached background task helpers.
"""

import asyncio
import pytest

from src.utils.background_tasks import (
    active_background_tasks,
    create_safe_task,
    drain_background_tasks,
)


@pytest.mark.asyncio
async def test_drain_waits_for_outstanding_tasks():
    finished = []

    async def work(name, delay):
        await asyncio.sleep(delay)
        finished.append(name)

    create_safe_task(work("slow", 0.05), "slow")
    create_safe_task(work("fast", 0.01), "fast")

    await drain_background_tasks()

    assert sorted(finished) == ["fast", "slow"]
    assert active_background_tasks() == set()


@pytest.mark.asyncio
async def test_drain_survives_failing_task():
    async def boom():
        raise RuntimeError("push failed")

    task = create_safe_task(boom(), "boom")

    await drain_background_tasks()

    assert task.result() is None


@pytest.mark.asyncio
async def test_drain_with_nothing_pending():
    await drain_background_tasks()
