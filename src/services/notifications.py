"""
Task assignment push notifications.

notify_task_assigned() schedules the HTTP call as a detached background task
and returns at once; callers never await it. Delivery failures (non-2xx
responses, network errors, timeouts) are logged and dropped so they can
never affect the write that triggered them.
"""

import asyncio
import logging
from typing import List, Optional, Set

import aiohttp

from ..models import Task
from ..utils.background_tasks import create_safe_task

logger = logging.getLogger(__name__)

NOTIFY_PATH = "/api/notify-task-assigned"
NOTIFICATION_TITLE = "New task assigned"


class TaskNotifier:
    """Client for the push notification service."""

    def __init__(self, base_url: str, timeout: float = 10.0):
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout
        self._pending: Set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, settings) -> "TaskNotifier":
        return cls(settings.notification_service_url, settings.notification_timeout_seconds)

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    def notify_task_assigned(self, worker_ids: List[str], task: Task) -> Optional[asyncio.Task]:
        """Fire-and-forget: schedule one notification listing every assigned worker."""
        if not worker_ids:
            return None
        if not self.enabled:
            logger.debug(f"Notification service not configured, skipping task {task.id}")
            return None

        background = create_safe_task(
            self.send(list(worker_ids), task),
            f"notify-task-assigned-{task.id}",
        )
        self._pending.add(background)
        background.add_done_callback(self._pending.discard)
        logger.info(f"Task assignment notification scheduled for task: {task.name}")
        return background

    async def send(self, worker_ids: List[str], task: Task) -> bool:
        payload = {
            "assignedWorkerIds": worker_ids,
            "taskName": NOTIFICATION_TITLE,
        }
        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(f"{self.base_url}{NOTIFY_PATH}", json=payload) as response:
                    if 200 <= response.status < 300:
                        logger.debug(f"Notified {len(worker_ids)} workers about task {task.id}")
                        return True
                    error = await response.text()
                    logger.error(f"Notification server responded with status {response.status}: {error}")
                    return False

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Failed to send notification request for task {task.id}: {e}")
            return False

    async def drain(self) -> None:
        """Wait for outstanding notifications (shutdown, tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
