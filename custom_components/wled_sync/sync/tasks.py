"""Per-device background tasks."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

_LOGGER = logging.getLogger(__name__)


class DeviceTaskRunner:
    """Runs at most one background task per device.

    Starting a task for a device cancels the one already running for it.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task] = {}

    def is_running(self, device_id: str) -> bool:
        task = self._tasks.get(device_id)
        return task is not None and not task.done()

    def start(self, device_id: str, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        """Start ``coro`` for a device, cancelling its previous task."""
        self.cancel(device_id)
        task = asyncio.create_task(coro, name=f"wled_sync task {device_id}")
        self._tasks[device_id] = task
        task.add_done_callback(lambda done: self._on_done(device_id, done))
        return task

    def cancel(self, device_id: str) -> bool:
        """Cancel the running task of a device, if any."""
        task = self._tasks.pop(device_id, None)
        if task is None or task.done():
            return False
        _LOGGER.debug("Cancelling background task for %s", device_id)
        task.cancel()
        return True

    async def async_cancel_all(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _on_done(self, device_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(device_id) is task:
            del self._tasks[device_id]
        if task.cancelled():
            return
        err = task.exception()
        if err is not None:
            _LOGGER.error(
                "Background task for %s failed: %s",
                device_id,
                err,
                exc_info=err,
            )
