"""Delayed task scheduling for transcription rechecks.

Waiting for Slack's transcription never blocks a request. Instead a recheck
is scheduled as an independent future invocation under a task id; scheduling
the same id again replaces the earlier timer, so each file has at most one
outstanding recheck.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

logger = logging.getLogger(__name__)

TaskHandler = Callable[[dict], Awaitable[None]]


class TaskQueue(Protocol):
    """Minimal scheduling interface used by the transcription selector."""

    def schedule(self, task_id: str, delay: float, payload: dict) -> None: ...

    def cancel(self, task_id: str) -> bool: ...

    def cancel_all(self) -> int: ...


class AsyncioTaskQueue:
    """In-process TaskQueue backed by asyncio timers.

    Must be used from inside a running event loop. The registered handler
    receives the payload when the delay elapses; its exceptions are logged
    and swallowed so a failing recheck cannot take down the loop.
    """

    def __init__(self, handler: TaskHandler | None = None):
        self._handler = handler
        self._tasks: dict[str, asyncio.Task] = {}

    def register_handler(self, handler: TaskHandler) -> None:
        self._handler = handler

    def schedule(self, task_id: str, delay: float, payload: dict) -> None:
        self.cancel(task_id)
        task = asyncio.get_running_loop().create_task(
            self._run(task_id, delay, payload), name=task_id
        )
        self._tasks[task_id] = task
        logger.info("Scheduled %s in %.1fs", task_id, delay)

    def cancel(self, task_id: str) -> bool:
        task = self._tasks.pop(task_id, None)
        if task is None:
            return False
        try:
            current = asyncio.current_task()
        except RuntimeError:
            current = None
        # a handler rescheduling its own id must not cancel itself
        if task is not current:
            task.cancel()
        return True

    def cancel_all(self) -> int:
        task_ids = list(self._tasks)
        for task_id in task_ids:
            self.cancel(task_id)
        if task_ids:
            logger.info("Cancelled %d scheduled task(s)", len(task_ids))
        return len(task_ids)

    def pending(self) -> list[str]:
        return list(self._tasks)

    async def _run(self, task_id: str, delay: float, payload: dict) -> None:
        await asyncio.sleep(delay)
        if self._tasks.get(task_id) is asyncio.current_task():
            del self._tasks[task_id]

        if self._handler is None:
            logger.error("No handler registered, dropping task %s", task_id)
            return
        try:
            await self._handler(payload)
        except Exception:
            logger.exception("Scheduled task %s failed", task_id)
