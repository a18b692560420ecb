"""Fire-and-forget task launching with a completion barrier."""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine

from loguru import logger


class TaskBarrier:
    """Counts outstanding units of work and lets callers wait for zero.

    The counter covers every unit launched through this barrier, so
    ``wait()`` also waits for units started by earlier, unrelated commands.
    Use a :class:`Batch` to wait for a single fan-out only.
    """

    def __init__(self, max_parallel: int = 0):
        self._outstanding = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._tasks: set[asyncio.Task] = set()
        self._limit = asyncio.Semaphore(max_parallel) if max_parallel > 0 else None

    @property
    def outstanding(self) -> int:
        return self._outstanding

    def launch(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task:
        """Schedule ``coro`` and count it until it finishes."""
        self._outstanding += 1
        self._idle.clear()
        task = asyncio.create_task(self._run(coro), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._finished)
        return task

    def batch(self) -> Batch:
        return Batch(self)

    async def wait(self) -> None:
        """Block until no launched unit is outstanding."""
        await self._idle.wait()

    async def cancel_all(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _run(self, coro: Coroutine[Any, Any, Any]) -> Any:
        if self._limit is None:
            return await coro
        async with self._limit:
            return await coro

    def _finished(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        self._outstanding -= 1
        if self._outstanding == 0:
            self._idle.set()
        if not task.cancelled() and task.exception() is not None:
            logger.opt(exception=task.exception()).error(
                f"unit {task.get_name()} failed"
            )


class Batch:
    """The units launched by one fan-out call."""

    def __init__(self, barrier: TaskBarrier):
        self._barrier = barrier
        self.tasks: list[asyncio.Task] = []

    def launch(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task:
        task = self._barrier.launch(coro, name=name)
        self.tasks.append(task)
        return task

    async def join(self) -> None:
        """Block until every unit of this batch has finished."""
        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)

    def __len__(self) -> int:
        return len(self.tasks)
