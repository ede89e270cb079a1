"""Detached execution of conversation pipeline runs."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

PipelineJob = Callable[[], Awaitable[Any]]


class PipelineScheduler:
    """Run pipeline jobs in the background after a start delay.

    The HTTP layer acknowledges a request immediately and hands the work to
    ``submit``. The delay leaves the client time to join the conversation room
    before the first progress event fires. Jobs sharing a key (the
    conversation id) run one at a time in submission order: each run waits for
    the previous run on its key to finish, and its delay only pushes its own
    start later.
    """

    def __init__(self) -> None:
        self._tails: dict[str, asyncio.Task] = {}
        self._tasks: set[asyncio.Task] = set()

    def submit(self, key: str, job: PipelineJob, *, delay: float = 0.0) -> asyncio.Task:
        loop = asyncio.get_running_loop()
        start_at = loop.time() + max(delay, 0.0)
        previous = self._tails.get(key)

        task = loop.create_task(self._run(key, previous, job, start_at), name=f"pipeline:{key}")
        self._tails[key] = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(lambda done: self._drop_tail(key, done))
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def _run(
        self,
        key: str,
        previous: Optional[asyncio.Task],
        job: PipelineJob,
        start_at: float,
    ) -> Any:
        try:
            if previous is not None and not previous.done():
                await asyncio.wait({previous})
            remaining = start_at - asyncio.get_running_loop().time()
            if remaining > 0:
                await asyncio.sleep(remaining)
            return await job()
        except asyncio.CancelledError:
            logger.info("Pipeline run for %s cancelled", key)
            raise
        except Exception:
            logger.exception("Detached pipeline run for %s failed", key)
            return None

    def _drop_tail(self, key: str, task: asyncio.Task) -> None:
        if self._tails.get(key) is task:
            del self._tails[key]

    async def shutdown(self) -> None:
        """Cancel runs that have not finished yet."""

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Cancelled %d pending pipeline run(s)", len(tasks))


__all__ = ["PipelineJob", "PipelineScheduler"]
