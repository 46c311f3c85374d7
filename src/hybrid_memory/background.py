"""Detached (fire-and-forget) tasks with a mandatory failure hook.

Conversation writes are not awaited by the request that issues them.
Instead of leaving an unobserved coroutine behind, callers hand the work
to :class:`DetachedTasks`, which keeps a strong reference until the task
finishes and routes any exception to ``on_error``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

logger = logging.getLogger(__name__)

ErrorHook = Callable[[BaseException], None]


class DetachedTasks:
    """Registry of in-flight detached tasks."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(
        self,
        coro: Coroutine[Any, Any, Any],
        *,
        name: str,
        on_error: ErrorHook,
    ) -> asyncio.Task[Any]:
        """Schedule *coro* on the running loop without awaiting it.

        Parameters
        ----------
        coro:
            The work to run.
        name:
            Task name, used in log lines.
        on_error:
            Called with the exception when the task fails.  Cancellation
            is not reported as a failure.
        """
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)

        def _done(finished: asyncio.Task[Any]) -> None:
            self._tasks.discard(finished)
            if finished.cancelled():
                logger.debug("Detached task %s cancelled", name)
                return
            exc = finished.exception()
            if exc is not None:
                on_error(exc)

        task.add_done_callback(_done)
        return task

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for every in-flight task (used on shutdown and in tests)."""
        if not self._tasks:
            return
        pending = list(self._tasks)
        done, still_pending = await asyncio.wait(pending, timeout=timeout)
        if still_pending:
            logger.warning("%d detached task(s) still running after drain", len(still_pending))
        logger.debug("Drained %d detached task(s)", len(done))
