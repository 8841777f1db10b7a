# src/bosschat/tasks.py
"""
Detached background work.

`BackgroundTasks` keeps strong references to fire-and-forget tasks (the event
loop only keeps weak ones), logs their failures from a done-callback and
cancels whatever is still running at shutdown. `sweep_loop` is the periodic
cleanup of idle sessions and expired rate-limit windows.
"""

import asyncio
import logging
from typing import Any, Coroutine, Optional, Set

from .ratelimit import RateLimiter
from .sessions import SessionStore

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """Registry for detached tasks that must never affect a response."""

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], name: Optional[str] = None) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug(f"Background task {task.get_name()} cancelled")
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Background task {task.get_name()} failed: {exc}", exc_info=exc)

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for the currently pending tasks to finish."""
        pending = list(self._tasks)
        if pending:
            await asyncio.wait(pending, timeout=timeout)

    async def shutdown(self) -> None:
        """Cancel everything still running and wait for the cancellations to land."""
        pending = list(self._tasks)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.info(f"Cancelled {len(pending)} background task(s) at shutdown")

    def __len__(self) -> int:
        return len(self._tasks)


async def sweep_loop(sessions: SessionStore, limiter: Optional[RateLimiter], interval: float) -> None:
    """Run the session sweep (and rate-limit pruning) every `interval` seconds until cancelled."""
    try:
        while True:
            await asyncio.sleep(interval)
            try:
                sessions.sweep()
                if limiter is not None:
                    limiter.prune()
            except Exception as e:
                logger.error(f"Error in session sweep: {e}", exc_info=True)
    except asyncio.CancelledError:
        logger.info("Session sweep task cancelled")
        raise
