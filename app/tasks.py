from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class DetachedTasks:
    """
    Fire-and-forget coroutines spawned by request handlers.

    Handlers never await what they spawn here. The runner keeps a strong
    reference to each task until it finishes (the event loop only keeps
    weak ones) and logs failures instead of surfacing them anywhere.
    """

    def __init__(self) -> None:
        self._pending: set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._pending)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._pending.add(task)
        task.add_done_callback(self._finished)
        return task

    def _finished(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.debug("background task %s cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error("background task %s failed: %s", task.get_name(), exc, exc_info=exc)

    async def drain(self) -> None:
        """Wait until every task spawned so far has finished."""
        while self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def shutdown(self, grace_seconds: float) -> None:
        """
        Give pending tasks a short grace period, then cancel the rest.
        Dropping them is fine: they only carry advisory counters.
        """
        if not self._pending:
            return
        _, still_pending = await asyncio.wait(set(self._pending), timeout=grace_seconds)
        if still_pending:
            logger.warning("dropping %d unfinished background tasks", len(still_pending))
        for task in still_pending:
            task.cancel()
        await asyncio.gather(*still_pending, return_exceptions=True)
