"""Fire-and-forget delivery of side effects (broadcasts, push notifications)."""

import asyncio
from collections.abc import Callable
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class BackgroundDispatcher:
    """
    Runs blocking delivery calls in worker threads without awaiting them.

    Failures are logged and dropped; the operation that triggered the
    delivery has already committed.
    """

    def __init__(self) -> None:
        """Initialize with no pending deliveries."""
        self._tasks: set[asyncio.Task] = set()

    def submit(self, event: str, func: Callable[..., Any], *args: Any, **context: Any) -> None:
        """
        Schedule ``func(*args)`` on a worker thread.

        Args:
            event: Log event name used if the delivery fails
            func: Blocking callable
            args: Positional arguments for ``func``
            context: Extra fields for the failure log line
        """
        task = asyncio.create_task(asyncio.to_thread(func, *args))
        self._tasks.add(task)
        task.add_done_callback(lambda t: self._finished(t, event, context))

    def _finished(self, task: asyncio.Task, event: str, context: dict[str, Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(event, error=str(error), **context)

    @property
    def pending(self) -> int:
        """Deliveries still in flight."""
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every in-flight delivery to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


# Shared dispatcher for the application process
dispatcher = BackgroundDispatcher()
