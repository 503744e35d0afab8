"""Schedule notification creation from synchronous collaborators."""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Future
from functools import partial
from typing import Any, Awaitable, Callable

from anyio import from_thread

logger = logging.getLogger(__name__)

Handler = Callable[..., Awaitable[Any]]


class NotificationPublisher:
    """Hand notification drafts to an async handler from any thread.

    On the event loop the handler runs as a background task. Other threads
    submit it to the loop passed to the constructor; without a running loop, a
    worker thread started by anyio (FastAPI sync endpoints) blocks on it
    through :func:`anyio.from_thread.run`.
    """

    def __init__(self, handler: Handler, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._handler = handler
        self._loop = loop
        self._tasks: set[asyncio.Task[Any]] = set()

    def publish(self, **draft: Any) -> Any:
        """Schedule ``handler(**draft)`` on the event loop.

        Returns the task or future tracking the call, or the handler result
        when it was executed through an anyio portal.
        """

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return self._publish_from_thread(draft)

        task = loop.create_task(self._handler(**draft))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _publish_from_thread(self, draft: dict[str, Any]) -> Any:
        if self._loop is not None and self._loop.is_running():
            future: Future[Any] = asyncio.run_coroutine_threadsafe(
                self._handler(**draft), self._loop
            )
            future.add_done_callback(self._log_failure)
            return future
        return from_thread.run(partial(self._handler, **draft))

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        self._log_failure(task)

    @staticmethod
    def _log_failure(future: "Future[Any] | asyncio.Task[Any]") -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Published notification failed: %s", exc, exc_info=exc)


__all__ = ["NotificationPublisher"]
