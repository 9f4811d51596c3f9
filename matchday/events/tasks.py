"""
Detached tasks: work a request handler hands off without waiting on it.

Every task runs behind one error sink: exceptions are logged with
traceback, sent to Sentry and counted, then discarded. Nothing a detached
task does can reach the response the handler already returned.
"""

import asyncio
import logging
from typing import Awaitable, Callable

from matchday.telemetry import capture_exception, record_detached_task

logger = logging.getLogger("matchday.events")


class TaskRunner:
    """Spawns detached tasks and keeps strong references until they finish."""

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def spawn(self, name: str, factory: Callable[[], Awaitable]) -> asyncio.Task:
        """
        Schedule factory() as a detached task.

        Args:
            name: Bounded task name (used as metric label and log tag)
            factory: Zero-arg callable returning the coroutine to run
        """
        task = asyncio.create_task(self._run(name, factory), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(f"TaskRunner: detached {name} (pending={len(self._tasks)})")
        return task

    async def _run(self, name: str, factory: Callable[[], Awaitable]) -> None:
        try:
            await factory()
        except asyncio.CancelledError:
            record_detached_task(name, "cancelled")
            raise
        except Exception as e:
            self._on_error(name, e)
        else:
            record_detached_task(name, "ok")

    def _on_error(self, name: str, error: Exception) -> None:
        """The single error sink for detached work."""
        logger.error(f"TaskRunner: detached {name} failed: {error}", exc_info=error)
        capture_exception(error, job_id=name)
        record_detached_task(name, "error")

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: float = 10.0) -> None:
        """Wait for in-flight tasks (shutdown and tests); cancel the rest on timeout."""
        while self._tasks:
            _, still_pending = await asyncio.wait(list(self._tasks), timeout=timeout)
            if still_pending:
                for task in still_pending:
                    task.cancel()
                logger.warning(f"TaskRunner: cancelled {len(still_pending)} tasks still running after {timeout}s")
                return
