"""Background task manager for detached, fire-and-forget work.

Request handlers use this for side effects the caller must not wait on,
such as bumping a clip's view counter. Tasks are tracked so failures are
logged instead of disappearing, and so shutdown can cancel what is left.
"""

import asyncio
import logging
from typing import Awaitable, Any
from weakref import WeakSet

logger = logging.getLogger(__name__)


class TaskManager:
    """
    Track background tasks with error logging and cancel-on-shutdown.

    Usage:
        task_manager = TaskManager.get_instance()

        # Detach work from the request
        task_manager.fire_and_forget(increment_clip_views(clip_id), name="clip_view")

        # On shutdown
        await task_manager.cancel_all()
    """

    _instance: "TaskManager | None" = None

    def __init__(self):
        self._tasks: WeakSet[asyncio.Task] = WeakSet()
        # Strong references keep detached tasks alive until they finish
        self._detached: set[asyncio.Task] = set()
        self._failures = 0

    @classmethod
    def get_instance(cls) -> "TaskManager":
        """Get the singleton TaskManager instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance (for testing)."""
        cls._instance = None

    def create_task(self, coro: Awaitable[Any], name: str | None = None) -> asyncio.Task:
        """
        Create a tracked background task.

        Exceptions raised by the coroutine are logged and counted; the task is
        still marked failed so awaiting it re-raises.
        """
        task_name = name or "unnamed"

        async def wrapped_coro():
            try:
                return await coro
            except asyncio.CancelledError:
                logger.debug(f"Background task cancelled: {task_name}")
                raise
            except Exception as e:
                self._failures += 1
                logger.error(f"Background task failed: {task_name} - {type(e).__name__}: {e}")
                raise

        task = asyncio.create_task(wrapped_coro(), name=name)
        self._tasks.add(task)
        return task

    def fire_and_forget(self, coro: Awaitable[Any], name: str | None = None) -> None:
        """
        Run a coroutine detached from the caller.

        Nothing is returned: there is deliberately no completion signal. The
        failure is logged by create_task and the exception is retrieved here
        so asyncio does not warn about it.
        """
        task = self.create_task(coro, name=name)
        self._detached.add(task)

        def _done(t: asyncio.Task) -> None:
            self._detached.discard(t)
            if not t.cancelled():
                t.exception()

        task.add_done_callback(_done)

    def get_running_tasks(self) -> list[asyncio.Task]:
        """Get all currently running (non-done) tasks."""
        return [t for t in self._tasks if not t.done()]

    def get_task_stats(self) -> dict:
        """Get statistics about tracked tasks."""
        return {
            "running": len(self.get_running_tasks()),
            "detached": len(self._detached),
            "failed": self._failures,
        }

    async def cancel_all(self, timeout: float = 5.0) -> dict:
        """
        Cancel all tracked tasks and wait for them to finish.

        Args:
            timeout: Maximum time to wait for tasks to finish

        Returns:
            Statistics about cancelled tasks
        """
        running = self.get_running_tasks()
        if not running:
            return {"cancelled": 0, "timed_out": 0}

        logger.info(f"Cancelling {len(running)} background tasks...")

        for task in running:
            task.cancel()

        done, pending = await asyncio.wait(
            running,
            timeout=timeout,
            return_when=asyncio.ALL_COMPLETED,
        )

        timed_out = len(pending)
        if timed_out > 0:
            logger.warning(
                f"{timed_out} tasks did not finish within {timeout}s timeout"
            )

        return {
            "cancelled": len(done),
            "timed_out": timed_out,
        }
