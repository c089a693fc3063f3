"""In-process runner for self-improvement runs, serialized per profile."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from voxforge.channels.operator import OperatorNotifier
from voxforge.errors import ConfigError, VoxforgeError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PipelineRunner:
    """Background task dispatcher with one lock per profile id.

    ``submit`` returns the task so callers and tests can await it. Runs for the
    same profile never overlap; runs for different profiles may.
    """

    def __init__(self, notifier: OperatorNotifier | None = None) -> None:
        self._notifier = notifier
        self._locks: dict[str, asyncio.Lock] = {}
        self._background_tasks: set[asyncio.Task[Any]] = set()
        self._shutdown = asyncio.Event()

    @property
    def in_flight(self) -> int:
        return len(self._background_tasks)

    @property
    def accepting(self) -> bool:
        return not self._shutdown.is_set()

    def _lock_for(self, profile_id: str) -> asyncio.Lock:
        lock = self._locks.get(profile_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[profile_id] = lock
        return lock

    async def run_exclusive(self, profile_id: str, func: Callable[[], Awaitable[T]]) -> T:
        """Run ``func`` in the foreground while holding the profile's lock."""
        async with self._lock_for(profile_id):
            return await func()

    def submit(
        self,
        profile_id: str,
        func: Callable[[], Awaitable[T]],
        *,
        name: str = "self-improvement",
    ) -> asyncio.Task[T | None]:
        if self._shutdown.is_set():
            raise ConfigError(f"pipeline runner is shutting down; rejected {name}")
        task = asyncio.get_running_loop().create_task(
            self._execute(profile_id, func, name), name=name
        )
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def _execute(
        self,
        profile_id: str,
        func: Callable[[], Awaitable[T]],
        name: str,
    ) -> T | None:
        async with self._lock_for(profile_id):
            try:
                return await func()
            except asyncio.CancelledError:
                logger.warning("Task cancelled: %s", name)
                raise
            except Exception as exc:
                logger.exception("Task failed: %s", name)
                await self._report_failure(name, exc)
                return None

    async def _report_failure(self, name: str, exc: Exception) -> None:
        if self._notifier is None:
            return
        try:
            await self._notifier.notify(f"Pipeline error ({name}): {exc}")
        except VoxforgeError as notify_exc:
            logger.warning("Could not report failure of %s: %s", name, notify_exc)

    async def join(self) -> None:
        """Wait until every submitted run has finished."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    def cancel_all(self) -> int:
        tasks = [task for task in self._background_tasks if not task.done()]
        for task in tasks:
            task.cancel()
        return len(tasks)

    async def shutdown(self, timeout_s: float) -> None:
        self._shutdown.set()
        if not self._background_tasks:
            return
        try:
            await asyncio.wait_for(
                asyncio.gather(*list(self._background_tasks), return_exceptions=True),
                timeout=max(1.0, float(timeout_s)),
            )
        except TimeoutError:
            logger.warning(
                "Pipeline runner shutdown timed out; cancelling %d tasks",
                len(self._background_tasks),
            )
            self.cancel_all()
