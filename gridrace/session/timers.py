"""
Delayed Tasks - Cancelable timers keyed by (session, player).

The only background timers in the server: lobby removal after a
disconnect, the disconnect-vote delay and the vote deadline. Each is an
asyncio task stored under its key so a reconnect or session teardown
can cancel it deterministically.
"""

from __future__ import annotations
import asyncio
from typing import Awaitable, Callable, Hashable

from ..logging_config import get_logger


logger = get_logger("timers")

TimerCallback = Callable[[], Awaitable[None]]


class DelayedTasks:
    """Registry of pending timers; scheduling a key again replaces its timer."""

    def __init__(self):
        self._tasks: dict[Hashable, asyncio.Task] = {}

    def schedule(self, key: Hashable, delay: float, callback: TimerCallback) -> asyncio.Task:
        """Run `callback` after `delay` seconds unless cancelled first."""
        self.cancel(key)
        task = asyncio.get_running_loop().create_task(self._run(key, delay, callback))
        self._tasks[key] = task
        return task

    async def _run(self, key: Hashable, delay: float, callback: TimerCallback) -> None:
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            return
        # Deregister before firing so the callback may reschedule the key
        if self._tasks.get(key) is asyncio.current_task():
            del self._tasks[key]
        try:
            await callback()
        except Exception:
            logger.exception("Timer %r failed", key)

    def cancel(self, key: Hashable) -> bool:
        """Cancel a pending timer. Returns True if one was pending."""
        task = self._tasks.pop(key, None)
        if task is None:
            return False
        if task is not asyncio.current_task():
            task.cancel()
        return True

    def cancel_matching(self, predicate: Callable[[Hashable], bool]) -> int:
        """Cancel every timer whose key satisfies `predicate`."""
        keys = [key for key in self._tasks if predicate(key)]
        for key in keys:
            self.cancel(key)
        return len(keys)

    def is_pending(self, key: Hashable) -> bool:
        return key in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)
