import asyncio
import itertools
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional


@dataclass
class ScheduledTask:
    id: int
    delay: float
    key: Optional[str] = None
    created_at: float = field(default_factory=time.time)
    handle: Optional[asyncio.TimerHandle] = None

    def cancel(self) -> None:
        if self.handle:
            self.handle.cancel()


class TimerRegistry:
    """Owns every deferred continuation so pause and stop can cancel them together.

    Callbacks may be plain functions or coroutine functions; coroutines are
    wrapped in tasks when the timer fires.
    """

    def __init__(self):
        self._pending: dict[int, ScheduledTask] = {}
        self._keys: dict[str, int] = {}
        self._tasks: set[asyncio.Task] = set()
        self._ids = itertools.count(1)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def has_pending(self, key: str) -> bool:
        return key in self._keys

    def schedule(self, delay: float, callback: Callable[..., Any], *args, key: Optional[str] = None) -> ScheduledTask:
        """Run callback after delay seconds. A keyed task replaces a pending one with the same key."""
        if key is not None and key in self._keys:
            self.cancel(self._pending[self._keys[key]])

        task = ScheduledTask(id=next(self._ids), delay=delay, key=key)
        loop = asyncio.get_running_loop()
        task.handle = loop.call_later(max(delay, 0), self._fire, task, callback, args)
        self._pending[task.id] = task
        if key is not None:
            self._keys[key] = task.id
        return task

    def cancel(self, task: ScheduledTask) -> None:
        task.cancel()
        self._forget(task)

    def cancel_all(self) -> int:
        count = len(self._pending)
        for task in list(self._pending.values()):
            task.cancel()
        self._pending.clear()
        self._keys.clear()
        if count:
            print(f"  [timers] Cancelled {count} pending continuation(s)", flush=True)
        return count

    def _forget(self, task: ScheduledTask) -> None:
        self._pending.pop(task.id, None)
        if task.key is not None and self._keys.get(task.key) == task.id:
            del self._keys[task.key]

    def _fire(self, task: ScheduledTask, callback: Callable[..., Any], args: tuple) -> None:
        self._forget(task)
        result = callback(*args)
        if asyncio.iscoroutine(result):
            running = asyncio.get_running_loop().create_task(result)
            self._tasks.add(running)
            running.add_done_callback(self._tasks.discard)
