"""Cancellable delayed and periodic tasks on a single logical thread.

Times are milliseconds. A periodic task first fires one interval after it
is scheduled. Cancelling a handle is idempotent and safe from inside the
task's own callback.
"""

import asyncio
import heapq
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class TaskHandle(ABC):
    """Handle to a scheduled task."""

    @abstractmethod
    def cancel(self) -> None:
        """Prevent any further run of the task."""
        pass

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        pass


class Scheduler(ABC):
    """Clock plus cancellable one-shot and periodic callbacks."""

    @abstractmethod
    def now(self) -> float:
        """Current time in milliseconds."""
        pass

    @abstractmethod
    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TaskHandle:
        """Run callback once after delay_ms."""
        pass

    @abstractmethod
    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TaskHandle:
        """Run callback every interval_ms until cancelled."""
        pass

    def call_soon_threadsafe(self, callback: Callable[[], None]) -> None:
        """Hand a callback in from another thread. Defaults to an immediate call."""
        callback()


class _AsyncioTask(TaskHandle):

    def __init__(self, loop: asyncio.AbstractEventLoop, callback: Callable[[], None],
                 delay_ms: float, interval_ms: Optional[float] = None):
        self._loop = loop
        self._callback = callback
        self._interval_ms = interval_ms
        self._cancelled = False
        self._timer = loop.call_later(max(delay_ms, 0.0) / 1000.0, self._run)

    def _run(self) -> None:
        if self._cancelled:
            return
        if self._interval_ms is not None:
            # Re-arm first so a cancel() from the callback stops the next run
            self._timer = self._loop.call_later(self._interval_ms / 1000.0, self._run)
        try:
            self._callback()
        except Exception as e:
            logger.error(f"Scheduled task {getattr(self._callback, '__name__', self._callback)} failed: {e}",
                         exc_info=True)

    def cancel(self) -> None:
        self._cancelled = True
        self._timer.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioScheduler(Scheduler):
    """Scheduler backed by an asyncio event loop.

    The loop is passed in explicitly; it need not be running yet.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop):
        self.loop = loop

    def now(self) -> float:
        return self.loop.time() * 1000.0

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TaskHandle:
        return _AsyncioTask(self.loop, callback, delay_ms)

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TaskHandle:
        return _AsyncioTask(self.loop, callback, interval_ms, interval_ms)

    def call_soon_threadsafe(self, callback: Callable[[], None]) -> None:
        self.loop.call_soon_threadsafe(callback)


class _ManualTask(TaskHandle):

    def __init__(self, callback: Callable[[], None], interval_ms: Optional[float]):
        self.callback = callback
        self.interval_ms = interval_ms
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler(Scheduler):
    """Simulated clock for deterministic tests and offline replay.

    Nothing runs until advance() or run_until_idle() is called. Due tasks run
    in time order; tasks due at the same instant run in scheduling order.
    """

    def __init__(self, start_ms: float = 0.0):
        self._now = start_ms
        self._queue: List[Tuple[float, int, _ManualTask]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        return self._now

    def _push(self, due: float, task: _ManualTask) -> None:
        heapq.heappush(self._queue, (due, next(self._sequence), task))

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TaskHandle:
        task = _ManualTask(callback, None)
        self._push(self._now + max(delay_ms, 0.0), task)
        return task

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TaskHandle:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        task = _ManualTask(callback, interval_ms)
        self._push(self._now + interval_ms, task)
        return task

    def advance(self, duration_ms: float) -> None:
        """Move the clock forward, running every task that falls due."""
        self.advance_to(self._now + duration_ms)

    def advance_to(self, target_ms: float) -> None:
        while self._queue and self._queue[0][0] <= target_ms:
            due, _, task = heapq.heappop(self._queue)
            if task.cancelled:
                continue
            self._now = due
            if task.interval_ms is not None:
                self._push(due + task.interval_ms, task)
            task.callback()
        self._now = max(self._now, target_ms)

    def run_until_idle(self, limit_ms: float = 60000.0) -> None:
        """Run one-shot work until only periodic tasks remain or limit_ms passes."""
        deadline = self._now + limit_ms
        while True:
            pending = [entry for entry in self._queue
                       if not entry[2].cancelled and entry[2].interval_ms is None]
            if not pending:
                return
            due = min(entry[0] for entry in pending)
            if due > deadline:
                return
            self.advance_to(due)

    @property
    def pending_count(self) -> int:
        """Number of live scheduled tasks."""
        return sum(1 for _, _, task in self._queue if not task.cancelled)
