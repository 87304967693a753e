"""Tick counted deferred callbacks.

Replaces frame-yielding coroutines: a callback is queued with a number of
ticks to wait and runs from `tick()`, which the physics loop calls once per
integration step.
"""

from typing import Callable, List


class ScheduledTask:
    """A callback waiting for a number of scheduler ticks."""

    def __init__(self, callback: Callable[[], None], n_ticks: int):
        self.callback = callback
        self.remaining = n_ticks
        self.cancelled = False
        self.done = False

    def cancel(self):
        self.cancelled = True


class TickScheduler:
    """Runs callbacks after an exact number of ticks."""

    def __init__(self):
        self.tick_count = 0
        self._tasks: List[ScheduledTask] = []

    @property
    def pending(self) -> int:
        """Number of queued, not yet executed tasks."""
        return sum(1 for task in self._tasks if not task.cancelled)

    def call_later(self, callback: Callable[[], None], n_ticks: int = 1) -> ScheduledTask:
        """Queues `callback` to run on the `n_ticks`-th call of `tick()` from now.

        Args:
            callback: Function without arguments.
            n_ticks: Number of ticks to wait, at least 1.

        Returns:
            The scheduled task, which can be cancelled.
        """
        if n_ticks < 1:
            raise ValueError(f"n_ticks must be >= 1, got {n_ticks}")

        task = ScheduledTask(callback, n_ticks)
        self._tasks.append(task)
        return task

    def tick(self):
        """Advances the scheduler by one tick and runs all tasks that became due.

        Tasks run in the order they were scheduled. Tasks scheduled by a
        callback during this tick are not counted down until the next tick.
        """
        self.tick_count += 1
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            if task.cancelled:
                continue

            task.remaining -= 1
            if task.remaining > 0:
                self._tasks.append(task)
                continue

            task.done = True
            task.callback()

    def clear(self):
        """Drops all pending tasks without running them."""
        for task in self._tasks:
            task.cancel()

        self._tasks = []
