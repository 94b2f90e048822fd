"""A thread-safe FIFO task queue with cancellation."""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Generic, TypeVar

__all__ = ["QueueError", "TaskCancelledError", "Task", "TaskQueue"]

T = TypeVar("T")

_POLL_INTERVAL = 0.05


class QueueError(Exception):
    """Raised when a queue operation cannot be carried out."""


class TaskCancelledError(QueueError):
    """Raised when a cancelled task is added to a queue."""


class _CancelEvent:
    """An event that also counts as set once its parent event is set."""

    def __init__(self, parent=None) -> None:
        self._own = threading.Event()
        self._parent = parent

    def set(self) -> None:
        self._own.set()

    def is_set(self) -> bool:
        return self._own.is_set() or (self._parent is not None and self._parent.is_set())

    def wait(self, timeout: float | None = None) -> bool:
        if self._parent is None:
            return self._own.wait(timeout)
        deadline = None if timeout is None else time.monotonic() + timeout
        while not self.is_set():
            slice_ = _POLL_INTERVAL
            if deadline is not None:
                slice_ = min(slice_, deadline - time.monotonic())
                if slice_ <= 0:
                    return self.is_set()
            self._own.wait(slice_)
        return True


class Task(Generic[T]):
    """A unit of queued work with its own cancellation flag.

    If ``cancel_event`` is given, the task also counts as cancelled once
    that event is set.
    """

    def __init__(self, task_id: str, data: T, cancel_event=None) -> None:
        self.id = task_id
        self.data = data
        self.created = time.time()
        self.cancel_event = _CancelEvent(cancel_event)
        self._queued = False

    def is_cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()

    def __repr__(self) -> str:
        return f"Task(id={self.id!r}, cancelled={self.is_cancelled()})"


class TaskQueue(Generic[T]):
    """FIFO queue of tasks; ``get`` blocks until a task is ready or the queue closes."""

    def __init__(self) -> None:
        self._pending: deque[Task[T]] = deque()
        self._tasks: dict[str, Task[T]] = {}
        self._running: dict[str, Task[T]] = {}
        self._cond = threading.Condition()
        self._closed = False

    def add(self, task: Task[T]) -> None:
        with self._cond:
            if self._closed:
                raise QueueError("queue is closed")
            if task.id in self._tasks:
                raise QueueError(f"task with ID {task.id} already exists")
            if task.is_cancelled():
                raise TaskCancelledError(f"task {task.id} has been cancelled")
            self._pending.append(task)
            task._queued = True
            self._tasks[task.id] = task
            self._cond.notify()

    def get(self) -> Task[T]:
        """Take the next task that is not cancelled, waiting if necessary."""
        with self._cond:
            while True:
                while not self._pending and not self._closed:
                    self._cond.wait()
                if not self._pending:
                    raise QueueError("queue is closed and empty")
                while self._pending:
                    task = self._pending.popleft()
                    task._queued = False
                    if not task.is_cancelled():
                        self._running[task.id] = task
                        return task
                if self._closed:
                    raise QueueError("queue is closed and empty")

    def done(self, task_id: str) -> None:
        with self._cond:
            self._tasks.pop(task_id, None)
            self._running.pop(task_id, None)

    def peek(self) -> Task[T]:
        with self._cond:
            if not self._pending:
                raise QueueError("queue is empty")
            for task in self._pending:
                if not task.is_cancelled():
                    return task
            raise QueueError("queue has no valid tasks")

    def length(self) -> int:
        with self._cond:
            return len(self._pending)

    def active_length(self) -> int:
        with self._cond:
            return sum(1 for task in self._pending if not task.is_cancelled())

    def cancel_task(self, task_id: str) -> None:
        with self._cond:
            task = self._tasks.get(task_id) or self._running.get(task_id)
        if task is None:
            raise QueueError(f"task {task_id} does not exist")
        task.cancel()

    def remove_task(self, task_id: str) -> None:
        with self._cond:
            task = self._tasks.get(task_id)
            if task is None:
                self._running.pop(task_id, None)
                raise QueueError(
                    f"task {task_id} is already running, cannot remove from queue"
                )
            if task._queued:
                self._pending.remove(task)
                task._queued = False
            del self._tasks[task_id]
            task.cancel()

    def cancel_all(self) -> None:
        with self._cond:
            tasks = list(self._pending)
        for task in tasks:
            task.cancel()

    def get_task(self, task_id: str) -> Task[T]:
        with self._cond:
            try:
                return self._tasks[task_id]
            except KeyError:
                raise QueueError(f"task {task_id} does not exist") from None

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    def is_closed(self) -> bool:
        with self._cond:
            return self._closed

    def clear(self) -> None:
        with self._cond:
            for task in self._pending:
                task.cancel()
                task._queued = False
            self._pending.clear()
            self._tasks = {}

    def cleanup_cancelled(self) -> int:
        """Drop cancelled tasks still waiting in the queue; return how many."""
        with self._cond:
            kept: deque[Task[T]] = deque()
            removed = 0
            for task in self._pending:
                if task.is_cancelled():
                    task._queued = False
                    self._tasks.pop(task.id, None)
                    removed += 1
                else:
                    kept.append(task)
            self._pending = kept
            return removed