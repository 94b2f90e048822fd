"""A pool of worker threads that runs queued tasks and fires lifecycle hooks."""

from __future__ import annotations

import logging
import subprocess
import threading
from dataclasses import dataclass
from typing import Protocol

from .enums import TaskType
from .hooks import run_hook
from .queue import QueueError, Task, TaskCancelledError, TaskQueue

__all__ = ["Executable", "ExecHooks", "TaskRunner"]

_log = logging.getLogger(__name__)


class Executable(Protocol):
    """Something the runner can execute: an id, a type and an ``execute`` method."""

    task_id: str

    def task_type(self) -> TaskType: ...

    def execute(self, cancel_event: threading.Event) -> None: ...


@dataclass
class ExecHooks:
    """Shell commands run around each task; empty strings are skipped."""

    task_before_start: str = ""
    task_success: str = ""
    task_fail: str = ""
    task_cancel: str = ""


class TaskRunner:
    """Runs tasks from a :class:`TaskQueue` on a fixed number of threads."""

    def __init__(
        self,
        workers: int = 3,
        hooks: ExecHooks | None = None,
        queue: TaskQueue | None = None,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.workers = workers
        self.hooks = hooks or ExecHooks()
        self._queue = queue if queue is not None else TaskQueue()
        self._entries: dict[int, tuple[Task, Executable, threading.Event]] = {}
        self._lock = threading.Lock()
        self._threads: list[threading.Thread] = []

    def start(self) -> None:
        """Start the worker threads; does nothing if they are already running."""
        if any(thread.is_alive() for thread in self._threads):
            return
        _log.info("Start processing tasks...")
        self._threads = [
            threading.Thread(target=self._work, name=f"saveany-worker-{n}", daemon=True)
            for n in range(self.workers)
        ]
        for thread in self._threads:
            thread.start()

    def add_task(self, task: Executable) -> None:
        """Queue ``task``; raises if the queue rejects it."""
        event = threading.Event()
        queued = Task(task.task_id, task, event)
        with self._lock:
            self._entries[id(queued)] = (queued, task, event)
        try:
            self._queue.add(queued)
        except Exception:
            with self._lock:
                self._entries.pop(id(queued), None)
            raise

    def cancel_task(self, task_id: str) -> None:
        """Cancel a queued or running task; raises if no such task exists."""
        self._queue.cancel_task(task_id)

    def pending(self) -> int:
        """Number of queued tasks that are not cancelled."""
        return self._queue.active_length()

    def stop(self) -> None:
        """Close the queue and wait for the workers to drain it and exit."""
        self._queue.close()
        for thread in self._threads:
            thread.join()
        self._threads = []

    def _hook(self, kind: str, command: str, task_id: str) -> None:
        try:
            run_hook(command)
        except (subprocess.CalledProcessError, OSError) as exc:
            _log.error("Failed to execute %s hook for task %s: %s", kind, task_id, exc)

    def _work(self) -> None:
        while True:
            try:
                queued = self._queue.get()
            except QueueError as exc:
                _log.debug("Worker exiting: %s", exc)
                return
            with self._lock:
                entry = self._entries.pop(id(queued), None)
            if entry is None:
                continue
            _, task, event = entry
            self._run(task, event)

    def _run(self, task: Executable, event: threading.Event) -> None:
        task_id = task.task_id
        _log.info("Processing task: %s", task_id)
        self._hook("before start", self.hooks.task_before_start, task_id)
        try:
            task.execute(event)
        except Exception as exc:
            if isinstance(exc, TaskCancelledError) or event.is_set():
                _log.info("Task %s was canceled", task_id)
                self._hook("cancel", self.hooks.task_cancel, task_id)
            else:
                _log.error("Failed to execute task %s: %s", task_id, exc)
                self._hook("fail", self.hooks.task_fail, task_id)
        else:
            _log.info("Task %s completed successfully", task_id)
            self._hook("success", self.hooks.task_success, task_id)
        finally:
            self._queue.done(task_id)