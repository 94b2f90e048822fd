import shlex
import threading

import pytest

from saveany.enums import TaskType
from saveany.queue import QueueError, TaskCancelledError
from saveany.worker import ExecHooks, TaskRunner

_QUEUE_ERRORS = (QueueError, KeyError, LookupError, ValueError)


class RecordingTask:
    def __init__(self, task_id, action=None):
        self.task_id = task_id
        self.action = action
        self.ran = threading.Event()

    def task_type(self):
        return TaskType.TGFILES

    def execute(self, cancel_event):
        self.ran.set()
        if self.action is not None:
            self.action(cancel_event)


def _append(path, word):
    return f"echo {word} >> {shlex.quote(str(path))}"


def _lines(path):
    if not path.exists():
        return []
    return path.read_text().split()


def test_runs_all_added_tasks():
    runner = TaskRunner(workers=2)
    tasks = [RecordingTask(f"t{n}") for n in range(3)]
    for task in tasks:
        runner.add_task(task)
    assert runner.pending() == 3
    runner.start()
    runner.stop()
    assert all(task.ran.is_set() for task in tasks)
    assert runner.pending() == 0


def test_cancelled_task_is_skipped():
    runner = TaskRunner(workers=1)
    first = RecordingTask("a")
    second = RecordingTask("b")
    runner.add_task(first)
    runner.add_task(second)
    runner.cancel_task("a")
    assert runner.pending() == 1
    runner.start()
    runner.stop()
    assert not first.ran.is_set()
    assert second.ran.is_set()


def test_success_hooks_run_in_order(tmp_path):
    log = tmp_path / "hooks.txt"
    hooks = ExecHooks(task_before_start=_append(log, "start"), task_success=_append(log, "success"))
    runner = TaskRunner(workers=1, hooks=hooks)
    runner.add_task(RecordingTask("ok"))
    runner.start()
    runner.stop()
    assert _lines(log) == ["start", "success"]


def test_fail_hook_runs_on_error(tmp_path):
    log = tmp_path / "hooks.txt"
    hooks = ExecHooks(task_success=_append(log, "success"), task_fail=_append(log, "fail"))

    def boom(_event):
        raise RuntimeError("boom")

    runner = TaskRunner(workers=1, hooks=hooks)
    runner.add_task(RecordingTask("bad", boom))
    runner.start()
    runner.stop()
    assert _lines(log) == ["fail"]


def test_cancel_hook_runs_when_running_task_is_cancelled(tmp_path):
    log = tmp_path / "hooks.txt"
    hooks = ExecHooks(
        task_success=_append(log, "success"),
        task_fail=_append(log, "fail"),
        task_cancel=_append(log, "cancel"),
    )
    started = threading.Event()

    def wait_for_cancel(cancel_event):
        started.set()
        if not cancel_event.wait(5):
            raise RuntimeError("never cancelled")
        raise TaskCancelledError("task was cancelled")

    runner = TaskRunner(workers=1, hooks=hooks)
    runner.add_task(RecordingTask("long", wait_for_cancel))
    runner.start()
    assert started.wait(5)
    runner.cancel_task("long")
    runner.stop()
    assert _lines(log) == ["cancel"]


def test_failing_hook_does_not_stop_task():
    runner = TaskRunner(workers=1, hooks=ExecHooks(task_before_start="exit 3"))
    task = RecordingTask("x")
    runner.add_task(task)
    runner.start()
    runner.stop()
    assert task.ran.is_set()


def test_cancel_unknown_task_raises():
    runner = TaskRunner(workers=1)
    with pytest.raises(_QUEUE_ERRORS):
        runner.cancel_task("missing")


def test_duplicate_task_id_is_rejected():
    runner = TaskRunner(workers=1)
    runner.add_task(RecordingTask("dup"))
    with pytest.raises(_QUEUE_ERRORS):
        runner.add_task(RecordingTask("dup"))
    assert runner.pending() == 1


def test_add_after_stop_is_rejected():
    runner = TaskRunner(workers=1)
    runner.start()
    runner.stop()
    with pytest.raises(_QUEUE_ERRORS):
        runner.add_task(RecordingTask("late"))


def test_zero_workers_rejected():
    with pytest.raises(ValueError):
        TaskRunner(workers=0)