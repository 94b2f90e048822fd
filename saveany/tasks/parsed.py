"""Tasks that download the resources of a parsed item into a storage."""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import requests

from ..enums import TaskType
from ..items import Item, Resource
from ..queue import TaskCancelledError
from ..storage.base import Storage, _join

__all__ = ["ProgressTracker", "MessageProgress", "ParsedTask", "should_update_progress"]

_log = logging.getLogger(__name__)

_MB = 1024 * 1024
_CHUNK_SIZE = 64 * 1024
_RETRY_DELAY = 1.0

# (size threshold in bytes, update every N percent)
_PROGRESS_LEVELS = (
    (10 << 20, 100),
    (50 << 20, 50),
    (200 << 20, 20),
    (500 << 20, 10),
)


def should_update_progress(total: int, downloaded: int, last_percent: int) -> bool:
    """Whether progress moved far enough past ``last_percent`` to report it."""
    if total <= 0 or downloaded <= 0:
        return False
    percent = downloaded * 100 // total
    if percent <= last_percent:
        return False
    step = next((s for size, s in _PROGRESS_LEVELS if total < size), _PROGRESS_LEVELS[-1][1])
    return percent >= last_percent + step


class ProgressTracker(ABC):
    """Receives progress of a parsed-item task."""

    @abstractmethod
    def on_start(self, info: ParsedTask) -> None: ...

    @abstractmethod
    def on_progress(self, info: ParsedTask) -> None: ...

    @abstractmethod
    def on_done(self, info: ParsedTask, error: BaseException | None) -> None: ...


class MessageProgress(ProgressTracker):
    """Reports progress as text through ``edit(text, cancel_task_id)``.

    ``cancel_task_id`` is the task id while a cancel button should be shown,
    and ``None`` once the task is finished.
    """

    def __init__(self, edit: Callable[[str, str | None], Any]) -> None:
        self.edit = edit
        self._start = time.monotonic()
        self._last_percent = 0
        self._lock = threading.Lock()

    def on_start(self, info: ParsedTask) -> None:
        with self._lock:
            self._start = time.monotonic()
            self._last_percent = 0
        text = (
            f"开始下载 {info.site()} 的资源\n总大小: "
            f"{info.total_bytes() / _MB:.2f} MB ({info.total_resources()}个资源)"
        )
        self.edit(text, info.task_id)

    def on_progress(self, info: ParsedTask) -> None:
        total = info.total_bytes()
        done = info.downloaded_bytes()
        with self._lock:
            if not should_update_progress(total, done, self._last_percent):
                return
            percent = done * 100 // total
            if percent == self._last_percent:
                return
            self._last_percent = percent
            elapsed = max(time.monotonic() - self._start, 1e-9)
        lines = [
            f"  - {res.filename} ({res.size / _MB:.2f} MB)" for res in info.processing().values()
        ] or ["  - 无"]
        text = (
            f"正在下载\n总大小: {total / _MB:.2f} MB ({info.total_resources()}个文件)"
            f"\n正在处理:\n" + "\n".join(lines)
            + f"\n平均速度: {done / elapsed / _MB:.2f} MB/s"
            f"\n当前进度: {done / total * 100:.2f}%"
        )
        self.edit(text, info.task_id)

    def on_done(self, info: ParsedTask, error: BaseException | None) -> None:
        if error is not None:
            if isinstance(error, TaskCancelledError):
                _log.info("Parsed task %s was canceled", info.task_id)
                self.edit(f"处理已取消: {info.task_id}", None)
            else:
                _log.error("Parsed task %s failed: %s", info.task_id, error)
                self.edit(f"处理失败: {error}", None)
            return
        _log.info("Parsed task %s completed successfully", info.task_id)
        self.edit(
            f"处理完成, 资源数量: {info.total_resources()}"
            f"\n保存路径: [{info.storage_name()}]:{info.storage_path}",
            None,
        )


class _ResponseReader:
    """A file-like view of a streamed HTTP response body."""

    def __init__(self, resp: requests.Response, cancelled: Callable[[], bool]) -> None:
        self._chunks = resp.iter_content(_CHUNK_SIZE)
        self._cancelled = cancelled
        self._buf = bytearray()

    def read(self, size: int = -1) -> bytes:
        if self._cancelled():
            raise TaskCancelledError("task was cancelled")
        while size < 0 or len(self._buf) < size:
            chunk = next(self._chunks, None)
            if chunk is None:
                break
            self._buf.extend(chunk)
        if size < 0:
            data = bytes(self._buf)
            self._buf.clear()
        else:
            data = bytes(self._buf[:size])
            del self._buf[:size]
        return data


def _header_length(resp: requests.Response) -> int | None:
    try:
        length = int(resp.headers.get("Content-Length", ""))
    except ValueError:
        return None
    return length if length >= 0 else None


class ParsedTask:
    """Downloads every resource of an item and saves it under ``storage_path``."""

    def __init__(
        self,
        task_id: str,
        storage: Storage,
        storage_path: str,
        item: Item,
        progress: ProgressTracker | None = None,
        stream: bool = False,
        workers: int = 3,
        retry: int = 3,
        temp_dir: str | os.PathLike[str] | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.task_id = task_id
        self.storage = storage
        self.storage_path = storage_path
        self.item = item
        self.progress = progress
        self.stream = stream and storage.cannot_stream is None
        self.workers = max(1, workers)
        self.retry = retry
        self.temp_dir = os.fspath(temp_dir) if temp_dir is not None else tempfile.gettempdir()
        self.session = session or requests.Session()
        self._total_resources = len(item.resources)
        self._total_bytes = sum(res.size for res in item.resources if res.size >= 0)
        self._downloaded = 0
        self._downloaded_bytes = 0
        self._processing: dict[str, Resource] = {}
        self._lock = threading.Lock()

    def task_type(self) -> TaskType:
        return TaskType.PARSEDITEM

    def site(self) -> str:
        return self.item.site

    def total_resources(self) -> int:
        return self._total_resources

    def downloaded(self) -> int:
        """Number of resources whose processing has finished."""
        with self._lock:
            return self._downloaded

    def total_bytes(self) -> int:
        return self._total_bytes

    def downloaded_bytes(self) -> int:
        with self._lock:
            return self._downloaded_bytes

    def processing(self) -> dict[str, Resource]:
        """Resources being processed right now, by resource id."""
        with self._lock:
            return dict(self._processing)

    def storage_name(self) -> str:
        return self.storage.name()

    def execute(self, cancel_event: threading.Event | None = None) -> None:
        """Download and save all resources; raise the first error met."""
        _log.info("Starting parsed item task %s", self.item.title)
        if self.progress is not None:
            self.progress.on_start(self)
        stop = threading.Event()
        first_error: list[BaseException] = []
        error_lock = threading.Lock()

        def cancelled() -> bool:
            return stop.is_set() or (cancel_event is not None and cancel_event.is_set())

        def run(resource: Resource) -> None:
            try:
                self._run_resource(resource, cancelled, stop)
            except Exception as exc:
                with error_lock:
                    if not first_error:
                        first_error.append(exc)
                    stop.set()

        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            for resource in self.item.resources:
                pool.submit(run, resource)

        error = first_error[0] if first_error else None
        if error is not None:
            _log.error("Error during parsed item task execution: %s", error)
        else:
            _log.info("Parsed item task %s completed successfully", self.item.title)
        if self.progress is not None:
            self.progress.on_done(self, error)
        if error is not None:
            raise error

    def _run_resource(
        self, resource: Resource, cancelled: Callable[[], bool], stop: threading.Event
    ) -> None:
        rid = resource.id()
        with self._lock:
            if rid in self._processing:
                raise RuntimeError(f"resource {rid} is already being processed")
            self._processing[rid] = resource
        try:
            self._process_resource(resource, cancelled, stop)
        except TaskCancelledError:
            _log.debug("Resource processing canceled")
            raise
        except Exception as exc:
            _log.error("Error processing resource %s: %s", resource.url, exc)
            raise RuntimeError(f"failed to process resource {resource.url}: {exc}") from exc
        finally:
            with self._lock:
                self._processing.pop(rid, None)
                self._downloaded += 1

    def _process_resource(
        self, resource: Resource, cancelled: Callable[[], bool], stop: threading.Event
    ) -> None:
        attempts = max(1, self.retry)
        last_error: Exception | None = None
        for attempt in range(attempts):
            if cancelled():
                raise TaskCancelledError("task was cancelled")
            try:
                self._attempt(resource, cancelled)
                return
            except TaskCancelledError:
                raise
            except Exception as exc:
                last_error = exc
                _log.debug("Attempt %d for %s failed: %s", attempt + 1, resource.url, exc)
            if attempt + 1 < attempts:
                stop.wait(_RETRY_DELAY)
        if cancelled():
            raise TaskCancelledError("task was cancelled")
        assert last_error is not None
        raise last_error

    def _attempt(self, resource: Resource, cancelled: Callable[[], bool]) -> None:
        headers = dict(resource.headers or {})
        with self.session.get(resource.url, headers=headers, stream=True) as resp:
            if resp.status_code != 200:
                raise RuntimeError(
                    f"failed to download resource {resource.url}: "
                    f"{resp.status_code} {resp.reason}"
                )
            length = resource.size if resource.size > 0 else _header_length(resp)
            target = _join(self.storage_path, resource.filename)
            if self.stream:
                self.storage.save(_ResponseReader(resp, cancelled), target, length)
                return
            os.makedirs(self.temp_dir, exist_ok=True)
            cache_path = os.path.join(
                self.temp_dir, f"resource_{self.task_id}_{resource.filename}"
            )
            try:
                with open(cache_path, "w+b") as cache:
                    written = 0
                    for chunk in resp.iter_content(_CHUNK_SIZE):
                        if cancelled():
                            raise TaskCancelledError("task was cancelled")
                        cache.write(chunk)
                        written += len(chunk)
                        with self._lock:
                            self._downloaded_bytes += len(chunk)
                        if self.progress is not None:
                            self.progress.on_progress(self)
                    cache.seek(0)
                    self.storage.save(cache, target, length if length is not None else written)
            finally:
                with contextlib.suppress(FileNotFoundError):
                    os.remove(cache_path)