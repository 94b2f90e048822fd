"""Progress accounting shared by file download tasks."""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

__all__ = ["ProgressWriter", "should_update_file_progress"]

# (size threshold in bytes, update every N percent)
_FILE_PROGRESS_LEVELS = (
    (10 << 20, 100),
    (50 << 20, 20),
    (200 << 20, 10),
    (500 << 20, 5),
)


def should_update_file_progress(total: int, downloaded: int, last_percent: int) -> bool:
    """Whether a file download moved far enough past ``last_percent`` to report.

    Small files are reported only on completion; bigger files more often.
    """
    if total <= 0 or downloaded <= 0:
        return False
    percent = downloaded * 100 // total
    if percent <= last_percent:
        return False
    step = next(
        (s for size, s in _FILE_PROGRESS_LEVELS if total < size),
        _FILE_PROGRESS_LEVELS[-1][1],
    )
    return percent >= last_percent + step


class ProgressWriter:
    """Writes to ``target`` and reports ``(downloaded, total)`` after each write."""

    def __init__(
        self,
        target: Any,
        total: int,
        on_progress: Callable[[int, int], Any] | None = None,
    ) -> None:
        self.target = target
        self.total = total
        self.on_progress = on_progress
        self._downloaded = 0
        self._lock = threading.Lock()

    def write(self, data: bytes) -> int:
        """Write ``data``; return the number of bytes written."""
        written = self.target.write(data)
        if written is None:
            written = len(data)
        with self._lock:
            self._downloaded += written
            current = self._downloaded
        if self.on_progress is not None:
            self.on_progress(current, self.total)
        return written

    def downloaded(self) -> int:
        """Total bytes written so far."""
        with self._lock:
            return self._downloaded