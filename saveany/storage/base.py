"""Storage backend interface, configuration and the current-storage context."""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

from ..enums import StorageType, parse_storage_type

__all__ = [
    "StorageError",
    "StorageNameEmptyError",
    "StorageConfig",
    "Storage",
    "current_storage",
    "use_storage",
]

_CHUNK_SIZE = 64 * 1024


class StorageError(Exception):
    """Raised when a storage backend cannot carry out an operation."""


class StorageNameEmptyError(StorageError):
    """Raised when a storage is configured without a name."""

    def __init__(self, message: str = "storage name is empty") -> None:
        super().__init__(message)


@dataclass
class StorageConfig:
    """Configuration of one named storage.

    Backend-specific settings (``url``, ``username``, ``token``...) live in
    ``options``.
    """

    name: str
    type: StorageType
    base_path: str = ""
    options: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.type = parse_storage_type(str(self.type))

    def get(self, key: str, default: Any = None) -> Any:
        """A backend-specific option, or ``default``."""
        return self.options.get(key, default)


def _clean(path: str) -> str:
    """Lexically clean a slash-separated path."""
    if not path:
        return "."
    rooted = path.startswith("/")
    out: list[str] = []
    for segment in path.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if out and out[-1] != "..":
                out.pop()
            elif not rooted:
                out.append("..")
            continue
        out.append(segment)
    joined = "/".join(out)
    if rooted:
        return "/" + joined
    return joined or "."


def _join(*elements: str) -> str:
    """Join non-empty path elements with slashes and clean the result."""
    joined = "/".join(element for element in elements if element)
    return _clean(joined) if joined else ""


def _dirname(path: str) -> str:
    """Everything but the last element of a slash-separated path, cleaned."""
    return _clean(path[: path.rfind("/") + 1])


def _ext(path: str) -> str:
    """The extension of the last path element, dot included, or ''."""
    dot = path.rfind(".")
    return path[dot:] if dot > path.rfind("/") else ""


class _SizedBody:
    """A streamed request body with a declared length."""

    def __init__(self, reader: Any, length: int) -> None:
        self._reader = reader
        self._length = length

    def __len__(self) -> int:
        return self._length

    def __iter__(self) -> Iterator[bytes]:
        if hasattr(self._reader, "read"):
            while chunk := self._reader.read(_CHUNK_SIZE):
                yield chunk
        else:
            yield from self._reader


def _sized_body(reader: Any, content_length: int | None) -> Any:
    """Wrap ``reader`` so an HTTP request announces ``content_length``."""
    if content_length is None or isinstance(reader, (bytes, bytearray, str)):
        return reader
    return _SizedBody(reader, content_length)


class Storage(ABC):
    """A place files are saved to.

    ``cannot_stream`` is set, with the reason, by backends that need a
    seekable or fully known body instead of a live stream.
    """

    kind: StorageType | None = None
    cannot_stream: str | None = None
    max_unique_attempts: int | None = None

    def __init__(self, config: StorageConfig) -> None:
        if not config.name:
            raise StorageNameEmptyError()
        if self.kind is not None and config.type != self.kind:
            raise StorageError(f"failed to cast {self.kind} config")
        self.config = config

    def name(self) -> str:
        return self.config.name

    def storage_type(self) -> StorageType:
        return self.kind if self.kind is not None else self.config.type

    def join_storage_path(self, path: str) -> str:
        """The full storage path of ``path`` under the configured base path."""
        return _join(self.config.base_path, path)

    @abstractmethod
    def save(self, reader: Any, storage_path: str, content_length: int | None = None) -> str:
        """Write the content of ``reader``; return the path actually written."""

    @abstractmethod
    def exists(self, storage_path: str) -> bool:
        """Whether something is stored at ``storage_path``."""

    def unique_path(self, storage_path: str) -> str:
        """``storage_path``, or ``base_N.ext`` with the first N not yet taken."""
        ext = _ext(storage_path)
        base = storage_path[: len(storage_path) - len(ext)]
        candidate = storage_path
        attempt = 1
        while self.exists(candidate):
            candidate = f"{base}_{attempt}{ext}"
            if self.max_unique_attempts is not None and attempt > self.max_unique_attempts:
                candidate = f"{base}_{uuid.uuid4().hex[:20]}{ext}"
                break
            attempt += 1
        return candidate


_current: ContextVar[Storage | None] = ContextVar("saveany_current_storage", default=None)


def current_storage() -> Storage | None:
    """The storage set by the innermost :func:`use_storage`, if any."""
    return _current.get()


@contextmanager
def use_storage(storage: Storage | None) -> Iterator[Storage | None]:
    """Make ``storage`` current within the block; ``None`` changes nothing."""
    if storage is None:
        yield current_storage()
        return
    token = _current.set(storage)
    try:
        yield storage
    finally:
        _current.reset(token)