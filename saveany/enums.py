"""Enumerations shared across the package, with lenient string parsing."""

from __future__ import annotations

from enum import StrEnum
from typing import TypeVar

__all__ = [
    "ContextKey",
    "FilenameStrategy",
    "StorageType",
    "TaskType",
    "parse_context_key",
    "parse_filename_strategy",
    "parse_storage_type",
    "parse_task_type",
]

_E = TypeVar("_E", bound=StrEnum)


class ContextKey(StrEnum):
    """Keys for values carried alongside an operation."""

    CONTENT_LENGTH = "content-length"


class FilenameStrategy(StrEnum):
    """How a saved file's name is chosen."""

    DEFAULT = "default"
    MESSAGE = "message"

    @property
    def display(self) -> str:
        """Human-readable label for the strategy."""
        return _FILENAME_STRATEGY_DISPLAY[self]


_FILENAME_STRATEGY_DISPLAY = {
    FilenameStrategy.DEFAULT: "默认",
    FilenameStrategy.MESSAGE: "优先从消息生成",
}


class StorageType(StrEnum):
    """Kinds of storage backends."""

    LOCAL = "local"
    WEBDAV = "webdav"
    ALIST = "alist"
    MINIO = "minio"
    TELEGRAM = "telegram"


class TaskType(StrEnum):
    """Kinds of tasks the worker pool executes."""

    TGFILES = "tgfiles"
    TPHPICS = "tphpics"
    PARSEDITEM = "parseditem"


def _parse(enum_cls: type[_E], name: str) -> _E:
    for candidate in (name, name.lower()):
        try:
            return enum_cls(candidate)
        except ValueError:
            continue
    names = ", ".join(member.value for member in enum_cls)
    raise ValueError(f"{name} is not a valid {enum_cls.__name__}, try [{names}]")


def parse_context_key(name: str) -> ContextKey:
    """Parse a context key, ignoring case."""
    return _parse(ContextKey, name)


def parse_filename_strategy(name: str) -> FilenameStrategy:
    """Parse a filename strategy, ignoring case."""
    return _parse(FilenameStrategy, name)


def parse_storage_type(name: str) -> StorageType:
    """Parse a storage type, ignoring case."""
    return _parse(StorageType, name)


def parse_task_type(name: str) -> TaskType:
    """Parse a task type, ignoring case."""
    return _parse(TaskType, name)