"""Rules that route incoming files to a storage and directory."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from enum import StrEnum
from typing import Any, ClassVar

__all__ = [
    "RuleType",
    "Rule",
    "FileNameRegexRule",
    "MessageRegexRule",
    "IsAlbumRule",
    "rule_types",
    "RULE_STORAGE_CHOSEN",
    "RULE_DIR_NEW_FOR_ALBUM",
]

RULE_STORAGE_CHOSEN = "CHOSEN"
RULE_DIR_NEW_FOR_ALBUM = "NEW-FOR-ALBUM"


class RuleType(StrEnum):
    """Kinds of routing rules."""

    FILENAME_REGEX = "FILENAME-REGEX"
    MESSAGE_REGEX = "MESSAGE-REGEX"
    IS_ALBUM = "IS-ALBUM"


def rule_types() -> list[RuleType]:
    """All rule types, in declaration order."""
    return list(RuleType)


def _compile(pattern: str) -> re.Pattern[str]:
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise ValueError(f"invalid regular expression {pattern!r}: {exc}") from exc


def _file_name(value: Any) -> str:
    if isinstance(value, str):
        return value
    name = value.name
    return name() if callable(name) else name


class Rule(ABC):
    """A rule that, when it matches, sends the file to its storage and path."""

    type: ClassVar[RuleType]

    def __init__(self, storage_name: str, storage_path: str) -> None:
        self.storage_name = storage_name
        self.storage_path = storage_path

    @abstractmethod
    def match(self, value: Any) -> bool:
        """Whether the rule applies to ``value``."""

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(storage_name={self.storage_name!r}, "
            f"storage_path={self.storage_path!r})"
        )


class FileNameRegexRule(Rule):
    """Matches files whose name contains a match of the pattern."""

    type = RuleType.FILENAME_REGEX

    def __init__(self, storage_name: str, storage_path: str, pattern: str) -> None:
        super().__init__(storage_name, storage_path)
        self.regex = _compile(pattern)

    def match(self, value: Any) -> bool:
        """``value`` is a file name or an object with a ``name``."""
        return self.regex.search(_file_name(value)) is not None


class MessageRegexRule(Rule):
    """Matches message text containing a match of the pattern."""

    type = RuleType.MESSAGE_REGEX

    def __init__(self, storage_name: str, storage_path: str, pattern: str) -> None:
        super().__init__(storage_name, storage_path)
        self.regex = _compile(pattern)

    def match(self, value: str) -> bool:
        return self.regex.search(value) is not None


class IsAlbumRule(Rule):
    """Matches files according to whether they belong to an album."""

    type = RuleType.IS_ALBUM

    def __init__(self, storage_name: str, storage_path: str, match_album: bool) -> None:
        super().__init__(storage_name, storage_path)
        self.match_album = match_album

    def match(self, value: bool) -> bool:
        return self.match_album == value