"""The set of known parsers, and metadata checks for parser plugins."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import semver

from ..items import ConfigurableParser, Item, Parser
from .kemono import KemonoParser
from .twitter import TwitterParser

__all__ = [
    "NoParserFoundError",
    "PluginMeta",
    "ParserRegistry",
    "check_plugin_version",
    "LATEST_PARSER_VERSION",
    "MINIMUM_PARSER_VERSION",
]

_log = logging.getLogger(__name__)

LATEST_PARSER_VERSION = semver.Version.parse("1.0.0")
MINIMUM_PARSER_VERSION = semver.Version.parse("1.0.0")


class NoParserFoundError(LookupError):
    """Raised when no registered parser accepts a URL."""

    def __init__(self, message: str = "no parser found for the given URL") -> None:
        super().__init__(message)


@dataclass
class PluginMeta:
    """Metadata a parser plugin declares about itself."""

    name: str = ""
    version: str = ""
    description: str = ""
    author: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PluginMeta:
        return cls(
            name=str(data.get("name") or ""),
            version=str(data.get("version") or ""),
            description=str(data.get("description") or ""),
            author=str(data.get("author") or ""),
        )


def check_plugin_version(version: str) -> semver.Version:
    """Parse a plugin version and ensure it lies in the supported range."""
    parsed = semver.Version.parse(version)
    if parsed < MINIMUM_PARSER_VERSION or parsed > LATEST_PARSER_VERSION:
        raise ValueError(
            f"parser version {version} is not supported, must be between "
            f"{MINIMUM_PARSER_VERSION} and {LATEST_PARSER_VERSION}"
        )
    return parsed


class ParserRegistry:
    """Ordered parsers; the first that can handle a URL parses it.

    Configurable parsers are configured once, on first use, with the entry
    of ``parser_configs`` under their name (``None`` if absent).
    """

    def __init__(
        self,
        parsers: Iterable[Parser] | None = None,
        parser_configs: Mapping[str, dict[str, Any]] | None = None,
    ) -> None:
        self._parsers: list[Parser] = (
            list(parsers) if parsers is not None else [TwitterParser(), KemonoParser()]
        )
        self._configs = dict(parser_configs or {})
        self._lock = threading.Lock()
        self._configured = False

    def add(self, *args: Parser) -> None:
        with self._lock:
            self._parsers.extend(args)

    def _ensure_configured(self) -> None:
        with self._lock:
            if self._configured:
                return
            self._configured = True
            for parser in self._parsers:
                if not isinstance(parser, ConfigurableParser):
                    continue
                try:
                    parser.configure(self._configs.get(parser.name()))
                except Exception as exc:
                    _log.error("Error configuring parser %s: %s", parser.name(), exc)

    def can_handle(self, url: str) -> Parser | None:
        """The first parser that can handle ``url``, or ``None``."""
        self._ensure_configured()
        return next((p for p in self._parsers if p.can_handle(url)), None)

    def parse(self, url: str) -> Item:
        """Parse ``url`` with the first parser that accepts it."""
        parser = self.can_handle(url)
        if parser is None:
            raise NoParserFoundError()
        return parser.parse(url)