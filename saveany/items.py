"""Parsed items, their downloadable resources, and the parser interfaces."""

from __future__ import annotations

import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

__all__ = ["Resource", "Item", "Parser", "ConfigurableParser"]


@dataclass
class Resource:
    """A single downloadable resource with metadata."""

    url: str = ""
    filename: str = ""
    mime_type: str = ""
    extension: str = ""
    size: int = 0
    hash: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    def id(self) -> str:
        """A stable MD5 hex digest identifying this resource."""
        digest = hashlib.md5()
        for part in (self.url, self.filename, self.mime_type, self.extension, str(self.size)):
            digest.update(part.encode())
        for mapping in (self.hash, self.headers):
            for key in sorted(mapping):
                digest.update(key.encode())
                digest.update(mapping[key].encode())
        return digest.hexdigest()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Resource:
        return cls(
            url=data.get("url") or "",
            filename=data.get("filename") or "",
            mime_type=data.get("mime_type") or "",
            extension=data.get("extension") or "",
            size=int(data.get("size") or 0),
            hash=dict(data.get("hash") or {}),
            headers=dict(data.get("headers") or {}),
            extra=dict(data.get("extra") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "filename": self.filename,
            "mime_type": self.mime_type,
            "extension": self.extension,
            "size": self.size,
            "hash": dict(self.hash),
            "headers": dict(self.headers),
            "extra": dict(self.extra),
        }


@dataclass
class Item:
    """A parsed page or post holding downloadable resources."""

    site: str = ""
    url: str = ""
    title: str = ""
    author: str = ""
    description: str = ""
    tags: list[str] = field(default_factory=list)
    resources: list[Resource] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Item:
        return cls(
            site=data.get("site") or "",
            url=data.get("url") or "",
            title=data.get("title") or "",
            author=data.get("author") or "",
            description=data.get("description") or "",
            tags=list(data.get("tags") or []),
            resources=[Resource.from_dict(r) for r in data.get("resources") or []],
            extra=dict(data.get("extra") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "site": self.site,
            "url": self.url,
            "title": self.title,
            "author": self.author,
            "description": self.description,
            "tags": list(self.tags),
            "resources": [r.to_dict() for r in self.resources],
            "extra": dict(self.extra),
        }


class Parser(ABC):
    """Turns a URL into an :class:`Item`."""

    @abstractmethod
    def can_handle(self, url: str) -> bool:
        """Whether this parser understands the URL."""

    @abstractmethod
    def parse(self, url: str) -> Item:
        """Fetch and parse the URL; raise on failure."""


class ConfigurableParser(Parser):
    """A parser that accepts a named configuration mapping."""

    @abstractmethod
    def configure(self, config: dict[str, Any] | None) -> None:
        """Apply configuration; ``None`` means defaults."""

    @abstractmethod
    def name(self) -> str:
        """The name the parser's configuration is looked up by."""