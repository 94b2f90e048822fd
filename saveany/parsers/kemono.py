"""Parser for kemono post pages, plus the API payload shapes it reads."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import unquote, urlsplit

import requests

from ..items import Item, Parser, Resource

__all__ = [
    "DownloadInfo",
    "AttachmentLike",
    "Post",
    "PostInfo",
    "PostLegacy",
    "UserProfile",
    "KemonoParser",
    "extract_download_info",
    "is_image_ext",
]

KEMONO_DOMAINS = ("kemono.su", "kemono.cr")
KEMONO_API_BASE = "https://kemono.cr/api/v1"
_IMAGE_EXTS = (".jpg", ".jpeg", ".png", ".webp")


def _opt_str(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    return None if value is None else str(value)


@dataclass(frozen=True)
class DownloadInfo:
    """Service, user and (for post pages) post id taken from a kemono URL."""

    service_name: str
    user_id: str
    post_id: str = ""


def extract_download_info(url: str) -> DownloadInfo | None:
    """Split a kemono profile or post URL into its parts; ``None`` if it is neither."""
    if not url.startswith(("http://", "https://")):
        url = "https://" + url
    try:
        path = unquote(urlsplit(url).path)
    except ValueError:
        return None
    parts = path.strip("/").split("/")
    if len(parts) == 3:
        return DownloadInfo(service_name=parts[0], user_id=parts[2])
    if len(parts) == 5 and parts[3] == "post":
        return DownloadInfo(service_name=parts[0], user_id=parts[2], post_id=parts[4])
    return None


def is_image_ext(attachment_path: str) -> bool:
    """Whether the path (query string ignored) has a picture extension."""
    ext = posixpath.splitext(attachment_path.split("?")[0])[1]
    return ext.endswith(_IMAGE_EXTS)


@dataclass
class AttachmentLike:
    """A file, attachment or preview entry in a post payload."""

    type: str | None = None
    server: str | None = None
    name: str | None = None
    path: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AttachmentLike:
        return cls(
            type=_opt_str(data, "type"),
            server=_opt_str(data, "server"),
            name=_opt_str(data, "name"),
            path=_opt_str(data, "path"),
        )


@dataclass
class Post:
    """A kemono post as returned by the API."""

    id: str = ""
    user: str = ""
    service: str = ""
    title: str = ""
    content: str = ""
    embed: dict[str, Any] = field(default_factory=dict)
    shared_file: bool = False
    added: str | None = None
    published: str = ""
    edited: str | None = None
    file: dict[str, Any] = field(default_factory=dict)
    attachments: list[AttachmentLike] = field(default_factory=list)
    poll: dict[str, Any] | None = None
    captions: str | None = None
    tags: list[str] | None = None
    next: str | None = None
    prev: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Post:
        tags = data.get("tags")
        return cls(
            id=str(data.get("id") or ""),
            user=str(data.get("user") or ""),
            service=str(data.get("service") or ""),
            title=str(data.get("title") or ""),
            content=str(data.get("content") or ""),
            embed=dict(data.get("embed") or {}),
            shared_file=bool(data.get("shared_file", False)),
            added=_opt_str(data, "added"),
            published=str(data.get("published") or ""),
            edited=_opt_str(data, "edited"),
            file=dict(data.get("file") or {}),
            attachments=[AttachmentLike.from_dict(a) for a in data.get("attachments") or []],
            poll=data.get("poll"),
            captions=_opt_str(data, "captions"),
            tags=None if tags is None else [str(t) for t in tags],
            next=_opt_str(data, "next"),
            prev=_opt_str(data, "prev"),
        )


@dataclass
class PostInfo:
    """The payload of the single-post API endpoint."""

    post: Post = field(default_factory=Post)
    attachments: list[AttachmentLike] = field(default_factory=list)
    previews: list[AttachmentLike] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PostInfo:
        return cls(
            post=Post.from_dict(data.get("post") or {}),
            attachments=[AttachmentLike.from_dict(a) for a in data.get("attachments") or []],
            previews=[AttachmentLike.from_dict(p) for p in data.get("previews") or []],
        )


@dataclass
class PostLegacy:
    """The legacy paginated post listing: counts and (id, title) results."""

    count: int = 0
    limit: int = 0
    results: list[dict[str, str]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PostLegacy:
        props = data.get("props") or {}
        return cls(
            count=int(props.get("count") or 0),
            limit=int(props.get("limit") or 0),
            results=[
                {"id": str(r.get("id") or ""), "title": str(r.get("title") or "")}
                for r in data.get("results") or []
            ],
        )


@dataclass
class UserProfile:
    """A creator profile."""

    id: str = ""
    name: str = ""
    service: str = ""
    public_id: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserProfile:
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            service=str(data.get("service") or ""),
            public_id=_opt_str(data, "public_id"),
        )


def _join_data_url(base: str, path: str) -> str:
    return "/".join(part for part in (base.rstrip("/"), "data", path.strip("/")) if part)


class KemonoParser(Parser):
    """Parses kemono post URLs into items of attachments and pictures."""

    def __init__(self, session: requests.Session | None = None) -> None:
        self.session = session or requests.Session()

    def can_handle(self, url: str) -> bool:
        text = url.removeprefix("https://").removeprefix("http://")
        path = ""
        for domain in KEMONO_DOMAINS:
            idx = text.find(domain)
            if idx != -1:
                remaining = text[idx + len(domain):]
                if remaining.startswith("/"):
                    path = remaining[1:]
                break
        if not path:
            return False
        parts = path.split("/")
        return len(parts) == 3 or (len(parts) == 5 and parts[3] == "post")

    def parse(self, url: str) -> Item:
        info = extract_download_info(url)
        if info is None:
            raise ValueError("failed to extract download info from URL")
        if not info.post_id:
            raise RuntimeError("kemono user pages are not supported")
        return self._parse_post(info)

    def _head_size(self, url: str) -> int:
        try:
            with self.session.head(url, allow_redirects=True, stream=True) as resp:
                length = resp.headers.get("Content-Length")
                return int(length) if length is not None else -1
        except (requests.RequestException, ValueError):
            return 0

    def _parse_post(self, info: DownloadInfo) -> Item:
        endpoint = (
            f"{KEMONO_API_BASE}/{info.service_name}/user/{info.user_id}/post/{info.post_id}"
        )
        try:
            resp = self.session.get(endpoint, headers={"Accept": "text/css"})
        except requests.RequestException as exc:
            raise RuntimeError(f"failed to fetch Kemono API: {exc}") from exc
        with resp:
            if resp.status_code != 200:
                raise RuntimeError(
                    f"failed to fetch Kemono API, status code: {resp.status_code}"
                )
            try:
                post_info = PostInfo.from_dict(resp.json())
            except ValueError as exc:
                raise RuntimeError(f"failed to decode Kemono API response: {exc}") from exc

        post = post_info.post
        resources: list[Resource] = []
        for attachment in post_info.attachments:
            if attachment.server is None or attachment.path is None or attachment.name is None:
                continue
            file_url = f"{attachment.server}/data{attachment.path}"
            resources.append(
                Resource(url=file_url, filename=attachment.name, size=self._head_size(file_url))
            )

        pic_servers = {
            preview.path: preview.server
            for preview in post_info.previews
            if preview.type == "thumbnail" and preview.path is not None and preview.server is not None
        }
        for attachment in post.attachments:
            if attachment.path is None or not is_image_ext(attachment.path):
                continue
            pic_url = _join_data_url(pic_servers.get(attachment.path, ""), attachment.path)
            resources.append(
                Resource(url=pic_url, filename=attachment.name or "", size=self._head_size(pic_url))
            )

        return Item(
            site="kemono",
            title=post.title,
            url=f"https://kemono.cr/{info.service_name}/user/{info.user_id}/post/{info.post_id}",
            author=post.user,
            description=post.content,
            tags=list(post.tags or []),
            resources=resources,
        )