"""Parser for tweets, backed by an fxtwitter-compatible API."""

from __future__ import annotations

import posixpath
import re
from typing import Any

import requests

from ..items import ConfigurableParser, Item, Resource

__all__ = ["TwitterParser", "get_tweet_id"]

FX_TWITTER_API = "api.fxtwitter.com"
_TWEET_URL = re.compile(r"(?:twitter|x)\.com/([^/]+)/status/(\d+)")


def get_tweet_id(url: str) -> str:
    """The numeric status id in a tweet URL, or an empty string."""
    match = _TWEET_URL.search(url)
    return match.group(2) if match else ""


class TwitterParser(ConfigurableParser):
    """Fetches a tweet's media through the configured API domain."""

    def __init__(self, session: requests.Session | None = None) -> None:
        self.session = session or requests.Session()
        self.api_domain = FX_TWITTER_API

    def name(self) -> str:
        return "twitter"

    def configure(self, config: dict[str, Any] | None) -> None:
        if config is None:
            self.api_domain = FX_TWITTER_API
            self.session = requests.Session()
            return
        domain = config.get("api_domain")
        self.api_domain = domain if isinstance(domain, str) and domain else FX_TWITTER_API
        proxy = config.get("proxy")
        if isinstance(proxy, str) and proxy:
            if "://" not in proxy:
                raise ValueError(f"failed to create proxy client: invalid proxy URL {proxy!r}")
            session = requests.Session()
            session.proxies = {"http": proxy, "https": proxy}
            self.session = session

    def can_handle(self, url: str) -> bool:
        return _TWEET_URL.search(url) is not None

    def _head_size(self, url: str) -> int:
        try:
            with self.session.head(url, allow_redirects=True, stream=True) as resp:
                length = resp.headers.get("Content-Length")
                return int(length) if length is not None else -1
        except (requests.RequestException, ValueError):
            return 0

    def parse(self, url: str) -> Item:
        tweet_id = get_tweet_id(url)
        if not tweet_id:
            raise ValueError("invalid Twitter URL")
        api_url = f"https://{self.api_domain}/_/status/{tweet_id}"
        try:
            resp = self.session.get(api_url)
        except requests.RequestException as exc:
            raise RuntimeError(f"failed to fetch Twitter API: {exc}") from exc
        with resp:
            if resp.status_code != 200:
                raise RuntimeError(
                    f"failed to fetch Twitter API, status code: {resp.status_code}"
                )
            try:
                data = resp.json()
            except ValueError as exc:
                raise RuntimeError(f"failed to decode Twitter API response: {exc}") from exc

        if data.get("code") != 200:
            raise RuntimeError(f"request twitter API error: {data.get('message', '')}")
        tweet = data.get("tweet") or {}
        media = (tweet.get("media") or {}).get("all") or []
        if not media:
            raise RuntimeError("no media found in the tweet")

        resources = []
        for entry in media:
            media_url = entry.get("url") or ""
            resources.append(
                Resource(
                    url=media_url,
                    filename=posixpath.basename(media_url.split("?")[0]),
                    size=self._head_size(media_url),
                )
            )
        return Item(
            site="Twitter",
            title=f"Tweet/{tweet_id}",
            url=tweet.get("url") or "",
            description=tweet.get("text") or "",
            author=(tweet.get("author") or {}).get("name") or "",
            tags=[],
            extra={},
            resources=resources,
        )