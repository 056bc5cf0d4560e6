"""
YouTube Data API, Google Custom Search and Google Trends clients.

Every lookup is a single async GET. Failures are logged and reported as
an empty result, so a dead search provider degrades a report instead of
aborting it.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
from typing import Any
from urllib.parse import parse_qs, urlparse

import feedparser
import httpx

from .config import SearchConfig
from .core.types import SearchHit, TrendItem, VideoInfo
from .logging_utils import log_event


logger = logging.getLogger(__name__)

_YOUTUBE_HOSTS = {"youtube.com", "www.youtube.com", "m.youtube.com", "music.youtube.com"}


def youtube_video_id(url: str) -> str | None:
    """Return the video id of a YouTube link, or None for any other URL.

    Examples:
        >>> youtube_video_id("https://youtu.be/abc123")
        'abc123'
        >>> youtube_video_id("https://www.youtube.com/watch?v=abc123&t=5")
        'abc123'
    """
    parsed = urlparse(url if "://" in url else f"https://{url}")
    host = (parsed.hostname or "").lower()
    if host == "youtu.be":
        video_id = parsed.path.lstrip("/").split("/")[0]
        return video_id or None
    if host not in _YOUTUBE_HOSTS:
        return None
    if parsed.path == "/watch":
        values = parse_qs(parsed.query).get("v")
        return values[0] if values else None
    for prefix in ("/shorts/", "/embed/", "/live/"):
        if parsed.path.startswith(prefix):
            video_id = parsed.path[len(prefix):].split("/")[0]
            return video_id or None
    return None


def video_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def published_after(days: int, now: datetime | None = None) -> str:
    """RFC 3339 timestamp `days` before now, as the YouTube API expects."""
    current = now or datetime.now(timezone.utc)
    return (current - timedelta(days=days)).strftime("%Y-%m-%dT%H:%M:%SZ")


class SearchClient:
    """Thin async wrapper over the Google search surfaces the bot uses."""

    def __init__(self, cfg: SearchConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.cfg = cfg
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.cfg.google_api_key)

    @property
    def web_configured(self) -> bool:
        return bool(self.cfg.google_api_key and self.cfg.search_engine_id)

    async def search_videos(self, keyword: str, days: int | None = None, limit: int = 1) -> list[VideoInfo]:
        """Most-viewed videos for a keyword published in the last `days` days."""
        if not self.configured:
            return []
        window = days if days is not None else self.cfg.default_days
        params = {
            "part": "snippet",
            "q": keyword,
            "order": "viewCount",
            "type": "video",
            "relevanceLanguage": self.cfg.relevance_language,
            "publishedAfter": published_after(window),
            "maxResults": limit,
            "key": self.cfg.google_api_key,
        }
        data = await self._get_json(f"{self.cfg.youtube_base_url}/search", params, "youtube_search")
        if data is None:
            return []
        log_event(logger, "YouTube search", event="youtube_search", keyword=keyword, days=window)
        return [_video_from_search_item(item) for item in data.get("items") or [] if _search_item_id(item)]

    async def most_popular(self, region: str, limit: int = 3) -> list[VideoInfo]:
        if not self.configured:
            return []
        params = {
            "part": "snippet",
            "chart": "mostPopular",
            "regionCode": region,
            "maxResults": limit,
            "key": self.cfg.google_api_key,
        }
        data = await self._get_json(f"{self.cfg.youtube_base_url}/videos", params, "youtube_popular")
        if data is None:
            return []
        return [_video_from_video_item(item) for item in data.get("items") or []]

    async def channel_latest(self, channel_id: str, days: int = 1, limit: int = 3) -> list[VideoInfo]:
        """Latest uploads of a channel, with full descriptions.

        Search results only carry a truncated description, so the ids are
        looked up again through the videos endpoint.
        """
        if not self.configured:
            return []
        params = {
            "part": "snippet",
            "channelId": channel_id,
            "order": "date",
            "type": "video",
            "publishedAfter": published_after(days),
            "maxResults": limit,
            "key": self.cfg.google_api_key,
        }
        data = await self._get_json(f"{self.cfg.youtube_base_url}/search", params, "youtube_channel")
        if data is None:
            return []
        found = [_video_from_search_item(item) for item in data.get("items") or [] if _search_item_id(item)]
        if not found:
            return []

        details = await self._videos_by_id([video.video_id for video in found])
        for video in found:
            full = details.get(video.video_id)
            if full is not None and full.description:
                video.description = full.description
        return found

    async def video_details(self, video_id: str) -> VideoInfo | None:
        if not self.configured:
            return None
        details = await self._videos_by_id([video_id])
        return details.get(video_id)

    async def search_web(self, query: str, num: int | None = None) -> list[SearchHit]:
        if not self.web_configured:
            return []
        params = {
            "key": self.cfg.google_api_key,
            "cx": self.cfg.search_engine_id,
            "q": query,
            "num": num or self.cfg.web_results,
        }
        data = await self._get_json(self.cfg.customsearch_url, params, "web_search")
        if data is None:
            return []
        return [
            SearchHit(
                title=str(item.get("title") or ""),
                snippet=str(item.get("snippet") or ""),
                link=str(item.get("link") or ""),
            )
            for item in data.get("items") or []
        ]

    async def search_image(self, keyword: str) -> str | None:
        """First Custom Search image hit for a keyword."""
        if not self.web_configured:
            return None
        params = {
            "key": self.cfg.google_api_key,
            "cx": self.cfg.search_engine_id,
            "q": keyword,
            "searchType": "image",
            "num": 1,
        }
        data = await self._get_json(self.cfg.customsearch_url, params, "image_search")
        if data is None:
            return None
        items = data.get("items") or []
        if not items:
            return None
        link = items[0].get("link")
        return str(link) if link else None

    async def fetch_trends(self, geo: str, limit: int = 3) -> list[TrendItem]:
        url = self.cfg.trends_url.format(geo=geo)
        try:
            async with httpx.AsyncClient(
                timeout=self.cfg.timeout_seconds, follow_redirects=True, transport=self.transport
            ) as client:
                resp = await client.get(url)
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            log_event(
                logger,
                "Trends fetch failed",
                level=logging.WARNING,
                event="trends_error",
                geo=geo,
                error=str(exc),
            )
            return []

        parsed = feedparser.parse(resp.text)
        items = []
        for entry in parsed.entries[:limit]:
            title = str(entry.get("title") or "").strip()
            if not title:
                continue
            items.append(TrendItem(title=title, traffic=str(entry.get("ht_approx_traffic") or "N/A")))
        return items

    async def _videos_by_id(self, video_ids: list[str]) -> dict[str, VideoInfo]:
        params = {"part": "snippet", "id": ",".join(video_ids), "key": self.cfg.google_api_key}
        data = await self._get_json(f"{self.cfg.youtube_base_url}/videos", params, "youtube_videos")
        if data is None:
            return {}
        videos = [_video_from_video_item(item) for item in data.get("items") or []]
        return {video.video_id: video for video in videos}

    async def _get_json(self, url: str, params: dict[str, Any], event: str) -> dict[str, Any] | None:
        try:
            async with httpx.AsyncClient(
                timeout=self.cfg.timeout_seconds, transport=self.transport
            ) as client:
                resp = await client.get(url, params=params)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            status = exc.response.status_code if isinstance(exc, httpx.HTTPStatusError) else None
            log_event(
                logger,
                "Search request failed",
                level=logging.WARNING,
                event=f"{event}_error",
                status_code=status,
                error=str(exc),
            )
            return None
        if not isinstance(data, dict):
            return None
        return data


def _search_item_id(item: dict[str, Any]) -> str | None:
    ident = item.get("id")
    if isinstance(ident, dict):
        return ident.get("videoId")
    return None


def _video_from_search_item(item: dict[str, Any]) -> VideoInfo:
    video_id = _search_item_id(item) or ""
    snippet = item.get("snippet") or {}
    return VideoInfo(
        title=str(snippet.get("title") or ""),
        url=video_url(video_id),
        video_id=video_id,
        description=str(snippet.get("description") or ""),
        channel=str(snippet.get("channelTitle") or ""),
        published_at=snippet.get("publishedAt"),
    )


def _video_from_video_item(item: dict[str, Any]) -> VideoInfo:
    video_id = str(item.get("id") or "")
    snippet = item.get("snippet") or {}
    return VideoInfo(
        title=str(snippet.get("title") or ""),
        url=video_url(video_id),
        video_id=video_id,
        description=str(snippet.get("description") or ""),
        channel=str(snippet.get("channelTitle") or ""),
        published_at=snippet.get("publishedAt"),
    )
