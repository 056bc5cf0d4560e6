"""
Image Resolver: keyword plus image kind in, image URL (or nothing) out.

"concept" images try Unsplash first when a key is configured; everything
else, and every Unsplash miss, goes to Google Custom Search image search.
Provider failures are logged and read as a miss.
"""

from __future__ import annotations

import logging

import httpx

from .config import ImageConfig
from .logging_utils import log_event
from .search import SearchClient


logger = logging.getLogger(__name__)


class ImageResolver:
    def __init__(
        self,
        cfg: ImageConfig,
        search: SearchClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.cfg = cfg
        self.search = search
        self.transport = transport

    async def resolve(self, keyword: str, kind: str = "news") -> str | None:
        """Return the first matching image URL, or None."""
        keyword = (keyword or "").strip()
        if not self.cfg.enabled or not keyword:
            return None

        if kind == "concept" and self.cfg.unsplash_access_key:
            url = await self._unsplash(keyword)
            if url:
                log_event(logger, "Image resolved", event="image_resolved", provider="unsplash", keyword=keyword)
                return url

        url = await self._google(keyword)
        if url:
            log_event(logger, "Image resolved", event="image_resolved", provider="google", keyword=keyword)
            return url
        log_event(logger, "No image found", event="image_miss", keyword=keyword, kind=kind)
        return None

    async def _unsplash(self, keyword: str) -> str | None:
        params = {"query": keyword, "per_page": 1, "client_id": self.cfg.unsplash_access_key}
        try:
            async with httpx.AsyncClient(
                timeout=self.cfg.timeout_seconds, transport=self.transport
            ) as client:
                resp = await client.get(self.cfg.unsplash_url, params=params)
                resp.raise_for_status()
                data = resp.json()
            url = data["results"][0]["urls"]["regular"]
            return url if isinstance(url, str) and url else None
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as exc:
            log_event(
                logger,
                "Unsplash lookup failed",
                level=logging.WARNING,
                event="image_provider_error",
                provider="unsplash",
                error=f"{type(exc).__name__}: {exc}",
            )
            return None

    async def _google(self, keyword: str) -> str | None:
        if self.search is None:
            return None
        try:
            return await self.search.search_image(keyword)
        except Exception as exc:  # noqa: BLE001
            log_event(
                logger,
                "Image search failed",
                level=logging.WARNING,
                event="image_provider_error",
                provider="google",
                error=f"{type(exc).__name__}: {exc}",
            )
            return None
