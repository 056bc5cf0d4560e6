"""RSS aggregation across the configured news sources."""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup
import feedparser
import httpx

from .config import FeedConfig
from .core.dedup import dedup_items
from .core.types import FeedItem
from .fetch.extractor import collapse_whitespace
from .logging_utils import log_event


logger = logging.getLogger(__name__)


async def fetch_feed(
    name: str,
    url: str,
    limit: int = 10,
    timeout: float = 10.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[FeedItem]:
    """Fetch and parse one RSS/Atom feed.

    Raises:
        httpx.HTTPError: The feed could not be downloaded
    """
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True, transport=transport) as client:
        resp = await client.get(url)
        resp.raise_for_status()

    parsed = feedparser.parse(resp.content)
    items: list[FeedItem] = []
    for entry in parsed.entries[:limit]:
        title = collapse_whitespace(str(entry.get("title") or ""))
        link = str(entry.get("link") or "").strip()
        if not title or not link:
            continue
        items.append(
            FeedItem(
                source=name,
                title=title,
                url=link,
                summary=_plain_summary(entry.get("summary") or ""),
                published=entry.get("published") or entry.get("updated"),
            )
        )
    return items


async def fetch_all_feeds(
    cfg: FeedConfig,
    timeout: float = 10.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[FeedItem]:
    """Fetch every configured source in order and deduplicate the result.

    A failing source is logged and skipped.
    """
    collected: list[FeedItem] = []
    for pair in cfg.sources:
        if len(pair) != 2:
            continue
        name, url = pair
        try:
            items = await fetch_feed(name, url, cfg.max_items_per_feed, timeout, transport)
        except httpx.HTTPError as exc:
            log_event(
                logger,
                "Feed fetch failed",
                level=logging.WARNING,
                event="feed_error",
                source=name,
                error=f"{type(exc).__name__}: {exc}",
            )
            continue
        log_event(logger, "Feed fetched", event="feed_fetched", source=name, items=len(items))
        collected.extend(items)

    unique = dedup_items(collected, cfg.title_similarity_threshold)
    log_event(
        logger,
        "Feeds aggregated",
        event="feeds_aggregated",
        total=len(collected),
        unique=len(unique),
    )
    return unique


def _plain_summary(html: str) -> str:
    text = BeautifulSoup(html, "html.parser").get_text(separator=" ")
    return collapse_whitespace(text)
