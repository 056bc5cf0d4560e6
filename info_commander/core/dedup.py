"""Drop repeated stories when several RSS sources are merged into one list."""

from __future__ import annotations

from urllib.parse import urlsplit, urlunsplit

from rapidfuzz import fuzz, process

from .types import FeedItem


def dedup_items(items: list[FeedItem], threshold: int = 92) -> list[FeedItem]:
    """Keep the first item of each story, in fetch order.

    An item repeats an earlier one when its link matches (ignoring the
    fragment and a trailing slash) or when its title scores at least
    `threshold` against a kept title with rapidfuzz's ratio.

    Examples:
        >>> a = FeedItem(source="A", title="Storm hits coast", url="https://x.com/s")
        >>> b = FeedItem(source="B", title="Other", url="https://x.com/s/#top")
        >>> [i.source for i in dedup_items([a, b])]
        ['A']
    """
    links: set[str] = set()
    titles: list[str] = []
    kept: list[FeedItem] = []

    for item in items:
        link = _link_key(item.url)
        if link in links:
            continue
        if titles and process.extractOne(item.title, titles, scorer=fuzz.ratio, score_cutoff=threshold):
            continue
        links.add(link)
        titles.append(item.title)
        kept.append(item)

    return kept


def _link_key(url: str) -> str:
    parts = urlsplit(url.strip())
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path.rstrip("/"), parts.query, ""))
