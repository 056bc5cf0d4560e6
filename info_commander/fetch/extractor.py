"""
HTML content extraction with multiple fallback strategies.

This module provides a chain of extraction methods:
1. container: strips navigation/ads and reads the page's <article> or
   <main> element, falling back to <body> (default)
2. trafilatura: purpose-built article extraction (fallback)
3. readability: Mozilla's readability algorithm (last resort)

The chosen text is whitespace-collapsed so the result is a single plain
paragraph stream with no markup.
"""

from __future__ import annotations

import re
from typing import Callable

from bs4 import BeautifulSoup
import trafilatura
from readability import Document
from readability.readability import Unparseable


_NOISE_SELECTORS = [
    "script",
    "style",
    "noscript",
    "nav",
    "footer",
    "header",
    "aside",
    "form",
    ".ads",
    ".advertisement",
]

_WS_RE = re.compile(r"\s+")


def extract_text(html: str, primary: str, fallback: list[str]) -> str | None:
    """Extract plain text from HTML using a chain of extractors.

    Tries each extraction method in order until one produces non-empty
    output.

    Args:
        html: The HTML content to extract text from
        primary: Name of the primary extraction method to try first
        fallback: List of fallback method names to try if primary fails

    Returns:
        Extracted text with whitespace collapsed, or None if all methods fail

    Examples:
        >>> extract_text("<body><article>Hi  there</article></body>", "container", [])
        'Hi there'
    """
    order = [primary] + [name for name in fallback if name != primary]
    for method in order:
        extractor = _get_extractor(method)
        if not extractor:
            continue
        text = extractor(html)
        if text:
            collapsed = collapse_whitespace(text)
            if collapsed:
                return collapsed
    return None


def collapse_whitespace(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def extract_title(html: str) -> str | None:
    soup = BeautifulSoup(html, "html.parser")
    if soup.title and soup.title.string:
        title = collapse_whitespace(soup.title.string)
        return title or None
    return None


def _get_extractor(name: str) -> Callable[[str], str | None] | None:
    if name == "container":
        return _extract_container
    if name == "trafilatura":
        return _extract_trafilatura
    if name == "readability":
        return _extract_readability
    return None


def _extract_container(html: str) -> str | None:
    """Read the primary content container after removing page chrome.

    Prefers the first <article>, then <main>, then the whole <body>
    (or the whole document for fragments without a body).
    """
    soup = BeautifulSoup(html, "html.parser")
    for selector in _NOISE_SELECTORS:
        for tag in soup.select(selector):
            tag.decompose()

    for name in ("article", "main"):
        node = soup.find(name)
        if node is not None:
            text = node.get_text(separator=" ").strip()
            if text:
                return text

    body = soup.body or soup
    text = body.get_text(separator=" ").strip()
    return text or None


def _extract_trafilatura(html: str) -> str | None:
    return trafilatura.extract(html)


def _extract_readability(html: str) -> str | None:
    try:
        content_html = Document(html).summary()
    except Unparseable:
        return None
    soup = BeautifulSoup(content_html, "html.parser")
    text = soup.get_text(separator=" ").strip()
    return text or None
