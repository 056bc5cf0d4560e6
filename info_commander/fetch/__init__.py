"""Fetching and text extraction for web pages and documents."""

from .extractor import collapse_whitespace, extract_text, extract_title
from .fetcher import FetchResult, categorize_error, fetch_url
from .pdf import decode_document

__all__ = [
    "FetchResult",
    "categorize_error",
    "collapse_whitespace",
    "decode_document",
    "extract_text",
    "extract_title",
    "fetch_url",
]
