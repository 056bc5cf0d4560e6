"""
Core domain models.

This package contains the value objects passed between pipeline stages
and the feed deduplication logic.
"""

from .types import (
    ContentRequest,
    DeliveryPayload,
    DocumentRequest,
    ExtractedText,
    FeedItem,
    ImageDecision,
    RevisionRequest,
    RewriteResult,
    ScheduleEntry,
    SearchHit,
    TextRequest,
    TrendItem,
    UrlRequest,
    VideoInfo,
)
from .dedup import dedup_items

__all__ = [
    "ContentRequest",
    "DeliveryPayload",
    "DocumentRequest",
    "ExtractedText",
    "FeedItem",
    "ImageDecision",
    "RevisionRequest",
    "RewriteResult",
    "ScheduleEntry",
    "SearchHit",
    "TextRequest",
    "TrendItem",
    "UrlRequest",
    "VideoInfo",
    "dedup_items",
]
