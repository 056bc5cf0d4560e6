"""
Core data types for Info Commander.

These are transient value objects passed through one pipeline run:
- ContentRequest: what the user (or a scheduled job) asked to rewrite
- ExtractedText: plain text produced by the Source Reader
- RewriteResult: the generated post and its optional image decision
- DeliveryPayload: what is posted to the outbound webhook
- ScheduleEntry: one static cron job definition
plus the records returned by the search and feed clients.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, ClassVar, Literal, Union


ImageKind = Literal["news", "concept"]


@dataclass(frozen=True)
class UrlRequest:
    """A link to a web page or a YouTube video."""

    origin: ClassVar[str] = "url"
    url: str


@dataclass(frozen=True)
class DocumentRequest:
    """A file uploaded to the chat.

    Attributes:
        file_url: Download link resolved from the platform's file reference
        mime_type: Declared MIME type, decides the decoder
        file_name: Original file name, used as the title
    """

    origin: ClassVar[str] = "document"
    file_url: str
    mime_type: str | None = None
    file_name: str | None = None


@dataclass(frozen=True)
class TextRequest:
    """Raw text pasted into the chat."""

    origin: ClassVar[str] = "text"
    text: str


@dataclass(frozen=True)
class RevisionRequest:
    """An edit request for a post the bot generated earlier.

    The original article lives only in the chat's reply thread.
    """

    origin: ClassVar[str] = "reply-revision"
    original_text: str
    instruction: str


ContentRequest = Union[UrlRequest, DocumentRequest, TextRequest, RevisionRequest]


@dataclass
class ExtractedText:
    """Plain text produced by the Source Reader.

    Attributes:
        text: Markup-free text, already truncated to the configured cap
        kind: "web", "video", "document", "text" or "revision"
        source_url: Where the text came from, if anywhere
        title: Page / video / file title when one is known
    """

    text: str
    kind: str = "text"
    source_url: str | None = None
    title: str | None = None


@dataclass(frozen=True)
class ImageDecision:
    """Image hint emitted by the model alongside the post."""

    type: ImageKind
    keyword: str


@dataclass
class RewriteResult:
    """Generated post.

    Attributes:
        content: Post text
        image_decision: Optional image hint
        status: "ok" (parsed JSON), "plain" (text mode) or "fallback" (parse failed)
        meta: Extra details such as the model id or the parse failure reason
    """

    content: str
    image_decision: ImageDecision | None = None
    status: str = "ok"
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass
class DeliveryPayload:
    """JSON body posted to the outbound automation webhook."""

    type: str
    content: str
    image_url: str | None = None
    source_url: str | None = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "content": self.content,
            "imageUrl": self.image_url or "",
            "sourceUrl": self.source_url or "",
            "timestamp": self.timestamp,
        }


@dataclass
class ScheduleEntry:
    """One cron job: a handler run over its items in order.

    Attributes:
        name: Job id
        cron_expression: Five-field crontab expression
        keywords: Items the handler is called with, one at a time
        handler: Coroutine function invoked per item
        delay_seconds: Pause between items
    """

    name: str
    cron_expression: str
    keywords: list[str]
    handler: Callable[[str], Awaitable[Any]]
    delay_seconds: float = 0.0


@dataclass
class VideoInfo:
    title: str
    url: str
    video_id: str
    description: str = ""
    channel: str = ""
    published_at: str | None = None


@dataclass
class SearchHit:
    title: str
    snippet: str = ""
    link: str = ""


@dataclass
class TrendItem:
    title: str
    traffic: str = "N/A"


@dataclass
class FeedItem:
    source: str
    title: str
    url: str
    summary: str = ""
    published: str | None = None
