"""
Source Reader: turns a ContentRequest into plain text.

Sub-strategies by request type:
- UrlRequest: YouTube links go through the YouTube Data API (title,
  channel, description); other links are fetched and passed through the
  extractor chain
- DocumentRequest: downloaded and decoded as PDF or UTF-8 text
- TextRequest: passed through
- RevisionRequest: the previously generated article is the text

Every failure surfaces as ReadError. Nothing is retried.
"""

from __future__ import annotations

import logging

import httpx

from .config import ExtractConfig, FetchConfig
from .core.types import (
    ContentRequest,
    DocumentRequest,
    ExtractedText,
    RevisionRequest,
    TextRequest,
    UrlRequest,
)
from .errors import ReadError
from .fetch import categorize_error, decode_document, extract_text, extract_title, fetch_url
from .logging_utils import log_event
from .search import SearchClient, youtube_video_id


logger = logging.getLogger(__name__)

_FAILURE_HINTS = {
    "timeout": "the site did not respond in time",
    "blocked": "the site blocked the request",
    "not_found": "the page was not found",
    "network_failed": "the site could not be reached",
}


class SourceReader:
    """Read any supported source into an ExtractedText."""

    def __init__(
        self,
        fetch_cfg: FetchConfig,
        extract_cfg: ExtractConfig,
        search: SearchClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.fetch_cfg = fetch_cfg
        self.extract_cfg = extract_cfg
        self.search = search
        self.transport = transport

    async def read(self, request: ContentRequest) -> ExtractedText:
        if isinstance(request, UrlRequest):
            extracted = await self._read_url(request.url)
        elif isinstance(request, DocumentRequest):
            extracted = await self._read_document(request)
        elif isinstance(request, TextRequest):
            extracted = ExtractedText(text=request.text.strip(), kind="text")
        elif isinstance(request, RevisionRequest):
            extracted = ExtractedText(text=request.original_text.strip(), kind="revision")
        else:
            raise ReadError(f"Unsupported request type: {type(request).__name__}")

        if not extracted.text:
            raise ReadError("No extractable text", source=extracted.source_url)

        cap = self.extract_cfg.document_max_chars if extracted.kind == "document" else self.extract_cfg.max_chars
        extracted.text = extracted.text[:cap]
        log_event(
            logger,
            "Source read",
            event="source_read",
            origin=request.origin,
            kind=extracted.kind,
            chars=len(extracted.text),
        )
        return extracted

    async def _read_url(self, url: str) -> ExtractedText:
        if not url.startswith(("http://", "https://")):
            url = f"https://{url}"

        video_id = youtube_video_id(url)
        if video_id:
            return await self._read_video(video_id, url)

        result = await fetch_url(
            url,
            timeout=self.fetch_cfg.timeout_seconds,
            user_agent=self.fetch_cfg.user_agent,
            trust_env=self.fetch_cfg.trust_env,
            transport=self.transport,
        )
        if not result.ok or result.text is None:
            category = categorize_error(result.error, result.status_code)
            log_event(
                logger,
                "Fetch failed",
                level=logging.WARNING,
                event="fetch_error",
                url=url,
                category=category,
                error=result.error,
            )
            hint = _FAILURE_HINTS.get(category, result.error or "unknown error")
            raise ReadError(f"Could not read {url}: {hint}", source=url)

        text = extract_text(result.text, self.extract_cfg.primary, self.extract_cfg.fallback)
        if not text:
            raise ReadError(f"No extractable text at {url}", source=url)
        return ExtractedText(text=text, kind="web", source_url=url, title=extract_title(result.text))

    async def _read_video(self, video_id: str, url: str) -> ExtractedText:
        if self.search is None or not self.search.configured:
            raise ReadError("YouTube links need a Google API key", source=url)
        video = await self.search.video_details(video_id)
        if video is None:
            raise ReadError(f"Could not look up YouTube video {video_id}", source=url)
        lines = [f"Title: {video.title}"]
        if video.channel:
            lines.append(f"Channel: {video.channel}")
        lines.append(f"Description: {video.description or '(none)'}")
        return ExtractedText(text="\n".join(lines), kind="video", source_url=url, title=video.title)

    async def _read_document(self, request: DocumentRequest) -> ExtractedText:
        result = await fetch_url(
            request.file_url,
            timeout=self.fetch_cfg.timeout_seconds,
            user_agent=self.fetch_cfg.user_agent,
            trust_env=self.fetch_cfg.trust_env,
            binary=True,
            transport=self.transport,
        )
        if not result.ok or result.content is None:
            raise ReadError(
                f"Could not download {request.file_name or 'the document'}: {result.error}",
                source=request.file_name,
            )
        mime = request.mime_type or result.content_type
        text = decode_document(result.content, mime, request.file_name)
        return ExtractedText(text=text.strip(), kind="document", title=request.file_name)
