"""
Pipeline orchestration for one inbound request or scheduled item.

Flow:
1. SourceReader turns the request into ExtractedText
2. RewriteEngine produces the post (with an optional image decision)
3. lint_post findings are logged as warnings
4. ImageResolver looks up an image when the post asks for one

Errors from reading and generation propagate to the caller (the chat
handler or the scheduler), which decides how to surface them.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

from .config import RewriteConfig
from .core.types import ContentRequest, ExtractedText, RevisionRequest, RewriteResult, TextRequest, VideoInfo
from .images import ImageResolver
from .llm.tracing import set_span_output, start_span
from .logging_utils import log_event
from .reader import SourceReader
from .rewrite import RewriteEngine, lint_post
from .search import SearchClient


logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Outcome of one pipeline run.

    Attributes:
        extracted: Text the post was written from
        result: Generated post
        image_url: Resolved image, if one was requested and found
    """

    extracted: ExtractedText
    result: RewriteResult
    image_url: str | None = None


@dataclass
class BriefResult:
    video: VideoInfo
    result: RewriteResult
    image_url: str | None = None


class Pipeline:
    def __init__(
        self,
        reader: SourceReader,
        engine: RewriteEngine,
        resolver: ImageResolver | None = None,
        search: SearchClient | None = None,
    ):
        self.reader = reader
        self.engine = engine
        self.resolver = resolver
        self.search = search

    @property
    def rewrite_cfg(self) -> RewriteConfig:
        return self.engine.cfg

    async def process(
        self,
        request: ContentRequest,
        instruction: str | None = None,
        resolve_image: bool = False,
    ) -> PipelineResult:
        """Read, rewrite and optionally illustrate one request.

        Revision requests carry their own instruction; `instruction`
        overrides it when given.
        """
        with start_span("pipeline.process", kind="chain", attributes={"origin": request.origin}) as span:
            extracted = await self.reader.read(request)
            if instruction is None and isinstance(request, RevisionRequest):
                instruction = request.instruction

            result = await self.engine.rewrite(extracted, instruction)
            self._lint(result, origin=request.origin)

            image_url = None
            if resolve_image:
                image_url = await self._resolve_image(result)

            set_span_output(span, {"status": result.status, "chars": len(result.content)})
            log_event(
                logger,
                "Pipeline finished",
                event="pipeline_done",
                origin=request.origin,
                kind=extracted.kind,
                status=result.status,
                has_image=image_url is not None,
            )
            return PipelineResult(extracted=extracted, result=result, image_url=image_url)

    async def gate_draft(self, raw_text: str) -> PipelineResult:
        """Draft for a gate-channel post: always an image attempt."""
        return await self.process(TextRequest(raw_text), resolve_image=True)

    async def daily_brief(self, topic: str, days: int | None = None) -> BriefResult | None:
        """Radar task: top video for a topic, web context, brief and image.

        Returns None when no video matches the topic.
        """
        if self.search is None:
            return None
        with start_span("pipeline.daily_brief", kind="chain", attributes={"topic": topic}) as span:
            videos = await self.search.search_videos(topic, days)
            if not videos:
                log_event(logger, "No video for topic", event="brief_no_video", topic=topic)
                return None
            video = videos[0]
            hits = await self.search.search_web(video.title)
            result = await self.engine.daily_brief(video, hits, topic=topic)
            self._lint(result, origin="daily_brief")
            image_url = await self._resolve_image(result)
            set_span_output(span, {"status": result.status, "video": video.url})
            return BriefResult(video=video, result=result, image_url=image_url)

    async def _resolve_image(self, result: RewriteResult) -> str | None:
        if self.resolver is None or result.image_decision is None:
            return None
        decision = result.image_decision
        return await self.resolver.resolve(decision.keyword, decision.type)

    def _lint(self, result: RewriteResult, origin: str) -> None:
        if result.status == "fallback":
            return
        issues = lint_post(result.content, self.rewrite_cfg)
        if issues:
            log_event(
                logger,
                "Post deviates from format rules",
                level=logging.WARNING,
                event="post_lint",
                origin=origin,
                issues=issues,
            )
