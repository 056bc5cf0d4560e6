"""Tests for pipeline orchestration with stub stages."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from info_commander.config import RewriteConfig
from info_commander.core.types import (
    ExtractedText,
    ImageDecision,
    RevisionRequest,
    RewriteResult,
    SearchHit,
    TextRequest,
    UrlRequest,
    VideoInfo,
)
from info_commander.errors import ReadError
from info_commander.pipeline import Pipeline


class _DummyReader:
    def __init__(self, exc: Exception | None = None):
        self.exc = exc
        self.requests: list = []

    async def read(self, request):  # noqa: ANN001
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return ExtractedText(text="material", kind="web", title="T")


class _DummyEngine:
    def __init__(self, decision: ImageDecision | None = None, status: str = "ok"):
        self.cfg = RewriteConfig()
        self.decision = decision
        self.status = status
        self.instructions: list = []
        self.briefs: list = []

    async def rewrite(self, extracted, instruction=None):  # noqa: ANN001
        self.instructions.append(instruction)
        return RewriteResult(content="▌ Post\n\nBody.", image_decision=self.decision, status=self.status)

    async def daily_brief(self, video, hits, topic=None):  # noqa: ANN001
        self.briefs.append((video, hits, topic))
        return RewriteResult(content="▌ Daily Brief: x", image_decision=self.decision)


class _DummyResolver:
    def __init__(self):
        self.calls: list = []

    async def resolve(self, keyword, kind="news"):  # noqa: ANN001
        self.calls.append((keyword, kind))
        return f"https://img.example.com/{keyword}.jpg"


class _DummySearch:
    def __init__(self, videos: list[VideoInfo] | None = None):
        self.videos = videos or []
        self.queries: list = []

    async def search_videos(self, keyword, days=None, limit=1):  # noqa: ANN001
        self.queries.append(("videos", keyword, days))
        return self.videos

    async def search_web(self, query, num=None):  # noqa: ANN001
        self.queries.append(("web", query))
        return [SearchHit(title="A", snippet="s")]


def test_process_skips_image_unless_requested():
    resolver = _DummyResolver()
    pipeline = Pipeline(_DummyReader(), _DummyEngine(ImageDecision("news", "kw")), resolver)

    outcome = asyncio.run(pipeline.process(UrlRequest("https://example.com")))

    assert outcome.result.content == "▌ Post\n\nBody."
    assert outcome.image_url is None
    assert resolver.calls == []


def test_process_passes_revision_instruction():
    engine = _DummyEngine()
    pipeline = Pipeline(_DummyReader(), engine)

    asyncio.run(pipeline.process(RevisionRequest("▌ Old", "shorter")))
    asyncio.run(pipeline.process(TextRequest("x"), instruction="formal tone"))
    asyncio.run(pipeline.process(RevisionRequest("▌ Old", "shorter"), instruction="longer"))

    assert engine.instructions == ["shorter", "formal tone", "longer"]


def test_only_revision_requests_carry_an_instruction():
    engine = _DummyEngine()
    pipeline = Pipeline(_DummyReader(), engine)
    lookalike = SimpleNamespace(origin="text", text="x", instruction="not a revision")

    asyncio.run(pipeline.process(lookalike))

    assert engine.instructions == [None]


def test_gate_draft_resolves_image_from_decision():
    resolver = _DummyResolver()
    pipeline = Pipeline(_DummyReader(), _DummyEngine(ImageDecision("concept", "ai")), resolver)

    outcome = asyncio.run(pipeline.gate_draft("raw"))

    assert outcome.image_url == "https://img.example.com/ai.jpg"
    assert resolver.calls == [("ai", "concept")]


def test_gate_draft_without_decision_has_no_image():
    resolver = _DummyResolver()
    pipeline = Pipeline(_DummyReader(), _DummyEngine(None), resolver)

    assert asyncio.run(pipeline.gate_draft("raw")).image_url is None
    assert resolver.calls == []


def test_process_propagates_read_errors():
    pipeline = Pipeline(_DummyReader(exc=ReadError("boom")), _DummyEngine())

    with pytest.raises(ReadError):
        asyncio.run(pipeline.process(UrlRequest("https://example.com")))


def test_daily_brief_searches_web_with_video_title():
    video = VideoInfo(title="Chip war", url="https://www.youtube.com/watch?v=1", video_id="1")
    search = _DummySearch([video])
    engine = _DummyEngine(ImageDecision("news", "chips"))
    pipeline = Pipeline(_DummyReader(), engine, _DummyResolver(), search)

    brief = asyncio.run(pipeline.daily_brief("chips", days=3))

    assert search.queries == [("videos", "chips", 3), ("web", "Chip war")]
    assert brief.video is video
    assert brief.image_url == "https://img.example.com/chips.jpg"
    assert engine.briefs[0][2] == "chips"


def test_daily_brief_without_video_returns_none():
    engine = _DummyEngine()
    pipeline = Pipeline(_DummyReader(), engine, _DummyResolver(), _DummySearch([]))

    assert asyncio.run(pipeline.daily_brief("nothing")) is None
    assert engine.briefs == []
