"""Tests for response parsing, fallback posts, lint and the rewrite engine."""

from __future__ import annotations

import asyncio

import pytest

from info_commander.config import LoggingConfig, ProviderConfig, RewriteConfig
from info_commander.core.types import ExtractedText, ImageDecision, SearchHit, VideoInfo
from info_commander.errors import GenerationError
from info_commander.llm.providers.base import GenerationProvider
from info_commander.rewrite import (
    ParsedRewrite,
    ParseFailure,
    RewriteEngine,
    fallback_result,
    lint_post,
    parse_rewrite_response,
)


class _DummyProvider(GenerationProvider):
    """Provider stub returning a canned response."""

    name = "dummy"

    def __init__(self, response: str = "", exc: Exception | None = None):
        self.response = response
        self.exc = exc
        self.calls: list[tuple[str, dict | None, str]] = []
        self.cfg = ProviderConfig(model="dummy-model")
        self.log_cfg = LoggingConfig()

    async def generate(self, prompt, json_schema=None, event="llm_generate"):  # noqa: ANN001
        self.calls.append((prompt, json_schema, event))
        if self.exc is not None:
            raise self.exc
        return self.response


def test_parse_fenced_json_response():
    raw = '```json\n{"content": "X", "image_decision": {"type": "news", "keyword": "Y"}}\n```'

    parsed = parse_rewrite_response(raw)

    assert isinstance(parsed, ParsedRewrite)
    assert parsed.content == "X"
    assert parsed.image_decision == ImageDecision(type="news", keyword="Y")


def test_parse_json_surrounded_by_prose():
    raw = 'Here you go:\n{"content": "▌ Title\\n\\nBody", "image_decision": {"type": "concept", "keyword": "AI"}}\nThanks'

    parsed = parse_rewrite_response(raw)

    assert isinstance(parsed, ParsedRewrite)
    assert parsed.content == "▌ Title\n\nBody"
    assert parsed.image_decision == ImageDecision(type="concept", keyword="AI")


def test_parse_normalizes_unknown_image_type_to_news():
    parsed = parse_rewrite_response('{"content": "X", "image_decision": {"type": "photo", "keyword": "Y"}}')

    assert isinstance(parsed, ParsedRewrite)
    assert parsed.image_decision == ImageDecision(type="news", keyword="Y")


def test_parse_drops_image_decision_without_keyword():
    parsed = parse_rewrite_response('{"content": "X", "image_decision": {"type": "news", "keyword": " "}}')

    assert isinstance(parsed, ParsedRewrite)
    assert parsed.image_decision is None


def test_parse_reports_prose_as_invalid_json():
    parsed = parse_rewrite_response("I could not produce JSON for this one.")

    assert isinstance(parsed, ParseFailure)
    assert parsed.reason == "invalid_json"


def test_parse_reports_missing_content_as_schema_failure():
    parsed = parse_rewrite_response('{"image_decision": {"type": "news", "keyword": "Y"}}')

    assert isinstance(parsed, ParseFailure)
    assert parsed.reason == "schema"


def test_parse_reports_empty_response():
    parsed = parse_rewrite_response("   ")

    assert isinstance(parsed, ParseFailure)
    assert parsed.reason == "empty"


def test_fallback_result_uses_title_and_excerpt():
    cfg = RewriteConfig(fallback_excerpt_chars=10)

    result = fallback_result("Title", "0123456789abcdef", cfg, reason="invalid_json")

    assert result.status == "fallback"
    assert result.content == "▌ Title\n\n0123456789…"
    assert result.image_decision is None
    assert result.meta["reason"] == "invalid_json"


def test_fallback_result_reuses_revision_headline():
    result = fallback_result(None, "▌ Old headline\n\nOld body.", RewriteConfig())

    assert result.content == "▌ Old headline\n\nOld body."


def test_lint_post_accepts_well_formed_post():
    content = "▌ Headline\n\nFirst point. Second point.\n\nClosing line."

    assert lint_post(content, RewriteConfig()) == []


def test_lint_post_reports_deviations():
    content = "Headline with **bold**\n\nOne. Two. Three. Four."

    issues = lint_post(content, RewriteConfig(max_post_chars=20))

    assert "missing headline marker" in issues
    assert "bold markup" in issues
    assert "paragraph 2 has 4 sentences" in issues
    assert any(issue.startswith("length") for issue in issues)


def test_engine_json_mode_returns_parsed_post():
    provider = _DummyProvider('{"content": "▌ A\\n\\nB", "image_decision": {"type": "news", "keyword": "B"}}')
    engine = RewriteEngine(provider, RewriteConfig())

    result = asyncio.run(engine.rewrite(ExtractedText(text="source", kind="web", title="T")))

    assert result.status == "ok"
    assert result.content == "▌ A\n\nB"
    assert result.image_decision == ImageDecision(type="news", keyword="B")
    assert result.meta["model"] == "dummy-model"
    prompt, schema, event = provider.calls[0]
    assert schema is not None
    assert event == "llm_rewrite"
    assert "source" in prompt


def test_engine_falls_back_on_non_json_output():
    provider = _DummyProvider("Sorry, here is plain prose instead.")
    engine = RewriteEngine(provider, RewriteConfig())

    result = asyncio.run(engine.rewrite(ExtractedText(text="Some body text.", kind="web", title="Title")))

    assert result.status == "fallback"
    assert result.content == "▌ Title\n\nSome body text."
    assert result.meta["reason"] == "invalid_json"


def test_engine_text_mode_returns_plain_response():
    provider = _DummyProvider("  ▌ Plain post  ")
    engine = RewriteEngine(provider, RewriteConfig(response_format="text"))

    result = asyncio.run(engine.rewrite(ExtractedText(text="source")))

    assert result.status == "plain"
    assert result.content == "▌ Plain post"
    assert provider.calls[0][1] is None


def test_engine_propagates_generation_error():
    provider = _DummyProvider(exc=GenerationError("quota", status_code=429))
    engine = RewriteEngine(provider, RewriteConfig())

    with pytest.raises(GenerationError) as excinfo:
        asyncio.run(engine.rewrite(ExtractedText(text="source")))

    assert excinfo.value.status_code == 429


def test_engine_daily_brief_always_requests_json():
    provider = _DummyProvider('{"content": "▌ Daily Brief: chips", "image_decision": {"type": "news", "keyword": "chips"}}')
    engine = RewriteEngine(provider, RewriteConfig(response_format="text"))
    video = VideoInfo(title="Chip war", url="https://www.youtube.com/watch?v=1", video_id="1")
    hits = [SearchHit(title="News", snippet="Chips are scarce.")]

    result = asyncio.run(engine.daily_brief(video, hits, topic="chips"))

    assert result.status == "ok"
    assert result.image_decision == ImageDecision(type="news", keyword="chips")
    prompt, schema, event = provider.calls[0]
    assert schema is not None
    assert event == "llm_daily_brief"
    assert "Chips are scarce." in prompt


def test_engine_daily_brief_falls_back_to_video_description():
    provider = _DummyProvider("not json")
    engine = RewriteEngine(provider, RewriteConfig())
    video = VideoInfo(title="Chip war", url="u", video_id="1", description="About chips.")

    result = asyncio.run(engine.daily_brief(video, []))

    assert result.status == "fallback"
    assert result.content == "▌ Chip war\n\nAbout chips."
