"""Tests for prompt template rendering."""

from __future__ import annotations

from info_commander.config import RewriteConfig
from info_commander.core.types import ExtractedText, SearchHit, VideoInfo
from info_commander.llm.prompts import build_daily_brief_prompt, build_rewrite_prompt


def test_new_post_prompt_carries_rules_material_and_json_format():
    extracted = ExtractedText(text="The material.", kind="web", source_url="https://example.com/a")

    prompt = build_rewrite_prompt(extracted, None, RewriteConfig())

    assert '"▌ "' in prompt
    assert "Traditional Chinese" in prompt
    assert "Never use bold" in prompt
    assert "Task: write a new post." in prompt
    assert "Source: https://example.com/a\nThe material." in prompt
    assert '{"content":' in prompt
    assert '"image_decision"' in prompt


def test_video_prompt_adds_inference_note():
    extracted = ExtractedText(text="Title: X", kind="video")

    prompt = build_rewrite_prompt(extracted, None, RewriteConfig())

    assert "not a transcript" in prompt


def test_revision_prompt_carries_original_and_instruction():
    extracted = ExtractedText(text="▌ Old post", kind="revision")

    prompt = build_rewrite_prompt(extracted, "Make the headline shorter", RewriteConfig())

    assert "Task: revise an existing post." in prompt
    assert "▌ Old post" in prompt
    assert "Make the headline shorter" in prompt


def test_text_mode_prompt_has_no_json_instructions():
    prompt = build_rewrite_prompt(ExtractedText(text="m"), None, RewriteConfig(response_format="text"))

    assert "image_decision" not in prompt
    assert "the post text only" in prompt


def test_material_with_braces_renders_verbatim():
    prompt = build_rewrite_prompt(ExtractedText(text="code {x} and {{y}}"), None, RewriteConfig())

    assert "code {x} and {{y}}" in prompt


def test_daily_brief_prompt_lists_video_and_hits():
    video = VideoInfo(
        title="Chip war",
        url="https://www.youtube.com/watch?v=1",
        video_id="1",
        channel="Tech",
        description="About chips.",
    )
    hits = [SearchHit(title="A", snippet="first"), SearchHit(title="B", snippet="second")]

    prompt = build_daily_brief_prompt("chips", video, hits, RewriteConfig(response_format="text"))

    assert 'intelligence brief on "chips"' in prompt
    assert "Title: Chip war" in prompt
    assert "1. [A]: first\n2. [B]: second" in prompt
    assert '"image_decision"' in prompt
