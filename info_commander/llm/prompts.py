"""Prompt loading and rendering helpers for the rewrite engine."""

from __future__ import annotations

from dataclasses import replace
from functools import lru_cache
from pathlib import Path

from ..config import RewriteConfig
from ..core.types import ExtractedText, SearchHit, VideoInfo


_PROMPT_DIR = Path(__file__).resolve().parent.parent / "prompts"


@lru_cache(maxsize=None)
def _load_template(name: str) -> str:
    path = _PROMPT_DIR / f"{name}.md"
    return path.read_text(encoding="utf-8").strip()


def _render_template(name: str, **values: str | int) -> str:
    template = _load_template(name)
    return template.format(**values)


def build_system_prompt(cfg: RewriteConfig) -> str:
    return _render_template(
        "system",
        headline_marker=cfg.headline_marker,
        max_post_chars=cfg.max_post_chars,
        output_language=cfg.output_language,
    )


def build_format_instructions(cfg: RewriteConfig) -> str:
    if cfg.response_format != "json":
        return "Output format: the post text only."
    return _render_template("json_instructions", headline_marker=cfg.headline_marker)


def build_rewrite_prompt(
    extracted: ExtractedText,
    instruction: str | None,
    cfg: RewriteConfig,
) -> str:
    """Render the full prompt for a new post or a revision.

    A revision is chosen when the text came from the reply thread or an
    explicit instruction is given.
    """
    system = build_system_prompt(cfg)
    format_instructions = build_format_instructions(cfg)

    if extracted.kind == "revision" or instruction:
        return _render_template(
            "rewrite_revision",
            system=system,
            original=extracted.text,
            instruction=(instruction or "").strip() or "(no instruction, tighten the post)",
            format_instructions=format_instructions,
        )

    source_note = _load_template("video_note") if extracted.kind == "video" else ""
    content = extracted.text
    if extracted.source_url:
        content = f"Source: {extracted.source_url}\n{content}"
    return _render_template(
        "rewrite_new",
        system=system,
        source_note=source_note,
        content=content,
        format_instructions=format_instructions,
    )


def build_daily_brief_prompt(
    topic: str,
    video: VideoInfo,
    hits: list[SearchHit],
    cfg: RewriteConfig,
) -> str:
    search_context = "\n".join(
        f"{idx + 1}. [{hit.title}]: {hit.snippet}" for idx, hit in enumerate(hits)
    )
    # The brief is always JSON so the scheduler gets an image decision.
    json_cfg = replace(cfg, response_format="json")
    return _render_template(
        "daily_brief",
        system=build_system_prompt(cfg),
        topic=topic,
        headline_marker=cfg.headline_marker,
        video_title=video.title,
        video_channel=video.channel or "(unknown)",
        video_url=video.url,
        video_description=video.description or "(none)",
        search_context=search_context or "(no web results)",
        format_instructions=build_format_instructions(json_cfg),
    )
