"""
Rewrite Engine: extracted text in, social-media post out.

The prompt is rendered from the templates in `prompts/`, sent to the
configured provider, and the response is turned into a RewriteResult:
- text mode: the response is the post (status "plain")
- json mode: the response is validated against RewritePayload; a
  malformed response yields a ParseFailure, which is replaced by a
  minimal synthetic post built from the source (status "fallback")

Provider failures are not caught here; they propagate as GenerationError.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
import re
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import RewriteConfig
from .core.types import ExtractedText, ImageDecision, RewriteResult, SearchHit, VideoInfo
from .llm.prompts import build_daily_brief_prompt, build_rewrite_prompt
from .llm.providers.base import GenerationProvider
from .logging_utils import log_event


logger = logging.getLogger(__name__)


REWRITE_RESPONSE_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "content": {"type": "STRING"},
        "image_decision": {
            "type": "OBJECT",
            "properties": {
                "type": {"type": "STRING", "enum": ["news", "concept"]},
                "keyword": {"type": "STRING"},
            },
            "required": ["type", "keyword"],
        },
    },
    "required": ["content"],
}


class ImageDecisionPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    type: str = "news"
    keyword: str = Field(min_length=1)

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> str:
        return "concept" if str(value or "").strip().lower() == "concept" else "news"


class RewritePayload(BaseModel):
    """Shape the model is asked to return in json mode."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    content: str = Field(min_length=1)
    image_decision: ImageDecisionPayload | None = None

    @field_validator("image_decision", mode="before")
    @classmethod
    def _drop_unusable_decision(cls, value: Any) -> Any:
        # A decision without a keyword is useless for image search.
        if not isinstance(value, dict):
            return None
        if not str(value.get("keyword") or "").strip():
            return None
        return value


@dataclass
class ParsedRewrite:
    content: str
    image_decision: ImageDecision | None = None


@dataclass
class ParseFailure:
    """Why a model response could not be used.

    Attributes:
        reason: Short machine-readable cause ("empty", "invalid_json", "schema")
        raw: The response as received
        detail: Parser or validator message
    """

    reason: str
    raw: str
    detail: str = ""


ParseOutcome = Union[ParsedRewrite, ParseFailure]


def parse_rewrite_response(raw: str) -> ParseOutcome:
    """Parse a json-mode response into a ParsedRewrite or a ParseFailure.

    Accepts bare JSON, JSON inside a code fence, or JSON surrounded by
    prose. Never raises.
    """
    if not raw or not raw.strip():
        return ParseFailure(reason="empty", raw=raw or "")
    try:
        data = _parse_json_response(raw)
    except json.JSONDecodeError as exc:
        return ParseFailure(reason="invalid_json", raw=raw, detail=str(exc))
    if not isinstance(data, dict):
        return ParseFailure(reason="schema", raw=raw, detail="top-level value is not an object")
    try:
        payload = RewritePayload.model_validate(data)
    except ValidationError as exc:
        return ParseFailure(reason="schema", raw=raw, detail=str(exc))

    decision = None
    if payload.image_decision is not None:
        decision = ImageDecision(type=payload.image_decision.type, keyword=payload.image_decision.keyword)
    return ParsedRewrite(content=payload.content, image_decision=decision)


def _parse_json_response(content: str) -> Any:
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        extracted = _extract_json_snippet(content)
        return json.loads(extracted)


def _extract_json_snippet(content: str) -> str:
    fence = _extract_fenced_json(content)
    if fence:
        return fence
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise json.JSONDecodeError("No JSON object found", content, 0)
    return content[start : end + 1]


def _extract_fenced_json(content: str) -> str | None:
    lines = content.splitlines()
    start_idx = None
    for idx, line in enumerate(lines):
        marker = line.strip()
        if marker.startswith("```") and marker[3:].strip().lower() in ("", "json"):
            start_idx = idx + 1
            break
    if start_idx is None:
        return None
    for idx in range(start_idx, len(lines)):
        if lines[idx].strip().startswith("```"):
            snippet = "\n".join(lines[start_idx:idx]).strip()
            return snippet or None
    return None


def fallback_result(
    title: str | None,
    text: str,
    cfg: RewriteConfig,
    reason: str | None = None,
) -> RewriteResult:
    """Minimal post used when the model's output cannot be parsed."""
    headline = _fallback_title(title, text, cfg.headline_marker)
    body = text.strip()
    if body.startswith(cfg.headline_marker.strip()):
        # Revisions carry the old headline on their first line.
        body = body.split("\n", 1)[1].strip() if "\n" in body else ""
    excerpt = body[: cfg.fallback_excerpt_chars].rstrip()
    if len(body) > cfg.fallback_excerpt_chars:
        excerpt += "…"
    content = f"{cfg.headline_marker}{headline}"
    if excerpt:
        content = f"{content}\n\n{excerpt}"
    meta = {"reason": reason} if reason else {}
    return RewriteResult(content=content, image_decision=None, status="fallback", meta=meta)


def _fallback_title(title: str | None, text: str, marker: str) -> str:
    if title and title.strip():
        return title.strip()
    first_line = text.strip().split("\n", 1)[0].strip()
    first_line = first_line.removeprefix(marker.strip()).strip()
    return first_line[:80] or "Update"


_SENTENCE_END_RE = re.compile(r"[。！？!?]+|\.(?=\s|$)")


def lint_post(content: str, cfg: RewriteConfig) -> list[str]:
    """Report deviations from the requested post format.

    The model is only asked to follow the rules; these findings are
    logged, never enforced.
    """
    issues: list[str] = []
    stripped = content.strip()
    if not stripped.startswith(cfg.headline_marker.strip()):
        issues.append("missing headline marker")
    if "**" in content:
        issues.append("bold markup")
    paragraphs = [p for p in re.split(r"\n\s*\n", stripped) if p.strip()]
    for idx, paragraph in enumerate(paragraphs[1:], start=2):
        sentences = [s for s in _SENTENCE_END_RE.split(paragraph) if s.strip()]
        if len(sentences) > 3:
            issues.append(f"paragraph {idx} has {len(sentences)} sentences")
    if len(stripped) > cfg.max_post_chars:
        issues.append(f"length {len(stripped)} over cap {cfg.max_post_chars}")
    return issues


class RewriteEngine:
    """Turns extracted text into a post through one provider call."""

    def __init__(self, provider: GenerationProvider, cfg: RewriteConfig):
        self.provider = provider
        self.cfg = cfg

    async def rewrite(self, extracted: ExtractedText, instruction: str | None = None) -> RewriteResult:
        prompt = build_rewrite_prompt(extracted, instruction, self.cfg)
        return await self._complete(
            prompt,
            json_mode=self.cfg.response_format == "json",
            title=extracted.title,
            source_text=extracted.text,
            event="llm_rewrite",
        )

    async def daily_brief(
        self,
        video: VideoInfo,
        hits: list[SearchHit],
        topic: str | None = None,
    ) -> RewriteResult:
        """Daily intelligence brief from a video hit plus web results.

        Always requested as JSON so the result carries an image decision.
        """
        prompt = build_daily_brief_prompt(topic or video.title, video, hits, self.cfg)
        context = "\n".join(hit.snippet for hit in hits if hit.snippet)
        return await self._complete(
            prompt,
            json_mode=True,
            title=video.title,
            source_text=video.description or context,
            event="llm_daily_brief",
        )

    async def _complete(
        self,
        prompt: str,
        json_mode: bool,
        title: str | None,
        source_text: str,
        event: str,
    ) -> RewriteResult:
        schema = REWRITE_RESPONSE_SCHEMA if json_mode else None
        raw = await self.provider.generate(prompt, json_schema=schema, event=event)
        meta = {"provider": self.provider.name, "model": self.provider.cfg.model}

        if not json_mode:
            return RewriteResult(content=raw.strip(), status="plain", meta=meta)

        parsed = parse_rewrite_response(raw)
        if isinstance(parsed, ParseFailure):
            log_event(
                logger,
                "Model response unusable, using fallback post",
                level=logging.WARNING,
                event="rewrite_fallback",
                reason=parsed.reason,
                detail=parsed.detail[:300],
            )
            result = fallback_result(title, source_text, self.cfg, reason=parsed.reason)
            result.meta.update(meta)
            return result

        return RewriteResult(
            content=parsed.content,
            image_decision=parsed.image_decision,
            status="ok",
            meta=meta,
        )
