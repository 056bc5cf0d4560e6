"""Google Gemini provider over the generateContent REST endpoint."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ...config import LoggingConfig, ProviderConfig
from ...errors import GenerationError
from ..tracing import llm_attributes, record_span_error, set_span_output, start_span
from .base import GenerationProvider, error_detail


class GeminiProvider(GenerationProvider):
    """Gemini-backed provider for post generation."""

    name = "gemini"

    def __init__(
        self,
        cfg: ProviderConfig,
        api_key: str | None,
        log_cfg: LoggingConfig,
        llm_logger: logging.Logger | None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("Missing Gemini API key")
        self.cfg = cfg
        self.api_key = api_key
        self.log_cfg = log_cfg
        self.llm_logger = llm_logger
        self.transport = transport

    async def generate(
        self,
        prompt: str,
        json_schema: dict[str, Any] | None = None,
        event: str = "llm_generate",
    ) -> str:
        generation_config: dict[str, Any] = {
            "temperature": self.cfg.temperature,
            "maxOutputTokens": self.cfg.max_output_tokens,
        }
        if json_schema is not None:
            generation_config["responseMimeType"] = "application/json"
            generation_config["responseSchema"] = json_schema
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }

        with start_span(
            "gemini.generate",
            kind="llm",
            input_value=prompt,
            attributes=llm_attributes(self.name, self.cfg.model, json_schema is not None),
        ) as span:
            try:
                data = await self._post(payload)
            except httpx.HTTPStatusError as exc:
                record_span_error(span, exc)
                detail = error_detail(exc.response)
                self._log_llm_response(event, "provider_error", detail, prompt)
                raise GenerationError(detail, status_code=exc.response.status_code) from exc
            except httpx.HTTPError as exc:
                record_span_error(span, exc)
                self._log_llm_response(event, "network_error", str(exc), prompt)
                raise GenerationError(f"{type(exc).__name__}: {exc}") from exc
            except ValueError as exc:
                record_span_error(span, exc)
                self._log_llm_response(event, "invalid_body", str(exc), prompt)
                raise GenerationError("Provider returned a non-JSON body") from exc

            content = _extract_text(data)
            if not content.strip():
                reason = _finish_reason(data)
                exc = GenerationError(f"Empty response from model (finishReason={reason})")
                record_span_error(span, exc)
                self._log_llm_response(event, "empty", "", prompt)
                raise exc

            set_span_output(span, content)
            self._log_llm_response(event, "ok", content, prompt)
            return content

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.cfg.base_url}/v1beta/models/{self.cfg.model}:generateContent"
        params = {"key": self.api_key}
        async with httpx.AsyncClient(
            timeout=self.cfg.timeout_seconds,
            trust_env=self.cfg.trust_env,
            transport=self.transport,
        ) as client:
            resp = await client.post(url, params=params, json=payload)
            resp.raise_for_status()
            return resp.json()


def _extract_text(data: dict[str, Any]) -> str:
    """Join the text parts of the first candidate.

    Thinking models emit "thought" parts before the answer; those are
    skipped unless nothing else is present.
    """
    try:
        parts = data["candidates"][0]["content"]["parts"]
    except Exception:  # noqa: BLE001
        return ""

    if not isinstance(parts, list):
        return ""

    non_thought_chunks: list[str] = []
    all_chunks: list[str] = []
    for part in parts:
        if not isinstance(part, dict):
            continue
        text = part.get("text")
        if text is None:
            continue
        chunk = str(text)
        if not chunk:
            continue
        all_chunks.append(chunk)
        if not bool(part.get("thought")):
            non_thought_chunks.append(chunk)

    if non_thought_chunks:
        return "".join(non_thought_chunks)
    return "".join(all_chunks)


def _finish_reason(data: dict[str, Any]) -> str:
    try:
        return str(data["candidates"][0].get("finishReason") or "unknown")
    except Exception:  # noqa: BLE001
        feedback = data.get("promptFeedback") if isinstance(data, dict) else None
        if isinstance(feedback, dict) and feedback.get("blockReason"):
            return str(feedback["blockReason"])
        return "unknown"
