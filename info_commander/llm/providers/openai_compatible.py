"""OpenAI-compatible chat completions provider."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ...config import LoggingConfig, ProviderConfig
from ...errors import GenerationError
from ..tracing import llm_attributes, record_span_error, set_span_output, start_span
from .base import GenerationProvider, error_detail


class OpenAICompatibleProvider(GenerationProvider):
    """Provider for any endpoint speaking the chat/completions protocol.

    `base_url` is the API root including the version segment, for example
    https://api.openai.com/v1.
    """

    name = "openai_compatible"

    def __init__(
        self,
        cfg: ProviderConfig,
        api_key: str | None,
        log_cfg: LoggingConfig,
        llm_logger: logging.Logger | None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("Missing API key for OpenAI-compatible provider")
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
        payload: dict[str, Any] = {
            "model": self.cfg.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.cfg.temperature,
            "max_tokens": self.cfg.max_output_tokens,
        }
        if json_schema is not None:
            payload["response_format"] = {"type": "json_object"}

        with start_span(
            "openai_compatible.generate",
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

            content = _extract_message(data)
            if not content.strip():
                exc = GenerationError("Empty response from model")
                record_span_error(span, exc)
                self._log_llm_response(event, "empty", "", prompt)
                raise exc

            set_span_output(span, content)
            self._log_llm_response(event, "ok", content, prompt)
            return content

    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.cfg.base_url.rstrip('/')}/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        async with httpx.AsyncClient(
            timeout=self.cfg.timeout_seconds,
            trust_env=self.cfg.trust_env,
            transport=self.transport,
        ) as client:
            resp = await client.post(url, headers=headers, json=payload)
            resp.raise_for_status()
            return resp.json()


def _extract_message(data: dict[str, Any]) -> str:
    try:
        choice = data["choices"][0]
    except Exception:  # noqa: BLE001
        return ""
    message = choice.get("message") or {}
    return str(message.get("content") or choice.get("text") or "")
