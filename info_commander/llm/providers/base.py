"""Abstract interface for hosted text-generation backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
import logging
from typing import Any

import httpx

from ...config import LoggingConfig, ProviderConfig
from ...logging_utils import log_event, redact_text, truncate_text


class GenerationProvider(ABC):
    """Provider interface: one prompt in, one completion out."""

    name: str = "base"
    cfg: ProviderConfig
    log_cfg: LoggingConfig
    llm_logger: logging.Logger | None = None

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        json_schema: dict[str, Any] | None = None,
        event: str = "llm_generate",
    ) -> str:
        """Return the generated text.

        When json_schema is given the provider asks for JSON output in
        whatever way its API supports.

        Raises:
            GenerationError: HTTP or network failure, or an empty response
        """
        raise NotImplementedError

    def _log_llm_response(self, event: str, status: str, content: str, prompt: str) -> None:
        if self.llm_logger is None:
            return
        redaction = self.log_cfg.llm_log_redaction
        payload = {
            "event": event,
            "status": status,
            "provider": self.name,
            "model": self.cfg.model,
            "raw_response": truncate_text(redact_text(content or "", redaction)),
        }
        if self.log_cfg.llm_log_detail == "prompt_response":
            payload["raw_prompt"] = truncate_text(redact_text(prompt, redaction))
        log_event(self.llm_logger, "LLM response", **payload)


def error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:500] or response.reason_phrase
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return response.reason_phrase
