"""Pick the generation backend named in `provider.name`."""

from __future__ import annotations

import logging

import httpx

from ...config import LoggingConfig, ProviderConfig
from .base import GenerationProvider
from .gemini import GeminiProvider
from .openai_compatible import OpenAICompatibleProvider


_BACKENDS: dict[str, type[GenerationProvider]] = {
    "gemini": GeminiProvider,
    "openai": OpenAICompatibleProvider,
    "openai_compatible": OpenAICompatibleProvider,
}


def available_providers() -> list[str]:
    return sorted(_BACKENDS)


def create_provider(
    provider_cfg: ProviderConfig,
    log_cfg: LoggingConfig,
    llm_logger: logging.Logger | None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> GenerationProvider:
    """Instantiate the configured backend.

    Names are matched case-insensitively and "-" is read as "_", so
    "OpenAI-Compatible" selects the OpenAI-compatible client.

    Raises:
        ValueError: unknown backend name, or the backend's key is missing
    """
    key = provider_cfg.name.strip().lower().replace("-", "_")
    backend = _BACKENDS.get(key)
    if backend is None:
        raise ValueError(
            f"Unsupported provider: {provider_cfg.name}. Supported: {', '.join(available_providers())}"
        )
    return backend(provider_cfg, provider_cfg.api_key, log_cfg, llm_logger, transport=transport)
