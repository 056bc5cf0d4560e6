"""
Service wiring: build every long-lived component from one AppConfig.

The CLI calls build_runtime once at startup; components receive the
config sections they need and never read the environment themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

import httpx

from .config import AppConfig
from .delivery import WebhookDispatcher
from .images import ImageResolver
from .llm.providers import GenerationProvider, create_provider
from .llm.tracing import setup_langfuse
from .logging_utils import log_event, setup_llm_logger, setup_logging
from .pipeline import Pipeline
from .reader import SourceReader
from .rewrite import RewriteEngine
from .search import SearchClient


@dataclass
class Runtime:
    cfg: AppConfig
    logger: logging.Logger
    provider: GenerationProvider
    search: SearchClient
    pipeline: Pipeline
    webhook: WebhookDispatcher


def build_runtime(cfg: AppConfig, transport: httpx.AsyncBaseTransport | None = None) -> Runtime:
    """Configure logging/tracing and construct the pipeline services."""
    logger = setup_logging(cfg.logging)
    llm_logger = setup_llm_logger(cfg.logging)
    setup_langfuse(cfg.langfuse)

    provider = create_provider(cfg.provider, cfg.logging, llm_logger, transport=transport)
    search = SearchClient(cfg.search, transport=transport)
    reader = SourceReader(cfg.fetch, cfg.extract, search=search, transport=transport)
    engine = RewriteEngine(provider, cfg.rewrite)
    resolver = ImageResolver(cfg.image, search=search, transport=transport)
    pipeline = Pipeline(reader, engine, resolver=resolver, search=search)
    webhook = WebhookDispatcher(cfg.webhook, transport=transport)

    log_event(
        logger,
        "Runtime ready",
        event="runtime_ready",
        provider=cfg.provider.name,
        model=cfg.provider.model,
        response_format=cfg.rewrite.response_format,
        search_enabled=search.configured,
        webhook_enabled=webhook.configured,
        langfuse_enabled=cfg.langfuse.enabled,
    )
    return Runtime(
        cfg=cfg,
        logger=logger,
        provider=provider,
        search=search,
        pipeline=pipeline,
        webhook=webhook,
    )
