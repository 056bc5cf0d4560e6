"""
Configuration management using YAML files, environment variables and dataclasses.

This module defines all configuration dataclasses and builds a single
AppConfig at process start. Tunables come from an optional YAML file;
credentials, chat identifiers and keyword lists come from the environment.
Configuration sections:
- TelegramConfig: Bot token and target chats
- ProviderConfig: LLM provider settings
- FetchConfig: HTTP fetching settings
- ExtractConfig: Content extraction settings
- RewriteConfig: Prompt and response-shape settings
- ImageConfig: Image search settings
- SearchConfig: YouTube / Google search settings
- WebhookConfig: Outbound automation webhook
- DeliveryConfig: Chat delivery settings
- ScheduleConfig: Cron jobs and their item lists
- FeedConfig: RSS sources
- LoggingConfig: Logging behavior
- LangfuseConfig: Langfuse tracing settings
- AppConfig: Root configuration container

Components receive the sections they need; nothing below the CLI reads the
environment directly.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from typing import Any, Mapping

import yaml

from .errors import ConfigError


@dataclass
class TelegramConfig:
    """Configuration for the Telegram bot.

    Attributes:
        token: Bot API token (TELEGRAM_TOKEN)
        admin_chat_id: Chat receiving scheduled reports (MY_CHAT_ID)
        gate_channel_id: Channel whose posts are turned into drafts (GATE_CHANNEL_ID)
        publish_buttons: [label, callback_data] pairs shown under gate drafts
    """

    token: str | None = None
    admin_chat_id: str | None = None
    gate_channel_id: str | None = None
    publish_buttons: list[list[str]] = field(
        default_factory=lambda: [
            ["🏀 Sports", "post_sports"],
            ["💰 Finance", "post_finance"],
            ["💾 Save to vault", "save_vault"],
        ]
    )


@dataclass
class ProviderConfig:
    """Configuration for the LLM provider.

    Attributes:
        name: Provider name ("gemini" or "openai_compatible")
        model: Pinned model identifier
        api_key_env: Environment variable holding the API key
        base_url: Base URL for the provider API
        api_key: Resolved API key (set from the environment at startup)
        trust_env: Whether to respect system proxy settings for API requests
        timeout_seconds: Request timeout for one generation call
        temperature: Sampling temperature
        max_output_tokens: Output token cap
    """

    name: str = "gemini"
    model: str = "gemini-3-flash-preview"
    api_key_env: str = "GEMINI_API_KEY"
    base_url: str = "https://generativelanguage.googleapis.com"
    api_key: str | None = None
    trust_env: bool = True
    timeout_seconds: float = 60.0
    temperature: float = 0.7
    max_output_tokens: int = 2048


@dataclass
class FetchConfig:
    """Configuration for HTTP content fetching.

    Attributes:
        timeout_seconds: HTTP request timeout
        trust_env: Whether to respect system proxy settings
        user_agent: HTTP User-Agent header string
    """

    timeout_seconds: float = 10.0
    trust_env: bool = True
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )


@dataclass
class ExtractConfig:
    """Configuration for content extraction.

    Attributes:
        primary: Primary extraction method ("container", "trafilatura", "readability")
        fallback: Methods to try if primary returns nothing
        max_chars: Cap applied to web and text sources
        document_max_chars: Cap applied to PDF / TXT documents
    """

    primary: str = "container"
    fallback: list[str] = field(default_factory=lambda: ["trafilatura", "readability"])
    max_chars: int = 15000
    document_max_chars: int = 20000


@dataclass
class RewriteConfig:
    """Configuration for the rewrite prompt.

    Attributes:
        response_format: "json" for {content, image_decision}, "text" for plain output
        output_language: Language every post is written in
        headline_marker: Prefix of the first line
        max_post_chars: Length cap requested from the model
        fallback_excerpt_chars: Source excerpt length used by the fallback result
    """

    response_format: str = "json"
    output_language: str = "Traditional Chinese (繁體中文)"
    headline_marker: str = "▌ "
    max_post_chars: int = 1500
    fallback_excerpt_chars: int = 400


@dataclass
class ImageConfig:
    """Configuration for image lookup.

    Attributes:
        enabled: Whether the pipeline resolves images at all
        unsplash_access_key: Unsplash key for "concept" images (UNSPLASH_ACCESS_KEY)
        unsplash_url: Unsplash photo search endpoint
        timeout_seconds: Provider request timeout
    """

    enabled: bool = True
    unsplash_access_key: str | None = None
    unsplash_url: str = "https://api.unsplash.com/search/photos"
    timeout_seconds: float = 10.0


@dataclass
class SearchConfig:
    """Configuration for YouTube, Google search and Google Trends.

    Attributes:
        google_api_key: Key for YouTube Data and Custom Search APIs
        search_engine_id: Custom Search engine id (SEARCH_ENGINE_ID)
        youtube_base_url: YouTube Data API v3 base URL
        customsearch_url: Custom Search endpoint
        trends_url: Google Trends RSS template with a {geo} placeholder
        relevance_language: Language hint for YouTube keyword search
        default_days: Recency window for keyword search
        web_results: Number of web hits fetched per query
        timeout_seconds: Request timeout
    """

    google_api_key: str | None = None
    search_engine_id: str | None = None
    youtube_base_url: str = "https://www.googleapis.com/youtube/v3"
    customsearch_url: str = "https://www.googleapis.com/customsearch/v1"
    trends_url: str = "https://trends.google.com/trending/rss?geo={geo}"
    relevance_language: str = "zh-Hant"
    default_days: int = 5
    web_results: int = 3
    timeout_seconds: float = 10.0


@dataclass
class WebhookConfig:
    """Configuration for the outbound automation webhook.

    Attributes:
        url: Target URL (MAKE_WEBHOOK_URL); dispatch is a no-op when unset
        timeout_seconds: POST timeout
    """

    url: str | None = None
    timeout_seconds: float = 10.0


@dataclass
class DeliveryConfig:
    """Configuration for chat delivery.

    Attributes:
        max_message_chars: Chunk size, below the platform's 4096 limit
        chunk_delay_seconds: Pause between consecutive chunks
        parse_mode: Rich parse mode tried before the plain-text retry
    """

    max_message_chars: int = 4000
    chunk_delay_seconds: float = 1.0
    parse_mode: str = "Markdown"


@dataclass
class ScheduleConfig:
    """Configuration for scheduled jobs.

    Cron expressions are evaluated in `timezone`. A job with no items or
    no target is not registered.

    Attributes:
        enabled: Whether the scheduler starts with the bot
        timezone: IANA zone the cron expressions are written in
        popular_cron: Most-popular videos report
        popular_regions: Region codes for the report
        monitor_cron: Channel monitor
        monitor_channels: YouTube channel ids (MONITOR_CHANNELS)
        monitor_delay_seconds: Pause between channels
        trends_cron: Google Trends report
        trends_geos: Geo codes for the report
        daily_cron: Daily topic briefs dispatched to the webhook
        daily_topics: Topic keywords (DAILY_TOPIC)
        daily_delay_seconds: Pause between topics
        daily_days: Recency window for the daily YouTube search
    """

    enabled: bool = True
    timezone: str = "Asia/Taipei"
    popular_cron: str = "0 5 * * *"
    popular_regions: list[str] = field(default_factory=lambda: ["TW", "US", "JP"])
    monitor_cron: str = "10 5 * * *"
    monitor_channels: list[str] = field(default_factory=list)
    monitor_delay_seconds: float = 180.0
    trends_cron: str = "0 6 * * *"
    trends_geos: list[str] = field(default_factory=lambda: ["TW"])
    daily_cron: str = "0 8 * * *"
    daily_topics: list[str] = field(default_factory=list)
    daily_delay_seconds: float = 600.0
    daily_days: int = 2


@dataclass
class FeedConfig:
    """Configuration for RSS aggregation.

    Attributes:
        sources: [name, url] pairs
        max_items_per_feed: Entries kept from each feed
        title_similarity_threshold: Fuzzy match threshold (0-100) for duplicate titles
    """

    sources: list[list[str]] = field(
        default_factory=lambda: [
            ["BBC", "http://feeds.bbci.co.uk/news/world/rss.xml"],
            ["TechCrunch", "https://techcrunch.com/feed/"],
            ["Engadget", "https://www.engadget.com/rss.xml"],
            ["YahooTW", "https://tw.news.yahoo.com/rss/world"],
        ]
    )
    max_items_per_feed: int = 10
    title_similarity_threshold: int = 92


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        directory: Directory for log files
        format: Log file format ("jsonl" or "plain")
        filename: Name of the main log file
        llm_log_enabled: Whether to enable separate LLM interaction logging
        llm_log_detail: LLM log detail level ("response_only", "prompt_response")
        llm_log_redaction: Redaction mode for LLM logs ("none", "urls", "content")
        llm_log_file: Name of the LLM log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    directory: str = "logs"
    format: str = "jsonl"
    filename: str = "bot.jsonl"
    llm_log_enabled: bool = False
    llm_log_detail: str = "response_only"
    llm_log_redaction: str = "urls"
    llm_log_file: str = "llm.jsonl"


@dataclass
class LangfuseConfig:
    """Configuration for Langfuse tracing.

    Attributes:
        enabled: Whether to enable Langfuse tracing
        public_key: Langfuse public key
        secret_key: Langfuse secret key
        host: Langfuse host URL
        environment: Langfuse environment label
        release: Langfuse release identifier
        redaction: Redaction mode for prompt/response payloads
        max_text_chars: Maximum characters for prompt/response payloads
    """

    enabled: bool = False
    public_key: str | None = None
    secret_key: str | None = None
    host: str | None = None
    environment: str | None = None
    release: str | None = None
    redaction: str = "urls"
    max_text_chars: int = 20000


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    telegram: TelegramConfig = field(default_factory=TelegramConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    extract: ExtractConfig = field(default_factory=ExtractConfig)
    rewrite: RewriteConfig = field(default_factory=RewriteConfig)
    image: ImageConfig = field(default_factory=ImageConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    webhook: WebhookConfig = field(default_factory=WebhookConfig)
    delivery: DeliveryConfig = field(default_factory=DeliveryConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    feeds: FeedConfig = field(default_factory=FeedConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    langfuse: LangfuseConfig = field(default_factory=LangfuseConfig)


_SECTIONS: dict[str, type] = {
    "telegram": TelegramConfig,
    "provider": ProviderConfig,
    "fetch": FetchConfig,
    "extract": ExtractConfig,
    "rewrite": RewriteConfig,
    "image": ImageConfig,
    "search": SearchConfig,
    "webhook": WebhookConfig,
    "delivery": DeliveryConfig,
    "schedule": ScheduleConfig,
    "feeds": FeedConfig,
    "logging": LoggingConfig,
    "langfuse": LangfuseConfig,
}


def load_config(path: str | None) -> AppConfig:
    """Load configuration from a YAML file with defaults."""
    if not path:
        return AppConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return _merge_config(AppConfig(), raw)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig, ignoring unknown keys."""
    data = asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            known = {k: v for k, v in value.items() if k in data[key]}
            data[key].update(known)
    return _fromdict(data)


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(**{name: cls(**data[name]) for name, cls in _SECTIONS.items()})


def apply_env(cfg: AppConfig, environ: Mapping[str, str] | None = None) -> AppConfig:
    """Overlay credentials, chat ids and keyword lists from the environment.

    Only variables that are present and non-empty override the YAML value.

    Args:
        cfg: Configuration to update in place
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        The same AppConfig, for chaining
    """
    env = os.environ if environ is None else environ

    def get(*names: str) -> str | None:
        for name in names:
            value = (env.get(name) or "").strip()
            if value:
                return value
        return None

    cfg.telegram.token = get("TELEGRAM_TOKEN") or cfg.telegram.token
    cfg.telegram.admin_chat_id = get("MY_CHAT_ID") or cfg.telegram.admin_chat_id
    cfg.telegram.gate_channel_id = get("GATE_CHANNEL_ID") or cfg.telegram.gate_channel_id

    cfg.provider.api_key = get(cfg.provider.api_key_env) or cfg.provider.api_key

    cfg.search.google_api_key = (
        get("GOOGLE_SEARCH_KEY", "GOOGLE_CLOUD_API_KEY") or cfg.search.google_api_key
    )
    cfg.search.search_engine_id = get("SEARCH_ENGINE_ID") or cfg.search.search_engine_id
    cfg.image.unsplash_access_key = get("UNSPLASH_ACCESS_KEY") or cfg.image.unsplash_access_key
    cfg.webhook.url = get("MAKE_WEBHOOK_URL") or cfg.webhook.url
    cfg.schedule.timezone = get("TIMEZONE") or cfg.schedule.timezone

    cfg.langfuse.public_key = get("LANGFUSE_PUBLIC_KEY") or cfg.langfuse.public_key
    cfg.langfuse.secret_key = get("LANGFUSE_SECRET_KEY") or cfg.langfuse.secret_key
    cfg.langfuse.host = get("LANGFUSE_HOST") or cfg.langfuse.host

    channels = get("MONITOR_CHANNELS")
    if channels:
        cfg.schedule.monitor_channels = split_list(channels)
    topics = get("DAILY_TOPIC")
    if topics:
        cfg.schedule.daily_topics = split_list(topics)

    return cfg


def split_list(value: str) -> list[str]:
    """Split a comma-separated list, dropping blank entries."""
    return [item.strip() for item in value.split(",") if item.strip()]


def require_credentials(cfg: AppConfig, need_telegram: bool = True) -> None:
    """Raise ConfigError if any mandatory credential is missing.

    One-shot commands that never talk to Telegram pass need_telegram=False.
    """
    missing = []
    if need_telegram and not cfg.telegram.token:
        missing.append("TELEGRAM_TOKEN")
    if not cfg.provider.api_key:
        missing.append(cfg.provider.api_key_env)
    if missing:
        raise ConfigError(missing)
