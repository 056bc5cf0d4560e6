"""
Logging setup for the bot process.

Two sinks hang off the `info_commander` logger:
- console: Rich, human-readable
- file (optional): JSONL or plain lines under `logging.directory`

Structured fields travel in `extra=` via log_event and become top-level
keys in JSONL output. A filter on every handler masks credentials (bot
tokens, `key=` query parameters, bearer tokens) in messages, extras and
tracebacks before anything is written, since httpx error strings carry
full request URLs.

LLM prompts and responses go to a separate, non-propagating logger so
they never reach the console.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
import re
from typing import Any

from rich.logging import RichHandler

from .config import LoggingConfig


ROOT_LOGGER = "info_commander"

_URL_RE = re.compile(r"https?://\S+")
_SECRET_PATTERNS = [
    (re.compile(r"\b\d{6,12}:[A-Za-z0-9_-]{30,}\b"), "[BOT_TOKEN]"),
    (re.compile(r"([?&](?:key|client_id|access_token)=)[^&\s]+"), r"\1[SECRET]"),
    (re.compile(r"(Bearer\s+)[A-Za-z0-9._-]+"), r"\1[SECRET]"),
]

_TRACEBACK_FORMATTER = logging.Formatter()

_RESERVED = set(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message", "asctime"}


def setup_logging(cfg: LoggingConfig) -> logging.Logger:
    """Configure the package root logger and return it.

    Calling it again replaces the handlers, so the CLI and tests can
    reconfigure freely.
    """
    level = _level_from_string(cfg.level)
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.handlers = []
    logger.propagate = False

    if cfg.console:
        console = RichHandler(rich_tracebacks=False, show_time=True, show_path=False)
        console.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(_with_mask(console, level))

    if cfg.file:
        formatter = JsonlFormatter() if cfg.format == "jsonl" else logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        )
        logger.addHandler(_file_handler(Path(cfg.directory) / cfg.filename, level, formatter))

    return logger


def setup_llm_logger(cfg: LoggingConfig) -> logging.Logger | None:
    """Separate JSONL log of raw prompts/responses, or None when disabled."""
    if not cfg.llm_log_enabled:
        return None

    logger = logging.getLogger(f"{ROOT_LOGGER}.llm")
    logger.setLevel(logging.INFO)
    logger.handlers = []
    logger.propagate = False
    logger.addHandler(_file_handler(Path(cfg.directory) / cfg.llm_log_file, logging.INFO, JsonlFormatter()))
    return logger


def log_event(logger: logging.Logger | None, message: str, level: int = logging.INFO, **fields: Any) -> None:
    if logger is None:
        return
    logger.log(level, message, extra=fields)


def mask_secrets(text: str) -> str:
    """Replace credentials embedded in text.

    Examples:
        >>> mask_secrets("GET https://x/v1?key=abc123&alt=json")
        'GET https://x/v1?key=[SECRET]&alt=json'
    """
    for pattern, replacement in _SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def redact_text(text: str, mode: str) -> str:
    """Apply a payload redaction mode: "none", "urls" or "content"."""
    if mode == "content":
        return ""
    if mode == "urls":
        return _URL_RE.sub("[URL]", text)
    return text


def truncate_text(text: str, max_chars: int = 20000) -> str:
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "...(truncated)"


class SecretMaskFilter(logging.Filter):
    """Mask credentials in the rendered message, traceback and string extras.

    The traceback is rendered here and exc_info cleared, so every
    formatter downstream only sees the masked exc_text.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = mask_secrets(record.getMessage())
        record.args = None
        if record.exc_info:
            record.exc_text = _TRACEBACK_FORMATTER.formatException(record.exc_info)
            record.exc_info = None
        if record.exc_text:
            record.exc_text = mask_secrets(record.exc_text)
        if record.stack_info:
            record.stack_info = mask_secrets(record.stack_info)
        for key, value in _extract_extras(record).items():
            if isinstance(value, str):
                setattr(record, key, mask_secrets(value))
        return True


class JsonlFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_extract_extras(record))
        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            payload["exception"] = record.exc_text
        return json.dumps(payload, ensure_ascii=False, default=str)


def _file_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(formatter)
    return _with_mask(handler, level)


def _with_mask(handler: logging.Handler, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.addFilter(SecretMaskFilter())
    return handler


def _extract_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {key: value for key, value in record.__dict__.items() if key not in _RESERVED}


def _level_from_string(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)
