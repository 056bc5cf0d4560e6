"""
Optional Langfuse tracing for generation calls and pipeline runs.

Everything here degrades to a no-op: with tracing disabled, or without
both keys, start_span yields None and the other helpers return
immediately. A tracing failure is logged at DEBUG and never reaches the
caller, so a broken Langfuse host cannot take a chat request down.

Payloads pass through the configured redaction mode and the length cap
before they leave the process; credentials are always masked.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
import json
import logging
from typing import Any, Iterator

from ..config import LangfuseConfig
from ..logging_utils import log_event, mask_secrets, redact_text, truncate_text


logger = logging.getLogger(__name__)


@dataclass
class _TracingState:
    client: Any = None
    cfg: LangfuseConfig | None = None


_state = _TracingState()


def setup_langfuse(cfg: LangfuseConfig) -> None:
    """Create the Langfuse client when enabled and both keys are set."""
    _state.cfg = cfg
    _state.client = None
    if not (cfg.enabled and cfg.public_key and cfg.secret_key):
        return

    from langfuse import Langfuse

    _state.client = Langfuse(
        public_key=cfg.public_key,
        secret_key=cfg.secret_key,
        host=cfg.host,
        environment=cfg.environment,
        release=cfg.release,
    )
    log_event(logger, "Langfuse tracing enabled", event="tracing_enabled", host=cfg.host or "default")


def get_tracer():
    return _state.client


def llm_attributes(provider: str, model: str, json_mode: bool) -> dict[str, Any]:
    return {"llm.provider": provider, "llm.model": model, "llm.json_mode": json_mode}


@contextmanager
def start_span(
    name: str,
    kind: str,
    input_value: Any | None = None,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Any | None]:
    """Open a Langfuse span around the block and yield it (or None).

    `kind` is stored as the `span.kind` metadata key ("llm", "chain").
    Exceptions raised by the block propagate unchanged.
    """
    client = _state.client
    if client is None:
        yield None
        return

    metadata = {"span.kind": kind} if kind else {}
    metadata.update(_scalar_metadata(attributes or {}))
    try:
        span_cm = client.start_as_current_span(name=name, input=_payload(input_value), metadata=metadata)
        span = span_cm.__enter__()
    except Exception as exc:  # noqa: BLE001
        _log_tracing_failure("start", name, exc)
        yield None
        return

    try:
        yield span
    finally:
        try:
            span_cm.__exit__(None, None, None)
        except Exception as exc:  # noqa: BLE001
            _log_tracing_failure("end", name, exc)


def set_span_output(span: Any | None, output_value: Any) -> None:
    payload = _payload(output_value)
    if span is not None and payload is not None:
        _update(span, output=payload)


def record_span_error(span: Any | None, exc: Exception) -> None:
    if span is not None:
        _update(span, level="ERROR", status_message=mask_secrets(str(exc)))


def flush() -> None:
    """Send buffered traces; call before the process exits."""
    client = _state.client
    if client is None:
        return
    try:
        client.flush()
    except Exception as exc:  # noqa: BLE001
        _log_tracing_failure("flush", "-", exc)


def _payload(value: Any) -> str | None:
    if value is None:
        return None
    text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False, default=str)
    text = mask_secrets(text)
    cfg = _state.cfg
    if cfg is None:
        return text
    return truncate_text(redact_text(text, cfg.redaction), cfg.max_text_chars)


def _scalar_metadata(attrs: dict[str, Any]) -> dict[str, Any]:
    return {
        key: value if isinstance(value, (str, int, float, bool)) else str(value)
        for key, value in attrs.items()
        if value is not None
    }


def _update(span: Any, **fields: Any) -> None:
    try:
        span.update(**fields)
    except Exception as exc:  # noqa: BLE001
        _log_tracing_failure("update", "-", exc)


def _log_tracing_failure(stage: str, name: str, exc: Exception) -> None:
    log_event(
        logger,
        "Tracing call failed",
        level=logging.DEBUG,
        event="tracing_error",
        stage=stage,
        span=name,
        error=f"{type(exc).__name__}: {exc}",
    )
