"""Tests for Langfuse tracing setup behavior."""

from __future__ import annotations

import sys
import types

from info_commander.config import LangfuseConfig
from info_commander.llm import tracing


def test_setup_langfuse_passes_configured_keys(monkeypatch):
    captured: dict = {}

    class DummyLangfuse:
        def __init__(self, **kwargs):
            captured.update(kwargs)

    fake_module = types.SimpleNamespace(Langfuse=DummyLangfuse)
    monkeypatch.setitem(sys.modules, "langfuse", fake_module)

    tracing.setup_langfuse(
        LangfuseConfig(
            enabled=True,
            public_key="pk-test",
            secret_key="sk-test",
            host="https://us.cloud.langfuse.com",
        )
    )

    assert captured["public_key"] == "pk-test"
    assert captured["secret_key"] == "sk-test"
    assert captured["host"] == "https://us.cloud.langfuse.com"
    assert isinstance(tracing.get_tracer(), DummyLangfuse)

    tracing.setup_langfuse(LangfuseConfig())


def test_setup_langfuse_disables_tracer_when_keys_missing():
    tracing.setup_langfuse(LangfuseConfig(enabled=True, public_key="pk-test"))

    assert tracing.get_tracer() is None


def test_span_helpers_are_noops_without_tracer():
    tracing.setup_langfuse(LangfuseConfig())

    with tracing.start_span("pipeline.process", kind="chain", input_value="x") as span:
        assert span is None
        tracing.set_span_output(span, "y")
        tracing.record_span_error(span, RuntimeError("boom"))

    tracing.flush()


def test_start_span_forwards_redacted_input(monkeypatch):
    recorded: dict = {}

    class DummySpan:
        def update(self, **kwargs):
            recorded.setdefault("updates", []).append(kwargs)

    class DummyContext:
        def __enter__(self):
            return DummySpan()

        def __exit__(self, *exc):
            return False

    class DummyLangfuse:
        def __init__(self, **kwargs):
            pass

        def start_as_current_span(self, name, input, metadata):  # noqa: A002
            recorded["name"] = name
            recorded["input"] = input
            recorded["metadata"] = metadata
            return DummyContext()

    monkeypatch.setitem(sys.modules, "langfuse", types.SimpleNamespace(Langfuse=DummyLangfuse))
    tracing.setup_langfuse(LangfuseConfig(enabled=True, public_key="pk", secret_key="sk"))
    try:
        with tracing.start_span(
            "rewrite",
            kind="llm",
            input_value="see https://example.com/a",
            attributes={"llm.model": "m", "skip": None},
        ) as span:
            tracing.set_span_output(span, {"content": "ok"})
    finally:
        tracing.setup_langfuse(LangfuseConfig())

    assert recorded["name"] == "rewrite"
    assert recorded["input"] == "see [URL]"
    assert recorded["metadata"] == {"llm.model": "m", "span.kind": "llm"}
    assert recorded["updates"] == [{"output": '{"content": "ok"}'}]
