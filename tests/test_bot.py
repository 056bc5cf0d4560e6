"""Tests for inbound message classification and the chat handlers."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

from info_commander.bot import (
    classify_input,
    failure_message,
    on_channel_post,
    on_publish,
    on_text,
    parse_search_args,
    progress_notice,
    publish_keyboard,
)
from info_commander.config import AppConfig
from info_commander.core.types import (
    DocumentRequest,
    ExtractedText,
    RevisionRequest,
    RewriteResult,
    TextRequest,
    UrlRequest,
)
from info_commander.errors import GenerationError, ReadError
from info_commander.pipeline import PipelineResult


class _DummySender:
    def __init__(self):
        self.sent: list[tuple] = []
        self.plain: list[bool] = []

    async def send(self, chat_id, text, reply_markup=None, plain=False):  # noqa: ANN001
        self.sent.append((chat_id, text, reply_markup))
        self.plain.append(plain)
        return 1


class _DummyWebhook:
    def __init__(self, ok: bool = True):
        self.ok = ok
        self.payloads: list = []

    async def dispatch(self, payload):  # noqa: ANN001
        self.payloads.append(payload)
        return self.ok


class _DummyPipeline:
    def __init__(self, content: str = "▌ Post", image_url: str | None = None, exc: Exception | None = None):
        self.content = content
        self.image_url = image_url
        self.exc = exc
        self.requests: list = []

    async def process(self, request, instruction=None, resolve_image=False):  # noqa: ANN001
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return PipelineResult(
            extracted=ExtractedText(text="x"),
            result=RewriteResult(content=self.content),
            image_url=self.image_url,
        )

    async def gate_draft(self, raw_text):  # noqa: ANN001
        return await self.process(TextRequest(raw_text), resolve_image=True)


class _DummyBot:
    id = 999

    def __init__(self):
        self.actions: list = []

    async def send_chat_action(self, chat_id, action):  # noqa: ANN001
        self.actions.append((chat_id, action))


class _DummyQuery:
    def __init__(self, data: str, text: str):
        self.data = data
        self.message = SimpleNamespace(text=text)
        self.answers: list[tuple] = []
        self.edits: list[tuple] = []

    async def answer(self, text=None, show_alert=False):  # noqa: ANN001
        self.answers.append((text, show_alert))

    async def edit_message_text(self, text, reply_markup=None):  # noqa: ANN001
        self.edits.append((text, reply_markup))


def _context(cfg=None, pipeline=None, webhook=None, sender=None):  # noqa: ANN001
    services = SimpleNamespace(
        cfg=cfg or AppConfig(),
        pipeline=pipeline or _DummyPipeline(),
        sender=sender or _DummySender(),
        webhook=webhook or _DummyWebhook(),
    )
    return SimpleNamespace(
        application=SimpleNamespace(bot_data={"services": services}),
        bot=_DummyBot(),
        args=[],
    ), services


def test_classify_input_distinguishes_origins():
    assert classify_input("https://example.com/a more words") == UrlRequest("https://example.com/a")
    assert classify_input("www.example.com") == UrlRequest("www.example.com")
    assert classify_input("Just some text") == TextRequest("Just some text")
    assert classify_input("   ") is None


def test_classify_input_treats_reply_to_bot_as_revision():
    request = classify_input(
        "Shorter headline",
        reply_to_text="▌ Old\n\nBody\n\n🖼️ IMAGE_SRC: https://img.example.com/a.jpg",
        reply_is_from_bot=True,
    )

    assert request == RevisionRequest(original_text="▌ Old\n\nBody", instruction="Shorter headline")


def test_classify_input_ignores_reply_to_other_users():
    request = classify_input("https://example.com", reply_to_text="hello", reply_is_from_bot=False)

    assert request == UrlRequest("https://example.com")


def test_parse_search_args():
    assert parse_search_args("AI chips 3") == ("AI chips", 3)
    assert parse_search_args("AI chips") == ("AI chips", 5)
    assert parse_search_args("2024", default_days=7) == ("2024", 7)
    assert parse_search_args("") == ("", 5)


def test_publish_keyboard_builds_single_row():
    markup = publish_keyboard([["🏀 Sports", "post_sports"], ["bad"], ["💰 Finance", "post_finance"]])

    row = markup.inline_keyboard[0]
    assert [button.callback_data for button in row] == ["post_sports", "post_finance"]
    assert publish_keyboard([]) is None


def test_progress_notice_and_failure_message():
    assert "Video" in progress_notice(UrlRequest("https://youtu.be/abc"))
    assert "link" in progress_notice(UrlRequest("https://example.com"))
    assert "document" in progress_notice(DocumentRequest("u"))
    assert "Revising" in progress_notice(RevisionRequest("a", "b"))
    assert "blocked" in failure_message(ReadError("the site blocked the request"))
    assert "busy" in failure_message(GenerationError("quota", status_code=429))
    assert "Something went wrong" in failure_message(RuntimeError("x"))


def test_on_text_replies_with_generated_post():
    context, services = _context()
    message = SimpleNamespace(text="https://example.com/a", reply_to_message=None, chat_id=7)
    update = SimpleNamespace(effective_message=message)

    asyncio.run(on_text(update, context))

    assert services.pipeline.requests == [UrlRequest("https://example.com/a")]
    assert [text for _, text, _ in services.sender.sent] == ["🔗 Reading the link...", "▌ Post"]
    assert context.bot.actions[0][0] == 7


def test_on_text_reports_read_error():
    context, services = _context(pipeline=_DummyPipeline(exc=ReadError("the site blocked the request")))
    message = SimpleNamespace(text="https://example.com/a", reply_to_message=None, chat_id=7)

    asyncio.run(on_text(SimpleNamespace(effective_message=message), context))

    assert services.sender.sent[-1][1] == "⚠️ Could not read the source: the site blocked the request"


def test_on_text_revises_reply_to_bot_post():
    context, services = _context()
    reply = SimpleNamespace(text="▌ Old post", from_user=SimpleNamespace(id=999))
    message = SimpleNamespace(text="Make it shorter", reply_to_message=reply, chat_id=7)

    asyncio.run(on_text(SimpleNamespace(effective_message=message), context))

    assert services.pipeline.requests == [RevisionRequest("▌ Old post", "Make it shorter")]


def test_on_channel_post_drafts_with_image_marker_and_buttons():
    cfg = AppConfig()
    cfg.telegram.gate_channel_id = "-100123"
    context, services = _context(cfg=cfg, pipeline=_DummyPipeline(image_url="https://img.example.com/a.jpg"))
    post = SimpleNamespace(
        text="Raw news text",
        caption=None,
        chat=SimpleNamespace(id=-100123, username="gate"),
    )

    asyncio.run(on_channel_post(SimpleNamespace(channel_post=post), context))

    chat_id, text, markup = services.sender.sent[0]
    assert chat_id == -100123
    assert text == "▌ Post\n\n🖼️ IMAGE_SRC: https://img.example.com/a.jpg"
    assert markup is not None
    assert services.sender.plain == [True]
    assert services.pipeline.requests == [TextRequest("Raw news text")]


def test_on_channel_post_ignores_other_channels():
    cfg = AppConfig()
    cfg.telegram.gate_channel_id = "-100123"
    context, services = _context(cfg=cfg)
    post = SimpleNamespace(text="text", caption=None, chat=SimpleNamespace(id=-100999, username="other"))

    asyncio.run(on_channel_post(SimpleNamespace(channel_post=post), context))

    assert services.sender.sent == []


def test_on_publish_dispatches_and_marks_draft():
    context, services = _context()
    query = _DummyQuery("post_sports", "▌ Title\n\nBody\n\n🖼️ IMAGE_SRC: https://img.example.com/a.jpg")

    asyncio.run(on_publish(SimpleNamespace(callback_query=query), context))

    payload = services.webhook.payloads[0]
    assert payload.type == "post_sports"
    assert payload.content == "▌ Title\n\nBody"
    assert payload.image_url == "https://img.example.com/a.jpg"
    assert query.answers == [("Sent to post_sports", False)]
    assert query.edits[0][0] == "▌ Title\n\nBody\n\n✅ Published: post_sports"
    assert query.edits[0][1] is None


def test_on_publish_failure_keeps_buttons():
    context, services = _context(webhook=_DummyWebhook(ok=False))
    query = _DummyQuery("save_vault", "▌ Title")

    asyncio.run(on_publish(SimpleNamespace(callback_query=query), context))

    assert query.answers == [("Dispatch to save_vault failed", True)]
    assert query.edits == []


def test_gate_draft_with_underscored_image_url_publishes_intact():
    context, services = _context(pipeline=_DummyPipeline(content="▌ my_topic", image_url="https://x.com/a_b_c.jpg"))
    post = SimpleNamespace(text="Raw", caption=None, chat=SimpleNamespace(id=-1, username="gate"))

    asyncio.run(on_channel_post(SimpleNamespace(channel_post=post), context))
    _, draft, _ = services.sender.sent[0]
    query = _DummyQuery("post_main", draft)
    asyncio.run(on_publish(SimpleNamespace(callback_query=query), context))

    payload = services.webhook.payloads[0]
    assert payload.content == "▌ my_topic"
    assert payload.image_url == "https://x.com/a_b_c.jpg"
    assert "IMAGE_SRC" not in query.edits[0][0]
