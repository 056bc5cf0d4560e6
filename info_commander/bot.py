"""
Telegram surface built on python-telegram-bot.

Inbound updates handled:
- private text: revision (a reply to the bot's own post), URL or raw text
- private document: PDF / TXT upload
- /search <keyword> [days]: radar brief for a keyword
- channel_post in the gate channel: draft with image and publish buttons
- callback_query from a publish button: webhook dispatch, draft marked as sent

Every handler turns failures into a chat reply; nothing escapes to the
polling loop except what the error handler logs.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.constants import ChatAction
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from .config import AppConfig
from .core.types import (
    ContentRequest,
    DeliveryPayload,
    DocumentRequest,
    RevisionRequest,
    TextRequest,
    UrlRequest,
)
from .delivery import ChatSender, WebhookDispatcher, attach_image_marker, split_image_marker
from .errors import GenerationError, ReadError
from .fetch.pdf import PDF_MIME, TEXT_MIME
from .llm import tracing
from .logging_utils import log_event
from .pipeline import Pipeline
from .scheduler import JobRunner, build_schedule, create_scheduler
from .search import youtube_video_id


logger = logging.getLogger(__name__)

_SERVICES_KEY = "services"
_SCHEDULER_KEY = "scheduler"


@dataclass
class BotServices:
    """Everything the handlers need, stored in application.bot_data."""

    cfg: AppConfig
    pipeline: Pipeline
    sender: ChatSender
    webhook: WebhookDispatcher
    runner: JobRunner


def classify_input(
    text: str,
    reply_to_text: str | None = None,
    reply_is_from_bot: bool = False,
) -> ContentRequest | None:
    """Decide once what an inbound private message asks for.

    A reply to one of the bot's own posts is a revision of that post; a
    message starting with http or www is a link; anything else is text.
    Returns None for an empty message.
    """
    text = (text or "").strip()
    if not text:
        return None
    if reply_is_from_bot and reply_to_text:
        original, _ = split_image_marker(reply_to_text)
        return RevisionRequest(original_text=original, instruction=text)
    if text.lower().startswith(("http", "www")):
        return UrlRequest(url=text.split()[0])
    return TextRequest(text=text)


def parse_search_args(arg: str, default_days: int = 5) -> tuple[str, int]:
    """Split "/search" arguments into keyword and day window.

    A trailing integer is the number of days; otherwise default_days.

    Examples:
        >>> parse_search_args("AI chips 3")
        ('AI chips', 3)
        >>> parse_search_args("AI chips")
        ('AI chips', 5)
    """
    tokens = (arg or "").split()
    if len(tokens) > 1 and tokens[-1].isdigit() and int(tokens[-1]) > 0:
        return " ".join(tokens[:-1]), int(tokens[-1])
    return " ".join(tokens), default_days


def publish_keyboard(buttons: list[list[str]]) -> InlineKeyboardMarkup | None:
    row = [
        InlineKeyboardButton(label, callback_data=data)
        for label, data in (pair for pair in buttons if len(pair) == 2)
    ]
    if not row:
        return None
    return InlineKeyboardMarkup([row])


def progress_notice(request: ContentRequest) -> str:
    if isinstance(request, RevisionRequest):
        return "✏️ Revising the post..."
    if isinstance(request, UrlRequest):
        if youtube_video_id(request.url):
            return "🎥 Video detected, reading its public details..."
        return "🔗 Reading the link..."
    if isinstance(request, DocumentRequest):
        return "📄 Reading the document..."
    return "✍️ Writing the post..."


def failure_message(exc: Exception) -> str:
    if isinstance(exc, ReadError):
        return f"⚠️ Could not read the source: {exc.cause}"
    if isinstance(exc, GenerationError):
        return f"⚠️ {exc.user_message()}"
    return "⚠️ Something went wrong while processing this request."


def _services(context: ContextTypes.DEFAULT_TYPE) -> BotServices:
    return context.application.bot_data[_SERVICES_KEY]


async def _run_and_reply(services: BotServices, chat_id: int, request: ContentRequest) -> None:
    try:
        outcome = await services.pipeline.process(request)
    except Exception as exc:  # noqa: BLE001
        level = logging.WARNING if isinstance(exc, (ReadError, GenerationError)) else logging.ERROR
        logger.log(
            level,
            "Request failed",
            exc_info=level == logging.ERROR,
            extra={"event": "request_error", "origin": request.origin, "error": str(exc)},
        )
        await services.sender.send(chat_id, failure_message(exc))
        return
    await services.sender.send(chat_id, outcome.result.content)


async def on_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.effective_message
    if message is None:
        return
    services = _services(context)
    reply = message.reply_to_message
    from_bot = bool(reply and reply.from_user and reply.from_user.id == context.bot.id)
    request = classify_input(
        message.text or "",
        reply_to_text=reply.text if reply else None,
        reply_is_from_bot=from_bot,
    )
    if request is None:
        return

    chat_id = message.chat_id
    log_event(logger, "Message received", event="message_received", origin=request.origin)
    await context.bot.send_chat_action(chat_id=chat_id, action=ChatAction.TYPING)
    await services.sender.send(chat_id, progress_notice(request))
    await _run_and_reply(services, chat_id, request)


async def on_document(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.effective_message
    if message is None or message.document is None:
        return
    services = _services(context)
    document = message.document
    chat_id = message.chat_id

    if document.mime_type not in (PDF_MIME, TEXT_MIME):
        await services.sender.send(chat_id, "⚠️ Only PDF and TXT documents are supported.")
        return

    await context.bot.send_chat_action(chat_id=chat_id, action=ChatAction.TYPING)
    try:
        tg_file = await context.bot.get_file(document.file_id)
    except TelegramError as exc:
        log_event(logger, "get_file failed", level=logging.WARNING, event="get_file_error", error=str(exc))
        await services.sender.send(chat_id, "⚠️ Could not download the document from Telegram.")
        return

    request = DocumentRequest(
        file_url=tg_file.file_path or "",
        mime_type=document.mime_type,
        file_name=document.file_name,
    )
    await services.sender.send(chat_id, progress_notice(request))
    await _run_and_reply(services, chat_id, request)


async def on_search(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.effective_message
    if message is None:
        return
    services = _services(context)
    chat_id = message.chat_id
    keyword, days = parse_search_args(" ".join(context.args or []), services.cfg.search.default_days)
    if not keyword:
        await services.sender.send(chat_id, "Usage: /search <keyword> [days]")
        return

    await context.bot.send_chat_action(chat_id=chat_id, action=ChatAction.TYPING)
    await services.sender.send(chat_id, f"🛰️ Searching \"{keyword}\" over the last {days} days...")
    try:
        brief = await services.pipeline.daily_brief(keyword, days)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Search failed", exc_info=True, extra={"event": "search_error", "keyword": keyword})
        await services.sender.send(chat_id, failure_message(exc))
        return
    if brief is None:
        await services.sender.send(chat_id, f"No recent video found for \"{keyword}\".")
        return
    if brief.image_url:
        await services.sender.send_photo(chat_id, brief.image_url)
    await services.sender.send(chat_id, f"{brief.result.content}\n\n{brief.video.url}")


async def on_channel_post(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    post = update.channel_post
    if post is None:
        return
    services = _services(context)
    gate = services.cfg.telegram.gate_channel_id
    if gate and gate not in (str(post.chat.id), f"@{post.chat.username}"):
        return
    text = (post.text or post.caption or "").strip()
    if not text:
        return

    try:
        outcome = await services.pipeline.gate_draft(text)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Gate draft failed", exc_info=True, extra={"event": "gate_error"})
        await services.sender.send(post.chat.id, failure_message(exc))
        return

    draft = attach_image_marker(outcome.result.content, outcome.image_url)
    markup = publish_keyboard(services.cfg.telegram.publish_buttons)
    await services.sender.send(post.chat.id, draft, reply_markup=markup, plain=True)
    log_event(logger, "Gate draft posted", event="gate_draft", has_image=outcome.image_url is not None)


async def on_publish(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    if query is None or query.message is None:
        return
    services = _services(context)
    target = query.data or "unknown"
    text = getattr(query.message, "text", None) or ""
    content, image_url = split_image_marker(text)

    ok = await services.webhook.dispatch(DeliveryPayload(type=target, content=content, image_url=image_url))
    if not ok:
        await query.answer(f"Dispatch to {target} failed", show_alert=True)
        return
    await query.answer(f"Sent to {target}")
    try:
        await query.edit_message_text(f"{content}\n\n✅ Published: {target}", reply_markup=None)
    except TelegramError as exc:
        log_event(logger, "Could not mark draft", level=logging.WARNING, event="edit_error", error=str(exc))


async def on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    logger.error("Unhandled error in handler", exc_info=context.error, extra={"event": "handler_error"})


async def _post_init(application: Application) -> None:
    services: BotServices = application.bot_data[_SERVICES_KEY]
    if not services.cfg.schedule.enabled:
        return
    entries = build_schedule(services.cfg, services.runner)
    scheduler = create_scheduler(entries, services.cfg.schedule.timezone)
    scheduler.start()
    application.bot_data[_SCHEDULER_KEY] = scheduler
    log_event(logger, "Scheduler started", event="scheduler_started", jobs=len(entries))


async def _post_shutdown(application: Application) -> None:
    scheduler = application.bot_data.get(_SCHEDULER_KEY)
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
    tracing.flush()


def build_application(cfg: AppConfig, pipeline: Pipeline, webhook: WebhookDispatcher) -> Application:
    """Wire handlers and services into a python-telegram-bot Application."""
    application = (
        ApplicationBuilder()
        .token(cfg.telegram.token or "")
        .post_init(_post_init)
        .post_shutdown(_post_shutdown)
        .build()
    )
    sender = ChatSender(application.bot, cfg.delivery)
    if pipeline.search is None:
        raise ValueError("Pipeline needs a SearchClient for scheduled jobs and /search")
    runner = JobRunner(cfg, pipeline, pipeline.search, sender, webhook)
    application.bot_data[_SERVICES_KEY] = BotServices(
        cfg=cfg,
        pipeline=pipeline,
        sender=sender,
        webhook=webhook,
        runner=runner,
    )

    private = filters.ChatType.PRIVATE
    application.add_handler(CommandHandler("search", on_search))
    application.add_handler(MessageHandler(private & filters.Document.ALL, on_document))
    application.add_handler(MessageHandler(private & filters.TEXT & ~filters.COMMAND, on_text))
    application.add_handler(MessageHandler(filters.UpdateType.CHANNEL_POST, on_channel_post))
    application.add_handler(CallbackQueryHandler(on_publish))
    application.add_error_handler(on_error)
    return application
