"""
Delivery Sink: chat messages and the outbound automation webhook.

Chat delivery splits text into platform-sized chunks and sends them in
order. Each chunk is tried with the rich parse mode first and once more
as plain text; a chunk that fails both is logged and dropped.

Webhook dispatch is a single POST: at most once, with no delivery
guarantee. Failures are logged and reported as False.
"""

from __future__ import annotations

import asyncio
import logging
import math
import re
from typing import Any, Awaitable, Callable

import httpx
from telegram import Bot, InlineKeyboardMarkup, Message
from telegram.error import TelegramError

from .config import DeliveryConfig, WebhookConfig
from .core.types import DeliveryPayload
from .logging_utils import log_event


logger = logging.getLogger(__name__)

IMAGE_MARKER = "🖼️ IMAGE_SRC: "
_IMAGE_MARKER_RE = re.compile(r"\s*🖼️?\s*IMAGE_SRC:\s*(\S+)\s*$")

PHOTO_CAPTION_LIMIT = 1024


def chunk_text(text: str, max_len: int) -> list[str]:
    """Split text into consecutive slices of at most max_len characters.

    Examples:
        >>> [len(c) for c in chunk_text("A" * 9000, 4000)]
        [4000, 4000, 1000]
    """
    if max_len <= 0:
        raise ValueError("max_len must be positive")
    if not text:
        return []
    count = math.ceil(len(text) / max_len)
    return [text[i * max_len : (i + 1) * max_len] for i in range(count)]


def attach_image_marker(content: str, image_url: str | None) -> str:
    """Append the image line that carries the URL through the chat message."""
    if not image_url:
        return content
    return f"{content}\n\n{IMAGE_MARKER}{image_url}"


def split_image_marker(text: str) -> tuple[str, str | None]:
    """Separate a draft's content from its trailing image line."""
    match = _IMAGE_MARKER_RE.search(text or "")
    if not match:
        return (text or "").strip(), None
    return text[: match.start()].strip(), match.group(1)


class ChatSender:
    """Send text and photos to a chat with the plain-text retry policy."""

    def __init__(
        self,
        bot: Bot,
        cfg: DeliveryConfig,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.bot = bot
        self.cfg = cfg
        self.sleep = sleep

    async def send(
        self,
        chat_id: int | str,
        text: str,
        reply_markup: InlineKeyboardMarkup | None = None,
        plain: bool = False,
    ) -> int:
        """Send text in chunks; return how many chunks were delivered.

        The reply markup, if any, is attached to the last chunk. With
        plain=True no parse mode is used, so the stored message text is
        exactly what was sent.
        """
        chunks = chunk_text(text, self.cfg.max_message_chars)
        delivered = 0
        for idx, chunk in enumerate(chunks):
            is_last = idx == len(chunks) - 1
            message = await self._send_chunk(chat_id, chunk, reply_markup if is_last else None, plain)
            if message is not None:
                delivered += 1
            if not is_last:
                await self.sleep(self.cfg.chunk_delay_seconds)
        return delivered

    async def send_photo(self, chat_id: int | str, url: str, caption: str | None = None) -> bool:
        """Send a photo; on failure the caption is delivered as text instead."""
        inline_caption = caption if caption and len(caption) <= PHOTO_CAPTION_LIMIT else None
        try:
            await self.bot.send_photo(chat_id=chat_id, photo=url, caption=inline_caption)
        except TelegramError as exc:
            log_event(
                logger,
                "Photo send failed, falling back to text",
                level=logging.WARNING,
                event="photo_send_error",
                chat_id=str(chat_id),
                error=str(exc),
            )
            if caption:
                await self.send(chat_id, caption)
            return False
        if caption and inline_caption is None:
            await self.send(chat_id, caption)
        return True

    async def _send_chunk(
        self,
        chat_id: int | str,
        chunk: str,
        reply_markup: InlineKeyboardMarkup | None,
        plain: bool = False,
    ) -> Message | None:
        if not plain:
            try:
                return await self.bot.send_message(
                    chat_id=chat_id,
                    text=chunk,
                    parse_mode=self.cfg.parse_mode,
                    reply_markup=reply_markup,
                )
            except TelegramError as exc:
                log_event(
                    logger,
                    "Rich send rejected, retrying as plain text",
                    level=logging.DEBUG,
                    event="send_retry_plain",
                    chat_id=str(chat_id),
                    error=str(exc),
                )
        try:
            return await self.bot.send_message(chat_id=chat_id, text=chunk, reply_markup=reply_markup)
        except TelegramError as exc:
            log_event(
                logger,
                "Chunk dropped",
                level=logging.ERROR,
                event="send_dropped",
                chat_id=str(chat_id),
                chars=len(chunk),
                error=str(exc),
            )
            return None


class WebhookDispatcher:
    """Post DeliveryPayloads to the automation webhook, at most once."""

    def __init__(self, cfg: WebhookConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.cfg = cfg
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.cfg.url)

    async def dispatch(self, payload: DeliveryPayload) -> bool:
        if not self.cfg.url:
            log_event(logger, "Webhook not configured, skipping", event="webhook_skipped", type=payload.type)
            return False
        try:
            async with httpx.AsyncClient(
                timeout=self.cfg.timeout_seconds, transport=self.transport
            ) as client:
                resp = await client.post(self.cfg.url, json=payload.to_dict())
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            log_event(
                logger,
                "Webhook dispatch failed",
                level=logging.WARNING,
                event="webhook_error",
                type=payload.type,
                error=f"{type(exc).__name__}: {exc}",
            )
            return False
        log_event(logger, "Webhook dispatched", event="webhook_sent", type=payload.type)
        return True
