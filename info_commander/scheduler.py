"""
Cron-driven jobs.

The schedule is a static table of ScheduleEntry rows registered on an
APScheduler AsyncIOScheduler that shares the bot's event loop. Each job
walks its items one at a time through run_batch, pausing between items;
a failing item is logged and the batch moves on.

Jobs:
- popular: most-popular YouTube videos, one admin-chat report per region
- monitor: new uploads of watched channels, alerted to the admin chat
- trends: Google Trends top searches per geo, reported to the admin chat
- daily: topic brief (video + web search + LLM + image) sent to the webhook
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
from typing import Any, Awaitable, Callable, Iterable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .config import AppConfig
from .core.types import DeliveryPayload, ScheduleEntry
from .delivery import ChatSender, WebhookDispatcher
from .logging_utils import log_event
from .pipeline import Pipeline
from .search import SearchClient


logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class BatchReport:
    """Outcome of one batch run.

    Attributes:
        succeeded: Items whose handler returned normally
        failed: (item, error message) for every item whose handler raised
    """

    succeeded: list[str] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)


async def run_batch(
    items: Iterable[str],
    handler: Callable[[str], Awaitable[Any]],
    delay_seconds: float = 0.0,
    name: str = "batch",
    sleep: Sleep = asyncio.sleep,
) -> BatchReport:
    """Run handler over items sequentially, isolating per-item failures.

    Sleeps delay_seconds between items (not after the last). Never raises
    for a handler error.
    """
    report = BatchReport()
    pending = [item for item in items if item]
    for idx, item in enumerate(pending):
        try:
            await handler(item)
        except Exception as exc:  # noqa: BLE001
            report.failed.append((item, f"{type(exc).__name__}: {exc}"))
            logger.warning(
                "Job item failed",
                exc_info=True,
                extra={"event": "job_item_error", "job": name, "item": item},
            )
        else:
            report.succeeded.append(item)
        if delay_seconds > 0 and idx < len(pending) - 1:
            await sleep(delay_seconds)

    log_event(
        logger,
        "Job finished",
        event="job_done",
        job=name,
        succeeded=len(report.succeeded),
        failed=len(report.failed),
    )
    return report


async def run_entry(entry: ScheduleEntry, sleep: Sleep = asyncio.sleep) -> BatchReport:
    return await run_batch(entry.keywords, entry.handler, entry.delay_seconds, entry.name, sleep)


class JobRunner:
    """Job bodies, one call per item."""

    def __init__(
        self,
        cfg: AppConfig,
        pipeline: Pipeline,
        search: SearchClient,
        sender: ChatSender | None,
        webhook: WebhookDispatcher,
    ):
        self.cfg = cfg
        self.pipeline = pipeline
        self.search = search
        self.sender = sender
        self.webhook = webhook

    @property
    def admin_chat_id(self) -> str | None:
        return self.cfg.telegram.admin_chat_id

    async def popular(self, region: str) -> None:
        videos = await self.search.most_popular(region)
        if not videos:
            raise RuntimeError(f"No popular videos returned for {region}")
        lines = [f"🔥 YouTube trending [{region}]"]
        for video in videos:
            channel = f" ({video.channel})" if video.channel else ""
            lines.append(f"• {video.title}{channel}\n{video.url}")
        await self._report("\n".join(lines))

    async def monitor(self, channel_id: str) -> None:
        videos = await self.search.channel_latest(channel_id, days=1, limit=3)
        log_event(logger, "Channel checked", event="monitor_checked", channel=channel_id, found=len(videos))
        for video in videos:
            await self._report(f"🚨 New upload from {video.channel or channel_id}\n{video.title}\n{video.url}")

    async def trends(self, geo: str) -> None:
        items = await self.search.fetch_trends(geo)
        if not items:
            raise RuntimeError(f"No trends returned for {geo}")
        lines = [f"🌎 Google Trends [{geo}]"]
        for idx, item in enumerate(items, start=1):
            lines.append(f"{idx}. {item.title} ({item.traffic})")
        await self._report("\n".join(lines))

    async def daily(self, topic: str) -> None:
        brief = await self.pipeline.daily_brief(topic, days=self.cfg.schedule.daily_days)
        if brief is None:
            return
        payload = DeliveryPayload(
            type="auto_daily",
            content=brief.result.content,
            image_url=brief.image_url,
            source_url=brief.video.url,
        )
        await self.webhook.dispatch(payload)

    async def _report(self, text: str) -> None:
        if self.sender is None or not self.admin_chat_id:
            return
        await self.sender.send(self.admin_chat_id, text)


def build_schedule(cfg: AppConfig, runner: JobRunner) -> list[ScheduleEntry]:
    """Static job table; jobs without items or without a target are left out."""
    sched = cfg.schedule
    has_chat = bool(cfg.telegram.admin_chat_id)
    has_youtube = runner.search.configured

    candidates = [
        (
            has_chat and has_youtube,
            ScheduleEntry("popular", sched.popular_cron, list(sched.popular_regions), runner.popular),
        ),
        (
            has_chat and has_youtube,
            ScheduleEntry(
                "monitor",
                sched.monitor_cron,
                list(sched.monitor_channels),
                runner.monitor,
                sched.monitor_delay_seconds,
            ),
        ),
        (
            has_chat,
            ScheduleEntry("trends", sched.trends_cron, list(sched.trends_geos), runner.trends),
        ),
        (
            runner.webhook.configured and has_youtube,
            ScheduleEntry(
                "daily",
                sched.daily_cron,
                list(sched.daily_topics),
                runner.daily,
                sched.daily_delay_seconds,
            ),
        ),
    ]

    entries = []
    for enabled, entry in candidates:
        if enabled and entry.keywords:
            entries.append(entry)
        else:
            log_event(logger, "Job not registered", level=logging.DEBUG, event="job_skipped", job=entry.name)
    return entries


def create_scheduler(entries: list[ScheduleEntry], timezone: str) -> AsyncIOScheduler:
    """Register every entry on a new (not yet started) AsyncIOScheduler."""
    scheduler = AsyncIOScheduler(timezone=timezone)
    for entry in entries:
        scheduler.add_job(
            run_entry,
            CronTrigger.from_crontab(entry.cron_expression, timezone=timezone),
            args=[entry],
            id=entry.name,
            name=entry.name,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=300,
        )
        log_event(
            logger,
            "Job registered",
            event="job_registered",
            job=entry.name,
            cron=entry.cron_expression,
            items=len(entry.keywords),
        )
    return scheduler
