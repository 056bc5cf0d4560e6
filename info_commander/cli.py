"""
Command-line interface for Info Commander.

Uses Typer for the commands and Rich for console output. Loads `.env`
with python-dotenv before reading the environment.

Commands:
- serve: run the Telegram bot and the scheduler
- rewrite: one-shot pipeline run on a URL or a piece of text
- run-job: run one scheduled job immediately
- feeds: list the aggregated RSS items
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from telegram import Bot, Update
import typer

from .bot import build_application, classify_input
from .config import AppConfig, apply_env, load_config, require_credentials
from .delivery import ChatSender
from .errors import ConfigError, GenerationError, ReadError
from .feeds import fetch_all_feeds
from .llm.tracing import flush
from .logging_utils import setup_logging
from .runtime import Runtime, build_runtime
from .scheduler import BatchReport, JobRunner, build_schedule, run_entry

app = typer.Typer(add_completion=False, help="Telegram content rewriting bot.")
console = Console()


ConfigOption = typer.Option(None, "--config", "-c", exists=True, help="YAML config file.")
LogLevelOption = typer.Option(None, "--log-level", help="Logging level.")


def _load(
    config: Path | None,
    log_level: str | None,
    need_provider: bool = True,
    need_telegram: bool = True,
) -> AppConfig:
    load_dotenv()
    cfg = apply_env(load_config(str(config) if config else None))
    if log_level:
        cfg.logging.level = log_level
    if need_provider:
        try:
            require_credentials(cfg, need_telegram=need_telegram)
        except ConfigError as exc:
            console.print(f"[red]{exc}[/red]")
            raise typer.Exit(code=1) from exc
    return cfg


@app.command()
def serve(
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
    no_schedule: bool = typer.Option(False, "--no-schedule", help="Do not start cron jobs."),
):
    """Start Telegram polling and the job scheduler."""
    cfg = _load(config, log_level)
    if no_schedule:
        cfg.schedule.enabled = False
    runtime = build_runtime(cfg)
    application = build_application(cfg, runtime.pipeline, runtime.webhook)
    console.print(f"Info Commander online (model {cfg.provider.model})")
    try:
        application.run_polling(allowed_updates=Update.ALL_TYPES)
    finally:
        flush()


@app.command()
def rewrite(
    source: str = typer.Argument(..., help="URL or literal text to rewrite."),
    instruction: str | None = typer.Option(None, "--instruction", "-i", help="Revision instruction."),
    response_format: str | None = typer.Option(None, "--format", help="Response format: json or text."),
    image: bool = typer.Option(False, "--image/--no-image", help="Resolve an image for the post."),
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
):
    """Run the pipeline once and print the post."""
    cfg = _load(config, log_level, need_telegram=False)
    if response_format:
        cfg.rewrite.response_format = response_format
    request = classify_input(source)
    if request is None:
        console.print("[red]Nothing to rewrite.[/red]")
        raise typer.Exit(code=1)

    runtime = build_runtime(cfg)
    try:
        outcome = asyncio.run(
            runtime.pipeline.process(request, instruction=instruction, resolve_image=image)
        )
    except ReadError as exc:
        console.print(f"[red]Could not read the source:[/red] {exc.cause}")
        raise typer.Exit(code=1) from exc
    except GenerationError as exc:
        console.print(f"[red]{exc.user_message()}[/red]")
        raise typer.Exit(code=1) from exc
    finally:
        flush()

    result = outcome.result
    console.print(Panel(result.content, title=f"{outcome.extracted.kind} · {result.status}"))
    if result.image_decision is not None:
        console.print(f"Image decision: {result.image_decision.type} / {result.image_decision.keyword}")
    if outcome.image_url:
        console.print(f"Image: {outcome.image_url}")


@app.command("run-job")
def run_job(
    name: str = typer.Argument(..., help="Job name: popular, monitor, trends or daily."),
    no_delay: bool = typer.Option(False, "--no-delay", help="Skip the pause between items."),
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
):
    """Run one scheduled job now instead of waiting for its cron time."""
    cfg = _load(config, log_level, need_telegram=False)
    runtime = build_runtime(cfg)
    try:
        report = asyncio.run(_run_job(runtime, name, no_delay))
    finally:
        flush()
    if report is None:
        console.print(f"[red]Job {name!r} is unknown or not enabled by the current configuration.[/red]")
        raise typer.Exit(code=1)
    console.print(f"{name}: {len(report.succeeded)} succeeded, {len(report.failed)} failed")
    for item, error in report.failed:
        console.print(f"  [yellow]{item}[/yellow]: {error}")


async def _run_job(runtime: Runtime, name: str, no_delay: bool) -> BatchReport | None:
    cfg = runtime.cfg

    async def no_sleep(_: float) -> None:
        return None

    sleep = no_sleep if no_delay else asyncio.sleep

    if not cfg.telegram.token:
        runner = JobRunner(cfg, runtime.pipeline, runtime.search, None, runtime.webhook)
        return await _run_named(cfg, runner, name, sleep)

    async with Bot(cfg.telegram.token) as bot:
        sender = ChatSender(bot, cfg.delivery)
        runner = JobRunner(cfg, runtime.pipeline, runtime.search, sender, runtime.webhook)
        return await _run_named(cfg, runner, name, sleep)


async def _run_named(cfg: AppConfig, runner: JobRunner, name: str, sleep) -> BatchReport | None:
    entries = {entry.name: entry for entry in build_schedule(cfg, runner)}
    entry = entries.get(name)
    if entry is None:
        return None
    return await run_entry(entry, sleep=sleep)


@app.command()
def feeds(
    config: Path | None = ConfigOption,
    log_level: str | None = LogLevelOption,
):
    """Aggregate the configured RSS sources and print them."""
    cfg = _load(config, log_level, need_provider=False)
    setup_logging(cfg.logging)
    items = asyncio.run(fetch_all_feeds(cfg.feeds, timeout=cfg.fetch.timeout_seconds))

    table = Table(title=f"{len(items)} items")
    table.add_column("Source", style="cyan", no_wrap=True)
    table.add_column("Title")
    table.add_column("Published", style="dim")
    for item in items:
        table.add_row(item.source, f"[link={item.url}]{item.title}[/link]", item.published or "")
    console.print(table)


if __name__ == "__main__":
    app()
