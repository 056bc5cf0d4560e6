"""
Info Commander - Telegram content rewriting bot.

This package reads a URL, document or raw text sent to a Telegram bot,
rewrites it into a social-media post with an LLM, and delivers the result
back to the chat or to an outbound automation webhook. A cron scheduler
runs the same pipeline for configured YouTube, Google and RSS sources.

Main entry point is the CLI via `info-commander serve`.

Example:
    $ info-commander serve -c config.yaml
"""

__all__ = ["__version__", "Pipeline", "SourceReader", "RewriteEngine", "ImageResolver"]
__version__ = "0.1.0"

from .images import ImageResolver
from .pipeline import Pipeline
from .reader import SourceReader
from .rewrite import RewriteEngine
