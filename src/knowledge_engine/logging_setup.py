"""Logging configuration for the CLI and embedding applications."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_PACKAGE_LOGGER = "knowledge_engine"


def configure_logging(level: str = "INFO", console: Console | None = None) -> logging.Logger:
    """Attach a single RichHandler to the package logger and set its level.

    Safe to call repeatedly; the handler is replaced rather than duplicated.
    LiteLLM's own logger is capped at WARNING so provider chatter stays out
    of CLI output.
    """
    logger = logging.getLogger(_PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.getLevelName(level.upper()) if isinstance(level, str) else level)
    logger.propagate = False

    logging.getLogger("LiteLLM").setLevel(logging.WARNING)
    return logger
