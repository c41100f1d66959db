"""Tests for package logging setup."""

from __future__ import annotations

import io
import logging

from rich.console import Console
from rich.logging import RichHandler

from knowledge_engine.logging_setup import configure_logging


def test_single_handler_after_repeated_calls():
    configure_logging("INFO")
    logger = configure_logging("DEBUG")
    assert sum(isinstance(h, RichHandler) for h in logger.handlers) == 1
    assert logger.level == logging.DEBUG
    assert logger.propagate is False


def test_messages_reach_console():
    buf = io.StringIO()
    configure_logging("INFO", console=Console(file=buf, width=200))
    logging.getLogger("knowledge_engine.sources").info("Ingested source %s", "abc")
    assert "Ingested source abc" in buf.getvalue()


def test_level_filters_debug():
    buf = io.StringIO()
    configure_logging("WARNING", console=Console(file=buf, width=200))
    logging.getLogger("knowledge_engine.retriever").info("hidden")
    assert "hidden" not in buf.getvalue()


def test_litellm_logger_capped():
    configure_logging("DEBUG")
    assert logging.getLogger("LiteLLM").level == logging.WARNING
