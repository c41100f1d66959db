"""Tests for the kengine entry point."""

from __future__ import annotations

from knowledge_engine.cli.main import app


def test_version_flag(runner) -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.output.startswith("kengine ")


def test_version_command(runner) -> None:
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "kengine" in result.output


def test_help_lists_commands(runner) -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for name in ("init", "ingest", "sources", "remove", "purge", "ask"):
        assert name in result.output
