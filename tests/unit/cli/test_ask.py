"""Tests for kengine ask."""

from __future__ import annotations

from pathlib import Path

from knowledge_engine.cli.main import app

_TEXT = "The secret phrase is 'pipeline works great'."


def _ingest(runner, db: Path) -> None:
    result = runner.invoke(
        app,
        ["ingest", "text", "--label", "Secret", "--content", _TEXT,
         "--tenant", "acme", "--db", str(db), "--offline"],
    )
    assert result.exit_code == 0, result.output


def test_ask_offline_answers_from_context(project: Path, runner) -> None:
    _ingest(runner, project)
    result = runner.invoke(
        app,
        ["ask", "What is the secret phrase?", "--tenant", "acme",
         "--db", str(project), "--offline", "--bot-name", "Helper"],
    )
    assert result.exit_code == 0, result.output
    assert "pipeline works great" in result.output
    assert "Helper" in result.output


def test_ask_context_only(project: Path, runner) -> None:
    _ingest(runner, project)
    result = runner.invoke(
        app,
        ["ask", "secret?", "--tenant", "acme", "--db", str(project), "--offline", "--context-only"],
    )
    assert result.exit_code == 0, result.output
    assert "Chunk 1" in result.output
    assert "Assistant" not in result.output


def test_ask_unknown_tenant(project: Path, runner) -> None:
    _ingest(runner, project)
    result = runner.invoke(
        app, ["ask", "secret?", "--tenant", "globex", "--db", str(project), "--offline"]
    )
    assert result.exit_code == 0
    assert "No knowledge found" in result.output
    assert "pipeline works great" not in result.output


def test_ask_blank_question(project: Path, runner) -> None:
    result = runner.invoke(app, ["ask", "  ", "--db", str(project), "--offline"])
    assert result.exit_code == 1
    assert "empty" in result.output
