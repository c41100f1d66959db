"""Fixtures for CLI tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from knowledge_engine.cli.main import app


@pytest.fixture(autouse=True)
def _no_provider_keys(monkeypatch):
    """CLI tests never reach a real model provider."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("KENGINE_TENANT", raising=False)
    # Wide console so Rich does not wrap table cells or panel lines.
    monkeypatch.setenv("COLUMNS", "200")


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def project(tmp_path: Path, runner: CliRunner) -> Path:
    """Initialised project directory; returns the database path."""
    result = runner.invoke(app, ["init", str(tmp_path)])
    assert result.exit_code == 0, result.output
    return tmp_path / ".kengine.db"
