"""Tests for kengine init."""

from __future__ import annotations

from pathlib import Path

import yaml

from knowledge_engine.cli.main import app


def test_init_creates_db_and_config(tmp_path: Path, runner) -> None:
    result = runner.invoke(app, ["init", str(tmp_path)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / ".kengine.db").exists()
    assert (tmp_path / "kengine.yaml").exists()
    assert "Project initialized" in result.output


def test_init_config_is_valid_yaml(tmp_path: Path, runner) -> None:
    runner.invoke(app, ["init", str(tmp_path)])
    data = yaml.safe_load((tmp_path / "kengine.yaml").read_text(encoding="utf-8"))
    assert data["vector_store"]["backend"] == "memory"
    assert data["chunking"]["chunk_size"] > data["chunking"]["overlap"]


def test_init_twice_keeps_config(tmp_path: Path, runner) -> None:
    runner.invoke(app, ["init", str(tmp_path)])
    cfg = tmp_path / "kengine.yaml"
    cfg.write_text("retrieval:\n  top_k: 7\n", encoding="utf-8")

    result = runner.invoke(app, ["init", str(tmp_path)])
    assert result.exit_code == 0
    assert "already exists" in result.output
    assert "top_k: 7" in cfg.read_text(encoding="utf-8")


def test_init_creates_missing_directory(tmp_path: Path, runner) -> None:
    target = tmp_path / "nested" / "project"
    result = runner.invoke(app, ["init", str(target)])
    assert result.exit_code == 0
    assert (target / ".kengine.db").exists()
