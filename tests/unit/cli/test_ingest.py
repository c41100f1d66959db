"""Tests for kengine ingest text / pages / file."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

from pypdf.errors import PdfReadError

from knowledge_engine.cli.main import app
from knowledge_engine.db.connection import Database
from knowledge_engine.db.models import KnowledgeSource, SourceKind, SourceStatus
from knowledge_engine.db.repository import Repository

_LONG = "The warranty covers parts and labour for two full years after purchase. " * 5


def _sources(db_path: Path, tenant: str = "default") -> list[KnowledgeSource]:
    conn = Database(db_path).connect()
    try:
        return Repository(conn).list_sources(tenant)
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# kengine ingest text
# ---------------------------------------------------------------------------


def test_ingest_text_inline(project: Path, runner) -> None:
    result = runner.invoke(
        app,
        ["ingest", "text", "--label", "FAQ", "--content", _LONG,
         "--tenant", "acme", "--db", str(project), "--offline"],
    )
    assert result.exit_code == 0, result.output
    assert "Ingested" in result.output

    (source,) = _sources(project, "acme")
    assert source.kind == SourceKind.TEXT
    assert source.status == SourceStatus.READY
    assert source.embedding_count > 0


def test_ingest_text_from_file(project: Path, runner, tmp_path: Path) -> None:
    note = tmp_path / "note.txt"
    note.write_text(_LONG, encoding="utf-8")
    result = runner.invoke(
        app,
        ["ingest", "text", "--label", "Note", "--file", str(note),
         "--added-by", "ops", "--db", str(project), "--offline"],
    )
    assert result.exit_code == 0, result.output
    (source,) = _sources(project)
    assert source.metadata_dict["added_by"] == "ops"


def test_ingest_text_requires_content(project: Path, runner) -> None:
    result = runner.invoke(app, ["ingest", "text", "--label", "x", "--db", str(project)])
    assert result.exit_code == 1
    assert "--content" in result.output


def test_ingest_text_blank_content(project: Path, runner) -> None:
    result = runner.invoke(
        app, ["ingest", "text", "--label", "x", "--content", "   ", "--db", str(project), "--offline"]
    )
    assert result.exit_code == 1
    assert "empty" in result.output
    assert _sources(project) == []


def test_ingest_text_tenant_from_env(project: Path, runner, monkeypatch) -> None:
    monkeypatch.setenv("KENGINE_TENANT", "globex")
    result = runner.invoke(
        app, ["ingest", "text", "--label", "x", "--content", _LONG, "--db", str(project), "--offline"]
    )
    assert result.exit_code == 0, result.output
    assert len(_sources(project, "globex")) == 1
    assert _sources(project, "default") == []


def test_ingest_without_key_warns(project: Path, runner) -> None:
    result = runner.invoke(
        app, ["ingest", "text", "--label", "x", "--content", _LONG, "--db", str(project)]
    )
    assert result.exit_code == 0, result.output
    assert "without model providers" in result.output


def test_ingest_no_db(tmp_path: Path, runner) -> None:
    result = runner.invoke(
        app,
        ["ingest", "text", "--label", "x", "--content", "y", "--db", str(tmp_path / "none.db")],
    )
    assert result.exit_code == 1
    assert "kengine init" in result.output


# ---------------------------------------------------------------------------
# kengine ingest pages
# ---------------------------------------------------------------------------


def _write_pages(path: Path) -> Path:
    pages = [
        {"page_url": "https://acme.test/warranty", "title": "Warranty", "main_text": _LONG},
        {"page_url": "https://acme.test/", "title": "Home", "main_text": "Home | About"},
    ]
    path.write_text("\n".join(json.dumps(p) for p in pages), encoding="utf-8")
    return path


def test_ingest_pages_jsonl(project: Path, runner, tmp_path: Path) -> None:
    crawl = _write_pages(tmp_path / "crawl.jsonl")
    result = runner.invoke(
        app, ["ingest", "pages", str(crawl), "--tenant", "acme", "--db", str(project), "--offline"]
    )
    assert result.exit_code == 0, result.output
    assert "1 ingested" in result.output
    assert "1 skipped" in result.output

    (source,) = _sources(project, "acme")
    assert source.uri == "https://acme.test/warranty"
    assert source.kind == SourceKind.URL


def test_ingest_pages_missing_file(project: Path, runner, tmp_path: Path) -> None:
    result = runner.invoke(
        app, ["ingest", "pages", str(tmp_path / "nope.json"), "--db", str(project)]
    )
    assert result.exit_code == 1
    assert "not found" in result.output


def test_ingest_pages_twice_replaces_chunks(project: Path, runner, tmp_path: Path) -> None:
    crawl = _write_pages(tmp_path / "crawl.jsonl")
    args = ["ingest", "pages", str(crawl), "--db", str(project), "--offline"]
    runner.invoke(app, args)
    first = _sources(project)[0].embedding_count

    result = runner.invoke(app, args)
    assert result.exit_code == 0, result.output
    (source,) = _sources(project)
    assert source.embedding_count == first


# ---------------------------------------------------------------------------
# kengine ingest file
# ---------------------------------------------------------------------------


def test_ingest_file_markdown(project: Path, runner, tmp_path: Path) -> None:
    doc = tmp_path / "manual.md"
    doc.write_text("# Manual\n\n" + _LONG, encoding="utf-8")
    result = runner.invoke(app, ["ingest", "file", str(doc), "--db", str(project), "--offline"])
    assert result.exit_code == 0, result.output

    (source,) = _sources(project)
    assert source.kind == SourceKind.FILE
    assert source.metadata_dict["filename"] == "manual.md"


def test_ingest_file_unsupported_extension(project: Path, runner, tmp_path: Path) -> None:
    doc = tmp_path / "sheet.xlsx"
    doc.write_bytes(b"\x00")
    result = runner.invoke(app, ["ingest", "file", str(doc), "--db", str(project), "--offline"])
    assert result.exit_code == 1
    assert "Unsupported file type" in result.output


def test_ingest_file_too_short_marks_failed(project: Path, runner, tmp_path: Path) -> None:
    doc = tmp_path / "stub.txt"
    doc.write_text("tiny", encoding="utf-8")
    result = runner.invoke(app, ["ingest", "file", str(doc), "--db", str(project), "--offline"])
    assert result.exit_code == 1
    assert "too little text" in result.output
    (source,) = _sources(project)
    assert source.status == SourceStatus.FAILED


def test_ingest_file_corrupt_pdf(project: Path, runner, tmp_path: Path) -> None:
    doc = tmp_path / "broken.pdf"
    doc.write_bytes(b"not a pdf")
    with patch(
        "knowledge_engine.ingest.files.pypdf.PdfReader",
        side_effect=PdfReadError("EOF marker not found"),
    ):
        result = runner.invoke(app, ["ingest", "file", str(doc), "--db", str(project), "--offline"])
    assert result.exit_code == 1
    assert "Cannot read" in result.output
    assert "EOF marker not found" in result.output
    assert not isinstance(result.exception, PdfReadError)
    assert _sources(project) == []


def test_ingest_file_missing(project: Path, runner, tmp_path: Path) -> None:
    result = runner.invoke(
        app, ["ingest", "file", str(tmp_path / "gone.md"), "--db", str(project), "--offline"]
    )
    assert result.exit_code == 1
    assert "File not found" in result.output


def test_ingest_text_missing_file(project: Path, runner, tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["ingest", "text", "--label", "x", "--file", str(tmp_path / "gone.txt"),
         "--db", str(project), "--offline"],
    )
    assert result.exit_code == 1
    assert "File not found" in result.output
    assert not isinstance(result.exception, FileNotFoundError)
