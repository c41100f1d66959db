"""Shared option types and engine setup for kengine commands."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from knowledge_engine.cli.errors import err_config, err_no_db
from knowledge_engine.config import ConfigError, load_config
from knowledge_engine.db.connection import Database
from knowledge_engine.db.schema import initialize
from knowledge_engine.engine import KnowledgeEngine, build_context
from knowledge_engine.logging_setup import configure_logging

console = Console()

DEFAULT_DB = Path(".kengine.db")
DEFAULT_TENANT = "default"

DbOption = Annotated[
    Path,
    typer.Option("--db", help="Path to the knowledge database."),
]
TenantOption = Annotated[
    str,
    typer.Option("--tenant", "-t", envvar="KENGINE_TENANT", help="Tenant the command acts on."),
]
OfflineOption = Annotated[
    bool,
    typer.Option("--offline", help="Skip model providers (hash embeddings, excerpt summaries)."),
]


def open_db(db_path: Path) -> sqlite3.Connection:
    """Open (or create) the database and run migrations."""
    db = Database(db_path)
    conn = db.connect()
    initialize(conn)
    return conn


@contextmanager
def open_engine(db: Path, *, offline: bool = False) -> Iterator[KnowledgeEngine]:
    """Yield a :class:`KnowledgeEngine` for the project that owns *db*.

    Config is read from the database's directory. The in-process vector
    snapshot is saved on exit, also when the command failed, so rolled-back
    state is persisted too.
    """
    if not db.exists():
        console.print(err_no_db(str(db)))
        raise typer.Exit(1)

    project_dir = db.resolve().parent
    try:
        cfg = load_config(project_dir)
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc
    if offline:
        cfg.offline = True
    configure_logging(cfg.logging.level)

    conn = open_db(db)
    try:
        try:
            engine = KnowledgeEngine(build_context(cfg, conn, base_dir=project_dir))
        except ConfigError as exc:
            console.print(err_config(str(exc)))
            raise typer.Exit(1) from exc
        try:
            yield engine
        finally:
            engine.save()
    finally:
        conn.close()
