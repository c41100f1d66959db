"""kengine ingest: add knowledge for a tenant.

Subcommands:
  text   free text (inline or read from a file) → TEXT source
  pages  crawler output, JSON array or JSON-Lines → URL + FILE sources
  file   local .pdf / .txt / .md files → FILE sources

Re-ingesting a page URL or file path replaces the previous chunks.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from knowledge_engine.cli.common import (
    DEFAULT_DB,
    DEFAULT_TENANT,
    DbOption,
    OfflineOption,
    TenantOption,
    open_engine,
)
from knowledge_engine.cli.errors import (
    err_empty_input,
    err_file_not_found,
    err_insufficient_content,
    err_provider,
    err_unreadable_file,
    err_unsupported_file,
    warn_offline,
)
from knowledge_engine.db.models import KnowledgeSource
from knowledge_engine.engine import KnowledgeEngine
from knowledge_engine.errors import EmptyInputError, InsufficientContentError, ProviderError
from knowledge_engine.ingest.files import SUPPORTED_EXTS
from knowledge_engine.ingest.pages import load_pages

console = Console()

ingest_app = typer.Typer(help="Ingest text, crawled pages or files.", no_args_is_help=True)


@ingest_app.command("text")
def ingest_text_cmd(
    label: Annotated[str, typer.Option("--label", "-l", help="Source label / document title.")],
    content: Annotated[
        str | None,
        typer.Option("--content", "-c", help="Text to ingest."),
    ] = None,
    file: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="Read the text from this file instead."),
    ] = None,
    added_by: Annotated[
        str | None,
        typer.Option("--added-by", help="Who added the source (stored in metadata)."),
    ] = None,
    tenant: TenantOption = DEFAULT_TENANT,
    db: DbOption = DEFAULT_DB,
    offline: OfflineOption = False,
) -> None:
    """Ingest free text as a TEXT source."""
    if content is None and file is None:
        console.print("[red]Error:[/] Pass --content TEXT or --file PATH.")
        raise typer.Exit(1)
    if content is None and not file.is_file():
        console.print(err_file_not_found(str(file)))
        raise typer.Exit(1)
    text = content if content is not None else file.read_text(encoding="utf-8", errors="replace")

    with open_engine(db, offline=offline) as engine:
        _maybe_warn_offline(engine)
        try:
            source = asyncio.run(engine.add_text_source(tenant, label, text, added_by))
        except EmptyInputError:
            console.print(err_empty_input("Text content"))
            raise typer.Exit(1)
        except InsufficientContentError:
            console.print(err_insufficient_content(label))
            raise typer.Exit(1)
        except ProviderError as exc:
            console.print(err_provider(str(exc)))
            raise typer.Exit(1)
        _print_source(source)


@ingest_app.command("pages")
def ingest_pages_cmd(
    path: Annotated[Path, typer.Argument(help="Crawler output: JSON array or JSON-Lines.")],
    tenant: TenantOption = DEFAULT_TENANT,
    db: DbOption = DEFAULT_DB,
    offline: OfflineOption = False,
) -> None:
    """Ingest crawled pages and their attached PDFs."""
    if not path.is_file():
        console.print(err_file_not_found(str(path)))
        raise typer.Exit(1)
    try:
        pages = load_pages(path)
    except (ValueError, json.JSONDecodeError) as exc:
        console.print(f"[red]Error:[/] Cannot parse {path}: {exc}")
        raise typer.Exit(1) from exc
    if not pages:
        console.print("[yellow]No page records found.[/]")
        raise typer.Exit(0)

    with open_engine(db, offline=offline) as engine:
        _maybe_warn_offline(engine)
        report = asyncio.run(engine.ingest_pages(tenant, pages))

    console.print(
        f"\n[green]✓[/] {len(report.ingested)} ingested  "
        f"[dim]{len(report.skipped)} skipped[/]  "
        f"{'[red]' if report.failed else '[dim]'}{len(report.failed)} failed[/]"
    )
    for uri, message in report.failed.items():
        console.print(f"  [red]✗[/] {uri}: {message}")
    if report.failed:
        raise typer.Exit(1)


@ingest_app.command("file")
def ingest_file_cmd(
    paths: Annotated[list[Path], typer.Argument(help="Files to ingest (.pdf, .txt, .md).")],
    tenant: TenantOption = DEFAULT_TENANT,
    db: DbOption = DEFAULT_DB,
    offline: OfflineOption = False,
) -> None:
    """Ingest local files as FILE sources."""
    failures = 0
    with open_engine(db, offline=offline) as engine:
        _maybe_warn_offline(engine)
        for path in paths:
            if path.suffix.lower() not in SUPPORTED_EXTS:
                console.print(err_unsupported_file(str(path), sorted(SUPPORTED_EXTS)))
                failures += 1
                continue
            try:
                source = asyncio.run(engine.add_file_source(tenant, path))
            except FileNotFoundError:
                console.print(err_file_not_found(str(path)))
                failures += 1
                continue
            except ValueError as exc:
                console.print(err_unreadable_file(str(path), str(exc)))
                failures += 1
                continue
            except InsufficientContentError:
                console.print(err_insufficient_content(path.name))
                failures += 1
                continue
            except ProviderError as exc:
                console.print(err_provider(str(exc)))
                failures += 1
                continue
            _print_source(source)
    if failures:
        raise typer.Exit(1)


# ------------------------------------------------------------------
# Output helpers
# ------------------------------------------------------------------


def _maybe_warn_offline(engine: KnowledgeEngine) -> None:
    if engine.context.completion is None and engine.context.config.offline is False:
        console.print(warn_offline())


def _print_source(source: KnowledgeSource) -> None:
    table = Table(show_header=False, box=None)
    table.add_row("[green]✓[/] Ingested", f"[bold]{source.label}[/]")
    table.add_row("  id", source.id)
    table.add_row("  kind", source.kind.value)
    table.add_row("  status", source.status.value)
    console.print(table)
