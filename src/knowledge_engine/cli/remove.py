"""kengine remove: delete a source and everything derived from it.

Deletes in order:
  - vector-index entries of the source
  - embedding records
  - the source row

Usage:
  kengine remove <source-id> --tenant acme
  kengine remove <source-id> --tenant acme --yes
"""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from rich.console import Console

from knowledge_engine.cli.common import (
    DEFAULT_DB,
    DEFAULT_TENANT,
    DbOption,
    TenantOption,
    open_engine,
)
from knowledge_engine.cli.errors import err_source_not_found
from knowledge_engine.errors import SourceNotFoundError

console = Console()


def remove_cmd(
    source_id: Annotated[str, typer.Argument(help="Id of the source to remove.")],
    tenant: TenantOption = DEFAULT_TENANT,
    db: DbOption = DEFAULT_DB,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Remove a source and all its chunks from the knowledge base."""
    with open_engine(db, offline=True) as engine:
        repo = engine.context.repo
        existing = repo.get_source(source_id, tenant)
        if existing is None:
            console.print(err_source_not_found(source_id, tenant))
            raise typer.Exit(1)

        chunk_count = repo.count_embeddings_by_source(existing.id)
        console.print(f"\nRemove source: [bold]{existing.label}[/]")
        console.print(f"  Kind: {existing.kind.value}  |  Chunks: {chunk_count}")

        if not yes and not typer.confirm("Confirm removal?", default=False):
            console.print("[dim]Cancelled.[/]")
            raise typer.Exit(0)

        try:
            removed = asyncio.run(engine.delete_source(tenant, existing.id))
        except SourceNotFoundError:
            console.print(err_source_not_found(source_id, tenant))
            raise typer.Exit(1)

    console.print(f"\n[green]✓[/] Removed: {existing.label}")
    console.print(f"  {removed} chunks deleted")
