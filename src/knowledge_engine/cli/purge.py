"""kengine purge: drop all knowledge of one tenant."""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from rich.console import Console

from knowledge_engine.cli.common import DEFAULT_DB, DbOption, open_engine

console = Console()


def purge_cmd(
    tenant: Annotated[
        str,
        typer.Option("--tenant", "-t", envvar="KENGINE_TENANT", help="Tenant to purge."),
    ],
    db: DbOption = DEFAULT_DB,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
) -> None:
    """Delete every source and vector of a tenant."""
    with open_engine(db, offline=True) as engine:
        count = len(engine.list_sources(tenant))
        if count == 0:
            console.print(f"[dim]Tenant '{tenant}' has no sources.[/]")
            raise typer.Exit(0)

        console.print(f"\nPurge tenant [bold]{tenant}[/]: {count} sources")
        if not yes and not typer.confirm("Confirm purge?", default=False):
            console.print("[dim]Cancelled.[/]")
            raise typer.Exit(0)

        removed = asyncio.run(engine.purge_tenant(tenant))

    console.print(f"\n[green]✓[/] Purged {removed} sources of tenant '{tenant}'")
