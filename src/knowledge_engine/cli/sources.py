"""kengine sources: list a tenant's knowledge sources."""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from knowledge_engine.cli.common import (
    DEFAULT_DB,
    DEFAULT_TENANT,
    DbOption,
    TenantOption,
    open_engine,
)
from knowledge_engine.db.models import SourceStatus

console = Console()

_STATUS_STYLE = {
    SourceStatus.READY: "green",
    SourceStatus.PENDING: "yellow",
    SourceStatus.FAILED: "red",
}


def sources_cmd(
    tenant: TenantOption = DEFAULT_TENANT,
    db: DbOption = DEFAULT_DB,
    show_errors: Annotated[
        bool,
        typer.Option("--errors", help="Show the error message of FAILED sources."),
    ] = False,
) -> None:
    """List knowledge sources, newest first."""
    with open_engine(db, offline=True) as engine:
        sources = engine.list_sources(tenant)

    if not sources:
        console.print(f"[dim]No sources for tenant '{tenant}'.[/]")
        return

    table = Table(title=f"Knowledge sources: {tenant}")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Label")
    table.add_column("Kind")
    table.add_column("Status")
    table.add_column("Chunks", justify="right")
    table.add_column("Updated", style="dim")
    for s in sources:
        style = _STATUS_STYLE.get(s.status, "white")
        table.add_row(
            s.id,
            s.label,
            s.kind.value,
            f"[{style}]{s.status.value}[/]",
            str(s.embedding_count or 0),
            s.updated_at or "",
        )
    console.print(table)

    if show_errors:
        for s in sources:
            if s.status == SourceStatus.FAILED:
                error = s.metadata_dict.get("error", "unknown error")
                console.print(f"  [red]✗[/] {s.label}: {error}")
