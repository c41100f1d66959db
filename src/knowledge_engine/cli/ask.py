"""kengine ask: retrieve context for a question and answer it."""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from knowledge_engine.cli.common import (
    DEFAULT_DB,
    DEFAULT_TENANT,
    DbOption,
    OfflineOption,
    TenantOption,
    open_engine,
)
from knowledge_engine.errors import EmptyInputError

console = Console()


def ask_cmd(
    question: Annotated[str, typer.Argument(help="Question to answer.")],
    tenant: TenantOption = DEFAULT_TENANT,
    db: DbOption = DEFAULT_DB,
    top_k: Annotated[
        int | None,
        typer.Option("--top-k", "-k", min=1, help="Number of chunks to retrieve."),
    ] = None,
    bot_name: Annotated[
        str,
        typer.Option("--bot-name", help="Name the assistant answers as."),
    ] = "Assistant",
    context_only: Annotated[
        bool,
        typer.Option("--context-only", help="Print retrieved chunks without answering."),
    ] = False,
    offline: OfflineOption = False,
) -> None:
    """Answer a question from the tenant's knowledge."""
    with open_engine(db, offline=offline) as engine:
        try:
            if context_only:
                chunks = asyncio.run(engine.retrieve_context(tenant, question, top_k))
                reply = None
            else:
                answer = asyncio.run(engine.ask(tenant, question, bot_name=bot_name, top_k=top_k))
                chunks, reply = answer.context, answer.text
        except EmptyInputError:
            console.print("[red]Error:[/] Question is empty.")
            raise typer.Exit(1)

    if not chunks:
        console.print(f"[yellow]No knowledge found for tenant '{tenant}'.[/]")
    for i, chunk in enumerate(chunks, start=1):
        console.print(Panel(Text(chunk), title=f"[dim]Chunk {i}[/]", expand=False))
    if reply is not None:
        console.print(Panel(Text(reply), title=f"[bold]{bot_name}[/]", expand=False))
