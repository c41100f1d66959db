"""kengine CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from knowledge_engine.cli.ask import ask_cmd
from knowledge_engine.cli.ingest import ingest_app
from knowledge_engine.cli.init import init_cmd
from knowledge_engine.cli.purge import purge_cmd
from knowledge_engine.cli.remove import remove_cmd
from knowledge_engine.cli.sources import sources_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("knowledge-engine")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"kengine {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="kengine",
    help=(
        "Knowledge engine: multi-tenant RAG ingestion and retrieval.\n\n"
        "  kengine ingest   Chunk, enrich and embed text, pages or files.\n"
        "  kengine ask      Retrieve context and answer a question."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """Knowledge engine: multi-tenant RAG ingestion and retrieval."""


app.command("init")(init_cmd)
app.add_typer(ingest_app, name="ingest")
app.command("sources")(sources_cmd)
app.command("remove")(remove_cmd)
app.command("purge")(purge_cmd)
app.command("ask")(ask_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed version."""
    typer.echo(f"kengine {_installed_version()}")


if __name__ == "__main__":
    app()
