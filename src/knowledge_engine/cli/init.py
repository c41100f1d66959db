"""kengine init: create the database and a starter kengine.yaml.

Creates:
  .kengine.db    empty knowledge database with schema
  kengine.yaml   project config (models, chunking, vector backend)
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from knowledge_engine.cli.common import DEFAULT_DB, open_db
from knowledge_engine.config import PROJECT_CONFIG_NAME, write_project_config

console = Console()


def init_cmd(
    project_dir: Annotated[
        Path,
        typer.Argument(help="Directory to initialize. Defaults to current directory."),
    ] = Path("."),
) -> None:
    """Initialize a knowledge engine project."""
    project_dir = project_dir.resolve()
    project_dir.mkdir(parents=True, exist_ok=True)

    db_path = project_dir / DEFAULT_DB.name
    existed = db_path.exists()
    open_db(db_path).close()
    if existed:
        console.print(f"  [yellow]⚠[/]  {DEFAULT_DB.name} already exists (schema checked)")
    else:
        console.print(f"  [green]✓[/] {DEFAULT_DB.name}")

    cfg_existed = (project_dir / PROJECT_CONFIG_NAME).exists()
    write_project_config(project_dir)
    if cfg_existed:
        console.print(f"  [yellow]⚠[/]  {PROJECT_CONFIG_NAME} already exists (left unchanged)")
    else:
        console.print(f"  [green]✓[/] {PROJECT_CONFIG_NAME}")

    console.print(f"\n[bold green]✓ Project initialized in {project_dir}[/]")
    console.print("\nNext steps:")
    console.print("  1. kengine ingest text --label <label> --content <text>")
    console.print("  2. kengine ingest pages <crawl.jsonl>")
    console.print("  3. kengine ask \"<question>\"")
