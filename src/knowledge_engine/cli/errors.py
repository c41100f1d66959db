"""Rich error messages for the kengine CLI.

Every message names what went wrong and the command or setting that fixes
it. Functions return markup strings; callers print them and exit.

Usage:
    from knowledge_engine.cli.errors import err_no_db
    console.print(err_no_db(".kengine.db"))
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_db(db_path: str = ".kengine.db") -> str:
    """No database at *db_path*."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  kengine init"
    )


def err_config(message: str) -> str:
    """Configuration could not be loaded or failed validation."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {message}\n"
        "  Fix kengine.yaml (or ~/.kengine/config.yaml) and retry."
    )


def err_source_not_found(source_id: str, tenant_id: str) -> str:
    """Source id unknown for the tenant."""
    return (
        f"[yellow]Source not found:[/] '{source_id}' does not exist for tenant '{tenant_id}'.\n"
        f"  Run:  kengine sources --tenant {tenant_id}  to see all sources."
    )


def err_insufficient_content(label: str) -> str:
    """Document yielded nothing to index."""
    return (
        f"[red]Error:[/] '{label}' has too little text to index.\n"
        "  The source is marked FAILED. Check the document or lower\n"
        "  chunking.min_content_chars in kengine.yaml."
    )


def err_provider(message: str) -> str:
    """A vector-index or model provider call failed."""
    return (
        f"[red]Error:[/] Provider call failed: {message}\n"
        "  The source is marked FAILED; re-run the ingest to retry."
    )


def err_empty_input(what: str) -> str:
    """Blank text passed where content is required."""
    return (
        f"[red]Error:[/] {what} is empty.\n"
        "  Pass non-blank text with --content or --file."
    )


def err_unsupported_file(path: str, supported: list[str]) -> str:
    """File extension cannot be ingested."""
    return (
        f"[red]Error:[/] Unsupported file type: '{path}'.\n"
        f"  Supported: {', '.join(supported)}"
    )


def warn_offline() -> str:
    """Shown when ingesting without providers."""
    return (
        "[yellow]⚠[/] Running without model providers: chunks get excerpt summaries\n"
        "  and hash embeddings. Set OPENAI_API_KEY (or your provider's key) for\n"
        "  semantic search."
    )


def err_file_not_found(path: str) -> str:
    """Input file does not exist."""
    return (
        f"[red]Error:[/] File not found: '{path}'.\n"
        "  Check the path and retry."
    )


def err_unreadable_file(path: str, reason: str) -> str:
    """File exists but its content cannot be extracted."""
    return (
        f"[red]Error:[/] Cannot read '{path}': {reason}\n"
        "  Check that the file is not corrupt or encrypted, then re-run the ingest."
    )
