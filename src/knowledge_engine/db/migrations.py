"""Forward-only migration runner for the knowledge engine schema."""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

_V1_SQL = """
CREATE TABLE IF NOT EXISTS knowledge_sources (
    id              TEXT PRIMARY KEY,
    tenant_id       TEXT NOT NULL,
    label           TEXT NOT NULL,
    uri             TEXT,
    kind            TEXT NOT NULL CHECK (kind IN ('URL', 'TEXT', 'FILE')),
    status          TEXT NOT NULL DEFAULT 'PENDING'
                    CHECK (status IN ('PENDING', 'READY', 'FAILED')),
    metadata        TEXT NOT NULL DEFAULT '{}',
    created_at      DATETIME NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now')),
    updated_at      DATETIME NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now'))
);

-- One live source per (tenant, uri); ad-hoc text sources have no uri.
CREATE UNIQUE INDEX IF NOT EXISTS ux_knowledge_sources_tenant_uri
    ON knowledge_sources (tenant_id, uri) WHERE uri IS NOT NULL;

CREATE INDEX IF NOT EXISTS ix_knowledge_sources_tenant
    ON knowledge_sources (tenant_id);

CREATE TABLE IF NOT EXISTS embeddings (
    id                  TEXT PRIMARY KEY,
    knowledge_source_id TEXT NOT NULL REFERENCES knowledge_sources(id) ON DELETE CASCADE,
    vector_id           TEXT NOT NULL UNIQUE,
    content             TEXT NOT NULL,
    token_count         INTEGER NOT NULL,
    created_at          DATETIME NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now'))
);

CREATE INDEX IF NOT EXISTS ix_embeddings_source
    ON embeddings (knowledge_source_id);
"""

# Vector ids whose remote delete failed; retried on the tenant's next delete
# and hidden from search until then.
_V2_SQL = """
CREATE TABLE IF NOT EXISTS pending_vector_deletes (
    vector_id   TEXT PRIMARY KEY,
    tenant_id   TEXT NOT NULL,
    created_at  DATETIME NOT NULL DEFAULT (strftime('%Y-%m-%d %H:%M:%f', 'now'))
);

CREATE INDEX IF NOT EXISTS ix_pending_vector_deletes_tenant
    ON pending_vector_deletes (tenant_id);
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
    (2, _V2_SQL),
]


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] if row[0] is not None else 0

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()


def current_version(conn: sqlite3.Connection) -> int:
    """Return the applied schema version (0 for a fresh database)."""
    conn.execute(_CREATE_SCHEMA_VERSION)
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    return row[0] if row[0] is not None else 0
