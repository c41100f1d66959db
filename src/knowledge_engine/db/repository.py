"""Repository pattern for all knowledge engine database operations.

Single interface for knowledge sources and embedding records. Every query
that reads or deletes sources is scoped by tenant id; the vector index is
the only other place tenant data lives.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

from knowledge_engine.db.models import (
    EmbeddingRecord,
    KnowledgeSource,
    SourceKind,
    SourceStatus,
)

_SOURCE_COLUMNS = "id, tenant_id, label, uri, kind, status, metadata, created_at, updated_at"


class Repository:
    """Data access layer for knowledge sources and embedding records.

    Wraps an open sqlite3.Connection. Each write commits immediately unless it
    runs inside :meth:`transaction`, in which case the whole block commits or
    rolls back together. The connection is owned by the caller.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with the schema initialised
                (see knowledge_engine.db.schema.initialize).
        """
        self._conn = conn
        self._in_transaction = False

    @contextmanager
    def transaction(self) -> Iterator[Repository]:
        """Group several writes into one atomic unit.

        Nested calls join the outer transaction.
        """
        if self._in_transaction:
            yield self
            return
        self._in_transaction = True
        try:
            yield self
            self._conn.commit()
        except BaseException:
            self._conn.rollback()
            raise
        finally:
            self._in_transaction = False

    def _commit(self) -> None:
        if not self._in_transaction:
            self._conn.commit()

    # ------------------------------------------------------------------
    # Knowledge sources
    # ------------------------------------------------------------------

    def add_source(self, source: KnowledgeSource) -> None:
        """Insert a new knowledge source.

        Raises:
            sqlite3.IntegrityError: If another source of the same tenant
                already owns ``source.uri``.
        """
        self._conn.execute(
            """
            INSERT INTO knowledge_sources (id, tenant_id, label, uri, kind, status, metadata)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                source.id,
                source.tenant_id,
                source.label,
                source.uri,
                SourceKind(source.kind).value,
                SourceStatus(source.status).value,
                source.metadata,
            ),
        )
        self._commit()

    def get_source(self, source_id: str, tenant_id: str | None = None) -> KnowledgeSource | None:
        """Return a source by ID, or None if not found.

        When *tenant_id* is given, a source owned by another tenant is
        reported as missing.
        """
        sql = f"SELECT {_SOURCE_COLUMNS} FROM knowledge_sources WHERE id = ?"
        params: tuple = (source_id,)
        if tenant_id is not None:
            sql += " AND tenant_id = ?"
            params = (source_id, tenant_id)
        row = self._conn.execute(sql, params).fetchone()
        return _row_to_source(row) if row else None

    def get_source_by_uri(self, tenant_id: str, uri: str) -> KnowledgeSource | None:
        """Return the tenant's source for *uri*, or None if not found."""
        row = self._conn.execute(
            f"SELECT {_SOURCE_COLUMNS} FROM knowledge_sources WHERE tenant_id = ? AND uri = ?",
            (tenant_id, uri),
        ).fetchone()
        return _row_to_source(row) if row else None

    def list_sources(self, tenant_id: str) -> list[KnowledgeSource]:
        """Return the tenant's sources, newest first, with embedding counts."""
        rows = self._conn.execute(
            f"""
            SELECT {", ".join("s." + c.strip() for c in _SOURCE_COLUMNS.split(","))},
                   COUNT(e.id) AS embedding_count
            FROM knowledge_sources s
            LEFT JOIN embeddings e ON e.knowledge_source_id = s.id
            WHERE s.tenant_id = ?
            GROUP BY s.id
            ORDER BY s.created_at DESC, s.rowid DESC
            """,
            (tenant_id,),
        ).fetchall()
        sources = []
        for r in rows:
            source = _row_to_source(r)
            source.embedding_count = r["embedding_count"]
            sources.append(source)
        return sources

    def update_source(
        self,
        source_id: str,
        *,
        status: SourceStatus | None = None,
        label: str | None = None,
        metadata: dict | None = None,
    ) -> None:
        """Update status, label and/or metadata of a source.

        *metadata* replaces the stored map entirely.
        """
        assignments: list[str] = []
        params: list = []
        if status is not None:
            assignments.append("status = ?")
            params.append(SourceStatus(status).value)
        if label is not None:
            assignments.append("label = ?")
            params.append(label)
        if metadata is not None:
            assignments.append("metadata = ?")
            params.append(json.dumps(metadata))
        if not assignments:
            return
        assignments.append("updated_at = strftime('%Y-%m-%d %H:%M:%f', 'now')")
        params.append(source_id)
        self._conn.execute(
            f"UPDATE knowledge_sources SET {', '.join(assignments)} WHERE id = ?",
            params,
        )
        self._commit()

    def delete_source(self, source_id: str) -> None:
        """Delete a source row. Remaining embedding records cascade."""
        self._conn.execute("DELETE FROM knowledge_sources WHERE id = ?", (source_id,))
        self._commit()

    def delete_sources_by_tenant(self, tenant_id: str) -> int:
        """Delete every source (and, by cascade, record) of a tenant.

        Returns the number of sources deleted.
        """
        cur = self._conn.execute(
            "DELETE FROM knowledge_sources WHERE tenant_id = ?", (tenant_id,)
        )
        self._commit()
        return cur.rowcount

    # ------------------------------------------------------------------
    # Embedding records
    # ------------------------------------------------------------------

    def add_embedding_record(self, record: EmbeddingRecord) -> None:
        """Insert one embedding record."""
        self.add_embedding_records([record])

    def add_embedding_records(self, records: Iterable[EmbeddingRecord]) -> int:
        """Insert several embedding records in one commit. Returns the count."""
        rows = [
            (r.id, r.knowledge_source_id, r.vector_id, r.content, r.token_count)
            for r in records
        ]
        if not rows:
            return 0
        self._conn.executemany(
            """
            INSERT INTO embeddings (id, knowledge_source_id, vector_id, content, token_count)
            VALUES (?, ?, ?, ?, ?)
            """,
            rows,
        )
        self._commit()
        return len(rows)

    def list_embeddings_by_source(self, source_id: str) -> list[EmbeddingRecord]:
        """Return the embedding records of a source in insertion order."""
        rows = self._conn.execute(
            """
            SELECT id, knowledge_source_id, vector_id, content, token_count, created_at
            FROM embeddings WHERE knowledge_source_id = ? ORDER BY rowid
            """,
            (source_id,),
        ).fetchall()
        return [_row_to_record(r) for r in rows]

    def list_vector_ids_by_source(self, source_id: str) -> list[str]:
        """Return the vector-index ids linked to a source."""
        return [
            r[0]
            for r in self._conn.execute(
                "SELECT vector_id FROM embeddings WHERE knowledge_source_id = ? ORDER BY rowid",
                (source_id,),
            ).fetchall()
        ]

    def count_embeddings_by_source(self, source_id: str) -> int:
        """Return the number of embedding records belonging to *source_id*."""
        return self._conn.execute(
            "SELECT COUNT(*) FROM embeddings WHERE knowledge_source_id = ?", (source_id,)
        ).fetchone()[0]

    def delete_embeddings_by_source(self, source_id: str) -> int:
        """Delete all embedding records of a source. Returns the count deleted."""
        cur = self._conn.execute(
            "DELETE FROM embeddings WHERE knowledge_source_id = ?", (source_id,)
        )
        self._commit()
        return cur.rowcount


    # ------------------------------------------------------------------
    # Pending vector deletes
    # ------------------------------------------------------------------

    def add_pending_deletes(self, tenant_id: str, vector_ids: Iterable[str]) -> int:
        """Remember vector ids whose remote delete failed. Returns the count added."""
        cur = self._conn.executemany(
            "INSERT OR IGNORE INTO pending_vector_deletes (vector_id, tenant_id) VALUES (?, ?)",
            [(vid, tenant_id) for vid in vector_ids],
        )
        self._commit()
        return cur.rowcount

    def list_pending_deletes(self, tenant_id: str) -> list[str]:
        """Return the tenant's vector ids still waiting for a remote delete."""
        return [
            r[0]
            for r in self._conn.execute(
                "SELECT vector_id FROM pending_vector_deletes WHERE tenant_id = ? ORDER BY rowid",
                (tenant_id,),
            ).fetchall()
        ]

    def clear_pending_deletes(
        self, tenant_id: str, vector_ids: Iterable[str] | None = None
    ) -> int:
        """Forget pending deletes of a tenant (all of them when *vector_ids* is None)."""
        if vector_ids is None:
            cur = self._conn.execute(
                "DELETE FROM pending_vector_deletes WHERE tenant_id = ?", (tenant_id,)
            )
        else:
            cur = self._conn.executemany(
                "DELETE FROM pending_vector_deletes WHERE tenant_id = ? AND vector_id = ?",
                [(tenant_id, vid) for vid in vector_ids],
            )
        self._commit()
        return cur.rowcount


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------

def _row_to_source(row: sqlite3.Row) -> KnowledgeSource:
    return KnowledgeSource(
        id=row["id"],
        tenant_id=row["tenant_id"],
        label=row["label"],
        uri=row["uri"],
        kind=SourceKind(row["kind"]),
        status=SourceStatus(row["status"]),
        metadata=row["metadata"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_record(row: sqlite3.Row) -> EmbeddingRecord:
    return EmbeddingRecord(
        id=row["id"],
        knowledge_source_id=row["knowledge_source_id"],
        vector_id=row["vector_id"],
        content=row["content"],
        token_count=row["token_count"],
        created_at=row["created_at"],
    )
