"""Knowledge source lifecycle: ingestion, re-ingestion and deletion.

Every source moves ``PENDING → READY`` on success or ``PENDING → FAILED``
when any step of its pipeline raises. The pipeline is:

    document → chunk → enrich pass (pool) → embed + upsert pass (pool)

The enrich pass finishes for all chunks before the first embedding starts.
Each upserted vector gets exactly one EmbeddingRecord, written right after
the upsert, so a failed run can be rolled back through the same delete path
as a user-initiated removal.

Sources with a uri are deduplicated per tenant. Ingesting a known
``(tenant_id, uri)`` resets the existing source instead of adding a second
one, so repeated ingestion leaves exactly the chunks of the latest run.

Concurrent re-ingestion of the same source by two callers is not
serialized; the last writer wins on the status field.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

from knowledge_engine.db.models import (
    EmbeddingRecord,
    KnowledgeSource,
    SourceKind,
    SourceStatus,
)
from knowledge_engine.errors import (
    EmptyInputError,
    InsufficientContentError,
    SourceNotFoundError,
)
from knowledge_engine.ingest.chunker import (
    Chunk,
    TextChunker,
    count_tokens,
    normalize_whitespace,
)
from knowledge_engine.ingest.files import extract_text, pdf_page_count
from knowledge_engine.ingest.pages import PageRecord, to_markdown
from knowledge_engine.ingest.pool import run_bounded
from knowledge_engine.vectors.base import VectorMetadata

if TYPE_CHECKING:
    from knowledge_engine.config import EngineConfig
    from knowledge_engine.db.repository import Repository
    from knowledge_engine.embedding import EmbeddingClient
    from knowledge_engine.ingest.enricher import ChunkEnricher
    from knowledge_engine.vectors.base import VectorIndex

logger = logging.getLogger(__name__)


@dataclass
class IngestionReport:
    """Outcome of a batch page ingestion.

    Attributes:
        ingested: Ids of sources that reached READY.
        skipped:  URIs of pages/PDFs with too little text to index.
        failed:   URI → error message for documents whose ingestion raised.
    """

    ingested: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _compact(metadata: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in metadata.items() if v not in (None, "", {}, [])}


class SourceManager:
    """Orchestrates ingestion and removal of a tenant's knowledge sources.

    Args:
        repo:     Relational store for sources and embedding records.
        index:    Vector index backend.
        embedder: Embedding client (provider or hash fallback).
        enricher: Chunk enricher (provider or excerpt fallback).
        config:   Engine configuration (chunking and ingestion sections).
    """

    def __init__(
        self,
        repo: Repository,
        index: VectorIndex,
        embedder: EmbeddingClient,
        enricher: ChunkEnricher,
        config: EngineConfig,
    ) -> None:
        self._repo = repo
        self._index = index
        self._embedder = embedder
        self._enricher = enricher
        self._chunker = TextChunker(config.chunking.chunk_size, config.chunking.overlap)
        self._max_concurrency = config.ingestion.max_concurrency
        self._min_content_chars = config.chunking.min_content_chars

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def add_text_source(
        self,
        tenant_id: str,
        label: str,
        content: str,
        added_by: str | None = None,
    ) -> KnowledgeSource:
        """Index free text as a TEXT source and return it in READY state.

        Raises:
            EmptyInputError: If *content* is blank.
            ProviderError: If a vector upsert fails (source ends FAILED).
        """
        if not content or not content.strip():
            raise EmptyInputError("Text source content is blank")
        label = label.strip() or "Untitled"
        source = await self._upsert_source(
            tenant_id,
            label=label,
            uri=None,
            kind=SourceKind.TEXT,
            metadata=_compact({"added_by": added_by}),
        )
        await self._run_pipeline(source, title=label, body=content)
        return self._reload(source)

    async def ingest_pages(self, tenant_id: str, pages: list[PageRecord]) -> IngestionReport:
        """Index crawled pages and their attached PDFs.

        Each page with at least ``min_content_chars`` of text becomes a URL
        source; each attached PDF with enough text becomes a FILE source.
        A failing document is recorded in the report and the batch goes on.
        """
        report = IngestionReport()
        for page in pages:
            if len(normalize_whitespace(page.main_text)) >= self._min_content_chars:
                await self._ingest_into_report(
                    report,
                    tenant_id,
                    label=page.label,
                    uri=page.uri,
                    kind=SourceKind.URL,
                    body=page.main_text,
                    metadata=_compact(
                        {
                            "fetched_at": page.fetched_at,
                            "lang": page.lang,
                            "meta": page.meta,
                            "headings": page.headings,
                        }
                    ),
                )
            else:
                logger.info("Skipping %s: not enough text", page.uri)
                report.skipped.append(page.uri)

            for pdf in page.pdfs:
                if len(normalize_whitespace(pdf.text)) < self._min_content_chars:
                    logger.info("Skipping PDF %s: not enough text", pdf.pdf_url or pdf.label)
                    report.skipped.append(pdf.pdf_url or pdf.label)
                    continue
                await self._ingest_into_report(
                    report,
                    tenant_id,
                    label=pdf.label,
                    uri=pdf.pdf_url or None,
                    kind=SourceKind.FILE,
                    body=pdf.text,
                    metadata=_compact(
                        {
                            "fetched_at": page.fetched_at,
                            "page_count": pdf.page_count,
                            "source_page": page.uri,
                        }
                    ),
                )

        logger.info(
            "Page ingestion for tenant %s: %d ingested, %d skipped, %d failed",
            tenant_id,
            len(report.ingested),
            len(report.skipped),
            len(report.failed),
        )
        return report

    async def add_file_source(self, tenant_id: str, path: Path) -> KnowledgeSource:
        """Index a local PDF or text file as a FILE source.

        The source uri is the file's resolved ``file://`` URI, so adding the
        same file again re-ingests it.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ValueError: If the file type is not supported.
            InsufficientContentError: If the file has too little text.
        """
        path = Path(path).resolve()
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        text = extract_text(path)
        source = await self._upsert_source(
            tenant_id,
            label=path.name,
            uri=path.as_uri(),
            kind=SourceKind.FILE,
            metadata=_compact({"filename": path.name, "page_count": pdf_page_count(path)}),
        )
        await self._run_pipeline(
            source, title=path.name, body=text, min_chars=self._min_content_chars
        )
        return self._reload(source)

    async def delete_source(self, tenant_id: str, source_id: str) -> int:
        """Remove a source: vectors first, then records, then the row.

        Returns:
            Number of embedding records removed.

        Raises:
            SourceNotFoundError: If the id is unknown or belongs to another tenant.
        """
        source = self._repo.get_source(source_id, tenant_id)
        if source is None:
            raise SourceNotFoundError(tenant_id, source_id)

        await self._index.delete_by_source(tenant_id, source.id)
        with self._repo.transaction():
            removed = self._repo.delete_embeddings_by_source(source.id)
            self._repo.delete_source(source.id)
        logger.info("Deleted source %s (%s): %d chunks", source.id, source.label, removed)
        return removed

    def list_sources(self, tenant_id: str) -> list[KnowledgeSource]:
        """Return the tenant's sources, newest first, with embedding counts."""
        return self._repo.list_sources(tenant_id)

    async def purge_tenant(self, tenant_id: str) -> int:
        """Drop every vector and source of a tenant. Returns sources removed."""
        vectors = await self._index.delete_by_tenant(tenant_id)
        removed = self._repo.delete_sources_by_tenant(tenant_id)
        logger.info("Purged tenant %s: %d sources, %d vectors", tenant_id, removed, vectors)
        return removed

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def _ingest_into_report(
        self,
        report: IngestionReport,
        tenant_id: str,
        *,
        label: str,
        uri: str | None,
        kind: SourceKind,
        body: str,
        metadata: dict[str, Any],
    ) -> None:
        key = uri or label
        try:
            source = await self._upsert_source(
                tenant_id, label=label, uri=uri, kind=kind, metadata=metadata
            )
            await self._run_pipeline(source, title=label, body=body)
        except Exception as exc:
            logger.warning("Could not ingest %s: %s", key, exc)
            report.failed[key] = str(exc)
            return
        report.ingested.append(source.id)

    async def _upsert_source(
        self,
        tenant_id: str,
        *,
        label: str,
        uri: str | None,
        kind: SourceKind,
        metadata: dict[str, Any],
    ) -> KnowledgeSource:
        """Create a PENDING source, or reset the tenant's existing one for *uri*."""
        existing = self._repo.get_source_by_uri(tenant_id, uri) if uri else None
        if existing is None:
            source = KnowledgeSource(
                id=str(uuid.uuid4()),
                tenant_id=tenant_id,
                label=label,
                kind=kind,
                uri=uri,
                status=SourceStatus.PENDING,
                metadata=json.dumps(metadata),
            )
            self._repo.add_source(source)
            logger.info("New %s source %s for tenant %s", kind.value, source.id, tenant_id)
            return source

        await self._index.delete_by_source(tenant_id, existing.id)
        with self._repo.transaction():
            removed = self._repo.delete_embeddings_by_source(existing.id)
            self._repo.update_source(
                existing.id, status=SourceStatus.PENDING, label=label, metadata=metadata
            )
        logger.info(
            "Re-ingesting source %s (%s): cleared %d chunks", existing.id, uri, removed
        )
        return self._reload(existing)

    async def _run_pipeline(
        self,
        source: KnowledgeSource,
        *,
        title: str,
        body: str,
        min_chars: int = 0,
    ) -> int:
        """Chunk, enrich, embed and store *body*; mark the source READY.

        On failure the partial vectors and records are removed, the source is
        marked FAILED with the error in its metadata, and the error re-raised.
        """
        try:
            if not body.strip() or len(normalize_whitespace(body)) < min_chars:
                raise InsufficientContentError(
                    f"Source '{source.label}' has no usable content"
                )
            chunks = self._chunker.chunk(to_markdown(title, body))
            if not chunks:
                raise InsufficientContentError(
                    f"Source '{source.label}' produced no chunks"
                )

            async def enrich(chunk: Chunk) -> Chunk:
                return await self._enricher.enrich(title, chunk)

            async def store(chunk: Chunk) -> EmbeddingRecord:
                return await self._store_chunk(source, chunk)

            enriched = await run_bounded(chunks, enrich, self._max_concurrency)
            records = await run_bounded(enriched, store, self._max_concurrency)
        except Exception as exc:
            await self._mark_failed(source, exc)
            raise

        self._repo.update_source(source.id, status=SourceStatus.READY)
        logger.info("Source %s (%s) READY: %d chunks", source.id, source.label, len(records))
        return len(records)

    async def _store_chunk(self, source: KnowledgeSource, chunk: Chunk) -> EmbeddingRecord:
        content = chunk.content
        vector = await self._embedder.embed(content)
        metadata = VectorMetadata(
            tenant_id=source.tenant_id,
            knowledge_source_id=source.id,
            chunk_index=chunk.index,
            label=source.label,
            source_uri=source.uri,
        )
        vector_id = await self._index.upsert(vector, metadata, content)
        record = EmbeddingRecord(
            id=str(uuid.uuid4()),
            knowledge_source_id=source.id,
            vector_id=vector_id,
            content=content,
            token_count=count_tokens(content),
        )
        self._repo.add_embedding_record(record)
        return record

    async def _mark_failed(self, source: KnowledgeSource, exc: Exception) -> None:
        logger.error("Ingestion of source %s (%s) failed: %s", source.id, source.label, exc)
        current = self._repo.get_source(source.id) or source
        metadata = current.metadata_dict
        metadata.update({"error": str(exc), "failed_at": _now_iso()})
        try:
            await self._index.delete_by_source(source.tenant_id, source.id)
            with self._repo.transaction():
                self._repo.delete_embeddings_by_source(source.id)
                self._repo.update_source(
                    source.id, status=SourceStatus.FAILED, metadata=metadata
                )
        except Exception:
            # The original ingestion error is the one the caller needs to see.
            logger.error("Rollback of source %s failed", source.id, exc_info=True)

    def _reload(self, source: KnowledgeSource) -> KnowledgeSource:
        return self._repo.get_source(source.id) or source
