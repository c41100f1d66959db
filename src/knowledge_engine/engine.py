"""Engine wiring and the public facade.

:func:`build_context` constructs every collaborator exactly once (config,
repository, providers, embedding client, enricher, vector index) and
:class:`KnowledgeEngine` passes them to the components that need them. No
component reaches for a module-level client, so tests can assemble an
:class:`EngineContext` from mocks.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from knowledge_engine.answer import AnswerGenerator
from knowledge_engine.config import EngineConfig
from knowledge_engine.db.models import KnowledgeSource
from knowledge_engine.db.repository import Repository
from knowledge_engine.embedding import EmbeddingClient
from knowledge_engine.ingest.enricher import ChunkEnricher
from knowledge_engine.ingest.pages import PageRecord
from knowledge_engine.providers import (
    CompletionProvider,
    build_completion_provider,
    build_embedding_provider,
)
from knowledge_engine.retriever import Retriever
from knowledge_engine.sources import IngestionReport, SourceManager
from knowledge_engine.vectors.base import VectorIndex
from knowledge_engine.vectors.factory import build_vector_index, snapshot_path
from knowledge_engine.vectors.memory import InMemoryVectorIndex

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n\n---\n\n"


@dataclass
class Answer:
    """A generated reply and the chunks it was based on."""

    text: str
    context: list[str] = field(default_factory=list)


@dataclass
class EngineContext:
    """Everything the engine components share, built once per process.

    Attributes:
        config: Effective configuration.
        repo: Repository over the open SQLite connection.
        index: Vector index backend selected at startup.
        embedder: Embedding client (provider or hash fallback).
        enricher: Chunk enricher (provider or excerpt fallback).
        completion: Completion provider, or None when offline / no key.
        snapshot: Snapshot file of the in-process index, if any.
    """

    config: EngineConfig
    repo: Repository
    index: VectorIndex
    embedder: EmbeddingClient
    enricher: ChunkEnricher
    completion: CompletionProvider | None = None
    snapshot: Path | None = None


def build_context(
    config: EngineConfig,
    conn: sqlite3.Connection,
    *,
    base_dir: Path | None = None,
) -> EngineContext:
    """Wire providers, clients and the vector index from *config*.

    Args:
        config: Validated engine configuration.
        conn: Open connection with the schema initialised.
        base_dir: Directory that relative snapshot paths resolve against.

    Raises:
        ConfigError: If the vector backend cannot be set up.
    """
    repo = Repository(conn)
    completion = build_completion_provider(config)
    embedding = build_embedding_provider(config)
    return EngineContext(
        config=config,
        repo=repo,
        index=build_vector_index(config, repo, base_dir=base_dir),
        embedder=EmbeddingClient(embedding, config.embedding.dimensions),
        enricher=ChunkEnricher(completion, enabled=config.completion.enrich),
        completion=completion,
        snapshot=snapshot_path(config, base_dir),
    )


class KnowledgeEngine:
    """Public API: ingest, list, remove and retrieve tenant knowledge.

    Every operation takes the tenant id explicitly; nothing is shared
    between tenants except the stores themselves.
    """

    def __init__(self, context: EngineContext) -> None:
        self.context = context
        self.sources = SourceManager(
            context.repo,
            context.index,
            context.embedder,
            context.enricher,
            context.config,
        )
        self.retriever = Retriever(
            context.embedder, context.index, context.config.retrieval.top_k
        )
        self.answers = AnswerGenerator(context.completion)

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    async def add_text_source(
        self,
        tenant_id: str,
        label: str,
        content: str,
        added_by: str | None = None,
    ) -> KnowledgeSource:
        return await self.sources.add_text_source(tenant_id, label, content, added_by)

    async def ingest_pages(
        self,
        tenant_id: str,
        pages: list[PageRecord | dict[str, Any]],
    ) -> IngestionReport:
        """Ingest crawler page records (parsed objects or raw JSON dicts)."""
        records = [p if isinstance(p, PageRecord) else PageRecord.from_dict(p) for p in pages]
        return await self.sources.ingest_pages(tenant_id, records)

    async def add_file_source(self, tenant_id: str, path: Path) -> KnowledgeSource:
        return await self.sources.add_file_source(tenant_id, path)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def delete_source(self, tenant_id: str, source_id: str) -> int:
        return await self.sources.delete_source(tenant_id, source_id)

    def list_sources(self, tenant_id: str) -> list[KnowledgeSource]:
        return self.sources.list_sources(tenant_id)

    async def purge_tenant(self, tenant_id: str) -> int:
        return await self.sources.purge_tenant(tenant_id)

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    async def retrieve_context(
        self,
        tenant_id: str,
        question: str,
        top_k: int | None = None,
    ) -> list[str]:
        """Return the best-matching chunk contents for *question*."""
        return await self.retriever.retrieve(tenant_id, question, top_k)

    async def ask(
        self,
        tenant_id: str,
        question: str,
        *,
        bot_name: str = "Assistant",
        top_k: int | None = None,
    ) -> Answer:
        """Retrieve context for *question* and answer it."""
        chunks = await self.retrieve_context(tenant_id, question, top_k)
        text = await self.answers.generate(bot_name, question, CONTEXT_SEPARATOR.join(chunks))
        return Answer(text=text, context=chunks)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self) -> int:
        """Write the in-process index snapshot, if one is configured.

        Returns the number of vectors written (0 for remote backends).
        """
        index = self.context.index
        if self.context.snapshot is None or not isinstance(index, InMemoryVectorIndex):
            return 0
        written = index.dump(self.context.snapshot)
        logger.debug("Saved %d vectors to %s", written, self.context.snapshot)
        return written
