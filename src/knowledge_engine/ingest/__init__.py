"""Ingest pipeline: chunker, enricher, worker pool, page and file inputs."""

from knowledge_engine.ingest.chunker import Chunk, TextChunker, chunk_text, count_tokens
from knowledge_engine.ingest.enricher import ChunkEnricher
from knowledge_engine.ingest.pages import PageRecord, PdfAttachment, load_pages
from knowledge_engine.ingest.pool import run_bounded

__all__ = [
    "Chunk",
    "ChunkEnricher",
    "PageRecord",
    "PdfAttachment",
    "TextChunker",
    "chunk_text",
    "count_tokens",
    "load_pages",
    "run_bounded",
]
