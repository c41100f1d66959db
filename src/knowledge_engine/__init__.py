"""Multi-tenant knowledge ingestion and retrieval for RAG chatbots.

Public surface
--------------
- :class:`KnowledgeEngine` / :func:`build_context`: wire and use the engine.
- :class:`SourceManager`: source lifecycle (ingest, re-ingest, delete).
- :class:`Retriever`: tenant-scoped similarity search.
- :func:`load_config`: layered YAML + env configuration.
"""

from knowledge_engine.config import EngineConfig, load_config
from knowledge_engine.engine import Answer, EngineContext, KnowledgeEngine, build_context
from knowledge_engine.errors import (
    EmptyInputError,
    InsufficientContentError,
    KnowledgeEngineError,
    ProviderError,
    SourceNotFoundError,
)
from knowledge_engine.retriever import Retriever
from knowledge_engine.sources import IngestionReport, SourceManager

__all__ = [
    "Answer",
    "EmptyInputError",
    "EngineConfig",
    "EngineContext",
    "IngestionReport",
    "InsufficientContentError",
    "KnowledgeEngine",
    "KnowledgeEngineError",
    "ProviderError",
    "Retriever",
    "SourceManager",
    "SourceNotFoundError",
    "build_context",
    "load_config",
]
