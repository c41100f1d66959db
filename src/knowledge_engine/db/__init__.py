"""Knowledge engine database layer."""

from knowledge_engine.db.connection import Database
from knowledge_engine.db.migrations import MIGRATIONS, run_migrations
from knowledge_engine.db.models import EmbeddingRecord, KnowledgeSource, SourceKind, SourceStatus
from knowledge_engine.db.repository import Repository
from knowledge_engine.db.schema import initialize

__all__ = [
    "Database",
    "EmbeddingRecord",
    "KnowledgeSource",
    "MIGRATIONS",
    "Repository",
    "SourceKind",
    "SourceStatus",
    "initialize",
    "run_migrations",
]
