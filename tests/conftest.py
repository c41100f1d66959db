"""Shared pytest fixtures."""

from __future__ import annotations

import logging

import pytest

from knowledge_engine.config import EngineConfig
from knowledge_engine.db.connection import Database
from knowledge_engine.db.repository import Repository
from knowledge_engine.db.schema import initialize
from knowledge_engine.embedding import EmbeddingClient
from knowledge_engine.engine import EngineContext, KnowledgeEngine
from knowledge_engine.ingest.enricher import ChunkEnricher
from knowledge_engine.vectors.memory import InMemoryVectorIndex


@pytest.fixture
def tmp_db(tmp_path):
    """File-based DB in tmp_path with schema initialized, closed after test."""
    db = Database(tmp_path / ".kengine.db")
    conn = db.connect()
    initialize(conn)
    yield conn
    conn.close()


@pytest.fixture
def offline_config():
    """Default config with providers disabled."""
    return EngineConfig(offline=True)


@pytest.fixture
def offline_context(tmp_db, offline_config):
    """EngineContext with an in-memory index and no providers."""
    return EngineContext(
        config=offline_config,
        repo=Repository(tmp_db),
        index=InMemoryVectorIndex(),
        embedder=EmbeddingClient(None, offline_config.embedding.dimensions),
        enricher=ChunkEnricher(None),
    )


@pytest.fixture
def engine(offline_context):
    """KnowledgeEngine wired to the offline context."""
    return KnowledgeEngine(offline_context)


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Undo configure_logging() so caplog sees records in every test."""
    yield
    logger = logging.getLogger("knowledge_engine")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
