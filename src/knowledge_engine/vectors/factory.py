"""Backend selection, made once at startup and fixed for the process lifetime."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from knowledge_engine.config import ConfigError, EngineConfig
from knowledge_engine.vectors.base import VectorIndex
from knowledge_engine.vectors.memory import InMemoryVectorIndex

if TYPE_CHECKING:
    from knowledge_engine.db.repository import Repository

logger = logging.getLogger(__name__)


def snapshot_path(cfg: EngineConfig, base_dir: Path | None) -> Path | None:
    """Resolve the in-process index snapshot file, or None when disabled."""
    if cfg.vector_store.backend != "memory" or not cfg.vector_store.snapshot:
        return None
    path = Path(cfg.vector_store.snapshot)
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    return path


def build_vector_index(
    cfg: EngineConfig,
    repo: Repository,
    *,
    base_dir: Path | None = None,
) -> VectorIndex:
    """Return the configured vector-index backend.

    The in-process backend is pre-loaded from its snapshot file when one
    exists next to the database.

    Raises:
        ConfigError: For an unknown backend or missing Pinecone settings.
    """
    backend = cfg.vector_store.backend
    if backend == "memory":
        index = InMemoryVectorIndex()
        path = snapshot_path(cfg, base_dir)
        if path is not None and path.exists():
            loaded = index.load(path)
            logger.info("In-process vector index restored: %d vectors from %s", loaded, path)
        return index
    if backend == "pinecone":
        from knowledge_engine.vectors.pinecone_index import PineconeVectorIndex

        logger.info("Using Pinecone index '%s'", cfg.vector_store.pinecone_index)
        return PineconeVectorIndex.from_config(cfg, repo)
    raise ConfigError(f"Unknown vector_store.backend '{backend}'")
