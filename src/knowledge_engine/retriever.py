"""Tenant-scoped similarity retrieval.

The question is embedded with the same client (and the same normalization)
as ingestion, then the vector index is searched within the tenant. Results
keep the backend's similarity order; there is no re-ranking.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from knowledge_engine.embedding import EmbeddingClient
    from knowledge_engine.vectors.base import VectorIndex, VectorMatch

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 4


class Retriever:
    """Find the chunks most similar to a question.

    Args:
        embedder: Embedding client used for questions.
        index: Vector index holding the tenant's chunks.
        default_top_k: Result count when the caller passes none.
    """

    def __init__(
        self,
        embedder: EmbeddingClient,
        index: VectorIndex,
        default_top_k: int = DEFAULT_TOP_K,
    ) -> None:
        self._embedder = embedder
        self._index = index
        self.default_top_k = default_top_k

    async def search(
        self,
        tenant_id: str,
        question: str,
        top_k: int | None = None,
    ) -> list[VectorMatch]:
        """Return scored matches for *question*, best first.

        Raises:
            EmptyInputError: If *question* is blank.
        """
        k = self.default_top_k if top_k is None else top_k
        vector = await self._embedder.embed(question)
        matches = await self._index.search(tenant_id, vector, k)
        logger.debug("Retrieved %d chunks for tenant %s", len(matches), tenant_id)
        return matches

    async def retrieve(
        self,
        tenant_id: str,
        question: str,
        top_k: int | None = None,
    ) -> list[str]:
        """Return the contents of the best-matching chunks, best first."""
        return [m.content for m in await self.search(tenant_id, question, top_k)]
