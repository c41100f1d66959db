"""Embedding client with deterministic hash fallback.

Every vector that reaches the vector index passes through
:func:`normalize_vector`, so all stored vectors share one dimensionality
whether they came from the provider or from the fallback.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from knowledge_engine.errors import EmptyInputError, ProviderError

if TYPE_CHECKING:
    from knowledge_engine.providers import EmbeddingProvider

logger = logging.getLogger(__name__)

DEFAULT_DIMENSIONS = 1024


def fallback_embedding(text: str) -> list[float]:
    """SHA-256 pseudo-embedding: each digest byte mapped into [-1, 1].

    Identical text always yields the identical 32-component vector.
    """
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return [(byte / 255) * 2 - 1 for byte in digest]


def normalize_vector(vector: Sequence[float], dimensions: int) -> list[float]:
    """Zero-pad or truncate *vector* to exactly *dimensions* components."""
    values = [float(v) for v in vector[:dimensions]]
    if len(values) < dimensions:
        values.extend([0.0] * (dimensions - len(values)))
    return values


class EmbeddingClient:
    """Turn text into fixed-length vectors.

    Args:
        provider:   Embedding provider, or None to always use the fallback.
        dimensions: Length of every returned vector.
    """

    def __init__(
        self,
        provider: EmbeddingProvider | None,
        dimensions: int = DEFAULT_DIMENSIONS,
    ) -> None:
        if dimensions < 1:
            raise ValueError(f"dimensions must be >= 1, got {dimensions}")
        self._provider = provider
        self.dimensions = dimensions
        self._warned_offline = False

    async def embed(self, text: str) -> list[float]:
        """Return the normalized embedding of *text*.

        Raises:
            EmptyInputError: If *text* is blank.
        """
        if not text or not text.strip():
            raise EmptyInputError("Cannot embed blank text")

        if self._provider is None:
            if not self._warned_offline:
                logger.warning("No embedding provider configured, using hash embeddings")
                self._warned_offline = True
            return normalize_vector(fallback_embedding(text), self.dimensions)

        try:
            vector = await self._provider.embed(text, self.dimensions)
        except ProviderError as exc:
            logger.warning("Embedding provider failed, using hash embedding: %s", exc)
            vector = fallback_embedding(text)
        if not vector:
            logger.warning("Embedding provider returned an empty vector, using hash embedding")
            vector = fallback_embedding(text)
        return normalize_vector(vector, self.dimensions)
