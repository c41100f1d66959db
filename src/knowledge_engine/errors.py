"""Exception hierarchy for the knowledge engine.

Completion and embedding failures are recovered where they happen (see
``ChunkEnricher`` and ``EmbeddingClient``); vector-index write failures
propagate as :class:`ProviderError` and fail the ingestion.
"""

from __future__ import annotations


class KnowledgeEngineError(Exception):
    """Base class for all engine errors."""


class EmptyInputError(KnowledgeEngineError, ValueError):
    """Raised when blank text is passed to chunking or embedding."""


class InsufficientContentError(KnowledgeEngineError):
    """Raised when a document produces no usable chunks."""


class ProviderError(KnowledgeEngineError):
    """An external provider (completion, embedding, vector index) failed.

    Attributes:
        provider: Short provider name, e.g. ``"pinecone"`` or ``"litellm"``.
    """

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class SourceNotFoundError(KnowledgeEngineError, LookupError):
    """Raised when a source id does not exist for the given tenant."""

    def __init__(self, tenant_id: str, source_id: str) -> None:
        super().__init__(f"Knowledge source '{source_id}' not found for tenant '{tenant_id}'")
        self.tenant_id = tenant_id
        self.source_id = source_id
