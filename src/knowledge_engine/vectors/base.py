"""Abstract base class for vector-index backends.

Adding a backend only requires subclassing :class:`VectorIndex` and
implementing its abstract methods. Every entry carries its tenant id and
every query is scoped to one tenant; the rest of the engine is
backend-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any


@dataclass
class VectorMetadata:
    """Metadata stored next to every vector.

    Attributes:
        tenant_id: Owning tenant; the search scope.
        knowledge_source_id: Source the chunk came from.
        chunk_index: Position of the chunk within its document.
        label: Human-readable source label (page title, file name, ...).
        source_uri: Origin URI of the source, when it has one.
    """

    tenant_id: str
    knowledge_source_id: str
    chunk_index: int
    label: str = ""
    source_uri: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, tenant_id: str | None = None) -> VectorMetadata:
        return cls(
            tenant_id=str(data.get("tenant_id") or tenant_id or ""),
            knowledge_source_id=str(data.get("knowledge_source_id") or ""),
            chunk_index=int(data.get("chunk_index") or 0),
            label=str(data.get("label") or ""),
            source_uri=data.get("source_uri") or None,
        )


@dataclass
class VectorMatch:
    """One search hit; ``score`` is a similarity (higher = more similar)."""

    id: str
    score: float
    metadata: VectorMetadata
    content: str


class VectorIndex(ABC):
    """Backend-agnostic vector-index interface."""

    name: str = "abstract"

    @abstractmethod
    async def upsert(
        self,
        vector: list[float],
        metadata: VectorMetadata,
        content: str,
        vector_id: str | None = None,
    ) -> str:
        """Store *vector* with its metadata and content; return its id.

        A new id is generated when *vector_id* is None; an existing id is
        overwritten.

        Raises:
            ProviderError: If the backend rejects the write.
        """

    @abstractmethod
    async def search(self, tenant_id: str, vector: list[float], top_k: int) -> list[VectorMatch]:
        """Return up to *top_k* entries of *tenant_id* ranked by descending similarity."""

    @abstractmethod
    async def delete_by_source(self, tenant_id: str, knowledge_source_id: str) -> int:
        """Delete every entry of a knowledge source. Returns the number of ids removed.

        Remote backends treat this as best-effort and never raise.
        """

    @abstractmethod
    async def delete_by_tenant(self, tenant_id: str) -> int:
        """Delete every entry of a tenant. Returns the number removed (-1 if unknown)."""

    @abstractmethod
    async def count(self, tenant_id: str | None = None) -> int:
        """Return the number of stored entries, optionally for one tenant."""
