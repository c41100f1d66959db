"""Pinecone implementation of the vector-index abstraction.

Each tenant owns one Pinecone namespace. Upsert and query map directly onto
namespace-scoped calls. Pinecone cannot delete by metadata filter on every
index type, so deleting a source looks up its vector ids in the relational
store and deletes them by id in batches.

Deletes are best-effort: errors are logged and swallowed. Ids of a failed
delete batch are kept in the ``pending_vector_deletes`` table, hidden from
search, and retried on the tenant's next delete. Upsert and query errors
raise ProviderError.
"""

from __future__ import annotations

import asyncio
import logging
import os
import uuid
from typing import TYPE_CHECKING, Any

from knowledge_engine.config import ConfigError, EngineConfig
from knowledge_engine.errors import ProviderError
from knowledge_engine.vectors.base import VectorIndex, VectorMatch, VectorMetadata

if TYPE_CHECKING:
    from knowledge_engine.db.repository import Repository

logger = logging.getLogger(__name__)

# Pinecone rejects delete-by-id requests with more than 1000 ids.
MAX_DELETE_BATCH = 1000


def _pinecone_metadata(metadata: VectorMetadata, content: str) -> dict[str, Any]:
    """Flatten metadata for Pinecone, which rejects null values."""
    data = {k: v for k, v in metadata.to_dict().items() if v is not None}
    data["content"] = content
    return data


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read *name* from a Pinecone response object or plain dict."""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


class PineconeVectorIndex(VectorIndex):
    """Pinecone-backed vector index.

    Args:
        index: A ``pinecone.Index`` handle (or any object with the same
            ``upsert`` / ``query`` / ``delete`` / ``describe_index_stats``).
        repo: Repository used to resolve a source's vector ids.
        delete_batch_size: Max ids per delete call (capped at 1000).
    """

    name = "pinecone"

    def __init__(
        self,
        index: Any,
        repo: Repository,
        *,
        delete_batch_size: int = MAX_DELETE_BATCH,
    ) -> None:
        self._index = index
        self._repo = repo
        self._delete_batch_size = max(1, min(delete_batch_size, MAX_DELETE_BATCH))

    @classmethod
    def from_config(cls, cfg: EngineConfig, repo: Repository) -> PineconeVectorIndex:
        """Connect to the index named in *cfg* using ``PINECONE_API_KEY``.

        Raises:
            ConfigError: If the API key or index name is missing.
        """
        from pinecone import Pinecone

        api_key = os.environ.get("PINECONE_API_KEY")
        if not api_key:
            raise ConfigError(
                "PINECONE_API_KEY is not set.\n"
                "  Export it or switch vector_store.backend to 'memory'."
            )
        if not cfg.vector_store.pinecone_index:
            raise ConfigError("vector_store.pinecone_index is required for the pinecone backend")
        client = Pinecone(api_key=api_key)
        return cls(
            client.Index(cfg.vector_store.pinecone_index),
            repo,
            delete_batch_size=cfg.vector_store.delete_batch_size,
        )

    async def upsert(
        self,
        vector: list[float],
        metadata: VectorMetadata,
        content: str,
        vector_id: str | None = None,
    ) -> str:
        entry_id = vector_id or str(uuid.uuid4())
        record = {
            "id": entry_id,
            "values": vector,
            "metadata": _pinecone_metadata(metadata, content),
        }
        try:
            await asyncio.to_thread(
                self._index.upsert, vectors=[record], namespace=metadata.tenant_id
            )
        except Exception as exc:
            raise ProviderError(self.name, f"upsert of '{entry_id}' failed: {exc}") from exc
        return entry_id

    async def search(self, tenant_id: str, vector: list[float], top_k: int) -> list[VectorMatch]:
        if top_k < 1:
            return []
        hidden = set(self._repo.list_pending_deletes(tenant_id))
        try:
            response = await asyncio.to_thread(
                self._index.query,
                vector=vector,
                top_k=top_k + len(hidden),
                namespace=tenant_id,
                filter={"tenant_id": {"$eq": tenant_id}},
                include_metadata=True,
            )
        except Exception as exc:
            raise ProviderError(self.name, f"query for tenant '{tenant_id}' failed: {exc}") from exc

        matches: list[VectorMatch] = []
        for match in _field(response, "matches") or []:
            if str(_field(match, "id")) in hidden:
                continue
            raw = dict(_field(match, "metadata") or {})
            content = str(raw.pop("content", ""))
            metadata = VectorMetadata.from_dict(raw, tenant_id=tenant_id)
            if metadata.tenant_id != tenant_id:
                continue
            matches.append(
                VectorMatch(
                    id=str(_field(match, "id")),
                    score=float(_field(match, "score") or 0.0),
                    metadata=metadata,
                    content=content,
                )
            )
        return matches[:top_k]

    async def delete_by_source(self, tenant_id: str, knowledge_source_id: str) -> int:
        """Delete the source's vectors plus any earlier failed deletes of the tenant."""
        pending = self._repo.list_pending_deletes(tenant_id)
        vector_ids = list(
            dict.fromkeys(pending + self._repo.list_vector_ids_by_source(knowledge_source_id))
        )
        retried = set(pending)
        deleted = 0
        for start in range(0, len(vector_ids), self._delete_batch_size):
            batch = vector_ids[start : start + self._delete_batch_size]
            try:
                await asyncio.to_thread(self._index.delete, ids=batch, namespace=tenant_id)
            except Exception:
                logger.error(
                    "Pinecone delete failed for source %s (tenant %s, %d ids); kept for retry",
                    knowledge_source_id,
                    tenant_id,
                    len(batch),
                    exc_info=True,
                )
                self._repo.add_pending_deletes(tenant_id, batch)
                continue
            deleted += len(batch)
            done = [vid for vid in batch if vid in retried]
            if done:
                self._repo.clear_pending_deletes(tenant_id, done)
        return deleted

    async def delete_by_tenant(self, tenant_id: str) -> int:
        try:
            existing = await self.count(tenant_id)
            await asyncio.to_thread(self._index.delete, delete_all=True, namespace=tenant_id)
        except Exception:
            logger.error("Pinecone namespace purge failed for tenant %s", tenant_id, exc_info=True)
            return 0
        self._repo.clear_pending_deletes(tenant_id)
        return existing

    async def count(self, tenant_id: str | None = None) -> int:
        try:
            stats = await asyncio.to_thread(self._index.describe_index_stats)
        except Exception as exc:
            raise ProviderError(self.name, f"describe_index_stats failed: {exc}") from exc
        if tenant_id is None:
            return int(_field(stats, "total_vector_count") or 0)
        namespaces = _field(stats, "namespaces") or {}
        namespace = namespaces.get(tenant_id)
        return int(_field(namespace, "vector_count") or 0) if namespace is not None else 0
