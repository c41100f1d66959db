"""In-process vector index: a dict of entries and a full-scan cosine search.

Search is O(n) in the number of stored entries. Meant for development,
tests, offline use and small tenants.
"""

from __future__ import annotations

import json
import logging
import math
import uuid
from dataclasses import dataclass
from pathlib import Path

from knowledge_engine.vectors.base import VectorIndex, VectorMatch, VectorMetadata

logger = logging.getLogger(__name__)

_SNAPSHOT_VERSION = 1


@dataclass
class _Entry:
    id: str
    vector: list[float]
    metadata: VectorMetadata
    content: str


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity over the overlapping prefix of *a* and *b*.

    Returns 0.0 when either vector has zero magnitude.
    """
    n = min(len(a), len(b))
    dot = mag_a = mag_b = 0.0
    for i in range(n):
        x, y = a[i], b[i]
        dot += x * y
        mag_a += x * x
        mag_b += y * y
    if mag_a == 0.0 or mag_b == 0.0:
        return 0.0
    return dot / (math.sqrt(mag_a) * math.sqrt(mag_b))


class InMemoryVectorIndex(VectorIndex):
    """Vector index held in a single keyed table in process memory."""

    name = "memory"

    def __init__(self) -> None:
        self._entries: dict[str, _Entry] = {}

    async def upsert(
        self,
        vector: list[float],
        metadata: VectorMetadata,
        content: str,
        vector_id: str | None = None,
    ) -> str:
        entry_id = vector_id or str(uuid.uuid4())
        self._entries[entry_id] = _Entry(entry_id, list(vector), metadata, content)
        return entry_id

    async def search(self, tenant_id: str, vector: list[float], top_k: int) -> list[VectorMatch]:
        if top_k < 1:
            return []
        matches = [
            VectorMatch(
                id=entry.id,
                score=cosine_similarity(vector, entry.vector),
                metadata=entry.metadata,
                content=entry.content,
            )
            for entry in self._entries.values()
            if entry.metadata.tenant_id == tenant_id
        ]
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches[:top_k]

    async def delete_by_source(self, tenant_id: str, knowledge_source_id: str) -> int:
        doomed = [
            entry_id
            for entry_id, entry in self._entries.items()
            if entry.metadata.tenant_id == tenant_id
            and entry.metadata.knowledge_source_id == knowledge_source_id
        ]
        for entry_id in doomed:
            del self._entries[entry_id]
        return len(doomed)

    async def delete_by_tenant(self, tenant_id: str) -> int:
        doomed = [
            entry_id
            for entry_id, entry in self._entries.items()
            if entry.metadata.tenant_id == tenant_id
        ]
        for entry_id in doomed:
            del self._entries[entry_id]
        return len(doomed)

    async def count(self, tenant_id: str | None = None) -> int:
        if tenant_id is None:
            return len(self._entries)
        return sum(1 for e in self._entries.values() if e.metadata.tenant_id == tenant_id)

    # ------------------------------------------------------------------
    # Snapshot persistence
    # ------------------------------------------------------------------

    def dump(self, path: Path) -> int:
        """Write all entries to *path* as JSON. Returns the number written."""
        payload = {
            "version": _SNAPSHOT_VERSION,
            "entries": [
                {
                    "id": e.id,
                    "vector": e.vector,
                    "metadata": e.metadata.to_dict(),
                    "content": e.content,
                }
                for e in self._entries.values()
            ],
        }
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(json.dumps(payload), encoding="utf-8")
        tmp.replace(path)
        return len(self._entries)

    def load(self, path: Path) -> int:
        """Replace the current entries with those stored at *path*.

        A missing file leaves the index empty. Returns the number loaded.

        Raises:
            ValueError: If the snapshot was written by an unknown format version.
        """
        self._entries.clear()
        if not path.exists():
            return 0
        payload = json.loads(path.read_text(encoding="utf-8"))
        version = payload.get("version")
        if version != _SNAPSHOT_VERSION:
            raise ValueError(f"Unsupported vector snapshot version {version!r} in {path}")
        for raw in payload.get("entries", []):
            entry = _Entry(
                id=raw["id"],
                vector=list(raw["vector"]),
                metadata=VectorMetadata.from_dict(raw["metadata"]),
                content=raw["content"],
            )
            self._entries[entry.id] = entry
        logger.debug("Loaded %d vectors from %s", len(self._entries), path)
        return len(self._entries)
