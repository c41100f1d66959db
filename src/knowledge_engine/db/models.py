"""Domain models for the knowledge engine database layer."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum


class SourceKind(str, Enum):
    URL = "URL"
    TEXT = "TEXT"
    FILE = "FILE"


class SourceStatus(str, Enum):
    PENDING = "PENDING"
    READY = "READY"
    FAILED = "FAILED"


@dataclass
class KnowledgeSource:
    id: str
    tenant_id: str
    label: str
    kind: SourceKind
    uri: str | None = None
    status: SourceStatus = SourceStatus.PENDING
    metadata: str = field(default_factory=lambda: "{}")
    created_at: str | None = None
    updated_at: str | None = None
    embedding_count: int | None = None  # populated by Repository.list_sources()

    @property
    def metadata_dict(self) -> dict:
        return json.loads(self.metadata)


@dataclass
class EmbeddingRecord:
    """Link between a knowledge source and one vector-index entry.

    ``content`` is the exact text that was embedded, context prefix included.
    """

    id: str
    knowledge_source_id: str
    vector_id: str
    content: str
    token_count: int
    created_at: str | None = None
