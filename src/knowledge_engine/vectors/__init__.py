"""Vector index: abstraction, in-process and Pinecone backends.

Public surface
--------------
- :class:`VectorIndex`: abstract backend.
- :class:`InMemoryVectorIndex`: full-scan cosine backend.
- :class:`PineconeVectorIndex`: managed remote backend (lazy import).
- :func:`build_vector_index`: startup-time backend selection.
"""

from knowledge_engine.vectors.base import VectorIndex, VectorMatch, VectorMetadata
from knowledge_engine.vectors.factory import build_vector_index
from knowledge_engine.vectors.memory import InMemoryVectorIndex, cosine_similarity

__all__ = [
    "InMemoryVectorIndex",
    "PineconeVectorIndex",
    "VectorIndex",
    "VectorMatch",
    "VectorMetadata",
    "build_vector_index",
    "cosine_similarity",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import PineconeVectorIndex to avoid pulling in pinecone at import time."""
    if name == "PineconeVectorIndex":
        from knowledge_engine.vectors.pinecone_index import PineconeVectorIndex

        return PineconeVectorIndex
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
