"""Fixed-window text chunker with character overlap."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

DEFAULT_CHUNK_SIZE = 800  # characters
DEFAULT_CHUNK_OVERLAP = 100  # characters

# Crawled pages and files shorter than this are navigation or boilerplate.
MIN_CONTENT_CHARS = 200

_WHITESPACE_RE = re.compile(r"\s+")

CONTEXT_TEMPLATE = "[Context: {summary}]\n\n{text}"


@dataclass
class Chunk:
    """A window of normalized document text.

    Attributes:
        text: The chunk text as cut from the document.
        index: 0-based position of the chunk within its document.
        summary: Context sentence set by the enricher, or None.
    """

    text: str
    index: int
    summary: str | None = None

    @property
    def content(self) -> str:
        """The text that gets embedded: context prefix + chunk, or the bare chunk."""
        if self.summary:
            return CONTEXT_TEMPLATE.format(summary=self.summary, text=self.text)
        return self.text


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace run to a single space and trim."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def count_tokens(text: str) -> int:
    """Approximate token count: 4 characters ≈ 1 token (never below 1)."""
    return max(1, math.ceil(len(text) / 4))


def chunk_text(
    text: str,
    size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[str]:
    """Split *text* into overlapping windows of at most *size* characters.

    Whitespace is normalized first. Windows start every ``size - overlap``
    characters; the last window is clipped to the end of the text and no
    empty trailing window is produced. Blank input yields ``[]``.

    Raises:
        ValueError: If *size* < 1 or *overlap* is outside ``[0, size)``.
    """
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")
    if not 0 <= overlap < size:
        raise ValueError(f"overlap must be in [0, size), got {overlap} (size={size})")

    normalized = normalize_whitespace(text)
    if not normalized:
        return []

    chunks: list[str] = []
    length = len(normalized)
    start = 0
    while start < length:
        end = min(start + size, length)
        chunks.append(normalized[start:end])
        if end == length:
            break
        start = max(0, end - overlap)
    return chunks


class TextChunker:
    """Turn a document into indexed :class:`Chunk` objects.

    Args:
        chunk_size: Window length in characters.
        overlap: Characters shared by consecutive windows.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        overlap: int = DEFAULT_CHUNK_OVERLAP,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        if not 0 <= overlap < chunk_size:
            raise ValueError("overlap must be in [0, chunk_size)")
        self.chunk_size = chunk_size
        self.overlap = overlap

    def chunk(self, content: str) -> list[Chunk]:
        segments = chunk_text(content, self.chunk_size, self.overlap)
        return [Chunk(text=t, index=i) for i, t in enumerate(segments)]
