"""Contextual chunk enrichment.

Each chunk gets a one-sentence summary written in the context of its parent
document's title. The summary is prepended to the chunk before embedding:
``"[Context: <summary>]\\n\\n<chunk>"``. A chunk embedded on its own often
lacks the document-level topic, and the prefix restores it.

Without a completion provider (offline, no API key, disabled, or failing)
the summary falls back to the first 180 characters of the chunk.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from knowledge_engine.errors import ProviderError
from knowledge_engine.ingest.chunker import Chunk, normalize_whitespace

if TYPE_CHECKING:
    from knowledge_engine.providers import CompletionProvider

logger = logging.getLogger(__name__)

FALLBACK_SUMMARY_CHARS = 180

_SUMMARY_SYSTEM_PROMPT = (
    "You are a document assistant. You write search-engine context sentences."
)

_SUMMARY_PROMPT = """\
Here is an excerpt from the document "{title}". Summarize the excerpt in a \
single concise sentence that clarifies its context for a search engine.

Excerpt:
{chunk_text}"""


def fallback_summary(chunk_text: str) -> str:
    """Deterministic stand-in summary: the chunk's first 180 characters."""
    return normalize_whitespace(chunk_text[:FALLBACK_SUMMARY_CHARS]) or "Context"


class ChunkEnricher:
    """Prefix chunks with a generated context sentence.

    Args:
        provider: Completion provider, or None to always use the fallback.
        enabled:  When False the provider is never called.
    """

    def __init__(self, provider: CompletionProvider | None, *, enabled: bool = True) -> None:
        self._provider = provider
        self._enabled = enabled

    @property
    def uses_provider(self) -> bool:
        return self._enabled and self._provider is not None

    async def enrich(self, title: str, chunk: Chunk) -> Chunk:
        """Return a copy of *chunk* with ``summary`` set. Never raises on provider errors."""
        summary = await self._summarize(title, chunk.text)
        return Chunk(text=chunk.text, index=chunk.index, summary=summary)

    async def _summarize(self, title: str, chunk_text: str) -> str:
        if not self.uses_provider:
            return fallback_summary(chunk_text)
        prompt = _SUMMARY_PROMPT.format(title=title, chunk_text=chunk_text)
        try:
            summary = await self._provider.complete(_SUMMARY_SYSTEM_PROMPT, prompt, max_tokens=80)
        except ProviderError as exc:
            logger.warning("Chunk summary failed, using excerpt instead: %s", exc)
            return fallback_summary(chunk_text)
        summary = normalize_whitespace(summary)
        return summary or fallback_summary(chunk_text)
