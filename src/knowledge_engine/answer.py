"""Answer a question from retrieved knowledge.

Retrieved chunks are handed to the completion provider as context. Without
a provider, or when it fails, the reply quotes the start of the context so
callers still get something grounded in the tenant's knowledge.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from knowledge_engine.errors import ProviderError

if TYPE_CHECKING:
    from knowledge_engine.providers import CompletionProvider

logger = logging.getLogger(__name__)

FALLBACK_CONTEXT_CHARS = 280

_SYSTEM_PROMPT = """\
You are {bot_name}, a helpful assistant. Answer using only the knowledge \
below. If the knowledge does not contain the answer, say so.

Knowledge:
{context}"""

_NO_CONTEXT = "No knowledge available for this question yet."


def fallback_answer(bot_name: str, context: str) -> str:
    """Deterministic reply that quotes the first 280 characters of *context*."""
    excerpt = " ".join(context.split())[:FALLBACK_CONTEXT_CHARS]
    if not excerpt:
        return f"{bot_name}: {_NO_CONTEXT}"
    return f'{bot_name}: Here is what I found: "{excerpt}"'


class AnswerGenerator:
    """Turn a question plus retrieved context into a reply.

    Args:
        provider: Completion provider, or None for the quoting fallback.
        max_tokens: Reply length limit passed to the provider.
    """

    def __init__(self, provider: CompletionProvider | None, *, max_tokens: int = 512) -> None:
        self._provider = provider
        self._max_tokens = max_tokens

    async def generate(self, bot_name: str, question: str, context: str) -> str:
        if self._provider is None:
            return fallback_answer(bot_name, context)
        system_prompt = _SYSTEM_PROMPT.format(
            bot_name=bot_name, context=context.strip() or _NO_CONTEXT
        )
        try:
            reply = await self._provider.complete(
                system_prompt, question, max_tokens=self._max_tokens
            )
        except ProviderError as exc:
            logger.warning("Answer generation failed, quoting context instead: %s", exc)
            return fallback_answer(bot_name, context)
        return reply or fallback_answer(bot_name, context)
