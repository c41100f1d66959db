"""LiteLLM provider wrappers with retry, backoff, and API key validation.

All completion and embedding calls in the engine route through this module.
LiteLLM's built-in retry is used (num_retries=3, exponential backoff).
A provider whose API key is missing, or any provider while offline mode is
on, is reported as absent (``None``) and callers fall back deterministically.
"""

from __future__ import annotations

import logging
import os

import litellm

from knowledge_engine.config import EngineConfig
from knowledge_engine.errors import ProviderError

logger = logging.getLogger(__name__)

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True
litellm.set_verbose = False  # type: ignore[assignment]


# ------------------------------------------------------------------
# Provider → env var mapping for API key validation
# ------------------------------------------------------------------

_PROVIDER_ENV: dict[str, str | None] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_API_KEY",
    "cohere": "COHERE_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "voyage": "VOYAGE_API_KEY",
    "ollama": None,  # Local, no key required
    "ollama_chat": None,
}


def validate_api_key(model: str) -> None:
    """Check that the required API key env var is set for *model*.

    Args:
        model: LiteLLM model string in 'provider/model' format.

    Raises:
        EnvironmentError: If the required key is missing from environment.
    """
    provider = model.split("/")[0].lower() if "/" in model else "openai"
    env_var = _PROVIDER_ENV.get(provider, f"{provider.upper()}_API_KEY")

    if env_var is None:
        return

    if not os.getenv(env_var):
        raise EnvironmentError(
            f"API key not found for provider '{provider}'. "
            f"Set the {env_var} environment variable."
        )


class CompletionProvider:
    """Chat completion through ``litellm.acompletion``."""

    name = "litellm"

    def __init__(
        self,
        model: str,
        *,
        max_tokens: int = 256,
        temperature: float = 0.1,
        num_retries: int = 3,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.num_retries = num_retries

    async def complete(
        self,
        system_prompt: str | None,
        user_prompt: str,
        *,
        max_tokens: int | None = None,
    ) -> str:
        """Return the text of the first choice (empty string if none).

        Raises:
            ProviderError: On persistent API failure after retries.
        """
        messages: list[dict] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})
        try:
            response = await litellm.acompletion(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens or self.max_tokens,
                temperature=self.temperature,
                num_retries=self.num_retries,
            )
        except Exception as exc:
            raise ProviderError(self.name, f"completion with '{self.model}' failed: {exc}") from exc
        if not response.choices:
            return ""
        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, KeyError, TypeError) as exc:
            raise ProviderError(self.name, f"malformed completion reply from '{self.model}'") from exc
        return (content or "").strip()


class EmbeddingProvider:
    """Text embeddings through ``litellm.aembedding``."""

    name = "litellm"

    def __init__(self, model: str, *, num_retries: int = 3) -> None:
        self.model = model
        self.num_retries = num_retries

    async def embed(self, text: str, dimensions: int) -> list[float]:
        """Return the embedding of *text*, requesting *dimensions* components.

        Raises:
            ProviderError: On persistent API failure after retries.
        """
        try:
            response = await litellm.aembedding(
                model=self.model,
                input=[text],
                dimensions=dimensions,
                num_retries=self.num_retries,
            )
        except Exception as exc:
            raise ProviderError(self.name, f"embedding with '{self.model}' failed: {exc}") from exc
        try:
            return [float(v) for v in response.data[0]["embedding"]]
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as exc:
            raise ProviderError(self.name, f"malformed embedding reply from '{self.model}'") from exc


def build_completion_provider(cfg: EngineConfig) -> CompletionProvider | None:
    """Return a completion provider, or None in offline mode / without an API key."""
    if cfg.offline:
        return None
    try:
        validate_api_key(cfg.completion.model)
    except EnvironmentError as exc:
        logger.warning("Completion provider disabled: %s", exc)
        return None
    return CompletionProvider(cfg.completion.model)


def build_embedding_provider(cfg: EngineConfig) -> EmbeddingProvider | None:
    """Return an embedding provider, or None in offline mode / without an API key."""
    if cfg.offline:
        return None
    try:
        validate_api_key(cfg.embedding.model)
    except EnvironmentError as exc:
        logger.warning("Embedding provider disabled, using hash embeddings: %s", exc)
        return None
    return EmbeddingProvider(cfg.embedding.model)
