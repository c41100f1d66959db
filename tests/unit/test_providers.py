"""Tests for the LiteLLM provider wrappers."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from knowledge_engine.config import EngineConfig
from knowledge_engine.embedding import EmbeddingClient, fallback_embedding, normalize_vector
from knowledge_engine.errors import ProviderError
from knowledge_engine.providers import (
    CompletionProvider,
    EmbeddingProvider,
    build_completion_provider,
    build_embedding_provider,
    validate_api_key,
)


# ------------------------------------------------------------------
# validate_api_key
# ------------------------------------------------------------------


def test_validate_api_key_raises_if_missing(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(EnvironmentError, match="OPENAI_API_KEY"):
        validate_api_key("openai/gpt-4o-mini")


def test_validate_api_key_passes_if_set(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key")
    validate_api_key("openai/gpt-4o-mini")


def test_validate_api_key_ollama_no_key_required():
    validate_api_key("ollama/llama3")


def test_validate_api_key_bare_model_treated_as_openai(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(EnvironmentError):
        validate_api_key("text-embedding-3-small")


def test_validate_api_key_unknown_provider(monkeypatch):
    monkeypatch.delenv("TOGETHER_API_KEY", raising=False)
    with pytest.raises(EnvironmentError, match="TOGETHER_API_KEY"):
        validate_api_key("together/llama")


# ------------------------------------------------------------------
# CompletionProvider
# ------------------------------------------------------------------


def _completion_response(text):
    response = MagicMock()
    response.choices[0].message.content = text
    return response


def test_complete_returns_stripped_content():
    with patch(
        "knowledge_engine.providers.litellm.acompletion",
        new=AsyncMock(return_value=_completion_response("  Hello!  ")),
    ) as mock_call:
        result = asyncio.run(CompletionProvider("openai/gpt-4o-mini").complete("sys", "hi"))
    assert result == "Hello!"
    kwargs = mock_call.call_args.kwargs
    assert kwargs["model"] == "openai/gpt-4o-mini"
    assert kwargs["num_retries"] == 3
    assert kwargs["messages"] == [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "hi"},
    ]


def test_complete_without_system_prompt():
    with patch(
        "knowledge_engine.providers.litellm.acompletion",
        new=AsyncMock(return_value=_completion_response(None)),
    ) as mock_call:
        result = asyncio.run(CompletionProvider("openai/gpt-4o-mini").complete(None, "hi"))
    assert result == ""
    assert mock_call.call_args.kwargs["messages"] == [{"role": "user", "content": "hi"}]


def test_complete_wraps_errors():
    with patch(
        "knowledge_engine.providers.litellm.acompletion",
        new=AsyncMock(side_effect=RuntimeError("503")),
    ):
        with pytest.raises(ProviderError, match="503") as exc_info:
            asyncio.run(CompletionProvider("openai/gpt-4o-mini").complete("s", "u"))
    assert exc_info.value.provider == "litellm"


# ------------------------------------------------------------------
# EmbeddingProvider
# ------------------------------------------------------------------


def test_embed_requests_dimensions():
    response = MagicMock()
    response.data = [{"embedding": [0.1, 0.2, 0.3]}]
    with patch(
        "knowledge_engine.providers.litellm.aembedding",
        new=AsyncMock(return_value=response),
    ) as mock_call:
        result = asyncio.run(EmbeddingProvider("openai/text-embedding-3-small").embed("x", 1024))
    assert result == [0.1, 0.2, 0.3]
    kwargs = mock_call.call_args.kwargs
    assert kwargs["input"] == ["x"]
    assert kwargs["dimensions"] == 1024


def test_embed_wraps_errors():
    with patch(
        "knowledge_engine.providers.litellm.aembedding",
        new=AsyncMock(side_effect=RuntimeError("quota")),
    ):
        with pytest.raises(ProviderError, match="quota"):
            asyncio.run(EmbeddingProvider("openai/text-embedding-3-small").embed("x", 8))


# ------------------------------------------------------------------
# Builders
# ------------------------------------------------------------------


def test_builders_return_none_offline(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    cfg = EngineConfig(offline=True)
    assert build_completion_provider(cfg) is None
    assert build_embedding_provider(cfg) is None


def test_builders_return_none_without_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    cfg = EngineConfig()
    assert build_completion_provider(cfg) is None
    assert build_embedding_provider(cfg) is None


def test_builders_return_providers_with_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    cfg = EngineConfig()
    assert build_completion_provider(cfg).model == cfg.completion.model
    assert build_embedding_provider(cfg).model == cfg.embedding.model


# ------------------------------------------------------------------
# Malformed replies
# ------------------------------------------------------------------


def test_complete_no_choices_returns_empty():
    with patch(
        "knowledge_engine.providers.litellm.acompletion",
        new=AsyncMock(return_value=SimpleNamespace(choices=[])),
    ):
        assert asyncio.run(CompletionProvider("openai/gpt-4o-mini").complete("s", "u")) == ""


def test_complete_malformed_choice_raises_provider_error():
    with patch(
        "knowledge_engine.providers.litellm.acompletion",
        new=AsyncMock(return_value=SimpleNamespace(choices=[SimpleNamespace()])),
    ):
        with pytest.raises(ProviderError, match="malformed"):
            asyncio.run(CompletionProvider("openai/gpt-4o-mini").complete("s", "u"))


def test_embed_empty_data_raises_provider_error():
    with patch(
        "knowledge_engine.providers.litellm.aembedding",
        new=AsyncMock(return_value=SimpleNamespace(data=[])),
    ):
        with pytest.raises(ProviderError, match="malformed"):
            asyncio.run(EmbeddingProvider("openai/text-embedding-3-small").embed("x", 8))


def test_embed_missing_key_raises_provider_error():
    with patch(
        "knowledge_engine.providers.litellm.aembedding",
        new=AsyncMock(return_value=SimpleNamespace(data=[{"vector": [0.1]}])),
    ):
        with pytest.raises(ProviderError):
            asyncio.run(EmbeddingProvider("openai/text-embedding-3-small").embed("x", 8))


def test_empty_embedding_reply_degrades_to_hash_vector():
    with patch(
        "knowledge_engine.providers.litellm.aembedding",
        new=AsyncMock(return_value=SimpleNamespace(data=[])),
    ):
        client = EmbeddingClient(EmbeddingProvider("openai/text-embedding-3-small"), 8)
        vector = asyncio.run(client.embed("What is the secret phrase?"))
    assert vector == normalize_vector(fallback_embedding("What is the secret phrase?"), 8)
