"""Knowledge engine configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site, not in this module)
  2. Environment variables  (KENGINE_VECTOR_BACKEND, KENGINE_EMBEDDING_MODEL, ...)
  3. Per-project kengine.yaml  (next to the database)
  4. Global ~/.kengine/config.yaml  (model defaults only, no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".kengine"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
PROJECT_CONFIG_NAME: str = "kengine.yaml"

# Fields that suggest an API key; forbidden in global config.
# Does NOT match legitimate config keys like max_tokens or top_k.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(
    [
        "offline",
        "embedding",
        "completion",
        "chunking",
        "ingestion",
        "retrieval",
        "vector_store",
        "logging",
    ]
)

VECTOR_BACKENDS: frozenset[str] = frozenset(["memory", "pinecone"])

_TRUTHY = {"1", "true", "yes", "on"}


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class EmbeddingCfg:
    """Embedding model configuration (kengine.yaml: embedding:)."""

    model: str = "openai/text-embedding-3-small"
    dimensions: int = 1024


@dataclass
class CompletionCfg:
    """Completion model used for chunk enrichment and answers (kengine.yaml: completion:)."""

    model: str = "openai/gpt-4o-mini"
    enrich: bool = True


@dataclass
class ChunkingCfg:
    """Fixed-window chunking (kengine.yaml: chunking:).

    Attributes:
        chunk_size: Window length in characters.
        overlap: Characters shared by consecutive windows; must be < chunk_size.
        min_content_chars: Crawled pages and files shorter than this are skipped.
    """

    chunk_size: int = 800
    overlap: int = 100
    min_content_chars: int = 200


@dataclass
class IngestionCfg:
    """Ingestion pipeline tuning (kengine.yaml: ingestion:)."""

    max_concurrency: int = 10


@dataclass
class RetrievalCfg:
    """Retrieval configuration (kengine.yaml: retrieval:)."""

    top_k: int = 4


@dataclass
class VectorStoreCfg:
    """Vector index backend selection (kengine.yaml: vector_store:).

    Attributes:
        backend: ``memory`` (in-process) or ``pinecone`` (managed remote).
        pinecone_index: Pinecone index name (backend: pinecone only).
        delete_batch_size: Max ids per Pinecone delete call (provider limit 1000).
        snapshot: JSON file the in-process index is loaded from / saved to by
            the CLI. ``None`` keeps the index purely in memory.
    """

    backend: str = "memory"
    pinecone_index: str = ""
    delete_batch_size: int = 1000
    snapshot: str | None = ".kengine-vectors.json"


@dataclass
class LoggingCfg:
    """Logging configuration (kengine.yaml: logging:)."""

    level: str = "INFO"


@dataclass
class EngineConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    offline: bool = False
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    completion: CompletionCfg = field(default_factory=CompletionCfg)
    chunking: ChunkingCfg = field(default_factory=ChunkingCfg)
    ingestion: IngestionCfg = field(default_factory=IngestionCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)
    vector_store: VectorStoreCfg = field(default_factory=VectorStoreCfg)
    logging: LoggingCfg = field(default_factory=LoggingCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}', ignored.",
                UserWarning,
                stacklevel=4,
            )


def validate_config(cfg: EngineConfig) -> None:
    """Raise ConfigError if *cfg* holds values the engine cannot run with."""
    ch = cfg.chunking
    if ch.chunk_size < 1:
        raise ConfigError(f"chunking.chunk_size must be >= 1, got {ch.chunk_size}")
    if not 0 <= ch.overlap < ch.chunk_size:
        raise ConfigError(
            f"chunking.overlap must be in [0, chunk_size), got {ch.overlap} "
            f"(chunk_size={ch.chunk_size})"
        )
    if cfg.embedding.dimensions < 1:
        raise ConfigError(f"embedding.dimensions must be >= 1, got {cfg.embedding.dimensions}")
    if cfg.ingestion.max_concurrency < 1:
        raise ConfigError(
            f"ingestion.max_concurrency must be >= 1, got {cfg.ingestion.max_concurrency}"
        )
    if cfg.retrieval.top_k < 1:
        raise ConfigError(f"retrieval.top_k must be >= 1, got {cfg.retrieval.top_k}")
    vs = cfg.vector_store
    if vs.backend not in VECTOR_BACKENDS:
        raise ConfigError(
            f"vector_store.backend must be one of {sorted(VECTOR_BACKENDS)}, got '{vs.backend}'"
        )
    if not 1 <= vs.delete_batch_size <= 1000:
        raise ConfigError(
            f"vector_store.delete_batch_size must be in [1, 1000], got {vs.delete_batch_size}"
        )
    if vs.backend == "pinecone" and not vs.pinecone_index:
        raise ConfigError(
            "vector_store.pinecone_index is required when backend is 'pinecone'.\n"
            "  Set it in kengine.yaml or export KENGINE_PINECONE_INDEX=<name>"
        )


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return bool(value)


def _cfg_from_dict(data: dict[str, Any]) -> EngineConfig:
    """Build an *EngineConfig* from a merged raw YAML dict."""
    cfg = EngineConfig()

    if "offline" in data:
        cfg.offline = _as_bool(data["offline"])

    if "embedding" in data:
        e = data["embedding"] or {}
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            dimensions=int(e.get("dimensions", cfg.embedding.dimensions)),
        )

    if "completion" in data:
        c = data["completion"] or {}
        cfg.completion = CompletionCfg(
            model=str(c.get("model", cfg.completion.model)),
            enrich=_as_bool(c.get("enrich", cfg.completion.enrich)),
        )

    if "chunking" in data:
        ch = data["chunking"] or {}
        cfg.chunking = ChunkingCfg(
            chunk_size=int(ch.get("chunk_size", cfg.chunking.chunk_size)),
            overlap=int(ch.get("overlap", cfg.chunking.overlap)),
            min_content_chars=int(ch.get("min_content_chars", cfg.chunking.min_content_chars)),
        )

    if "ingestion" in data:
        i = data["ingestion"] or {}
        cfg.ingestion = IngestionCfg(
            max_concurrency=int(i.get("max_concurrency", cfg.ingestion.max_concurrency)),
        )

    if "retrieval" in data:
        r = data["retrieval"] or {}
        cfg.retrieval = RetrievalCfg(top_k=int(r.get("top_k", cfg.retrieval.top_k)))

    if "vector_store" in data:
        v = data["vector_store"] or {}
        cfg.vector_store = VectorStoreCfg(
            backend=str(v.get("backend", cfg.vector_store.backend)).lower(),
            pinecone_index=str(v.get("pinecone_index", cfg.vector_store.pinecone_index)),
            delete_batch_size=int(
                v.get("delete_batch_size", cfg.vector_store.delete_batch_size)
            ),
            snapshot=v.get("snapshot", cfg.vector_store.snapshot),
        )

    if "logging" in data:
        lg = data["logging"] or {}
        cfg.logging = LoggingCfg(level=str(lg.get("level", cfg.logging.level)).upper())

    return cfg


def _apply_env_overrides(cfg: EngineConfig) -> EngineConfig:
    """Apply KENGINE_* environment variable overrides."""
    if backend := os.environ.get("KENGINE_VECTOR_BACKEND"):
        cfg.vector_store.backend = backend.lower()
    if index := os.environ.get("KENGINE_PINECONE_INDEX"):
        cfg.vector_store.pinecone_index = index
    if model := os.environ.get("KENGINE_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if model := os.environ.get("KENGINE_COMPLETION_MODEL"):
        cfg.completion.model = model
    if offline := os.environ.get("KENGINE_OFFLINE"):
        cfg.offline = _as_bool(offline)
    if level := os.environ.get("KENGINE_LOG_LEVEL"):
        cfg.logging.level = level.upper()
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> EngineConfig:
    """Load and return a merged, validated *EngineConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *kengine.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If global config contains API-key-like fields, or if
            the merged values fail :func:`validate_config`.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _apply_env_overrides(_cfg_from_dict(merged))
    validate_config(cfg)
    return cfg


def write_project_config(project_dir: Path, cfg: EngineConfig | None = None) -> Path:
    """Write a starter *kengine.yaml* into *project_dir* and return its path.

    An existing file is left untouched.
    """
    cfg = cfg or EngineConfig()
    target = project_dir / PROJECT_CONFIG_NAME
    if target.exists():
        return target

    data = {
        "embedding": {"model": cfg.embedding.model, "dimensions": cfg.embedding.dimensions},
        "completion": {"model": cfg.completion.model, "enrich": cfg.completion.enrich},
        "chunking": {
            "chunk_size": cfg.chunking.chunk_size,
            "overlap": cfg.chunking.overlap,
            "min_content_chars": cfg.chunking.min_content_chars,
        },
        "ingestion": {"max_concurrency": cfg.ingestion.max_concurrency},
        "retrieval": {"top_k": cfg.retrieval.top_k},
        "vector_store": {
            "backend": cfg.vector_store.backend,
            "snapshot": cfg.vector_store.snapshot,
        },
    }
    header = (
        "# Knowledge engine project configuration.\n"
        "# NEVER store API keys here. Use environment variables:\n"
        "#   export OPENAI_API_KEY=sk-...\n"
        "#   export PINECONE_API_KEY=...\n\n"
    )
    target.write_text(header + yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return target
