"""ftcrag configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site, not in this module)
  2. Environment variables  (FTCRAG_EMBEDDING_MODEL, FTCRAG_CACHE_PATH)
  3. Per-project ftcrag.yaml
  4. Global ~/.ftcrag/config.yaml  (defaults only, no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; the embedding credential is
passed explicitly by the caller (the CLI reads OPENAI_API_KEY).
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

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".ftcrag"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "ftcrag.yaml"

# Fields that suggest an API key; forbidden in global config.
# Does NOT match legitimate keys like batch_size, max_total_chars, top_k.
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
    ["embedding", "chunking", "retrieval", "context", "ingest"]
)


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
    """Embedding service configuration (ftcrag.yaml: embedding:)."""

    model: str = "openai/text-embedding-3-small"
    batch_size: int = 100
    batch_delay: float = 1.0  # seconds between batches (rate limits)


@dataclass
class ChunkingCfg:
    """Fixed-window chunking, measured in characters (ftcrag.yaml: chunking:)."""

    chunk_size: int = 1000
    overlap: int = 200


@dataclass
class RetrievalCfg:
    """Query engine configuration (ftcrag.yaml: retrieval:)."""

    top_k: int = 10
    vendor_keyword_bonus: float = 5.0


@dataclass
class ContextCfg:
    """Prompt context budget (ftcrag.yaml: context:).

    Attributes:
        max_document_chars: Cap for one rendered document block.
        max_total_chars: Cap for the whole formatted context.
    """

    max_document_chars: int = 4_000
    max_total_chars: int = 20_000


@dataclass
class IngestCfg:
    """Source ingestion configuration (ftcrag.yaml: ingest:).

    Attributes:
        cache_path: JSON snapshot of the last completed catalog ingestion.
        season_tag: Label stamped on every ingested document.
        user_repo_prefix: Path prefix fetched from user-supplied repositories.
        branches: Candidate default branches, probed in order.
        timeout: Per-request network timeout in seconds.
        max_concurrency: Catalog sources fetched in parallel.
        include_seed_documents: Append the built-in seed documents to each
            non-cached catalog ingestion.
    """

    cache_path: str = ".ftcrag/documents.json"
    season_tag: str = "DECODE 2025-26"
    user_repo_prefix: str = "TeamCode/src/main/java"
    branches: list[str] = field(default_factory=lambda: ["main", "master"])
    timeout: float = 30.0
    max_concurrency: int = 4
    include_seed_documents: bool = True


@dataclass
class FtcRagConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    chunking: ChunkingCfg = field(default_factory=ChunkingCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)
    context: ContextCfg = field(default_factory=ContextCfg)
    ingest: IngestCfg = field(default_factory=IngestCfg)


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
                f"Unknown config key '{key}' in '{source}'; ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: FtcRagConfig) -> None:
    ch = cfg.chunking
    if ch.chunk_size < 1:
        raise ConfigError(f"chunking.chunk_size must be >= 1 (got {ch.chunk_size}).")
    if not 0 <= ch.overlap < ch.chunk_size:
        raise ConfigError(
            f"chunking.overlap must be in [0, chunk_size) "
            f"(got overlap={ch.overlap}, chunk_size={ch.chunk_size})."
        )
    if cfg.embedding.batch_size < 1:
        raise ConfigError("embedding.batch_size must be >= 1.")
    if cfg.retrieval.top_k < 1:
        raise ConfigError("retrieval.top_k must be >= 1.")
    if cfg.context.max_document_chars > cfg.context.max_total_chars:
        raise ConfigError(
            "context.max_document_chars must not exceed context.max_total_chars."
        )
    if not cfg.ingest.branches:
        raise ConfigError("ingest.branches must list at least one branch name.")


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


def _cfg_from_dict(data: dict[str, Any]) -> FtcRagConfig:
    """Build a *FtcRagConfig* from a merged raw YAML dict."""
    cfg = FtcRagConfig()

    if "embedding" in data:
        e = data["embedding"]
        cfg.embedding = EmbeddingCfg(
            model=str(e.get("model", cfg.embedding.model)),
            batch_size=int(e.get("batch_size", cfg.embedding.batch_size)),
            batch_delay=float(e.get("batch_delay", cfg.embedding.batch_delay)),
        )

    if "chunking" in data:
        c = data["chunking"]
        cfg.chunking = ChunkingCfg(
            chunk_size=int(c.get("chunk_size", cfg.chunking.chunk_size)),
            overlap=int(c.get("overlap", cfg.chunking.overlap)),
        )

    if "retrieval" in data:
        r = data["retrieval"]
        cfg.retrieval = RetrievalCfg(
            top_k=int(r.get("top_k", cfg.retrieval.top_k)),
            vendor_keyword_bonus=float(
                r.get("vendor_keyword_bonus", cfg.retrieval.vendor_keyword_bonus)
            ),
        )

    if "context" in data:
        x = data["context"]
        cfg.context = ContextCfg(
            max_document_chars=int(
                x.get("max_document_chars", cfg.context.max_document_chars)
            ),
            max_total_chars=int(x.get("max_total_chars", cfg.context.max_total_chars)),
        )

    if "ingest" in data:
        i = data["ingest"]
        cfg.ingest = IngestCfg(
            cache_path=str(i.get("cache_path", cfg.ingest.cache_path)),
            season_tag=str(i.get("season_tag", cfg.ingest.season_tag)),
            user_repo_prefix=str(i.get("user_repo_prefix", cfg.ingest.user_repo_prefix)),
            branches=[str(b) for b in i.get("branches", cfg.ingest.branches)],
            timeout=float(i.get("timeout", cfg.ingest.timeout)),
            max_concurrency=int(i.get("max_concurrency", cfg.ingest.max_concurrency)),
            include_seed_documents=bool(
                i.get("include_seed_documents", cfg.ingest.include_seed_documents)
            ),
        )

    return cfg


def _apply_env_overrides(cfg: FtcRagConfig) -> FtcRagConfig:
    """Apply FTCRAG_* environment variable overrides."""
    if model := os.environ.get("FTCRAG_EMBEDDING_MODEL"):
        cfg.embedding.model = model
    if cache_path := os.environ.get("FTCRAG_CACHE_PATH"):
        cfg.ingest.cache_path = cache_path
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> FtcRagConfig:
    """Load and return a merged *FtcRagConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *ftcrag.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *FtcRagConfig* with env var overrides applied.

    Raises:
        ConfigError: If global config contains API-key-like fields, or if a
            merged value is out of range (e.g. overlap >= chunk_size).
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    _validate(cfg)
    return cfg
