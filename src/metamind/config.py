"""Metamind configuration loader.

Priority (high → low):
  1. CLI flags              (handled at call site, not in this module)
  2. Environment variables  (METAMIND_VAULT_PATH, METAMIND_PROVIDER, METAMIND_ENDPOINT,
                             METAMIND_GENERATION_MODEL, METAMIND_EMBEDDING_MODEL,
                             METAMIND_OUTLINE_URL)
  3. Settings stored in the database's ``settings`` table
  4. Per-project metamind.yaml  (next to the database)
  5. Global ~/.metamind/config.yaml  (model defaults only, no API keys)
  6. Hardcoded defaults

A loaded config is a snapshot: helpers return new objects instead of mutating,
so an operation that captured a config keeps it while settings change.
All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".metamind"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "metamind.yaml"

# Matches: api_key, apikey, api-key, api_secret, _token (suffix), standalone token,
# standalone secret, _secret (suffix), password, passwd, credential(s).
# Does NOT match legitimate keys like max_tokens or top_k.
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
    ["vault", "provider", "embedding", "generation", "retrieval", "chunking", "outline"]
)

# Keys persisted in the settings table, mapped onto config fields.
SETTINGS_KEYS: tuple[str, ...] = (
    "vault_path",
    "provider",
    "generation_endpoint",
    "generation_model",
    "embedding_model",
    "outline_base_url",
)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file or setting contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VaultCfg:
    """Local markdown vault (metamind.yaml: vault:)."""

    path: str = ""


@dataclass(frozen=True)
class ProviderCfg:
    """Backend selection (metamind.yaml: provider:).

    Attributes:
        name: Provider variant, 'litellm' or 'ollama'.
        endpoint: Base URL of the backend (passed as api_base to LiteLLM).
        timeout: Per-request timeout in seconds; the only bound on provider calls.
    """

    name: str = "litellm"
    endpoint: str = "http://localhost:11434"
    timeout: float = 120.0


@dataclass(frozen=True)
class EmbeddingCfg:
    """Embedding model configuration (metamind.yaml: embedding:)."""

    model: str = "ollama/nomic-embed-text"


@dataclass(frozen=True)
class GenerationCfg:
    """LLM generation configuration (metamind.yaml: generation:)."""

    model: str = "ollama/llama3.2"


@dataclass(frozen=True)
class RetrievalCfg:
    """Query engine tuning (metamind.yaml: retrieval:)."""

    top_k: int = 5
    min_similarity: float = 0.25
    max_queries: int = 4
    history_window: int = 10


@dataclass(frozen=True)
class ChunkingCfg:
    """Word-window chunking (metamind.yaml: chunking:)."""

    chunk_size: int = 500
    overlap: int = 50


@dataclass(frozen=True)
class OutlineCfg:
    """Remote wiki source (metamind.yaml: outline:). The API key is env-only."""

    base_url: str = ""


@dataclass(frozen=True)
class MetamindConfig:
    """Root configuration object, built by load_config() from merged layers."""

    vault: VaultCfg = field(default_factory=VaultCfg)
    provider: ProviderCfg = field(default_factory=ProviderCfg)
    embedding: EmbeddingCfg = field(default_factory=EmbeddingCfg)
    generation: GenerationCfg = field(default_factory=GenerationCfg)
    retrieval: RetrievalCfg = field(default_factory=RetrievalCfg)
    chunking: ChunkingCfg = field(default_factory=ChunkingCfg)
    outline: OutlineCfg = field(default_factory=OutlineCfg)

    def to_settings(self) -> dict[str, str]:
        """Flatten the persisted subset into settings-table key/value pairs."""
        return {
            "vault_path": self.vault.path,
            "provider": self.provider.name,
            "generation_endpoint": self.provider.endpoint,
            "generation_model": self.generation.model,
            "embedding_model": self.embedding.model,
            "outline_base_url": self.outline.base_url,
        }


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
                        f"Config '{source}' contains a forbidden key '{full}'.\n"
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


def _read_yaml(path: Path) -> dict[str, Any]:
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config '{path}' must contain a mapping at the top level.")
    return raw


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


def _cfg_from_dict(data: dict[str, Any]) -> MetamindConfig:
    """Build a *MetamindConfig* from a merged raw YAML dict."""
    cfg = MetamindConfig()

    if "vault" in data:
        v = data["vault"] or {}
        cfg = replace(cfg, vault=VaultCfg(path=str(v.get("path", cfg.vault.path))))

    if "provider" in data:
        p = data["provider"] or {}
        cfg = replace(
            cfg,
            provider=ProviderCfg(
                name=str(p.get("name", cfg.provider.name)),
                endpoint=str(p.get("endpoint", cfg.provider.endpoint)),
                timeout=float(p.get("timeout", cfg.provider.timeout)),
            ),
        )

    if "embedding" in data:
        e = data["embedding"] or {}
        cfg = replace(cfg, embedding=EmbeddingCfg(model=str(e.get("model", cfg.embedding.model))))

    if "generation" in data:
        g = data["generation"] or {}
        cfg = replace(
            cfg, generation=GenerationCfg(model=str(g.get("model", cfg.generation.model)))
        )

    if "retrieval" in data:
        r = data["retrieval"] or {}
        cfg = replace(
            cfg,
            retrieval=RetrievalCfg(
                top_k=int(r.get("top_k", cfg.retrieval.top_k)),
                min_similarity=float(r.get("min_similarity", cfg.retrieval.min_similarity)),
                max_queries=int(r.get("max_queries", cfg.retrieval.max_queries)),
                history_window=int(r.get("history_window", cfg.retrieval.history_window)),
            ),
        )

    if "chunking" in data:
        c = data["chunking"] or {}
        chunking = ChunkingCfg(
            chunk_size=int(c.get("chunk_size", cfg.chunking.chunk_size)),
            overlap=int(c.get("overlap", cfg.chunking.overlap)),
        )
        if not 0 <= chunking.overlap < chunking.chunk_size:
            raise ConfigError(
                f"chunking.overlap ({chunking.overlap}) must be >= 0 and smaller than "
                f"chunking.chunk_size ({chunking.chunk_size})."
            )
        cfg = replace(cfg, chunking=chunking)

    if "outline" in data:
        o = data["outline"] or {}
        cfg = replace(cfg, outline=OutlineCfg(base_url=str(o.get("base_url", cfg.outline.base_url))))

    return cfg


def with_settings(cfg: MetamindConfig, settings: dict[str, str]) -> MetamindConfig:
    """Return a copy of *cfg* with stored settings applied (empty values are ignored).

    Raises:
        ConfigError: If *settings* contains an unknown key.
    """
    unknown = set(settings) - set(SETTINGS_KEYS)
    if unknown:
        raise ConfigError(
            f"Unknown setting(s): {', '.join(sorted(unknown))}. "
            f"Known settings: {', '.join(SETTINGS_KEYS)}"
        )

    def _get(key: str, current: str) -> str:
        value = settings.get(key)
        return value if value else current

    return replace(
        cfg,
        vault=replace(cfg.vault, path=_get("vault_path", cfg.vault.path)),
        provider=replace(
            cfg.provider,
            name=_get("provider", cfg.provider.name),
            endpoint=_get("generation_endpoint", cfg.provider.endpoint),
        ),
        generation=replace(cfg.generation, model=_get("generation_model", cfg.generation.model)),
        embedding=replace(cfg.embedding, model=_get("embedding_model", cfg.embedding.model)),
        outline=replace(cfg.outline, base_url=_get("outline_base_url", cfg.outline.base_url)),
    )


def apply_env_overrides(cfg: MetamindConfig) -> MetamindConfig:
    """Apply METAMIND_* environment variable overrides (highest non-CLI layer)."""
    env_map = {
        "METAMIND_VAULT_PATH": "vault_path",
        "METAMIND_PROVIDER": "provider",
        "METAMIND_ENDPOINT": "generation_endpoint",
        "METAMIND_GENERATION_MODEL": "generation_model",
        "METAMIND_EMBEDDING_MODEL": "embedding_model",
        "METAMIND_OUTLINE_URL": "outline_base_url",
    }
    overrides = {key: os.environ[var] for var, key in env_map.items() if os.environ.get(var)}
    return with_settings(cfg, overrides) if overrides else cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
    settings: dict[str, str] | None = None,
) -> MetamindConfig:
    """Load and return a merged *MetamindConfig*.

    Applies layers in order: global → per-project → stored settings → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *metamind.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).
        settings: Key/value pairs read from the database settings table.

    Returns:
        Fully merged *MetamindConfig* with env var overrides applied.

    Raises:
        ConfigError: If a config file contains API-key-like fields or invalid values.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = _read_yaml(global_path)
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = _read_yaml(project_cfg_path)
        _check_no_api_keys(raw_project, project_cfg_path)
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    if settings:
        cfg = with_settings(cfg, settings)

    return apply_env_overrides(cfg)


def write_project_config(project_dir: Path, vault_path: str = "") -> Path:
    """Create *metamind.yaml* in *project_dir* with defaults if it does not exist.

    Returns:
        Path to the project config file.
    """
    target = project_dir / _PROJECT_CONFIG_NAME
    if target.exists():
        return target

    defaults = MetamindConfig()
    data = {
        "vault": {"path": vault_path},
        "provider": {"name": defaults.provider.name, "endpoint": defaults.provider.endpoint},
        "embedding": {"model": defaults.embedding.model},
        "generation": {"model": defaults.generation.model},
        "retrieval": {
            "top_k": defaults.retrieval.top_k,
            "min_similarity": defaults.retrieval.min_similarity,
        },
    }
    header = (
        "# Metamind project configuration.\n"
        "# NEVER store API keys here. Use environment variables:\n"
        "#   export OUTLINE_API_KEY=...\n\n"
    )
    target.write_text(header + yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return target
