"""Configuration loading for documind (.documind.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .errors import DocuMindError

CONFIG_FILENAME = ".documind.yml"
DEFAULT_MODEL = "gpt-4"
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
TOKEN_METHODS = ("auto", "exact", "heuristic")


class ConfigError(DocuMindError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class TokenConfig:
    """Token counter settings."""

    model: str = DEFAULT_MODEL
    method: str = "auto"
    max_file_size: int = DEFAULT_MAX_FILE_SIZE


@dataclass
class DocsConfig:
    """Where generated documents and the master index live."""

    root: str = "docs"
    ai_dir: str = "ai"
    index_name: str = "AI_README.md"


@dataclass
class DocuMindConfig:
    """Represents the high-level settings defined in .documind.yml."""

    root: Path
    tokens: TokenConfig = field(default_factory=TokenConfig)
    docs: DocsConfig = field(default_factory=DocsConfig)
    manifest_dir: str = ".documind/templates/ai-optimized"
    default_variables: Dict[str, str] = field(default_factory=dict)


def load_config(
    config_path: Path, *, environ: Mapping[str, str] | None = None
) -> DocuMindConfig:
    """Load configuration from disk, then apply environment overrides."""
    env = os.environ if environ is None else environ
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    config = DocuMindConfig(root=root)
    if config_file.exists():
        data = _read_config(config_file)
        if not isinstance(data, dict):
            raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")
        _apply_mapping(config, data)

    method_override = _as_str(env.get("DOCUMIND_TOKEN_METHOD"))
    if method_override:
        config.tokens.method = method_override.lower()
    model_override = _as_str(env.get("DOCUMIND_TOKEN_MODEL"))
    if model_override:
        config.tokens.model = model_override

    if config.tokens.method not in TOKEN_METHODS:
        raise ConfigError(
            f"tokens.method must be one of {', '.join(TOKEN_METHODS)}, got '{config.tokens.method}'"
        )
    return config


def _apply_mapping(config: DocuMindConfig, data: Dict[str, Any]) -> None:
    token_data = _as_dict(data.get("tokens"))
    if token_data:
        config.tokens.model = _as_str(token_data.get("model")) or config.tokens.model
        method = _as_str(token_data.get("method"))
        if method:
            config.tokens.method = method.lower()
        max_size = _as_int(token_data.get("max_file_size"))
        if max_size is not None and max_size > 0:
            config.tokens.max_file_size = max_size

    docs_data = _as_dict(data.get("docs"))
    if docs_data:
        config.docs.root = _as_str(docs_data.get("root")) or config.docs.root
        config.docs.ai_dir = _as_str(docs_data.get("ai_dir")) or config.docs.ai_dir
        config.docs.index_name = _as_str(docs_data.get("index_name")) or config.docs.index_name

    manifest_data = _as_dict(data.get("manifests"))
    if manifest_data:
        config.manifest_dir = _as_str(manifest_data.get("dir")) or config.manifest_dir

    generation_data = _as_dict(data.get("generation"))
    if generation_data:
        defaults = _as_dict(generation_data.get("default_variables"))
        config.default_variables = {
            str(key): str(value)
            for key, value in defaults.items()
            if _as_str(value) is not None
        }


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "DEFAULT_MODEL",
    "DocsConfig",
    "DocuMindConfig",
    "TokenConfig",
    "load_config",
]
