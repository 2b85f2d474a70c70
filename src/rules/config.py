from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import tomllib
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from parse.treesitter_parser import SUPPORTED_EXTENSIONS

CONFIG_FILENAME = "coderef.toml"

ENV_PROJECT_ROOT = "CODEREF_PROJECT_ROOT"
ENV_DOCS_DIR = "CODEREF_DOCS_DIR"
ENV_IGNORE_FILE = "CODEREF_IGNORE_FILE"


class FixConfig(BaseModel):
    """Defaults for ``coderef fix``."""

    model_config = ConfigDict(extra="forbid")

    backup: bool = Field(
        default=False,
        description="Copy each document to <name>.backup before its first edit",
    )


class CodeRefConfig(BaseModel):
    """Configuration for CODE_REF validation and fixing."""

    model_config = ConfigDict(extra="forbid")

    docs_dir: str = Field(
        default="docs",
        description="Directory scanned for markdown documents, relative to the root",
    )
    ignore_file: str | None = Field(
        default=None,
        description="Optional gitignore-syntax file listing documents to skip",
    )
    exclude: list[str] = Field(
        default_factory=list,
        description="Glob patterns (relative to the root) for documents to skip",
    )
    source_extensions: list[str] = Field(
        default_factory=lambda: sorted(SUPPORTED_EXTENSIONS),
        description="Source extensions eligible for symbol lookup and scope expansion",
    )
    fix: FixConfig = Field(default_factory=FixConfig)

    @field_validator("source_extensions", mode="before")
    @classmethod
    def validate_source_extensions(cls, v: Any) -> Any:
        """Normalize extensions to ``.ext`` form and reject unsupported ones."""
        if v is None:
            return sorted(SUPPORTED_EXTENSIONS)

        if not isinstance(v, list) or not all(isinstance(ext, str) for ext in v):
            msg = "source_extensions must be a list of strings"
            raise ValueError(msg)

        normalized = [ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in v]
        unsupported = sorted(set(normalized) - SUPPORTED_EXTENSIONS)
        if unsupported:
            msg = (
                f"Unsupported source extension(s): {', '.join(unsupported)}. "
                f"Supported: {', '.join(sorted(SUPPORTED_EXTENSIONS))}"
            )
            raise ValueError(msg)

        return normalized


class ConfigError(Exception):
    """Raised when config file exists but cannot be parsed."""


def _resolve_within_root(root: Path, value: str, field_name: str) -> Path:
    """Resolve a config-provided relative path, rejecting escapes from the root."""
    if not value:
        msg = f"{field_name} must be a non-empty relative path"
        raise ConfigError(msg)

    candidate = Path(value)
    if value.startswith("~") or candidate.is_absolute():
        msg = f"{field_name} must be a relative path within the project root"
        raise ConfigError(msg)

    try:
        resolved_root = root.resolve()
        resolved = (resolved_root / candidate).resolve()
    except OSError as exc:
        msg = f"Failed to resolve {field_name} '{value}': {exc}"
        raise ConfigError(msg) from exc

    try:
        resolved.relative_to(resolved_root)
    except ValueError as exc:
        msg = f"{field_name} '{value}' escapes the project root"
        raise ConfigError(msg) from exc

    return resolved


def resolve_docs_dir(root: Path, config: CodeRefConfig) -> Path:
    return _resolve_within_root(root, config.docs_dir, "docs_dir")


def resolve_ignore_file(root: Path, config: CodeRefConfig) -> Path | None:
    if config.ignore_file is None:
        return None
    return _resolve_within_root(root, config.ignore_file, "ignore_file")


def default_project_root() -> Path:
    """Return ``$CODEREF_PROJECT_ROOT`` or the current directory."""
    return Path(os.environ.get(ENV_PROJECT_ROOT) or Path.cwd())


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    overrides = {
        "docs_dir": os.environ.get(ENV_DOCS_DIR),
        "ignore_file": os.environ.get(ENV_IGNORE_FILE),
    }
    return {**data, **{key: value for key, value in overrides.items() if value}}


def load_config(root: Path) -> CodeRefConfig:
    """Load configuration from coderef.toml if it exists.

    ``CODEREF_DOCS_DIR`` and ``CODEREF_IGNORE_FILE`` override the file.
    """
    config_path = root / CONFIG_FILENAME

    data: dict[str, Any] = {}
    if config_path.is_file():
        try:
            with config_path.open("rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"Invalid TOML in {config_path}: {e}"
            raise ConfigError(msg) from e

    try:
        config = CodeRefConfig.model_validate(_apply_env_overrides(data))
    except ValidationError as e:
        msg = f"Invalid config in {config_path}: {e}"
        raise ConfigError(msg) from e

    resolve_docs_dir(root, config)
    resolve_ignore_file(root, config)
    return config


__all__ = [
    "CONFIG_FILENAME",
    "CodeRefConfig",
    "ConfigError",
    "FixConfig",
    "default_project_root",
    "load_config",
    "resolve_docs_dir",
    "resolve_ignore_file",
]
