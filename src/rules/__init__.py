"""Project configuration for"""

from rules.config import (
    CodeRefConfig,
    ConfigError,
    FixConfig,
    default_project_root,
    load_config,
    resolve_docs_dir,
    resolve_ignore_file,
)

__all__ = [
    "CodeRefConfig",
    "ConfigError",
    "FixConfig",
    "default_project_root",
    "load_config",
    "resolve_docs_dir",
    "resolve_ignore_file",
]
