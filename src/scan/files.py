"""File scanning utilities for markdown documents."""

from __future__ import annotations

import logging
from fnmatch import fnmatch
from pathlib import Path
from typing import TYPE_CHECKING, cast

from gitignore_parser import parse_gitignore  # type: ignore[import-untyped]

from rules.config import resolve_docs_dir, resolve_ignore_file

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Sequence

    from rules.config import CodeRefConfig

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIX = ".md"


def _should_include_file(
    path: Path,
    root: Path,
    ignore_matches: Callable[[str], bool] | None,
    exclude_patterns: list[str] | None,
) -> bool:
    """Check if a document should be included based on all filtering rules."""
    if not path.is_file() or path.is_symlink():
        return False

    if not _is_within_root(path, root):
        return False

    try:
        rel_path = path.relative_to(root)
    except ValueError:
        return False

    if ignore_matches is not None and ignore_matches(str(path)):
        return False

    rel_path_str = rel_path.as_posix()
    has_excluded_match = exclude_patterns and any(
        fnmatch(rel_path_str, pat) for pat in exclude_patterns
    )
    return not has_excluded_match


def _is_within_root(path: Path, root: Path) -> bool:
    """Return True when the resolved path stays within the resolved root."""
    try:
        root_resolved = root.resolve()
        path_resolved = path.resolve()
    except OSError:
        return False

    try:
        path_resolved.relative_to(root_resolved)
    except ValueError:
        return False

    return True


def _build_ignore_matcher(
    root: Path,
    ignore_file: Path | None,
) -> Callable[[str], bool] | None:
    if ignore_file is None or not ignore_file.is_file():
        return None
    if ignore_file.is_symlink() and not _is_within_root(ignore_file, root):
        return None
    return cast("Callable[[str], bool]", parse_gitignore(ignore_file, base_dir=root))


def find_markdown_files(
    root: Path,
    *,
    docs_dir: Path | None = None,
    ignore_file: Path | None = None,
    exclude_patterns: list[str] | None = None,
) -> Iterator[Path]:
    """Find all markdown documents under ``docs_dir``.

    Args:
        root: Project root; exclude patterns are matched against paths
            relative to it
        docs_dir: Directory to search (default: the root itself)
        ignore_file: Optional gitignore-syntax file of documents to skip
        exclude_patterns: Optional list of fnmatch patterns; files matching
            any pattern are excluded

    Yields:
        Path objects for each document found, sorted lexicographically by
        relative path. Symlinked files and anything resolving outside the
        root are skipped.
    """
    search_dir = docs_dir if docs_dir is not None else root
    if not search_dir.is_dir():
        return

    ignore_matches = _build_ignore_matcher(root, ignore_file)

    matched_files = [
        path
        for path in search_dir.rglob(f"*{MARKDOWN_SUFFIX}")
        if _should_include_file(path, root, ignore_matches, exclude_patterns)
    ]

    matched_files.sort(key=lambda p: p.relative_to(root).as_posix())

    yield from matched_files


def find_configured_documents(root: Path, config: CodeRefConfig) -> list[Path]:
    """Apply a loaded configuration to :func:`find_markdown_files`."""
    resolved_root = root.resolve()
    return list(
        find_markdown_files(
            resolved_root,
            docs_dir=resolve_docs_dir(resolved_root, config),
            ignore_file=resolve_ignore_file(resolved_root, config),
            exclude_patterns=config.exclude,
        )
    )


def find_target_documents(
    root: Path,
    config: CodeRefConfig,
    targets: Sequence[str | Path],
) -> list[Path]:
    """Resolve command-line targets to documents.

    Relative targets are taken from the project root. Directories are searched
    recursively; files are kept only when they are markdown. Both honour the
    configured ignore file and exclude patterns. Missing targets are logged
    and skipped. Order follows the targets, without duplicates.
    """
    resolved_root = root.resolve()
    ignore_file = resolve_ignore_file(resolved_root, config)
    ignore_matches = _build_ignore_matcher(resolved_root, ignore_file)

    documents: dict[Path, None] = {}
    for target in targets:
        candidate = Path(target).expanduser()
        if not candidate.is_absolute():
            candidate = resolved_root / candidate
        candidate = candidate.resolve()

        if candidate.is_dir():
            found = find_markdown_files(
                resolved_root,
                docs_dir=candidate,
                ignore_file=ignore_file,
                exclude_patterns=config.exclude,
            )
            documents.update(dict.fromkeys(found))
        elif candidate.is_file():
            if candidate.suffix == MARKDOWN_SUFFIX and _should_include_file(
                candidate, resolved_root, ignore_matches, config.exclude
            ):
                documents[candidate] = None
            else:
                logger.info("Skipping %s: not an included markdown document", target)
        else:
            logger.warning("File not found: %s", target)

    return list(documents)


__all__ = [
    "_should_include_file",
    "find_configured_documents",
    "find_markdown_files",
    "find_target_documents",
]
