"""Shared utilities for terminal output."""

from __future__ import annotations

from pathlib import Path


def display_path(path: Path, root: Path) -> str:
    """Return ``path`` relative to ``root`` when it lies inside it.

    Examples:
        >>> display_path(Path("/repo/docs/a.md"), Path("/repo"))
        'docs/a.md'
        >>> display_path(Path("/elsewhere/a.md"), Path("/repo"))
        '/elsewhere/a.md'
    """
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


def truncate_lines(text: str, limit: int = 10) -> list[str]:
    """Return at most ``limit`` lines of ``text``, marking the cut with ``...``."""
    lines = text.split("\n")
    if len(lines) <= limit:
        return lines
    return [*lines[:limit], "..."]
