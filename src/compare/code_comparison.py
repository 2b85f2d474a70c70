"""Whitespace-insensitive code comparison and whole-file snippet search."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from parse.scope_expansion import expand_match_to_scope
from refs.models import ExpandedMatch, LineRange

if TYPE_CHECKING:
    from pathlib import Path

    from parse.treesitter_parser import ParseCache

_WHITESPACE = re.compile(r"\s+")


def normalize_code(code: str) -> str:
    """Remove every whitespace character.

    Indentation, line breaks and spacing differences all disappear, so two
    snippets that differ only in whitespace normalize to the same string.
    """
    return _WHITESPACE.sub("", code)


def compare_code(actual: str, expected: str) -> bool:
    return normalize_code(actual) == normalize_code(expected)


def dedent_code(code: str) -> str:
    """Strip the common leading indentation of the non-blank lines."""
    lines = code.split("\n")
    indents = [
        len(line) - len(line.lstrip())
        for line in lines
        if line.strip()
    ]
    if not indents or min(indents) == 0:
        return code

    width = min(indents)
    return "\n".join(line[width:] if line.strip() else line for line in lines)


def split_lines(text: str) -> list[str]:
    return text.split("\n")


def snippet_line_count(snippet: str) -> int:
    """Number of lines a snippet occupies; a trailing newline adds none."""
    return len(snippet.rstrip("\n").split("\n"))


def extract_lines(text: str, start_line: int, end_line: int) -> str:
    """Return lines ``start_line``..``end_line`` (1-indexed, inclusive), dedented."""
    lines = split_lines(text)
    return dedent_code("\n".join(lines[max(start_line - 1, 0) : end_line]))


def extract_lines_from_file(file_path: Path, start_line: int, end_line: int) -> str:
    return extract_lines(file_path.read_text(encoding="utf-8"), start_line, end_line)


def search_code(text: str, snippet: str) -> list[LineRange]:
    """Find every window of the text whose content equals ``snippet``.

    The window is exactly as tall as the snippet. Matches are returned in file
    order. A snippet without any non-whitespace content matches nothing.
    """
    target = normalize_code(snippet)
    if not target:
        return []

    lines = split_lines(text)
    height = snippet_line_count(snippet)

    matches: list[LineRange] = []
    for index in range(len(lines) - height + 1):
        window = "\n".join(lines[index : index + height])
        if normalize_code(window) == target:
            matches.append(LineRange(start=index + 1, end=index + height))

    return matches


def search_code_in_file(file_path: Path, snippet: str) -> list[LineRange]:
    return search_code(file_path.read_text(encoding="utf-8"), snippet)


def search_with_scope_expansion(
    file_path: Path,
    snippet: str,
    cache: ParseCache,
) -> list[ExpandedMatch]:
    """Search the whole file, then expand each hit to its enclosing declaration.

    Hits that cannot be expanded are kept as-is at ``low`` confidence.
    """
    text = file_path.read_text(encoding="utf-8")
    return [
        expand_match_to_scope(file_path, hit, cache, text)
        for hit in search_code(text, snippet)
    ]


__all__ = [
    "compare_code",
    "dedent_code",
    "extract_lines",
    "extract_lines_from_file",
    "normalize_code",
    "search_code",
    "search_code_in_file",
    "search_with_scope_expansion",
    "snippet_line_count",
]
