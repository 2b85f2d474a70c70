"""CODE_REF extraction and fenced-block association for markdown documents.

Rules:
- A reference comment looks like ``<!-- CODE_REF: path[#symbol][:start-end] -->``.
- Comments inside fenced blocks or inline code are samples, not references.
- The fenced block belonging to a comment must follow it with nothing but
  blank lines in between; any other text voids the association.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from parse.symbol_search import parse_symbol_path
from refs.models import Reference

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

REFERENCE_PATTERN = re.compile(
    r"<!--\s*CODE_REF:\s*([^:#]+?)(?:#([^:]+?))?(?::(\d+)-(\d+))?\s*-->"
)
REFERENCE_START_PATTERN = re.compile(r"<!--\s*CODE_REF:")
FENCED_BLOCK_PATTERN = re.compile(r"```([\w+-]*)[ \t]*\n(.*?)```", re.DOTALL)
COMMENT_END = "-->"

# Characters after a comment searched for its fenced block.
BLOCK_SEARCH_WINDOW = 5000

_BACKTICK_RUN = re.compile(r"`{3,}")
_INLINE_CODE = re.compile(r"`[^`\n]+?`")


@dataclass(frozen=True)
class _Span:
    start: int
    end: int


def _code_spans(content: str) -> list[_Span]:
    """Character spans of fenced blocks (paired by fence length) and inline code."""
    runs = [(match.start(), len(match.group(0))) for match in _BACKTICK_RUN.finditer(content)]
    spans: list[_Span] = []
    used: set[int] = set()

    for index, (position, length) in enumerate(runs):
        if index in used:
            continue
        for other in range(index + 1, len(runs)):
            if other in used or runs[other][1] != length:
                continue
            spans.append(_Span(position, runs[other][0] + length))
            used.update((index, other))
            break

    # An unclosed fence runs to the end of the document.
    for index, (position, _length) in enumerate(runs):
        if index not in used:
            spans.append(_Span(position, len(content)))

    spans.extend(_Span(match.start(), match.end()) for match in _INLINE_CODE.finditer(content))
    return spans


def _inside_code(position: int, spans: list[_Span]) -> bool:
    return any(span.start <= position < span.end for span in spans)


def strip_block_newline(content: str) -> str:
    """Drop the newline that precedes a closing fence."""
    return content[:-1] if content.endswith("\n") else content


def extract_code_block_after_comment(content: str, comment_offset: int) -> str | None:
    """Return the fenced block content directly following the comment at ``comment_offset``.

    Returns None when no block follows within the search window, or when
    anything other than blank lines separates the comment from the block.
    """
    comment_end = content.find(COMMENT_END, comment_offset)
    if comment_end == -1:
        return None

    search_start = comment_end + len(COMMENT_END)
    window = content[search_start : search_start + BLOCK_SEARCH_WINDOW]
    match = FENCED_BLOCK_PATTERN.search(window)
    if match is None:
        return None

    if window[: match.start()].strip():
        return None

    return strip_block_newline(match.group(2))


def _line_number_at(content: str, offset: int) -> int:
    return content.count("\n", 0, offset) + 1


def extract_references(content: str, doc_file: Path) -> list[Reference]:
    """Extract every CODE_REF comment of a document with its associated block."""
    spans = _code_spans(content)
    references: list[Reference] = []

    for match in REFERENCE_PATTERN.finditer(content):
        if _inside_code(match.start(), spans):
            continue

        ref_path, symbol_path, start_line, end_line = match.groups()
        try:
            symbol = parse_symbol_path(symbol_path) if symbol_path else None
        except ValueError as exc:
            logger.warning(
                "%s:%d: skipping reference: %s",
                doc_file,
                _line_number_at(content, match.start()),
                exc,
            )
            continue

        references.append(
            Reference(
                full_match=match.group(0),
                ref_path=ref_path.strip(),
                symbol=symbol,
                start_line=int(start_line) if start_line else None,
                end_line=int(end_line) if end_line else None,
                doc_file=doc_file,
                doc_line_number=_line_number_at(content, match.start()),
                code_block=extract_code_block_after_comment(content, match.start()),
                comment_offset=match.start(),
            )
        )

    return references


def extract_references_from_file(doc_file: Path) -> list[Reference]:
    return extract_references(doc_file.read_text(encoding="utf-8"), doc_file)


__all__ = [
    "BLOCK_SEARCH_WINDOW",
    "COMMENT_END",
    "FENCED_BLOCK_PATTERN",
    "REFERENCE_PATTERN",
    "REFERENCE_START_PATTERN",
    "extract_code_block_after_comment",
    "extract_references",
    "extract_references_from_file",
    "strip_block_newline",
]
