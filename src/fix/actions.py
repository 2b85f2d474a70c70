"""Turn validation errors into concrete fix actions.

Builders never touch the document; they only describe the edit. Errors that
need a human decision (broken paths, invalid ranges, unparseable sources)
produce no action.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, assert_never

from compare.code_comparison import extract_lines, search_with_scope_expansion
from docs.edit import (
    find_adjacent_code_block,
    find_code_block_near_comment,
    locate_comment,
)
from fix.ranking import dedupe_matches, prioritize_matches
from parse.scope_expansion import expand_match_to_scope
from parse.symbol_search import find_symbols
from refs.models import (
    ErrorKind,
    FixAction,
    FixKind,
    LineRange,
    RefError,
    SymbolMatch,
    format_reference_comment,
)

if TYPE_CHECKING:
    from fix.choosers import Chooser
    from refs.models import ExpandedMatch, Reference
    from validate.validator import ValidationContext

logger = logging.getLogger(__name__)

PREVIEW_LIMIT = 200

FENCE_LANGUAGES = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "jsx",
}

FIXABLE_KINDS = frozenset(
    {
        ErrorKind.CODE_LOCATION_MISMATCH,
        ErrorKind.CODE_BLOCK_MISSING,
        ErrorKind.CODE_CONTENT_MISMATCH,
        ErrorKind.LINE_OUT_OF_RANGE,
        ErrorKind.SYMBOL_RANGE_MISMATCH,
        ErrorKind.MULTIPLE_SYMBOLS_FOUND,
    }
)


class FixBuildError(Exception):
    """Raised when an error lacks what its fix needs."""


def is_fixable(error: RefError) -> bool:
    return error.kind in FIXABLE_KINDS


def fence_language_for(path: str | Path) -> str:
    return FENCE_LANGUAGES.get(Path(path).suffix.lower(), "")


def _preview_block(code: str, language: str) -> str:
    body = code if len(code) <= PREVIEW_LIMIT else f"{code[:PREVIEW_LIMIT]}..."
    return f"```{language}\n{body}\n```"


def _comment_preview(ref: Reference, new_comment: str) -> str:
    return f"{ref.full_match}\n→ {new_comment}"


def _source(ref: Reference, context: ValidationContext) -> tuple[Path, str]:
    path = context.resolve(ref)
    return path, path.read_text(encoding="utf-8")


def _resolve_symbol(
    ref: Reference,
    context: ValidationContext,
    path: Path,
    text: str,
) -> SymbolMatch:
    if ref.symbol is None:
        msg = f"{ref.location()}: reference has no symbol"
        raise FixBuildError(msg)
    matches = find_symbols(context.cache.parse(path, text), ref.symbol)
    if not matches:
        msg = f'Symbol "{ref.symbol}" not found'
        raise FixBuildError(msg)
    return matches[0]


def _update_line_numbers(
    error: RefError,
    lines: LineRange,
    new_code_block: str | None,
    description: str,
) -> FixAction:
    ref = error.reference
    new_comment = format_reference_comment(ref.ref_path, None, lines.start, lines.end)
    return FixAction(
        kind=FixKind.UPDATE_LINE_NUMBERS,
        error=error,
        description=description,
        preview=_comment_preview(ref, new_comment),
        new_start_line=lines.start,
        new_end_line=lines.end,
        new_code_block=new_code_block,
        keep_symbol=False,
    )


def _candidate_label(match: ExpandedMatch) -> str:
    scope = f", {match.scope_type}" if match.scope_type != "unknown" else ""
    return f"Line {match.start}-{match.end} (confidence: {match.confidence}{scope})"


def _choose_relocation(
    error: RefError,
    context: ValidationContext,
    path: Path,
    chooser: Chooser | None,
) -> LineRange | None:
    """Pick among several whole-file hits; None means the user skipped."""
    ref = error.reference
    assert error.suggested_lines is not None
    declared = ref.line_range or error.suggested_lines

    expanded = search_with_scope_expansion(path, ref.code_block or "", context.cache)
    candidates = prioritize_matches(dedupe_matches(expanded), declared.start)
    if not candidates:
        return error.suggested_lines
    if len(candidates) == 1:
        only = candidates[0]
        return LineRange(start=only.start, end=only.end)

    high = [match for match in candidates if match.confidence == "high"]
    if len(high) == 1:
        logger.info(
            "Auto-selected %s lines %d-%d (%s)",
            ref.ref_path,
            high[0].start,
            high[0].end,
            high[0].scope_type,
        )
        return LineRange(start=high[0].start, end=high[0].end)

    if chooser is None:
        return error.suggested_lines

    index = chooser.choose(
        f"Code found in {len(candidates)} locations in {ref.ref_path}. "
        "Which position should be used?",
        [_candidate_label(match) for match in candidates],
    )
    if index is None:
        return None

    selected = candidates[index]
    if selected.confidence == "low":
        logger.warning(
            "Scope detection confidence is low for %s lines %d-%d; verify the result",
            ref.ref_path,
            selected.start,
            selected.end,
        )
    return LineRange(start=selected.start, end=selected.end)


def _location_mismatch_fix(
    error: RefError,
    context: ValidationContext,
    chooser: Chooser | None,
) -> list[FixAction]:
    ref = error.reference
    if error.suggested_lines is None:
        msg = "CODE_LOCATION_MISMATCH requires suggested_lines"
        raise FixBuildError(msg)

    path, text = _source(ref, context)
    lines: LineRange | None = error.suggested_lines
    if (error.occurrences or 1) > 1:
        lines = _choose_relocation(error, context, path, chooser)
        if lines is None:
            return []

    return [
        _update_line_numbers(
            error,
            lines,
            extract_lines(text, lines.start, lines.end),
            f"Update line numbers from {ref.line_range} to {lines}",
        )
    ]


def _block_missing_fix(
    error: RefError,
    context: ValidationContext,
    document_text: str,
) -> list[FixAction]:
    ref = error.reference
    if ref.line_range is None and ref.symbol is None:
        msg = "Whole file reference does not need a code block"
        raise FixBuildError(msg)

    comment_index = locate_comment(document_text, ref.full_match, ref.comment_offset)
    nearby = find_code_block_near_comment(document_text, comment_index)
    adjacent = find_adjacent_code_block(document_text, comment_index)
    if nearby is not None and (adjacent is None or adjacent.start != nearby.start):
        return [
            FixAction(
                kind=FixKind.MOVE_CODE_REF_COMMENT,
                error=error,
                description="Move CODE_REF comment before code block",
                code_block_position=nearby,
            )
        ]

    path, text = _source(ref, context)
    language = fence_language_for(path)
    line_range = ref.line_range
    if line_range is None:
        match = _resolve_symbol(ref, context, path, text)
        line_range = LineRange(start=match.start_line, end=match.end_line)
        origin = f"{ref.ref_path}#{ref.symbol} (lines {line_range})"
    else:
        origin = f"{ref.ref_path}:{line_range}"
    code = extract_lines(text, line_range.start, line_range.end)

    if adjacent is not None:
        return [
            FixAction(
                kind=FixKind.REPLACE_CODE_BLOCK,
                error=error,
                description=f"Fill empty code block from {origin}",
                preview=_preview_block(code, adjacent.language or language),
                new_code_block=code,
                code_block_position=adjacent,
                language=adjacent.language,
            )
        ]

    return [
        FixAction(
            kind=FixKind.INSERT_CODE_BLOCK,
            error=error,
            description=f"Insert code block from {origin}",
            preview=_preview_block(code, language),
            new_code_block=code,
            language=language,
        )
    ]


def _content_mismatch_fix(error: RefError, context: ValidationContext) -> list[FixAction]:
    ref = error.reference
    path, text = _source(ref, context)
    language = fence_language_for(path)

    if ref.line_range is None:
        match = _resolve_symbol(ref, context, path, text)
        symbol_range = LineRange(start=match.start_line, end=match.end_line)
        symbol_code = extract_lines(text, match.start_line, match.end_line)
        line_count = match.end_line - match.start_line + 1
        return [
            FixAction(
                kind=FixKind.REPLACE_CODE_BLOCK,
                error=error,
                description=(
                    f"Replace code block with entire symbol "
                    f"(lines {symbol_range}, {line_count} lines)"
                ),
                preview=_preview_block(symbol_code, language),
                new_code_block=symbol_code,
            ),
            _update_line_numbers(
                error,
                symbol_range,
                None,
                "Remove symbol specification and pin lines "
                f"{symbol_range} (code block kept, manual adjustment needed)",
            ),
        ]

    declared = ref.line_range
    seed = LineRange(start=declared.start, end=declared.start)
    expanded = expand_match_to_scope(path, seed, context.cache, text)
    if expanded.confidence == "high" and (expanded.start, expanded.end) != (
        declared.start,
        declared.end,
    ):
        lines = LineRange(start=expanded.start, end=expanded.end)
        logger.info(
            "Expanded %s lines %s to %s (%s)",
            ref.ref_path,
            declared,
            lines,
            expanded.scope_type,
        )
        return [
            _update_line_numbers(
                error,
                lines,
                extract_lines(text, lines.start, lines.end),
                f"Update line numbers from {declared} to {lines} and replace code block",
            )
        ]

    actual_code = extract_lines(text, declared.start, declared.end)
    return [
        FixAction(
            kind=FixKind.REPLACE_CODE_BLOCK,
            error=error,
            description="Replace code block with actual code content",
            preview=_preview_block(actual_code, language),
            new_code_block=actual_code,
        )
    ]


def _line_out_of_range_fix(error: RefError) -> list[FixAction]:
    ref = error.reference
    if error.total_lines is None or ref.start_line is None:
        msg = "LINE_OUT_OF_RANGE requires total_lines and a start line"
        raise FixBuildError(msg)
    if ref.start_line > error.total_lines:
        msg = (
            f"Start line {ref.start_line} is past the end of {ref.ref_path} "
            f"({error.total_lines} lines)"
        )
        raise FixBuildError(msg)

    new_comment = format_reference_comment(
        ref.ref_path, None, ref.start_line, error.total_lines
    )
    return [
        FixAction(
            kind=FixKind.UPDATE_END_LINE,
            error=error,
            description=f"Fix end line from {ref.end_line} to {error.total_lines} (end of file)",
            preview=_comment_preview(ref, new_comment),
            new_start_line=ref.start_line,
            new_end_line=error.total_lines,
            keep_symbol=False,
        )
    ]


def _pin_symbol_range(error: RefError, match: SymbolMatch, description: str) -> FixAction:
    ref = error.reference
    new_comment = format_reference_comment(
        ref.ref_path, ref.symbol, match.start_line, match.end_line
    )
    return FixAction(
        kind=FixKind.UPDATE_SYMBOL_RANGE,
        error=error,
        description=description,
        preview=_comment_preview(ref, new_comment),
        new_start_line=match.start_line,
        new_end_line=match.end_line,
    )


def _symbol_range_mismatch_fix(error: RefError) -> list[FixAction]:
    suggested = error.suggested_symbol
    if suggested is None:
        msg = "SYMBOL_RANGE_MISMATCH requires suggested_symbol"
        raise FixBuildError(msg)
    ref = error.reference
    return [
        _pin_symbol_range(
            error,
            suggested,
            f'Update line numbers for symbol "{ref.symbol}" from {ref.line_range} '
            f"to {suggested.start_line}-{suggested.end_line}",
        )
    ]


def _multiple_symbols_fix(error: RefError, chooser: Chooser | None) -> list[FixAction]:
    if not error.found_symbols:
        msg = "MULTIPLE_SYMBOLS_FOUND requires found_symbols"
        raise FixBuildError(msg)
    if chooser is None:
        msg = "MULTIPLE_SYMBOLS_FOUND needs a chooser to pick a candidate"
        raise FixBuildError(msg)

    ref = error.reference
    options = [
        f"Line {match.start_line}-{match.end_line} ({match.label})"
        for match in error.found_symbols
    ]
    index = chooser.choose(
        f'Symbol "{ref.symbol}" found in {len(options)} locations. '
        "Which position should be used?",
        options,
    )
    if index is None:
        return []

    selected = error.found_symbols[index]
    return [
        _pin_symbol_range(
            error,
            selected,
            f'Add line numbers for symbol "{ref.symbol}": '
            f"{selected.start_line}-{selected.end_line}",
        )
    ]


def build_fix_actions(
    error: RefError,
    context: ValidationContext,
    chooser: Chooser | None = None,
    document_text: str | None = None,
) -> list[FixAction]:
    """Return the candidate fixes for ``error``, best first.

    An empty list means the error needs manual attention or the chooser
    skipped it. ``document_text`` is the current text of the reference's
    document and is read from disk when omitted.

    Raises:
        FixBuildError: If the error lacks the payload its fix requires.
        SourceParseError: If a symbol has to be resolved in an unparseable file.
        OSError: If the source or document cannot be read.
    """
    kind = error.kind
    if kind is ErrorKind.CODE_LOCATION_MISMATCH:
        return _location_mismatch_fix(error, context, chooser)
    if kind is ErrorKind.CODE_BLOCK_MISSING:
        if document_text is None:
            document_text = error.reference.doc_file.read_text(encoding="utf-8")
        return _block_missing_fix(error, context, document_text)
    if kind is ErrorKind.CODE_CONTENT_MISMATCH:
        return _content_mismatch_fix(error, context)
    if kind is ErrorKind.LINE_OUT_OF_RANGE:
        return _line_out_of_range_fix(error)
    if kind is ErrorKind.SYMBOL_RANGE_MISMATCH:
        return _symbol_range_mismatch_fix(error)
    if kind is ErrorKind.MULTIPLE_SYMBOLS_FOUND:
        return _multiple_symbols_fix(error, chooser)
    # Manual remediation only.
    if (
        kind is ErrorKind.PATH_TRAVERSAL
        or kind is ErrorKind.FILE_NOT_FOUND
        or kind is ErrorKind.READ_ERROR
        or kind is ErrorKind.PARSE_ERROR
        or kind is ErrorKind.INVALID_LINE_NUMBER
        or kind is ErrorKind.INVALID_RANGE
        or kind is ErrorKind.NOT_TYPESCRIPT_FILE
        or kind is ErrorKind.SYMBOL_NOT_FOUND
    ):
        return []
    assert_never(kind)


__all__ = [
    "FENCE_LANGUAGES",
    "FIXABLE_KINDS",
    "FixBuildError",
    "build_fix_actions",
    "fence_language_for",
    "is_fixable",
]
