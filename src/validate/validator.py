"""Classify every CODE_REF reference of a document set.

Each reference runs through a fixed pipeline: path safety, existence, range
sanity, symbol resolution and finally content comparison. Path and existence
failures stop the pipeline. Range defects are reported together. Symbol and
content checks run only while the reference is still error-free.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from compare.code_comparison import compare_code, extract_lines, search_code
from docs.markdown import extract_references_from_file
from parse.symbol_search import find_symbols, select_best_symbol_match
from parse.treesitter_parser import SourceParseError, UnsupportedSourceError
from refs.models import CODE_EXCERPT_LIMIT, ErrorKind, RefError, SymbolMatch

if TYPE_CHECKING:
    from collections.abc import Iterable

    from parse.treesitter_parser import ParseCache
    from refs.models import Reference

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationContext:
    """Project root and the run's parse cache."""

    project_root: Path
    cache: ParseCache

    def resolve(self, ref: Reference) -> Path:
        return (self.project_root / ref.ref_path).resolve()


@dataclass(frozen=True)
class ReferenceOutcome:
    reference: Reference
    errors: tuple[RefError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class ValidationReport:
    outcomes: list[ReferenceOutcome] = field(default_factory=list)
    unreadable_documents: list[tuple[Path, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.unreadable_documents and all(
            outcome.ok for outcome in self.outcomes
        )

    @property
    def errors(self) -> list[RefError]:
        return [error for outcome in self.outcomes for error in outcome.errors]

    @property
    def documents(self) -> list[Path]:
        return sorted({outcome.reference.doc_file for outcome in self.outcomes})

    def errors_by_document(self) -> dict[Path, list[RefError]]:
        grouped: dict[Path, list[RefError]] = {}
        for error in self.errors:
            grouped.setdefault(error.reference.doc_file, []).append(error)
        return grouped

    def to_dict(self) -> dict[str, object]:
        return {
            "ok": self.ok,
            "references": len(self.outcomes),
            "errors": [error.to_dict() for error in self.errors],
            "unreadable_documents": [
                {"path": str(path), "message": message}
                for path, message in self.unreadable_documents
            ],
        }


def _excerpt(code: str) -> str:
    return code[:CODE_EXCERPT_LIMIT]


def _error(kind: ErrorKind, message: str, ref: Reference, **payload: object) -> RefError:
    return RefError(kind=kind, message=message, reference=ref, **payload)


def _is_inside_root(path: Path, root: Path) -> bool:
    try:
        relative = path.relative_to(root)
    except ValueError:
        return False
    return relative != Path()


def _check_range(ref: Reference, total_lines: int) -> list[RefError]:
    assert ref.start_line is not None and ref.end_line is not None
    errors: list[RefError] = []

    if ref.start_line < 1:
        errors.append(
            _error(
                ErrorKind.INVALID_LINE_NUMBER,
                f"Start line number is invalid (less than 1): {ref.start_line}",
                ref,
            )
        )
    if ref.end_line > total_lines:
        errors.append(
            _error(
                ErrorKind.LINE_OUT_OF_RANGE,
                f"End line number exceeds file line count: {ref.end_line} > {total_lines}",
                ref,
                total_lines=total_lines,
            )
        )
    if ref.start_line > ref.end_line:
        errors.append(
            _error(
                ErrorKind.INVALID_RANGE,
                "Start line number is greater than end line number: "
                f"{ref.start_line} > {ref.end_line}",
                ref,
            )
        )
    return errors


def _check_symbol(
    ref: Reference,
    path: Path,
    text: str,
    context: ValidationContext,
) -> tuple[list[RefError], list[SymbolMatch]]:
    assert ref.symbol is not None
    if not context.cache.supports(path):
        return [
            _error(
                ErrorKind.NOT_TYPESCRIPT_FILE,
                "Symbol specification only supported for TypeScript/JavaScript "
                f"files: {ref.ref_path}",
                ref,
            )
        ], []

    try:
        source = context.cache.parse(path, text)
    except SourceParseError as exc:
        return [_error(ErrorKind.PARSE_ERROR, f"AST parsing error: {exc}", ref)], []
    except UnsupportedSourceError as exc:
        return [_error(ErrorKind.NOT_TYPESCRIPT_FILE, str(exc), ref)], []

    matches = find_symbols(source, ref.symbol)
    if not matches:
        return [
            _error(ErrorKind.SYMBOL_NOT_FOUND, f'Symbol "{ref.symbol}" not found', ref)
        ], matches

    line_range = ref.line_range
    if line_range is None:
        if len(matches) > 1:
            return [
                _error(
                    ErrorKind.MULTIPLE_SYMBOLS_FOUND,
                    f'Symbol "{ref.symbol}" found in {len(matches)} locations. '
                    "Please specify line numbers",
                    ref,
                    found_symbols=matches,
                )
            ], matches
        return [], matches

    best = select_best_symbol_match(matches, line_range)
    if best is not None and (best.start_line, best.end_line) != (
        line_range.start,
        line_range.end,
    ):
        return [
            _error(
                ErrorKind.SYMBOL_RANGE_MISMATCH,
                f'Symbol "{ref.symbol}" range does not match '
                f"(expected: {line_range}, actual: {best.start_line}-{best.end_line})",
                ref,
                suggested_symbol=best,
            )
        ], matches
    return [], matches


def _check_content(
    ref: Reference,
    text: str,
    matches: list[SymbolMatch],
) -> list[RefError]:
    line_range = ref.line_range

    if line_range is None:
        if ref.symbol is None:
            return []
        if not ref.has_code_block:
            return [
                _error(
                    ErrorKind.CODE_BLOCK_MISSING,
                    "Code block not found after CODE_REF with symbol specification "
                    f"({ref.ref_path}#{ref.symbol}).",
                    ref,
                )
            ]
        if not matches:
            return []
        symbol_code = extract_lines(text, matches[0].start_line, matches[0].end_line)
        if compare_code(symbol_code, ref.code_block or ""):
            return []
        return [
            _error(
                ErrorKind.CODE_CONTENT_MISMATCH,
                "Code block does not match entire symbol.",
                ref,
                actual_code=_excerpt(symbol_code),
                expected_code=_excerpt(ref.code_block or ""),
            )
        ]

    if not ref.has_code_block:
        return [
            _error(
                ErrorKind.CODE_BLOCK_MISSING,
                f"Code block not found after CODE_REF ({ref.ref_path}:{line_range}).",
                ref,
            )
        ]

    code_block = ref.code_block or ""
    actual_code = extract_lines(text, line_range.start, line_range.end)
    if compare_code(actual_code, code_block):
        return []

    hits = search_code(text, code_block)
    if not hits:
        return [
            _error(
                ErrorKind.CODE_CONTENT_MISMATCH,
                f"Code does not match in {ref.ref_path}.",
                ref,
                actual_code=_excerpt(actual_code),
                expected_code=_excerpt(code_block),
            )
        ]

    first = hits[0]
    count_note = (
        f"Code found in {len(hits)} locations. First occurrence: " if len(hits) > 1 else ""
    )
    return [
        _error(
            ErrorKind.CODE_LOCATION_MISMATCH,
            f"Line numbers do not match in {ref.ref_path}. {count_note}"
            f"(expect: {line_range}, result: {first})",
            ref,
            suggested_lines=first,
            occurrences=len(hits),
        )
    ]


def validate_reference(ref: Reference, context: ValidationContext) -> list[RefError]:
    """Return every error found for one reference; empty means valid."""
    path = context.resolve(ref)
    root = context.project_root.resolve()

    if not _is_inside_root(path, root):
        return [
            _error(
                ErrorKind.PATH_TRAVERSAL,
                f"Referenced path points outside project root: {ref.ref_path}",
                ref,
            )
        ]
    if not path.exists():
        return [
            _error(
                ErrorKind.FILE_NOT_FOUND,
                f"Referenced file not found: {ref.ref_path}",
                ref,
            )
        ]
    if ref.line_range is None and ref.symbol is None:
        return []

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        return [_error(ErrorKind.READ_ERROR, f"Failed to read file: {exc}", ref)]

    errors: list[RefError] = []
    if ref.line_range is not None:
        errors.extend(_check_range(ref, len(text.split("\n"))))
    if errors:
        return errors

    matches: list[SymbolMatch] = []
    if ref.symbol is not None:
        errors, matches = _check_symbol(ref, path, text, context)
        if errors:
            return errors

    return _check_content(ref, text, matches)


def validate_documents(
    doc_files: Iterable[Path],
    context: ValidationContext,
) -> ValidationReport:
    """Validate every reference of every document.

    Documents are independent; an unreadable document is recorded on the
    report and the rest are still validated.
    """
    report = ValidationReport()
    for doc_file in doc_files:
        try:
            references = extract_references_from_file(doc_file)
        except (OSError, UnicodeDecodeError) as exc:
            logger.error("Cannot read %s: %s", doc_file, exc)
            report.unreadable_documents.append((doc_file, str(exc)))
            continue

        logger.debug("%s: %d reference(s)", doc_file, len(references))
        for ref in references:
            errors = validate_reference(ref, context)
            report.outcomes.append(ReferenceOutcome(reference=ref, errors=tuple(errors)))

    return report


__all__ = [
    "ReferenceOutcome",
    "ValidationContext",
    "ValidationReport",
    "validate_documents",
    "validate_reference",
]
