"""Apply fix actions to markdown documents.

Edits inside one document are applied from the bottom up so that each edit
leaves the offsets and comment text of every reference above it untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, assert_never

from docs.edit import (
    DocumentEditError,
    insert_code_block_after_comment,
    locate_comment,
    move_comment_before_block,
    replace_adjacent_code_block,
    replace_code_block,
    replace_code_block_at,
)
from refs.models import FixKind

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from refs.models import FixAction, Reference

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatchResult:
    text: str
    line_delta: int


@dataclass(frozen=True)
class FixResult:
    success: bool
    action: FixAction
    error: str | None = None
    backup_path: Path | None = None
    line_delta: int = 0


def _line_delta(before: str, after: str) -> int:
    return after.count("\n") - before.count("\n")


def _rewrite_comment(text: str, action: FixAction) -> str:
    ref = action.reference
    index = locate_comment(text, ref.full_match, ref.comment_offset)
    edited = text[:index] + action.replacement_comment() + text[index + len(ref.full_match) :]
    if action.new_code_block is not None:
        edited = replace_adjacent_code_block(edited, index, action.new_code_block)
    return edited


def _replace_block(text: str, action: FixAction) -> str:
    ref = action.reference
    if action.new_code_block is None:
        msg = "REPLACE_CODE_BLOCK requires new_code_block"
        raise DocumentEditError(msg)
    if action.code_block_position is not None:
        return replace_code_block_at(text, action.code_block_position, action.new_code_block)
    if ref.code_block is None:
        msg = "Code block not found"
        raise DocumentEditError(msg)
    comment_index = locate_comment(text, ref.full_match, ref.comment_offset)
    return replace_code_block(text, ref.code_block, action.new_code_block, comment_index)


def apply_fix_to_text(text: str, action: FixAction) -> PatchResult:
    """Apply one action to a document's text without touching the filesystem.

    Raises:
        DocumentEditError: If the comment or block the action targets is gone.
    """
    ref = action.reference
    kind = action.kind

    if (
        kind is FixKind.UPDATE_LINE_NUMBERS
        or kind is FixKind.UPDATE_END_LINE
        or kind is FixKind.UPDATE_SYMBOL_RANGE
    ):
        edited = _rewrite_comment(text, action)
    elif kind is FixKind.INSERT_CODE_BLOCK:
        if action.new_code_block is None:
            msg = "INSERT_CODE_BLOCK requires new_code_block"
            raise DocumentEditError(msg)
        edited = insert_code_block_after_comment(
            text,
            ref.full_match,
            action.new_code_block,
            action.language,
            ref.comment_offset,
        )
    elif kind is FixKind.REPLACE_CODE_BLOCK:
        edited = _replace_block(text, action)
    elif kind is FixKind.MOVE_CODE_REF_COMMENT:
        if action.code_block_position is None:
            msg = "MOVE_CODE_REF_COMMENT requires code_block_position"
            raise DocumentEditError(msg)
        edited = move_comment_before_block(
            text,
            ref.full_match,
            action.code_block_position.start,
            ref.comment_offset,
        )
    else:
        assert_never(kind)

    return PatchResult(text=edited, line_delta=_line_delta(text, edited))


def apply_fix(action: FixAction) -> int:
    """Re-read the action's document, apply the action and write it back.

    Returns the number of lines added (negative when lines were removed).
    """
    doc_file = action.reference.doc_file
    text = doc_file.read_text(encoding="utf-8")
    result = apply_fix_to_text(text, action)
    doc_file.write_text(result.text, encoding="utf-8")
    return result.line_delta


def document_position(ref: Reference) -> tuple[int, int]:
    """Sort key placing a reference by its line, then its offset, in the document."""
    return (ref.doc_line_number or 0, ref.comment_offset or 0)


def order_bottom_up(actions: Iterable[FixAction]) -> tuple[FixAction, ...]:
    """Return a new tuple ordered from the last reference to the first."""
    return tuple(
        sorted(actions, key=lambda action: document_position(action.reference), reverse=True)
    )


def apply_fixes(actions: Iterable[FixAction]) -> list[FixResult]:
    """Apply actions bottom-up, recording failures without stopping the batch."""
    results: list[FixResult] = []
    for action in order_bottom_up(actions):
        try:
            delta = apply_fix(action)
        except (DocumentEditError, OSError, UnicodeDecodeError) as exc:
            logger.warning("%s: fix failed: %s", action.reference.location(), exc)
            results.append(FixResult(success=False, action=action, error=str(exc)))
            continue
        results.append(FixResult(success=True, action=action, line_delta=delta))
    return results


__all__ = [
    "FixResult",
    "PatchResult",
    "apply_fix",
    "apply_fix_to_text",
    "apply_fixes",
    "document_position",
    "order_bottom_up",
]
