"""Text-level edits of markdown documents around CODE_REF comments.

Every function takes the full document text and returns the edited text.
Comments are located at the reference's recorded offset when the text there
still matches, otherwise at their first occurrence.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from compare.code_comparison import normalize_code
from docs.markdown import (
    BLOCK_SEARCH_WINDOW,
    COMMENT_END,
    FENCED_BLOCK_PATTERN,
    REFERENCE_START_PATTERN,
    strip_block_newline,
)
from refs.models import CodeBlockPosition

if TYPE_CHECKING:
    import re


class DocumentEditError(Exception):
    """Raised when an edit cannot be located in the document."""


def render_code_block(code: str, language: str = "") -> str:
    return f"```{language}\n{code}\n```"


def locate_comment(content: str, comment: str, offset_hint: int | None = None) -> int:
    if offset_hint is not None and content.startswith(comment, offset_hint):
        return offset_hint
    index = content.find(comment)
    if index == -1:
        msg = f"CODE_REF comment not found: {comment}"
        raise DocumentEditError(msg)
    return index


def _comment_end(content: str, comment_index: int) -> int:
    end = content.find(COMMENT_END, comment_index)
    if end == -1:
        msg = "CODE_REF comment end tag not found"
        raise DocumentEditError(msg)
    return end + len(COMMENT_END)


def _block_position(offset: int, match: re.Match[str]) -> CodeBlockPosition:
    return CodeBlockPosition(
        start=offset + match.start(),
        end=offset + match.end(),
        language=match.group(1),
        content=strip_block_newline(match.group(2)),
    )


def find_adjacent_code_block(content: str, comment_index: int) -> CodeBlockPosition | None:
    """Return the fenced block separated from the comment by blank lines only."""
    search_start = _comment_end(content, comment_index)
    window = content[search_start : search_start + BLOCK_SEARCH_WINDOW]
    match = FENCED_BLOCK_PATTERN.search(window)
    if match is None or window[: match.start()].strip():
        return None
    return _block_position(search_start, match)


def find_code_block_near_comment(content: str, comment_index: int) -> CodeBlockPosition | None:
    """Return the first fenced block after the comment and before the next reference.

    Unlike :func:`find_adjacent_code_block`, text may sit between the comment
    and the block.
    """
    search_start = _comment_end(content, comment_index)
    window = content[search_start : search_start + BLOCK_SEARCH_WINDOW]
    next_reference = REFERENCE_START_PATTERN.search(window)
    if next_reference is not None:
        window = window[: next_reference.start()]

    match = FENCED_BLOCK_PATTERN.search(window)
    if match is None:
        return None
    return _block_position(search_start, match)


def replace_comment(
    content: str,
    old_comment: str,
    new_comment: str,
    offset_hint: int | None = None,
) -> str:
    index = locate_comment(content, old_comment, offset_hint)
    return content[:index] + new_comment + content[index + len(old_comment) :]


def replace_adjacent_code_block(content: str, comment_index: int, new_code: str) -> str:
    """Replace the block directly below a comment; unchanged if there is none."""
    block = find_adjacent_code_block(content, comment_index)
    if block is None:
        return content
    return (
        content[: block.start]
        + render_code_block(new_code, block.language)
        + content[block.end :]
    )


def insert_code_block_after_comment(
    content: str,
    comment: str,
    code: str,
    language: str = "",
    offset_hint: int | None = None,
) -> str:
    """Insert a new fenced block on the line after the comment.

    The block adds exactly its own lines; text that shared the comment's line
    moves below the block.
    """
    index = locate_comment(content, comment, offset_hint)
    insert_at = _comment_end(content, index)
    rest = content[insert_at:]
    suffix = "\n" if rest and not rest.startswith("\n") else ""
    block = f"\n{render_code_block(code, language)}{suffix}"
    return content[:insert_at] + block + rest


def replace_code_block(
    content: str,
    old_code: str,
    new_code: str,
    search_from: int = 0,
) -> str:
    """Replace the first block whose content equals ``old_code`` ignoring whitespace.

    Blocks at or after ``search_from`` are tried first, then the whole document.
    """
    target = normalize_code(old_code)
    starts = (search_from, 0) if search_from > 0 else (0,)
    for start in starts:
        for match in FENCED_BLOCK_PATTERN.finditer(content, start):
            if normalize_code(match.group(2)) == target:
                replacement = render_code_block(new_code, match.group(1))
                return content[: match.start()] + replacement + content[match.end() :]

    msg = "No matching code block found"
    raise DocumentEditError(msg)


def replace_code_block_at(
    content: str,
    position: CodeBlockPosition,
    new_code: str,
) -> str:
    if not content.startswith("```", position.start):
        msg = f"No code block at offset {position.start}"
        raise DocumentEditError(msg)
    replacement = render_code_block(new_code, position.language)
    return content[: position.start] + replacement + content[position.end :]


def move_comment_before_block(
    content: str,
    comment: str,
    block_start: int,
    offset_hint: int | None = None,
) -> str:
    """Move a comment so that it sits on the line directly above a fenced block.

    A comment that starts its line is removed together with up to two
    following newlines, so the lines around it close up without merging. The
    comment is reinserted with a single newline before the block.
    """
    index = locate_comment(content, comment, offset_hint)
    removal_start = index
    removal_end = _comment_end(content, index)
    starts_line = index == 0 or content[index - 1] == "\n"

    newlines_after = 0
    while (
        starts_line
        and removal_end < len(content)
        and content[removal_end] == "\n"
        and newlines_after < 2
    ):
        removal_end += 1
        newlines_after += 1

    without_comment = content[:removal_start] + content[removal_end:]
    if block_start > index:
        block_start -= removal_end - removal_start

    before = without_comment[:block_start]
    after = without_comment[block_start:]
    if not after.startswith("```"):
        msg = f"No code block at offset {block_start}"
        raise DocumentEditError(msg)

    prefix = "\n" if before and not before.endswith("\n\n") else ""
    return f"{before}{prefix}{comment}\n{after}"


__all__ = [
    "DocumentEditError",
    "find_adjacent_code_block",
    "find_code_block_near_comment",
    "insert_code_block_after_comment",
    "locate_comment",
    "move_comment_before_block",
    "render_code_block",
    "replace_adjacent_code_block",
    "replace_code_block",
    "replace_code_block_at",
    "replace_comment",
]
