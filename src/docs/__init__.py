"""Markdown reference extraction and editing."""

from docs.edit import (
    DocumentEditError,
    find_adjacent_code_block,
    find_code_block_near_comment,
    insert_code_block_after_comment,
    move_comment_before_block,
    replace_code_block,
    replace_code_block_at,
    replace_comment,
)
from docs.markdown import extract_references, extract_references_from_file

__all__ = [
    "DocumentEditError",
    "extract_references",
    "extract_references_from_file",
    "find_adjacent_code_block",
    "find_code_block_near_comment",
    "insert_code_block_after_comment",
    "move_comment_before_block",
    "replace_code_block",
    "replace_code_block_at",
    "replace_comment",
]
