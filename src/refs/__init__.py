"""Reference, error and fix-action records."""

from refs.models import (
    CodeBlockPosition,
    ErrorKind,
    ExpandedMatch,
    FixAction,
    FixKind,
    LineRange,
    RefError,
    Reference,
    SymbolMatch,
    SymbolPath,
    format_reference_comment,
)

__all__ = [
    "CodeBlockPosition",
    "ErrorKind",
    "ExpandedMatch",
    "FixAction",
    "FixKind",
    "LineRange",
    "RefError",
    "Reference",
    "SymbolMatch",
    "SymbolPath",
    "format_reference_comment",
]
