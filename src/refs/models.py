"""Record models shared by the validator, fix builder and patch applier.

References and errors are recomputed on every run; nothing here is persisted.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Confidence = Literal["high", "medium", "low"]
SymbolScopeType = Literal["function", "class", "method"]
ScopeType = Literal["function", "class", "interface", "type", "const", "unknown"]
ExpansionType = Literal["ast", "heuristic", "none"]

# Cap for code excerpts carried on errors.
CODE_EXCERPT_LIMIT = 200

COMMENT_PREFIX = "<!-- CODE_REF: "
COMMENT_SUFFIX = " -->"


class SymbolPath(BaseModel):
    """A ``functionName`` or ``ClassName#memberName`` symbol path."""

    model_config = ConfigDict(frozen=True)

    class_name: str | None = None
    member_name: str

    def __str__(self) -> str:
        if self.class_name:
            return f"{self.class_name}#{self.member_name}"
        return self.member_name


class LineRange(BaseModel):
    """A 1-indexed, inclusive line span."""

    model_config = ConfigDict(frozen=True)

    start: int
    end: int

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


def format_reference_comment(
    ref_path: str,
    symbol: SymbolPath | None = None,
    start_line: int | None = None,
    end_line: int | None = None,
) -> str:
    """Render a CODE_REF comment."""
    body = ref_path
    if symbol is not None:
        body = f"{body}#{symbol}"
    if start_line is not None and end_line is not None:
        body = f"{body}:{start_line}-{end_line}"
    return f"{COMMENT_PREFIX}{body}{COMMENT_SUFFIX}"


class Reference(BaseModel):
    """A CODE_REF comment extracted from a markdown document."""

    full_match: str = Field(description="Comment text exactly as written")
    ref_path: str
    symbol: SymbolPath | None = None
    start_line: int | None = None
    end_line: int | None = None
    doc_file: Path
    doc_line_number: int | None = Field(
        default=None, description="1-indexed line of the comment in doc_file"
    )
    code_block: str | None = Field(
        default=None,
        description="Content of the associated fenced block, without its final newline",
    )
    comment_offset: int | None = Field(
        default=None, description="Character offset of the comment in doc_file"
    )

    @property
    def line_range(self) -> LineRange | None:
        if self.start_line is None or self.end_line is None:
            return None
        return LineRange(start=self.start_line, end=self.end_line)

    @property
    def has_code_block(self) -> bool:
        return self.code_block is not None and self.code_block.strip() != ""

    def target(self) -> str:
        """Return the reference target as written after ``CODE_REF:``."""
        target = self.ref_path
        if self.symbol is not None:
            target = f"{target}#{self.symbol}"
        if self.line_range is not None:
            target = f"{target}:{self.line_range}"
        return target

    def location(self) -> str:
        if self.doc_line_number is None:
            return str(self.doc_file)
        return f"{self.doc_file}:{self.doc_line_number}"


class SymbolMatch(BaseModel):
    """A symbol resolved in a source file."""

    class_name: str | None = None
    member_name: str
    start_line: int = Field(description="Includes a directly preceding doc comment")
    end_line: int
    scope_type: SymbolScopeType
    confidence: Confidence = "high"

    @property
    def label(self) -> str:
        if self.class_name:
            return f"{self.class_name}#{self.member_name}"
        return self.member_name


class ExpandedMatch(BaseModel):
    """A line span grown to its enclosing declaration."""

    start: int
    end: int
    confidence: Confidence
    expansion_type: ExpansionType = "none"
    scope_type: ScopeType = "unknown"

    @property
    def span(self) -> int:
        return self.end - self.start


class ErrorKind(str, Enum):
    """Closed set of reference validation outcomes."""

    PATH_TRAVERSAL = "PATH_TRAVERSAL"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    READ_ERROR = "READ_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    INVALID_LINE_NUMBER = "INVALID_LINE_NUMBER"
    LINE_OUT_OF_RANGE = "LINE_OUT_OF_RANGE"
    INVALID_RANGE = "INVALID_RANGE"
    NOT_TYPESCRIPT_FILE = "NOT_TYPESCRIPT_FILE"
    SYMBOL_NOT_FOUND = "SYMBOL_NOT_FOUND"
    MULTIPLE_SYMBOLS_FOUND = "MULTIPLE_SYMBOLS_FOUND"
    SYMBOL_RANGE_MISMATCH = "SYMBOL_RANGE_MISMATCH"
    CODE_BLOCK_MISSING = "CODE_BLOCK_MISSING"
    CODE_CONTENT_MISMATCH = "CODE_CONTENT_MISMATCH"
    CODE_LOCATION_MISMATCH = "CODE_LOCATION_MISMATCH"


class RefError(BaseModel):
    """A classified problem with one reference."""

    kind: ErrorKind
    message: str
    reference: Reference
    suggested_lines: LineRange | None = None
    suggested_symbol: SymbolMatch | None = None
    found_symbols: list[SymbolMatch] = Field(default_factory=list)
    actual_code: str | None = Field(default=None, max_length=CODE_EXCERPT_LIMIT)
    expected_code: str | None = Field(default=None, max_length=CODE_EXCERPT_LIMIT)
    occurrences: int | None = Field(
        default=None, description="Whole-file hits for CODE_LOCATION_MISMATCH"
    )
    total_lines: int | None = Field(
        default=None, description="Line count of the target for LINE_OUT_OF_RANGE"
    )

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "kind": self.kind.value,
            "message": self.message,
            "doc_file": str(self.reference.doc_file),
            "doc_line": self.reference.doc_line_number,
            "reference": self.reference.target(),
            "suggested_lines": (
                self.suggested_lines.model_dump() if self.suggested_lines else None
            ),
        }
        if self.suggested_symbol is not None:
            payload["suggested_symbol"] = self.suggested_symbol.model_dump()
        if self.found_symbols:
            payload["found_symbols"] = [match.model_dump() for match in self.found_symbols]
        if self.occurrences is not None:
            payload["occurrences"] = self.occurrences
        if self.total_lines is not None:
            payload["total_lines"] = self.total_lines
        return payload


class FixKind(str, Enum):
    """Closed set of document mutations."""

    UPDATE_LINE_NUMBERS = "UPDATE_LINE_NUMBERS"
    UPDATE_END_LINE = "UPDATE_END_LINE"
    UPDATE_SYMBOL_RANGE = "UPDATE_SYMBOL_RANGE"
    INSERT_CODE_BLOCK = "INSERT_CODE_BLOCK"
    REPLACE_CODE_BLOCK = "REPLACE_CODE_BLOCK"
    MOVE_CODE_REF_COMMENT = "MOVE_CODE_REF_COMMENT"


class CodeBlockPosition(BaseModel):
    """Character span of a fenced block inside a document."""

    start: int
    end: int
    language: str
    content: str


class FixAction(BaseModel):
    """A previewable text mutation proposed for one error."""

    kind: FixKind
    error: RefError
    description: str
    preview: str = ""
    new_start_line: int | None = None
    new_end_line: int | None = None
    new_code_block: str | None = None
    code_block_position: CodeBlockPosition | None = None
    language: str = ""
    keep_symbol: bool = True

    @property
    def reference(self) -> Reference:
        return self.error.reference

    def replacement_comment(self) -> str:
        """Render the comment this action writes in place of the original."""
        ref = self.reference
        start = self.new_start_line if self.new_start_line is not None else ref.start_line
        end = self.new_end_line if self.new_end_line is not None else ref.end_line
        symbol = ref.symbol if self.keep_symbol else None
        return format_reference_comment(ref.ref_path, symbol, start, end)


__all__ = [
    "CODE_EXCERPT_LIMIT",
    "CodeBlockPosition",
    "Confidence",
    "ErrorKind",
    "ExpandedMatch",
    "ExpansionType",
    "FixAction",
    "FixKind",
    "LineRange",
    "RefError",
    "Reference",
    "ScopeType",
    "SymbolMatch",
    "SymbolPath",
    "SymbolScopeType",
    "format_reference_comment",
]
