"""Tree-sitter parsers for TypeScript/JavaScript sources and the per-run parse cache."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Node, Parser, Tree

_GRAMMARS: dict[str, Callable[[], object]] = {
    "typescript": tree_sitter_typescript.language_typescript,
    "tsx": tree_sitter_typescript.language_tsx,
    "javascript": tree_sitter_javascript.language,
}

EXTENSION_GRAMMARS: dict[str, str] = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
}

SUPPORTED_EXTENSIONS = frozenset(EXTENSION_GRAMMARS)

_PARSERS: dict[str, Parser] = {}


class SourceParseError(Exception):
    """Raised when a source file does not parse into an error-free syntax tree."""


class UnsupportedSourceError(ValueError):
    """Raised when a file extension has no syntax-tree support."""


def _get_parser(grammar: str) -> Parser:
    """Initialize and return the Tree-sitter parser for a grammar."""
    parser = _PARSERS.get(grammar)
    if parser is None:
        parser = Parser(Language(_GRAMMARS[grammar]()))
        _PARSERS[grammar] = parser
    return parser


def grammar_for(path: Path) -> str | None:
    return EXTENSION_GRAMMARS.get(path.suffix.lower())


def _first_error_node(node: Node) -> Node | None:
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing:
            found = _first_error_node(child)
            if found is not None:
                return found
    return None


@dataclass(frozen=True)
class ParsedSource:
    """A source file together with its syntax tree."""

    path: Path
    text: str
    tree: Tree
    lines: list[str] = field(repr=False)

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def total_lines(self) -> int:
        return len(self.lines)


def parse_source(path: Path, text: str) -> ParsedSource:
    """Parse ``text`` with the grammar selected by ``path``'s extension.

    Raises:
        UnsupportedSourceError: If the extension has no grammar.
        SourceParseError: If the resulting tree contains syntax errors.
    """
    grammar = grammar_for(path)
    if grammar is None:
        msg = f"TypeScript/JavaScript files only: {path}"
        raise UnsupportedSourceError(msg)

    tree = _get_parser(grammar).parse(text.encode("utf8"))
    if tree.root_node.has_error:
        error_node = _first_error_node(tree.root_node)
        line = error_node.start_point[0] + 1 if error_node is not None else 1
        msg = f"Syntax error in {path} near line {line}"
        raise SourceParseError(msg)

    return ParsedSource(path=path, text=text, tree=tree, lines=text.split("\n"))


class ParseCache:
    """Parses each source file at most once per run.

    The orchestrator owns one instance per run and hands it to the symbol
    resolver and the scope expander. Entries are keyed by resolved path and
    re-parsed when the file text changes.
    """

    def __init__(self, extensions: Iterable[str] | None = None) -> None:
        if extensions is None:
            self._extensions = SUPPORTED_EXTENSIONS
        else:
            self._extensions = frozenset(ext.lower() for ext in extensions)
        self._entries: dict[Path, ParsedSource] = {}

    def supports(self, path: Path) -> bool:
        suffix = path.suffix.lower()
        return suffix in self._extensions and suffix in SUPPORTED_EXTENSIONS

    def parse(self, path: Path, text: str | None = None) -> ParsedSource:
        """Return the parsed source for ``path``, reading it when ``text`` is None.

        Raises:
            UnsupportedSourceError: If the extension is not enabled for this run.
            SourceParseError: If the file has syntax errors.
            OSError: If the file cannot be read.
        """
        if not self.supports(path):
            msg = f"TypeScript/JavaScript files only: {path}"
            raise UnsupportedSourceError(msg)

        key = path.resolve()
        if text is None:
            text = key.read_text(encoding="utf-8")

        cached = self._entries.get(key)
        if cached is not None and cached.text == text:
            return cached

        parsed = parse_source(path, text)
        self._entries[key] = parsed
        return parsed

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, Path) and path.resolve() in self._entries


__all__ = [
    "EXTENSION_GRAMMARS",
    "ParseCache",
    "ParsedSource",
    "SUPPORTED_EXTENSIONS",
    "SourceParseError",
    "UnsupportedSourceError",
    "grammar_for",
    "parse_source",
]
