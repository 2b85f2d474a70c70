"""Tree-sitter based symbol lookup for TypeScript/JavaScript sources."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from refs.models import LineRange, SymbolMatch, SymbolPath, SymbolScopeType

if TYPE_CHECKING:
    from pathlib import Path

    from tree_sitter import Node

    from parse.treesitter_parser import ParseCache, ParsedSource

_CLASS_TYPES = frozenset({"class_declaration", "abstract_class_declaration"})
_FUNCTION_TYPES = frozenset({"function_declaration", "generator_function_declaration"})
# name field per member node type (JS field_definition uses "property")
_MEMBER_NAME_FIELDS = {
    "method_definition": "name",
    "public_field_definition": "name",
    "field_definition": "property",
}

_CONFIDENCE_SCORE = {"high": 3, "medium": 2, "low": 1}


def parse_symbol_path(symbol_path: str) -> SymbolPath:
    """Split ``functionName`` or ``ClassName#methodName`` into a SymbolPath."""
    parts = symbol_path.split("#")
    if len(parts) == 1:
        return SymbolPath(member_name=parts[0].strip())
    if len(parts) == 2:
        return SymbolPath(class_name=parts[0].strip(), member_name=parts[1].strip())
    msg = f"Invalid symbol path: {symbol_path}"
    raise ValueError(msg)


def start_line_with_doc_comment(lines: Sequence[str], declaration_line: int) -> int:
    """Return the first line of a ``/** */`` block directly above a declaration.

    Blank lines and ``//`` comments between the block and the declaration are
    skipped. Without such a block the declaration's own line is returned.
    """
    for index in range(declaration_line - 2, -1, -1):
        stripped = lines[index].strip()

        if stripped.endswith("*/"):
            for cursor in range(index, -1, -1):
                candidate = lines[cursor].strip()
                if candidate.startswith("/**"):
                    return cursor + 1
                if candidate.startswith("/*"):
                    break
            break

        if stripped and not stripped.startswith("//"):
            break

    return declaration_line


def _node_name(node: Node, field_name: str = "name") -> str | None:
    name_node = node.child_by_field_name(field_name)
    if name_node is None or not name_node.text:
        return None
    return name_node.text.decode("utf8")


def _find_classes(node: Node, class_name: str, found: list[Node]) -> None:
    """Collect every class declaration named ``class_name`` at any depth."""
    if node.type in _CLASS_TYPES and _node_name(node) == class_name:
        found.append(node)

    for child in node.named_children:
        _find_classes(child, class_name, found)


def _find_member(class_node: Node, member_name: str) -> Node | None:
    body = class_node.child_by_field_name("body")
    if body is None:
        return None

    for member in body.named_children:
        field_name = _MEMBER_NAME_FIELDS.get(member.type)
        if field_name is not None and _node_name(member, field_name) == member_name:
            return member

    return None


def _find_top_level_functions(root: Node, function_name: str) -> list[Node]:
    """Only top-level (optionally exported) function declarations are visible."""
    functions: list[Node] = []
    for statement in root.named_children:
        declaration = statement
        if statement.type == "export_statement":
            declaration = statement.child_by_field_name("declaration")
            if declaration is None:
                continue
        if declaration.type in _FUNCTION_TYPES and _node_name(declaration) == function_name:
            functions.append(declaration)
    return functions


def _create_symbol_match(
    node: Node,
    source: ParsedSource,
    symbol: SymbolPath,
    scope_type: SymbolScopeType,
) -> SymbolMatch:
    declaration_line = node.start_point[0] + 1
    return SymbolMatch(
        class_name=symbol.class_name,
        member_name=symbol.member_name,
        start_line=start_line_with_doc_comment(source.lines, declaration_line),
        end_line=node.end_point[0] + 1,
        scope_type=scope_type,
        confidence="high",
    )


def find_symbols(source: ParsedSource, symbol: SymbolPath) -> list[SymbolMatch]:
    """Find every declaration matching ``symbol`` in a parsed source.

    With a class name, each same-named class contributes at most one member
    match. Without one, only top-level function declarations are searched.
    Returns an empty list when nothing matches.
    """
    matches: list[SymbolMatch] = []

    if symbol.class_name:
        classes: list[Node] = []
        _find_classes(source.root, symbol.class_name, classes)
        for class_node in classes:
            member = _find_member(class_node, symbol.member_name)
            if member is not None:
                matches.append(_create_symbol_match(member, source, symbol, "method"))
        return matches

    for function_node in _find_top_level_functions(source.root, symbol.member_name):
        matches.append(_create_symbol_match(function_node, source, symbol, "function"))
    return matches


def find_symbols_in_file(
    file_path: Path,
    symbol: SymbolPath,
    cache: ParseCache,
) -> list[SymbolMatch]:
    """Parse ``file_path`` through the run cache and look up ``symbol``.

    Raises:
        UnsupportedSourceError: For non TypeScript/JavaScript files.
        SourceParseError: If the file has syntax errors.
        OSError: If the file cannot be read.
    """
    return find_symbols(cache.parse(file_path), symbol)


def select_best_symbol_match(
    matches: Sequence[SymbolMatch],
    hint: LineRange | None = None,
) -> SymbolMatch | None:
    """Pick one match: nearest to the hint, else highest confidence."""
    if not matches:
        return None
    if len(matches) == 1:
        return matches[0]

    if hint is not None:
        return min(matches, key=lambda match: abs(match.start_line - hint.start))

    return max(matches, key=lambda match: _CONFIDENCE_SCORE[match.confidence])


__all__ = [
    "find_symbols",
    "find_symbols_in_file",
    "parse_symbol_path",
    "select_best_symbol_match",
    "start_line_with_doc_comment",
]
