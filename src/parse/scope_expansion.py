"""Grow a line span to its enclosing declaration using the syntax tree."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from parse.symbol_search import start_line_with_doc_comment
from parse.treesitter_parser import SourceParseError, UnsupportedSourceError
from refs.models import ExpandedMatch, LineRange, ScopeType

if TYPE_CHECKING:
    from pathlib import Path

    from tree_sitter import Node

    from parse.treesitter_parser import ParseCache

logger = logging.getLogger(__name__)

_SCOPE_TYPES: dict[str, ScopeType] = {
    "function_declaration": "function",
    "generator_function_declaration": "function",
    "function_expression": "function",
    "function": "function",
    "generator_function": "function",
    "arrow_function": "function",
    "method_definition": "function",
    "class_declaration": "class",
    "abstract_class_declaration": "class",
    "class": "class",
    "interface_declaration": "interface",
    "type_alias_declaration": "type",
}
_VARIABLE_TYPES = frozenset({"lexical_declaration", "variable_declaration"})


def _line_span(node: Node) -> int:
    return node.end_point[0] - node.start_point[0]


def find_node_at_line(root: Node, line: int) -> Node | None:
    """Return the most specific named node whose line span covers ``line``.

    Descends into the last covering child at every level.
    """
    row = line - 1
    if not root.start_point[0] <= row <= root.end_point[0]:
        return None

    node = root
    while True:
        covering = [
            child
            for child in node.named_children
            if child.start_point[0] <= row <= child.end_point[0]
        ]
        if not covering:
            return node
        node = covering[-1]


def scope_type_of(node: Node) -> ScopeType | None:
    """Map a declaration node to its scope type, or None if it is not a scope."""
    scope_type = _SCOPE_TYPES.get(node.type)
    if scope_type is not None:
        return scope_type
    parent = node.parent
    if node.type in _VARIABLE_TYPES and parent is not None and parent.type == "export_statement":
        return "const"
    return None


def find_enclosing_scope(node: Node) -> Node | None:
    """Walk ancestors of ``node`` to the nearest enclosing declaration."""
    current = node.parent
    while current is not None:
        if scope_type_of(current) is not None:
            return current
        current = current.parent
    return None


def _fallback(seed: LineRange) -> ExpandedMatch:
    return ExpandedMatch(
        start=seed.start,
        end=seed.end,
        confidence="low",
        expansion_type="none",
        scope_type="unknown",
    )


def expand_match_to_scope(
    file_path: Path,
    seed: LineRange,
    cache: ParseCache,
    text: str | None = None,
) -> ExpandedMatch:
    """Expand ``seed`` to the declaration enclosing it.

    Falls back to the unchanged seed at ``low`` confidence when the file is
    unsupported, unreadable or unparseable, or when no enclosing declaration
    exists. Never raises for those conditions.
    """
    try:
        source = cache.parse(file_path, text)
    except UnsupportedSourceError:
        logger.debug("No syntax support for %s; keeping lines %s", file_path, seed)
        return _fallback(seed)
    except (SourceParseError, OSError, UnicodeDecodeError) as exc:
        logger.warning("AST parsing failed for %s: %s", file_path, exc)
        return _fallback(seed)

    start_node = find_node_at_line(source.root, seed.start)
    end_node = find_node_at_line(source.root, seed.end)
    if start_node is None or end_node is None:
        logger.debug("No node at %s lines %s", file_path, seed)
        return _fallback(seed)

    target = start_node if _line_span(start_node) < _line_span(end_node) else end_node
    scope = find_enclosing_scope(target)
    scope_type = scope_type_of(scope) if scope is not None else None
    if scope is None or scope_type is None:
        return _fallback(seed)

    return ExpandedMatch(
        start=start_line_with_doc_comment(source.lines, scope.start_point[0] + 1),
        end=scope.end_point[0] + 1,
        confidence="high",
        expansion_type="ast",
        scope_type=scope_type,
    )


__all__ = [
    "expand_match_to_scope",
    "find_enclosing_scope",
    "find_node_at_line",
    "scope_type_of",
]
