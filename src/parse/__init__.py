"""Parsing utilities for"""

from parse.scope_expansion import expand_match_to_scope
from parse.symbol_search import (
    find_symbols,
    find_symbols_in_file,
    parse_symbol_path,
    select_best_symbol_match,
)
from parse.treesitter_parser import (
    ParseCache,
    SourceParseError,
    UnsupportedSourceError,
)

__all__ = [
    "ParseCache",
    "SourceParseError",
    "UnsupportedSourceError",
    "expand_match_to_scope",
    "find_symbols",
    "find_symbols_in_file",
    "parse_symbol_path",
    "select_best_symbol_match",
]
