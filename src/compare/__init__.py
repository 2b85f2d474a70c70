"""Code comparison utilities for"""

from compare.code_comparison import (
    compare_code,
    dedent_code,
    extract_lines,
    extract_lines_from_file,
    normalize_code,
    search_code,
    search_code_in_file,
    search_with_scope_expansion,
)

__all__ = [
    "compare_code",
    "dedent_code",
    "extract_lines",
    "extract_lines_from_file",
    "normalize_code",
    "search_code",
    "search_code_in_file",
    "search_with_scope_expansion",
]
