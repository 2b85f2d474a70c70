from __future__ import annotations

from pathlib import Path

import pytest

from parse.symbol_search import (
    find_symbols,
    find_symbols_in_file,
    parse_symbol_path,
    select_best_symbol_match,
    start_line_with_doc_comment,
)
from parse.treesitter_parser import (
    ParseCache,
    SourceParseError,
    UnsupportedSourceError,
    parse_source,
)
from refs.models import LineRange, SymbolMatch, SymbolPath

FIXTURE_SRC = Path(__file__).parent / "fixtures" / "sample_project" / "src"


def _spans(matches: list[SymbolMatch]) -> list[tuple[int, int]]:
    return [(match.start_line, match.end_line) for match in matches]


def test_parse_symbol_path_variants() -> None:
    assert parse_symbol_path("add") == SymbolPath(member_name="add")
    assert parse_symbol_path(" Shape # area ") == SymbolPath(
        class_name="Shape", member_name="area"
    )
    with pytest.raises(ValueError, match="Invalid symbol path"):
        parse_symbol_path("A#b#c")


def test_function_with_doc_comment_starts_at_comment() -> None:
    matches = find_symbols_in_file(
        FIXTURE_SRC / "math.ts", SymbolPath(member_name="add"), ParseCache()
    )

    assert _spans(matches) == [(1, 6)]
    assert matches[0].scope_type == "function"
    assert matches[0].confidence == "high"


def test_line_comment_is_not_a_doc_comment() -> None:
    matches = find_symbols_in_file(
        FIXTURE_SRC / "math.ts", SymbolPath(member_name="subtract"), ParseCache()
    )

    assert _spans(matches) == [(9, 11)]


def test_same_named_classes_yield_one_match_each() -> None:
    matches = find_symbols_in_file(
        FIXTURE_SRC / "shapes.ts",
        SymbolPath(class_name="Shape", member_name="area"),
        ParseCache(),
    )

    assert _spans(matches) == [(3, 5), (11, 16)]
    assert all(match.scope_type == "method" for match in matches)
    assert [match.label for match in matches] == ["Shape#area", "Shape#area"]


def test_nested_functions_are_invisible() -> None:
    source = parse_source(
        Path("nested.ts"),
        "export function outer() {\n  function inner() {}\n  return inner;\n}\n",
    )

    assert find_symbols(source, SymbolPath(member_name="inner")) == []
    assert _spans(find_symbols(source, SymbolPath(member_name="outer"))) == [(1, 4)]


def test_javascript_fields_and_methods() -> None:
    cache = ParseCache()
    label = find_symbols_in_file(
        FIXTURE_SRC / "widget.js",
        SymbolPath(class_name="Widget", member_name="label"),
        cache,
    )
    render = find_symbols_in_file(
        FIXTURE_SRC / "widget.js",
        SymbolPath(class_name="Widget", member_name="render"),
        cache,
    )

    assert _spans(label) == [(2, 2)]
    assert _spans(render) == [(4, 6)]


def test_missing_symbol_returns_empty_list() -> None:
    matches = find_symbols_in_file(
        FIXTURE_SRC / "math.ts", SymbolPath(member_name="divide"), ParseCache()
    )

    assert matches == []


def test_syntax_errors_raise_instead_of_returning_no_match() -> None:
    with pytest.raises(SourceParseError):
        find_symbols_in_file(
            FIXTURE_SRC / "broken.ts", SymbolPath(member_name="broken"), ParseCache()
        )


def test_unsupported_extension_raises() -> None:
    with pytest.raises(UnsupportedSourceError):
        find_symbols_in_file(
            FIXTURE_SRC / "notes.txt", SymbolPath(member_name="notes"), ParseCache()
        )


def test_parse_cache_reuses_trees_until_text_changes(tmp_path: Path) -> None:
    path = tmp_path / "a.ts"
    path.write_text("export function a() {}\n", encoding="utf-8")
    cache = ParseCache()

    first = cache.parse(path)
    assert cache.parse(path) is first
    assert path in cache

    path.write_text("export function b() {}\n", encoding="utf-8")
    assert cache.parse(path) is not first

    cache.clear()
    assert len(cache) == 0


def test_parse_cache_honours_configured_extensions() -> None:
    cache = ParseCache([".js"])

    assert cache.supports(Path("a.js"))
    assert not cache.supports(Path("a.ts"))


def test_start_line_with_multiline_doc_comment_and_gap() -> None:
    lines = ["/**", " * Doc.", " */", "", "// note", "function f() {}"]
    assert start_line_with_doc_comment(lines, 6) == 1


def test_start_line_ignores_plain_block_comment() -> None:
    lines = ["/* plain */", "function f() {}"]
    assert start_line_with_doc_comment(lines, 2) == 2


def _match(start: int, end: int, confidence: str = "high") -> SymbolMatch:
    return SymbolMatch(
        member_name="f",
        start_line=start,
        end_line=end,
        scope_type="function",
        confidence=confidence,
    )


def test_select_best_symbol_match() -> None:
    first = _match(3, 5)
    second = _match(11, 16)

    assert select_best_symbol_match([]) is None
    assert select_best_symbol_match([second]) is second
    assert select_best_symbol_match([first, second], LineRange(start=10, end=12)) is second
    assert select_best_symbol_match([first, second], LineRange(start=7, end=9)) is first


def test_select_best_symbol_match_ties_keep_discovery_order() -> None:
    first = _match(1, 2)
    second = _match(9, 10)

    assert select_best_symbol_match([first, second], LineRange(start=5, end=5)) is first
    assert select_best_symbol_match([first, second]) is first
    assert select_best_symbol_match([_match(1, 2, "low"), second]) is second
