from __future__ import annotations

from pathlib import Path

from docs.markdown import (
    extract_code_block_after_comment,
    extract_references,
    extract_references_from_file,
)
from refs.models import SymbolPath, format_reference_comment

FIXTURE_DOCS = Path(__file__).parent / "fixtures" / "sample_project" / "docs"


def test_reference_grammar_variants() -> None:
    content = "\n".join(
        [
            "<!-- CODE_REF: src/a.ts -->",
            "<!-- CODE_REF: src/a.ts#run -->",
            "<!-- CODE_REF: src/a.ts#Runner#start:3-9 -->",
            "<!--CODE_REF:src/a.ts:10-12-->",
        ]
    )

    refs = extract_references(content, Path("doc.md"))

    assert [ref.ref_path for ref in refs] == ["src/a.ts"] * 4
    assert refs[0].symbol is None
    assert refs[0].line_range is None
    assert refs[1].symbol == SymbolPath(member_name="run")
    assert refs[2].symbol == SymbolPath(class_name="Runner", member_name="start")
    assert (refs[2].start_line, refs[2].end_line) == (3, 9)
    assert (refs[3].start_line, refs[3].end_line) == (10, 12)
    assert [ref.doc_line_number for ref in refs] == [1, 2, 3, 4]


def test_references_record_offset_and_full_match() -> None:
    content = "# Title\n\n<!-- CODE_REF: src/a.ts:1-2 -->\n"

    [ref] = extract_references(content, Path("doc.md"))

    assert ref.full_match == "<!-- CODE_REF: src/a.ts:1-2 -->"
    assert ref.comment_offset == content.index("<!--")
    assert ref.doc_line_number == 3
    assert ref.target() == "src/a.ts:1-2"


def test_comments_inside_code_are_samples() -> None:
    refs = extract_references_from_file(FIXTURE_DOCS / "guide.md")

    assert [ref.target() for ref in refs] == ["src/math.ts", "src/math.ts#subtract"]


def test_block_directly_after_comment_is_associated() -> None:
    refs = extract_references_from_file(FIXTURE_DOCS / "guide.md")

    assert refs[0].code_block is None
    assert refs[1].code_block == (
        "export function subtract(a: number, b: number): number {\n"
        "  return a - b;\n"
        "}"
    )
    assert refs[1].has_code_block


def test_prose_between_comment_and_block_voids_association() -> None:
    content = "<!-- CODE_REF: src/a.ts:1-2 -->\n\nSome prose.\n\n```ts\na();\n```\n"

    assert extract_code_block_after_comment(content, 0) is None


def test_blank_lines_between_comment_and_block_are_allowed() -> None:
    content = "<!-- CODE_REF: src/a.ts:1-2 -->\n\n\n```ts\na();\nb();\n```\n"

    assert extract_code_block_after_comment(content, 0) == "a();\nb();"


def test_empty_block_is_associated_but_blank() -> None:
    content = "<!-- CODE_REF: src/a.ts:1-2 -->\n```ts\n\n```\n"

    [ref] = extract_references(content, Path("doc.md"))

    assert ref.code_block == ""
    assert not ref.has_code_block


def test_invalid_symbol_path_is_skipped() -> None:
    content = "<!-- CODE_REF: src/a.ts#A#b#c -->\n<!-- CODE_REF: src/b.ts -->\n"

    refs = extract_references(content, Path("doc.md"))

    assert [ref.ref_path for ref in refs] == ["src/b.ts"]


def test_format_reference_comment_round_trips_through_extraction() -> None:
    comment = format_reference_comment(
        "src/shapes.ts", SymbolPath(class_name="Shape", member_name="area"), 3, 5
    )

    [ref] = extract_references(comment, Path("doc.md"))

    assert comment == "<!-- CODE_REF: src/shapes.ts#Shape#area:3-5 -->"
    assert ref.full_match == comment
