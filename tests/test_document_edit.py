from __future__ import annotations

from pathlib import Path

import pytest

from docs.edit import (
    DocumentEditError,
    find_adjacent_code_block,
    find_code_block_near_comment,
    insert_code_block_after_comment,
    locate_comment,
    move_comment_before_block,
    replace_code_block,
    replace_code_block_at,
    replace_comment,
)
from docs.markdown import extract_references
from fix.apply import apply_fix_to_text, apply_fixes, document_position, order_bottom_up
from fix.session import _bottom_up
from refs.models import ErrorKind, FixAction, FixKind, RefError

COMMENT = "<!-- CODE_REF: src/a.ts:1-2 -->"


def test_locate_comment_prefers_offset_hint() -> None:
    content = f"{COMMENT}\n\n{COMMENT}\n"
    second = content.index(COMMENT, 1)

    assert locate_comment(content, COMMENT, second) == second
    assert locate_comment(content, COMMENT, 5) == 0
    with pytest.raises(DocumentEditError):
        locate_comment(content, "<!-- CODE_REF: src/b.ts -->")


def test_replace_comment_keeps_surrounding_text() -> None:
    content = f"intro\n{COMMENT}\noutro\n"

    edited = replace_comment(content, COMMENT, "<!-- CODE_REF: src/a.ts:3-4 -->")

    assert edited == "intro\n<!-- CODE_REF: src/a.ts:3-4 -->\noutro\n"


def test_adjacent_and_nearby_blocks() -> None:
    content = f"{COMMENT}\n\nProse.\n\n```ts\na();\n```\n"

    assert find_adjacent_code_block(content, 0) is None
    nearby = find_code_block_near_comment(content, 0)
    assert nearby is not None
    assert content[nearby.start : nearby.end] == "```ts\na();\n```"
    assert (nearby.language, nearby.content) == ("ts", "a();")


def test_nearby_block_stops_at_next_reference() -> None:
    content = f"{COMMENT}\n\nProse.\n\n<!-- CODE_REF: src/b.ts:1-1 -->\n```ts\nb();\n```\n"

    assert find_code_block_near_comment(content, 0) is None


def test_insert_block_below_comment_at_end_of_document() -> None:
    edited = insert_code_block_after_comment(COMMENT, COMMENT, "a();", "ts")

    assert edited == f"{COMMENT}\n```ts\na();\n```"


def test_insert_block_pushes_same_line_text_below() -> None:
    content = f"{COMMENT} trailing words\n"

    edited = insert_code_block_after_comment(content, COMMENT, "a();")

    assert edited == f"{COMMENT}\n```\na();\n```\n trailing words\n"


def test_replace_code_block_ignores_whitespace_differences() -> None:
    content = "```js\nfirst();\n```\n\n```ts\nconst  x =\n  1;\n```\n"

    edited = replace_code_block(content, "const x = 1;", "const x = 2;")

    assert edited == "```js\nfirst();\n```\n\n```ts\nconst x = 2;\n```\n"
    with pytest.raises(DocumentEditError, match="No matching code block found"):
        replace_code_block(content, "missing();", "x")


def test_replace_code_block_prefers_blocks_after_search_start() -> None:
    content = "```ts\nsame();\n```\n\n```ts\nsame();\n```\n"
    second = content.index("```ts", 1)

    edited = replace_code_block(content, "same();", "other();", second)

    assert edited == "```ts\nsame();\n```\n\n```ts\nother();\n```\n"


def test_replace_code_block_at_checks_position() -> None:
    content = f"{COMMENT}\n```ts\n\n```\n"
    block = find_adjacent_code_block(content, 0)
    assert block is not None

    assert replace_code_block_at(content, block, "a();") == f"{COMMENT}\n```ts\na();\n```\n"
    with pytest.raises(DocumentEditError):
        replace_code_block_at("no fences here at all", block, "a();")


def test_move_comment_before_later_block() -> None:
    content = f"# Title\n{COMMENT}\n\nProse.\n\n```ts\na();\n```\n"
    block_start = content.index("```")

    edited = move_comment_before_block(content, COMMENT, block_start)

    assert edited == f"# Title\nProse.\n\n{COMMENT}\n```ts\na();\n```\n"


def test_move_comment_inserts_separator_after_prose() -> None:
    content = f"{COMMENT}\nProse.\n```ts\na();\n```\n"
    block_start = content.index("```")

    edited = move_comment_before_block(content, COMMENT, block_start)

    assert edited == f"Prose.\n\n{COMMENT}\n```ts\na();\n```\n"


def _action(content: str, ref_index: int, new_start: int, new_end: int) -> FixAction:
    ref = extract_references(content, Path("doc.md"))[ref_index]
    error = RefError(kind=ErrorKind.CODE_LOCATION_MISMATCH, message="moved", reference=ref)
    return FixAction(
        kind=FixKind.UPDATE_LINE_NUMBERS,
        error=error,
        description="update",
        new_start_line=new_start,
        new_end_line=new_end,
        new_code_block="\n".join(f"line{n}();" for n in range(new_start, new_end + 1)),
        keep_symbol=False,
    )


def _document() -> str:
    lines = ["# Doc", "", "", ""]
    lines += ["<!-- CODE_REF: src/a.ts:1-1 -->", "```ts", "old();", "```"]
    lines += [f"filler {n}" for n in range(9, 50)]
    lines += ["<!-- CODE_REF: src/b.ts:1-1 -->", "```ts", "old();", "```", ""]
    return "\n".join(lines)


def test_order_bottom_up_returns_new_tuple() -> None:
    content = _document()
    upper = _action(content, 0, 1, 3)
    lower = _action(content, 1, 1, 1)
    actions = [upper, lower]

    ordered = order_bottom_up(actions)

    assert ordered == (lower, upper)
    assert actions == [upper, lower]
    assert [action.reference.doc_line_number for action in ordered] == [50, 5]


def test_bottom_up_application_keeps_upper_offsets_valid() -> None:
    content = _document()
    upper = _action(content, 0, 1, 3)
    lower = _action(content, 1, 1, 1)

    text = content
    for action in order_bottom_up([upper, lower]):
        text = apply_fix_to_text(text, action).text

    assert apply_fix_to_text(content, upper).line_delta == 2
    assert "<!-- CODE_REF: src/a.ts:1-3 -->\n```ts\nline1();\nline2();\nline3();\n```" in text
    assert "<!-- CODE_REF: src/b.ts:1-1 -->\n```ts\nline1();\n```" in text
    assert "old();" not in text


def test_apply_fixes_records_failures_and_continues(tmp_path: Path) -> None:
    doc_file = tmp_path / "doc.md"
    content = f"{COMMENT}\n```ts\nold();\n```\n"
    doc_file.write_text(content, encoding="utf-8")
    [ref] = extract_references(content, doc_file)
    error = RefError(kind=ErrorKind.CODE_CONTENT_MISMATCH, message="stale", reference=ref)
    good = FixAction(
        kind=FixKind.REPLACE_CODE_BLOCK,
        error=error,
        description="replace",
        new_code_block="new();",
    )
    broken = FixAction(kind=FixKind.INSERT_CODE_BLOCK, error=error, description="insert")

    results = apply_fixes([good, broken])

    assert [result.success for result in results] == [True, False]
    assert results[1].error == "INSERT_CODE_BLOCK requires new_code_block"
    assert doc_file.read_text(encoding="utf-8") == f"{COMMENT}\n```ts\nnew();\n```\n"


def test_bottom_up_insertions_keep_upper_comment_locatable() -> None:
    lines = ["# Doc", "", "", "", "<!-- CODE_REF: src/a.ts:1-3 -->"]
    lines += [f"filler {n}" for n in range(6, 50)]
    lines += ["<!-- CODE_REF: src/b.ts:1-3 -->", ""]
    content = "\n".join(lines)
    refs = extract_references(content, Path("doc.md"))
    actions = [
        FixAction(
            kind=FixKind.INSERT_CODE_BLOCK,
            error=RefError(kind=ErrorKind.CODE_BLOCK_MISSING, message="missing", reference=ref),
            description="insert",
            new_code_block="one();\ntwo();\nthree();",
            language="ts",
        )
        for ref in refs
    ]
    assert [ref.doc_line_number for ref in refs] == [5, 50]

    text = content
    for action in order_bottom_up(actions):
        result = apply_fix_to_text(text, action)
        assert result.line_delta == 5
        text = result.text

    assert text.index(refs[0].full_match) == refs[0].comment_offset
    assert text.count("```ts\none();\ntwo();\nthree();\n```") == 2


def test_session_and_apply_share_bottom_up_order() -> None:
    content = "# Doc\n<!-- CODE_REF: src/a.ts:1-1 --> <!-- CODE_REF: src/b.ts:1-1 -->\n\n"
    content += "<!-- CODE_REF: src/c.ts:1-1 -->\n"
    refs = extract_references(content, Path("doc.md"))
    errors = [
        RefError(kind=ErrorKind.CODE_BLOCK_MISSING, message="missing", reference=ref)
        for ref in refs
    ]
    actions = [
        FixAction(kind=FixKind.INSERT_CODE_BLOCK, error=error, description="insert")
        for error in errors
    ]

    assert [document_position(ref)[0] for ref in refs] == [2, 2, 4]
    assert document_position(refs[1]) > document_position(refs[0])
    expected = [refs[2], refs[1], refs[0]]
    assert [error.reference for error in _bottom_up(errors)] == expected
    assert [action.reference for action in order_bottom_up(actions)] == expected
