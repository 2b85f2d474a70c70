from __future__ import annotations

import shutil
from pathlib import Path

import orjson
import pytest

from cli import main

FIXTURE_ROOT = Path(__file__).parent / "fixtures" / "sample_project"

STALE_DOC = (
    "# Values\n"
    "\n"
    "<!-- CODE_REF: src/values.ts:10-11 -->\n"
    "```typescript\n"
    "export const ANSWER = 42;\n"
    'export const GREETING = "hello";\n'
    "```\n"
)


def _copy_sample_project(root: Path) -> None:
    shutil.copytree(FIXTURE_ROOT, root)


def test_cli_validate_clean_project(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _copy_sample_project(repo_root)

    exit_code = main(["validate", "--root", str(repo_root)])

    assert exit_code == 0
    assert "2 reference(s) in 1 document(s), 0 error(s)" in capsys.readouterr().out


def test_cli_validate_reports_errors(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _copy_sample_project(repo_root)
    (repo_root / "docs" / "stale.md").write_text(STALE_DOC, encoding="utf-8")

    exit_code = main(["validate", "--root", str(repo_root)])

    out = capsys.readouterr().out
    assert exit_code == 1
    assert "docs/stale.md:3: CODE_LOCATION_MISMATCH" in out


def test_cli_validate_json_output(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _copy_sample_project(repo_root)
    doc_file = repo_root / "docs" / "stale.md"
    doc_file.write_text(STALE_DOC, encoding="utf-8")

    exit_code = main(
        ["validate", str(doc_file), "--root", str(repo_root), "--format", "json"]
    )

    payload = orjson.loads(capsys.readouterr().out)
    assert exit_code == 1
    assert payload["ok"] is False
    assert payload["references"] == 1
    [error] = payload["errors"]
    assert error["kind"] == "CODE_LOCATION_MISMATCH"
    assert error["doc_line"] == 3
    assert error["suggested_lines"] == {"start": 3, "end": 4}
    assert error["occurrences"] == 1


def test_cli_validate_bad_config_exits_2(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _copy_sample_project(repo_root)
    (repo_root / "coderef.toml").write_text("bogus_key = true\n", encoding="utf-8")

    exit_code = main(["validate", "--root", str(repo_root)])

    assert exit_code == 2
    assert "config error" in capsys.readouterr().err


def test_cli_fix_auto_then_validate(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _copy_sample_project(repo_root)
    doc_file = repo_root / "docs" / "stale.md"
    doc_file.write_text(STALE_DOC, encoding="utf-8")

    fix_exit = main(["fix", "--root", str(repo_root), "--auto", "--backup"])
    fix_out = capsys.readouterr().out

    assert fix_exit == 0
    assert "1 fixable error(s): 1 fixed, 0 failed, 0 skipped" in fix_out
    assert "Backup created: docs/stale.md.backup" in fix_out
    assert "<!-- CODE_REF: src/values.ts:3-4 -->" in doc_file.read_text(encoding="utf-8")
    assert main(["validate", "--root", str(repo_root)]) == 0


def test_cli_fix_dry_run_keeps_document(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _copy_sample_project(repo_root)
    doc_file = repo_root / "docs" / "stale.md"
    doc_file.write_text(STALE_DOC, encoding="utf-8")

    exit_code = main(["fix", "--root", str(repo_root), "--auto", "--dry-run"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "DRY RUN" in out
    assert "would apply" in out
    assert doc_file.read_text(encoding="utf-8") == STALE_DOC


def test_cli_root_from_environment(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    repo_root = tmp_path / "repo"
    _copy_sample_project(repo_root)
    monkeypatch.setenv("CODEREF_PROJECT_ROOT", str(repo_root))

    exit_code = main(["validate"])

    assert exit_code == 0
    assert "0 error(s)" in capsys.readouterr().out


def test_cli_validate_directory_target(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _copy_sample_project(repo_root)

    exit_code = main(["validate", "--root", str(repo_root), str(repo_root / "docs")])

    assert exit_code == 0
    assert "2 reference(s) in 1 document(s), 0 error(s)" in capsys.readouterr().out


def test_cli_validate_targets_are_relative_to_root(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    repo_root = tmp_path / "repo"
    _copy_sample_project(repo_root)
    monkeypatch.chdir(tmp_path)

    exit_code = main(
        ["validate", "--root", str(repo_root), "docs/guide.md", "src/math.ts", "docs/gone.md"]
    )

    assert exit_code == 0
    assert "2 reference(s) in 1 document(s), 0 error(s)" in capsys.readouterr().out


def test_cli_fix_directory_target(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _copy_sample_project(repo_root)
    doc_file = repo_root / "docs" / "nested" / "stale.md"
    doc_file.parent.mkdir()
    doc_file.write_text(STALE_DOC, encoding="utf-8")

    exit_code = main(["fix", "--root", str(repo_root), "--auto", "docs/nested"])

    assert exit_code == 0
    assert "1 fixable error(s): 1 fixed" in capsys.readouterr().out
    assert "<!-- CODE_REF: src/values.ts:3-4 -->" in doc_file.read_text(encoding="utf-8")


def test_cli_fix_writes_no_backup_unless_asked(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    repo_root = tmp_path / "repo"
    _copy_sample_project(repo_root)
    doc_file = repo_root / "docs" / "stale.md"
    doc_file.write_text(STALE_DOC, encoding="utf-8")

    exit_code = main(["fix", "--root", str(repo_root), "--auto"])

    assert exit_code == 0
    assert "Backup created" not in capsys.readouterr().out
    assert list((repo_root / "docs").glob("*.backup*")) == []
