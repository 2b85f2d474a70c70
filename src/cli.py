"""Command-line interface for coderef."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import orjson

from fix.choosers import FirstOptionChooser, PromptChooser, ask_yes_no
from fix.session import FixOptions, FixSession
from parse.treesitter_parser import ParseCache
from refs.models import FixKind
from rules.config import ConfigError, default_project_root, load_config
from scan.files import find_configured_documents, find_target_documents
from utils import display_path, truncate_lines
from validate.validator import ValidationContext, validate_documents

if TYPE_CHECKING:
    from collections.abc import Callable

    from refs.models import FixAction
    from rules.config import CodeRefConfig


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "targets",
        nargs="*",
        help="Markdown files to check (default: every document under docs_dir)",
    )
    parser.add_argument(
        "--root",
        default=None,
        help="Project root (default: $CODEREF_PROJECT_ROOT or .)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="coderef")
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_parser = subparsers.add_parser(
        "validate", help="Check CODE_REF references against source files"
    )
    _add_common_args(validate_parser)
    validate_parser.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="Output format (default: text)",
    )

    fix_parser = subparsers.add_parser("fix", help="Fix CODE_REF errors")
    _add_common_args(fix_parser)
    fix_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the fixes without writing any document",
    )
    fix_parser.add_argument(
        "--auto",
        action="store_true",
        help="Apply every fix without asking, picking the first candidate",
    )
    fix_parser.add_argument(
        "--backup",
        action="store_true",
        help="Back up each document before its first edit",
    )

    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _resolve_root(root: str | None) -> Path:
    if root is None:
        return default_project_root().expanduser().resolve()
    return Path(root).expanduser().resolve()


def _resolve_documents(
    root: Path, config: CodeRefConfig, targets: list[str]
) -> list[Path] | None:
    if not targets:
        return None
    return find_target_documents(root, config, targets)


def _handle_validate(root: Path, targets: list[str], output_format: str) -> int:
    try:
        config = load_config(root)
        documents = _resolve_documents(root, config, targets)
        if documents is None:
            documents = find_configured_documents(root, config)
    except ConfigError as exc:
        sys.stderr.write(f"config error: {exc}\n")
        return 2

    context = ValidationContext(
        project_root=root, cache=ParseCache(config.source_extensions)
    )
    report = validate_documents(documents, context)

    if output_format == "json":
        sys.stdout.write(
            orjson.dumps(report.to_dict(), option=orjson.OPT_INDENT_2).decode("utf-8")
        )
        sys.stdout.write("\n")
        return 0 if report.ok else 1

    for path, message in report.unreadable_documents:
        sys.stderr.write(f"{display_path(path, root)}: {message}\n")
    for error in report.errors:
        ref = error.reference
        location = display_path(ref.doc_file, root)
        if ref.doc_line_number is not None:
            location = f"{location}:{ref.doc_line_number}"
        sys.stdout.write(f"{location}: {error.kind.value}: {error.message}\n")

    sys.stdout.write(
        f"{len(report.outcomes)} reference(s) in {len(documents)} document(s), "
        f"{len(report.errors)} error(s)\n"
    )
    return 0 if report.ok else 1


def _show_action(action: FixAction, root: Path) -> None:
    ref = action.reference
    location = display_path(ref.doc_file, root)
    if ref.doc_line_number is not None:
        location = f"{location}:{ref.doc_line_number}"

    print(f"\n{location}: {action.error.kind.value}: {action.error.message}")
    print(f"Changes: {action.description}")
    if action.kind is FixKind.MOVE_CODE_REF_COMMENT or not action.preview:
        return
    for line in truncate_lines(action.preview):
        print(f"  {line}")


def _confirm(root: Path) -> Callable[[FixAction], bool]:
    def confirm(action: FixAction) -> bool:
        _show_action(action, root)
        return ask_yes_no("Apply this fix?", default=False)

    return confirm


def _handle_fix(
    root: Path,
    targets: list[str],
    *,
    dry_run: bool,
    auto: bool,
    backup: bool,
) -> int:
    try:
        config = load_config(root)
    except ConfigError as exc:
        sys.stderr.write(f"config error: {exc}\n")
        return 2

    session = FixSession(
        config,
        root,
        chooser=FirstOptionChooser() if auto else PromptChooser(),
        confirm=_confirm(root),
        options=FixOptions(dry_run=dry_run, auto=auto, backup=backup),
    )
    try:
        report = session.run(_resolve_documents(root, config, targets))
    except ConfigError as exc:
        sys.stderr.write(f"config error: {exc}\n")
        return 2

    if dry_run:
        print("DRY RUN: no document was changed")
    for result in report.results:
        ref = result.action.reference
        applied = "would apply" if dry_run else "applied"
        status = applied if result.success else f"failed: {result.error}"
        print(f"{display_path(ref.doc_file, root)}: {result.action.description}: {status}")
    for failure in report.build_failures:
        print(f"{failure.error.reference.location()}: cannot fix: {failure.message}")
    for backup_path in report.backups:
        print(f"Backup created: {display_path(backup_path, root)}")

    print(
        f"{report.errors_found} fixable error(s): {report.successful} fixed, "
        f"{report.failed} failed, {report.skipped} skipped"
    )
    return 0 if report.ok else 1


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)
    root = _resolve_root(args.root)

    if args.command == "validate":
        return _handle_validate(root, args.targets, args.format)

    if args.command == "fix":
        return _handle_fix(
            root,
            args.targets,
            dry_run=args.dry_run,
            auto=args.auto,
            backup=args.backup,
        )

    raise AssertionError


if __name__ == "__main__":
    raise SystemExit(main())
