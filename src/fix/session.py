"""One fix run over a project's documents.

The session owns the run's parse cache. It validates every document, then
walks each document's fixable errors from the bottom of the file to the top,
building every action against the document as it is at that moment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from docs.edit import DocumentEditError
from fix.actions import FixBuildError, build_fix_actions, is_fixable
from fix.apply import FixResult, apply_fix, apply_fix_to_text, document_position
from fix.backup import create_backup
from parse.treesitter_parser import ParseCache, SourceParseError, UnsupportedSourceError
from scan.files import find_configured_documents
from validate.validator import ValidationContext, validate_documents

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path

    from fix.choosers import Chooser
    from refs.models import FixAction, RefError
    from rules.config import CodeRefConfig

logger = logging.getLogger(__name__)

_BUILD_FAILURES = (
    FixBuildError,
    SourceParseError,
    UnsupportedSourceError,
    DocumentEditError,
    OSError,
    UnicodeDecodeError,
)
_APPLY_FAILURES = (DocumentEditError, OSError, UnicodeDecodeError)


@dataclass(frozen=True)
class FixOptions:
    dry_run: bool = False
    auto: bool = False
    backup: bool = False


@dataclass(frozen=True)
class BuildFailure:
    error: RefError
    message: str


@dataclass
class FixReport:
    errors_found: int = 0
    results: list[FixResult] = field(default_factory=list)
    build_failures: list[BuildFailure] = field(default_factory=list)
    skipped: int = 0
    unfixable: int = 0
    backups: list[Path] = field(default_factory=list)

    @property
    def successful(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed(self) -> int:
        return sum(1 for result in self.results if not result.success) + len(
            self.build_failures
        )

    @property
    def ok(self) -> bool:
        return self.failed == 0


def _bottom_up(errors: list[RefError]) -> list[RefError]:
    return sorted(errors, key=lambda error: document_position(error.reference), reverse=True)


class FixSession:
    """Validate documents and apply fixes one error at a time.

    ``chooser`` picks between candidate positions or fix methods; ``confirm``
    approves each action before it is applied and is not consulted in auto
    mode.
    """

    def __init__(
        self,
        config: CodeRefConfig,
        root: Path,
        chooser: Chooser | None = None,
        confirm: Callable[[FixAction], bool] | None = None,
        options: FixOptions | None = None,
    ) -> None:
        self.config = config
        self.root = root.resolve()
        self.chooser = chooser
        self.confirm = confirm
        self.options = options or FixOptions()
        self.cache = ParseCache(config.source_extensions)
        self._backed_up: set[Path] = set()

    @property
    def backup_enabled(self) -> bool:
        return self.options.backup or self.config.fix.backup

    def run(self, documents: Sequence[Path] | None = None) -> FixReport:
        self.cache.clear()
        self._backed_up.clear()

        if documents is None:
            documents = find_configured_documents(self.root, self.config)

        context = ValidationContext(project_root=self.root, cache=self.cache)
        validation = validate_documents(documents, context)

        report = FixReport()
        for doc_file, errors in validation.errors_by_document().items():
            fixable = [error for error in errors if is_fixable(error)]
            report.errors_found += len(fixable)
            if fixable:
                logger.info("%s: %d fixable error(s)", doc_file, len(fixable))
            for error in _bottom_up(fixable):
                self._fix_error(error, context, report)

        return report

    def _select(self, actions: list[FixAction]) -> FixAction | None:
        if len(actions) == 1 or self.chooser is None:
            return actions[0]
        index = self.chooser.choose(
            "Please select a fix method:",
            [action.description for action in actions],
        )
        return None if index is None else actions[index]

    def _fix_error(
        self,
        error: RefError,
        context: ValidationContext,
        report: FixReport,
    ) -> None:
        ref = error.reference
        try:
            document_text = ref.doc_file.read_text(encoding="utf-8")
            actions = build_fix_actions(error, context, self.chooser, document_text)
        except _BUILD_FAILURES as exc:
            logger.warning("%s: cannot build fix for %s: %s", ref.location(), error.kind.value, exc)
            report.build_failures.append(BuildFailure(error=error, message=str(exc)))
            return

        if not actions:
            logger.info("%s: %s left unchanged", ref.location(), error.kind.value)
            report.unfixable += 1
            return

        action = self._select(actions)
        if action is None:
            report.skipped += 1
            return

        if not self.options.auto and self.confirm is not None and not self.confirm(action):
            report.skipped += 1
            return

        if self.options.dry_run:
            try:
                delta = apply_fix_to_text(document_text, action).line_delta
            except DocumentEditError as exc:
                report.results.append(FixResult(success=False, action=action, error=str(exc)))
                return
            report.results.append(FixResult(success=True, action=action, line_delta=delta))
            return

        backup_path = None
        try:
            if self.backup_enabled and ref.doc_file not in self._backed_up:
                backup_path = create_backup(ref.doc_file)
                self._backed_up.add(ref.doc_file)
                report.backups.append(backup_path)
                logger.info("Backup created: %s", backup_path)
            delta = apply_fix(action)
        except _APPLY_FAILURES as exc:
            logger.warning("%s: fix failed: %s", ref.location(), exc)
            report.results.append(
                FixResult(success=False, action=action, error=str(exc), backup_path=backup_path)
            )
            return

        logger.debug("%s: line delta %+d", ref.location(), delta)
        report.results.append(
            FixResult(success=True, action=action, backup_path=backup_path, line_delta=delta)
        )


__all__ = ["BuildFailure", "FixOptions", "FixReport", "FixSession"]
