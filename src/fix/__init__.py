"""Fix building and application."""

from fix.actions import FixBuildError, build_fix_actions, fence_language_for, is_fixable
from fix.apply import (
    FixResult,
    PatchResult,
    apply_fix,
    apply_fix_to_text,
    apply_fixes,
    order_bottom_up,
)
from fix.choosers import Chooser, FirstOptionChooser, PromptChooser
from fix.ranking import prioritize_matches
from fix.session import FixOptions, FixReport, FixSession

__all__ = [
    "Chooser",
    "FirstOptionChooser",
    "FixBuildError",
    "FixOptions",
    "FixReport",
    "FixResult",
    "FixSession",
    "PatchResult",
    "PromptChooser",
    "apply_fix",
    "apply_fix_to_text",
    "apply_fixes",
    "build_fix_actions",
    "fence_language_for",
    "is_fixable",
    "order_bottom_up",
    "prioritize_matches",
]
