"""Candidate selection and confirmation for the fix workflow.

The fix builder only sees the :class:`Chooser` protocol, so terminal IO stays
in this module.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Sequence
from typing import Protocol, TextIO

SKIP_ANSWERS = frozenset({"s", "skip"})


class Chooser(Protocol):
    def choose(self, prompt: str, options: Sequence[str]) -> int | None:
        """Return the zero-based index of the chosen option, or None to skip."""
        ...


class FirstOptionChooser:
    """Always picks the first option; used for unattended runs."""

    def choose(self, prompt: str, options: Sequence[str]) -> int | None:
        return 0 if options else None


class PromptChooser:
    """Asks on a terminal until a valid option number or ``s`` is entered."""

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        output: TextIO | None = None,
    ) -> None:
        self._input = input_func
        self._output = output

    def _print(self, text: str) -> None:
        print(text, file=self._output or sys.stdout)

    def choose(self, prompt: str, options: Sequence[str]) -> int | None:
        if not options:
            return None

        self._print(f"\n{prompt}")
        for number, option in enumerate(options, start=1):
            self._print(f"  {number}) {option}")

        while True:
            try:
                answer = self._input(f"Select (1-{len(options)}, s to skip): ").strip()
            except EOFError:
                return None
            if answer.lower() in SKIP_ANSWERS:
                return None
            if answer.isdigit() and 1 <= int(answer) <= len(options):
                return int(answer) - 1
            self._print("Invalid selection. Please try again.")


def ask_yes_no(
    question: str,
    default: bool = False,
    input_func: Callable[[str], str] = input,
) -> bool:
    hint = "Y/n" if default else "y/N"
    try:
        answer = input_func(f"{question} ({hint}): ").strip()
    except EOFError:
        return default
    if not answer:
        return default
    return answer.lower().startswith("y")


__all__ = ["Chooser", "FirstOptionChooser", "PromptChooser", "ask_yes_no"]
