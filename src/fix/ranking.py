"""Ordering of relocation candidates."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from refs.models import ExpandedMatch

_CONFIDENCE_RANK = {"high": 3, "medium": 2, "low": 1}
_SCOPE_RANK = {
    "interface": 5,
    "type": 4,
    "class": 3,
    "function": 2,
    "const": 1,
    "unknown": 0,
}


def _sort_key(match: ExpandedMatch, declared_start: int) -> tuple[int, int, int, int]:
    return (
        -_CONFIDENCE_RANK[match.confidence],
        abs(match.start - declared_start),
        -_SCOPE_RANK[match.scope_type],
        match.span,
    )


def dedupe_matches(matches: Iterable[ExpandedMatch]) -> list[ExpandedMatch]:
    """Drop candidates whose span repeats an earlier one."""
    seen: set[tuple[int, int]] = set()
    unique: list[ExpandedMatch] = []
    for match in matches:
        if (match.start, match.end) in seen:
            continue
        seen.add((match.start, match.end))
        unique.append(match)
    return unique


def prioritize_matches(
    matches: Iterable[ExpandedMatch],
    declared_start: int,
) -> list[ExpandedMatch]:
    """Return candidates best first.

    Order: confidence, then distance from the declared start line, then scope
    kind (interface, type, class, function, const, unknown), then the shortest
    span. Full ties keep their input order.
    """
    return sorted(matches, key=lambda match: _sort_key(match, declared_start))


__all__ = ["dedupe_matches", "prioritize_matches"]
