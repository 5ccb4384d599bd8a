"""Size and impact classification of a single commit."""

from __future__ import annotations

import enum

_SMALL_MAX = 10
_MEDIUM_MAX = 50
_LARGE_MAX = 200


class CommitSize(enum.StrEnum):
    """Size class by total changed lines."""

    EMPTY = "Empty"
    SMALL = "Small"
    MEDIUM = "Medium"
    LARGE = "Large"
    HUGE = "Huge"


def categorize_commit_size(total_lines: int) -> CommitSize:
    """Classify a commit by its added + modified + deleted lines."""
    if total_lines <= 0:
        return CommitSize.EMPTY
    if total_lines <= _SMALL_MAX:
        return CommitSize.SMALL
    if total_lines <= _MEDIUM_MAX:
        return CommitSize.MEDIUM
    if total_lines <= _LARGE_MAX:
        return CommitSize.LARGE
    return CommitSize.HUGE


def commit_impact_score(lines_added: int, lines_modified: int, lines_deleted: int) -> int:
    """Weight modified lines double and deleted lines half, rounded."""
    return round(lines_added + lines_modified * 2 + lines_deleted * 0.5)
