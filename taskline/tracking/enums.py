"""Enumerations shared by the directive grammar and the task model."""

from __future__ import annotations

import enum


class TaskStatus(enum.StrEnum):
    """Workflow states a Task moves between; DONE may be reopened."""

    TODO = "TODO"
    BACKLOG = "BACKLOG"
    IN_PROGRESS = "IN_PROGRESS"
    REVIEW = "REVIEW"
    DONE = "DONE"


class PriorityLevel(enum.StrEnum):
    """Backlog priority carried by ``backlog-<level>`` directives."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class TaskType(enum.StrEnum):
    """Issue kinds accepted by the task-type directive."""

    STORY = "STORY"
    BUG = "BUG"
    EPIC = "EPIC"
    TASK = "TASK"
    SUBTASK = "SUBTASK"


class SprintStatus(enum.StrEnum):
    """Lifecycle of a sprint."""

    UPCOMING = "UPCOMING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class ChangeKind(enum.StrEnum):
    """How a commit touched a file."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


class StatsSource(enum.StrEnum):
    """Where a commit's line statistics came from."""

    REMOTE = "remote"
    FALLBACK = "fallback"
