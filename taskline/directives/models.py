"""Typed results of directive parsing."""

from __future__ import annotations

import dataclasses as dc
import enum

from taskline.tracking.enums import PriorityLevel, TaskStatus, TaskType


class SegmentKind(enum.StrEnum):
    """Classification of one ``-> segment`` of a directive."""

    SPRINT = "sprint"
    BACKLOG = "backlog"
    STORY_POINTS = "story_points"
    ESTIMATE = "estimate"
    TASK_TYPE = "task_type"
    STATUS = "status"
    ASSIGNEE = "assignee"


@dc.dataclass(frozen=True, slots=True)
class SprintSegment:
    """``sprint<N|current|next>``; ``token`` is lower-cased, ``None`` if too long."""

    token: str | None
    kind: SegmentKind = SegmentKind.SPRINT


@dc.dataclass(frozen=True, slots=True)
class BacklogSegment:
    """``backlog-<low|medium|high|critical>``."""

    priority: PriorityLevel
    kind: SegmentKind = SegmentKind.BACKLOG


@dc.dataclass(frozen=True, slots=True)
class StoryPointsSegment:
    """``sp:<integer>``; ``points`` is ``None`` when the value was not an integer."""

    points: int | None
    kind: SegmentKind = SegmentKind.STORY_POINTS


@dc.dataclass(frozen=True, slots=True)
class EstimateSegment:
    """``estimate:<integer><h|d|w|m>``; ``estimate`` is ``None`` when malformed."""

    estimate: str | None
    kind: SegmentKind = SegmentKind.ESTIMATE


@dc.dataclass(frozen=True, slots=True)
class TaskTypeSegment:
    """``story|bug|epic|task|subtask``."""

    task_type: TaskType
    kind: SegmentKind = SegmentKind.TASK_TYPE


@dc.dataclass(frozen=True, slots=True)
class StatusSegment:
    """A status keyword; ``terminal`` records whether it ended the message."""

    status: TaskStatus
    terminal: bool
    kind: SegmentKind = SegmentKind.STATUS


@dc.dataclass(frozen=True, slots=True)
class AssigneeSegment:
    """Any other non-empty segment, taken verbatim as a user token."""

    token: str
    kind: SegmentKind = SegmentKind.ASSIGNEE


type Segment = (
    SprintSegment
    | BacklogSegment
    | StoryPointsSegment
    | EstimateSegment
    | TaskTypeSegment
    | StatusSegment
    | AssigneeSegment
)


@dc.dataclass(frozen=True, slots=True)
class ParsedDirective:
    """Task-management intent recovered from one commit message.

    Attributes
    ----------
    feature_code
        Normalised ``Feature<digits>`` key, shared by ``F12:`` and ``Feature12:``.
    title
        Text between the anchor colon and the first arrow, trimmed.
    status
        Explicit terminal status, or the default derived from the other
        segments (backlog priority, then assignee, then TODO).
    status_explicit
        ``True`` when ``status`` came from a terminal status segment.
    tags
        ``#word`` matches from the whole message in order of appearance.
    segments
        Every classified segment, left to right.

    """

    feature_code: str
    title: str
    status: TaskStatus
    status_explicit: bool = False
    assignee: str | None = None
    sprint: str | None = None
    backlog_priority: PriorityLevel | None = None
    story_points: int | None = None
    time_estimate: str | None = None
    task_type: TaskType | None = None
    tags: tuple[str, ...] = ()
    segments: tuple[Segment, ...] = ()

    @property
    def feature_number(self) -> int:
        """Return the numeric part of the feature code."""
        return int(self.feature_code.removeprefix("Feature"))
