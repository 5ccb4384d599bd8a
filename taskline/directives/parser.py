"""Tokenizer for the commit-message directive grammar.

A directive looks like::

    Feature12: Build login #auth -> alice -> sp:5 -> in-progress

The anchor (``Feature<N>:`` or ``F<N>:``, any case) may appear anywhere in
the message. The title runs from the anchor colon to the first ``->``;
each later ``->`` opens a segment that is classified on its own. A status
keyword only counts when it is the final segment of the whole message.
Tags are every ``#word`` in the message. Feature and sprint numbers longer
than nine digits and estimates longer than six digits are dropped, like
unparseable story points.
Only the anchor and tag searches use regular expressions over the whole
message; segments are matched individually with anchored patterns.
"""

from __future__ import annotations

import re
import typing as typ

from taskline.tracking.enums import PriorityLevel, TaskStatus, TaskType

from .models import (
    AssigneeSegment,
    BacklogSegment,
    EstimateSegment,
    ParsedDirective,
    Segment,
    SprintSegment,
    StatusSegment,
    StoryPointsSegment,
    TaskTypeSegment,
)

ARROW = "->"

_ANCHOR_RE = re.compile(r"(?:feature|f)(\d+)\s*:", re.IGNORECASE)
_FEATURE_CODE_RE = re.compile(r"(?:feature|f)?(\d+)", re.IGNORECASE)
_TAG_RE = re.compile(r"#(\w+)", re.ASCII)
_SPRINT_RE = re.compile(r"sprint(\d+|current|next)", re.IGNORECASE)
_BACKLOG_RE = re.compile(r"backlog-(low|medium|high|critical)", re.IGNORECASE)
_STORY_POINTS_RE = re.compile(r"sp:(\d+)", re.IGNORECASE)
_ESTIMATE_RE = re.compile(r"estimate:(\d+)([hdwm])", re.IGNORECASE)

_STORY_POINTS_PREFIX = "sp:"
_ESTIMATE_PREFIX = "estimate:"
_MAX_STORY_POINTS = 2**31 - 1
_MAX_NUMBER_DIGITS = 9
_MAX_ESTIMATE_DIGITS = 6

_STATUS_WORDS: dict[str, TaskStatus] = {
    "todo": TaskStatus.TODO,
    "backlog": TaskStatus.BACKLOG,
    "in-progress": TaskStatus.IN_PROGRESS,
    "review": TaskStatus.REVIEW,
    "done": TaskStatus.DONE,
}
_TASK_TYPES: dict[str, TaskType] = {member.value.lower(): member for member in TaskType}


def _classify(text: str, *, terminal: bool) -> Segment | None:
    """Return the typed segment for ``text`` or ``None`` for an empty one."""
    if not text:
        return None
    lowered = text.lower()

    if match := _SPRINT_RE.fullmatch(text):
        return SprintSegment(token=_sprint_token(match.group(1)))
    if match := _BACKLOG_RE.fullmatch(text):
        return BacklogSegment(priority=PriorityLevel(match.group(1).upper()))
    if lowered.startswith(_STORY_POINTS_PREFIX):
        return StoryPointsSegment(points=_parse_story_points(text))
    if lowered.startswith(_ESTIMATE_PREFIX):
        return EstimateSegment(estimate=_parse_estimate(text))
    if lowered in _TASK_TYPES:
        return TaskTypeSegment(task_type=_TASK_TYPES[lowered])
    if lowered in _STATUS_WORDS:
        return StatusSegment(status=_STATUS_WORDS[lowered], terminal=terminal)
    return AssigneeSegment(token=text)


def _parse_story_points(text: str) -> int | None:
    match = _STORY_POINTS_RE.fullmatch(text)
    if match is None:
        return None
    points = int(match.group(1))
    return points if points <= _MAX_STORY_POINTS else None


def _sprint_token(token: str) -> str | None:
    if token.isdigit() and len(token) > _MAX_NUMBER_DIGITS:
        return None
    return token.lower()


def _parse_estimate(text: str) -> str | None:
    match = _ESTIMATE_RE.fullmatch(text)
    if match is None or len(match.group(1)) > _MAX_ESTIMATE_DIGITS:
        return None
    return f"{match.group(1)}{match.group(2)}"


def tokenize_segments(tail: str) -> tuple[Segment, ...]:
    """Split the text after the title into classified segments.

    ``tail`` is everything after the first arrow. Empty segments are
    skipped but still occupy a position, so ``-> done ->`` leaves ``done``
    non-terminal.
    """
    raw = tail.split(ARROW)
    last = len(raw) - 1
    segments: list[Segment] = []
    for index, piece in enumerate(raw):
        segment = _classify(piece.strip(), terminal=index == last)
        if segment is not None:
            segments.append(segment)
    return tuple(segments)


def extract_tags(message: str) -> tuple[str, ...]:
    """Return every ``#word`` in ``message`` in order, duplicates included."""
    return tuple(_TAG_RE.findall(message))


def _first[T](segments: tuple[Segment, ...], kind: type[T]) -> T | None:
    for segment in segments:
        if isinstance(segment, kind):
            return segment
    return None


def _resolve_status(
    explicit: StatusSegment | None,
    backlog: BacklogSegment | None,
    assignee: AssigneeSegment | None,
) -> tuple[TaskStatus, bool]:
    if explicit is not None:
        return (explicit.status, True)
    if backlog is not None:
        return (TaskStatus.BACKLOG, False)
    if assignee is not None:
        return (TaskStatus.IN_PROGRESS, False)
    return (TaskStatus.TODO, False)


def parse_directive(message: str | None) -> ParsedDirective | None:
    """Parse ``message`` into a :class:`ParsedDirective`.

    Returns ``None`` when the message has no anchor or no title text; such
    commits are still recorded, just not linked to a task.
    """
    if message is None or not message.strip():
        return None

    anchor = _ANCHOR_RE.search(message)
    if anchor is None or len(anchor.group(1)) > _MAX_NUMBER_DIGITS:
        return None

    head, arrow, tail = message[anchor.end() :].partition(ARROW)
    title = head.strip()
    if not title:
        return None

    segments = tokenize_segments(tail) if arrow else ()
    explicit = next(
        (
            segment
            for segment in segments
            if isinstance(segment, StatusSegment) and segment.terminal
        ),
        None,
    )
    backlog = _first(segments, BacklogSegment)
    assignee = _first(segments, AssigneeSegment)
    sprint = _first(segments, SprintSegment)
    points = _first(segments, StoryPointsSegment)
    estimate = _first(segments, EstimateSegment)
    task_type = _first(segments, TaskTypeSegment)
    status, status_explicit = _resolve_status(explicit, backlog, assignee)

    return ParsedDirective(
        feature_code=f"Feature{anchor.group(1)}",
        title=title,
        status=status,
        status_explicit=status_explicit,
        assignee=assignee.token if assignee else None,
        sprint=sprint.token if sprint else None,
        backlog_priority=backlog.priority if backlog else None,
        story_points=points.points if points else None,
        time_estimate=estimate.estimate if estimate else None,
        task_type=task_type.task_type if task_type else None,
        tags=extract_tags(message),
        segments=segments,
    )


def normalize_feature_code(value: str) -> str | None:
    """Return ``Feature<N>`` for ``Feature12``, ``f12`` or ``12``; else ``None``."""
    match = _FEATURE_CODE_RE.fullmatch(value.strip())
    if match is None or len(match.group(1)) > _MAX_NUMBER_DIGITS:
        return None
    return f"Feature{match.group(1)}"


def parse_directive_lines(lines: typ.Iterable[str]) -> list[ParsedDirective | None]:
    """Parse each line independently, e.g. the output of ``git log --format=%s``."""
    return [parse_directive(line) for line in lines]


def directive_to_dict(directive: ParsedDirective) -> dict[str, object]:
    """Return a JSON-ready mapping for editor tooling."""
    return {
        "featureCode": directive.feature_code,
        "title": directive.title,
        "status": directive.status.value,
        "statusExplicit": directive.status_explicit,
        "assignee": directive.assignee,
        "sprint": directive.sprint,
        "backlogPriority": (
            directive.backlog_priority.value if directive.backlog_priority else None
        ),
        "storyPoints": directive.story_points,
        "timeEstimate": directive.time_estimate,
        "taskType": directive.task_type.value if directive.task_type else None,
        "tags": list(directive.tags),
    }
