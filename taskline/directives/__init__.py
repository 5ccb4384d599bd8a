"""Commit-message directive grammar."""

from __future__ import annotations

from .models import (
    AssigneeSegment,
    BacklogSegment,
    EstimateSegment,
    ParsedDirective,
    Segment,
    SegmentKind,
    SprintSegment,
    StatusSegment,
    StoryPointsSegment,
    TaskTypeSegment,
)
from .parser import (
    directive_to_dict,
    extract_tags,
    normalize_feature_code,
    parse_directive,
    parse_directive_lines,
    tokenize_segments,
)

__all__ = [
    "AssigneeSegment",
    "BacklogSegment",
    "EstimateSegment",
    "ParsedDirective",
    "Segment",
    "SegmentKind",
    "SprintSegment",
    "StatusSegment",
    "StoryPointsSegment",
    "TaskTypeSegment",
    "directive_to_dict",
    "extract_tags",
    "normalize_feature_code",
    "parse_directive",
    "parse_directive_lines",
    "tokenize_segments",
]
