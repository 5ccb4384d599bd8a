"""Unit tests for the commit-message directive grammar."""

from __future__ import annotations

import pytest

from taskline.directives import (
    AssigneeSegment,
    StatusSegment,
    directive_to_dict,
    extract_tags,
    normalize_feature_code,
    parse_directive,
    parse_directive_lines,
    tokenize_segments,
)
from taskline.tracking.enums import PriorityLevel, TaskStatus, TaskType


class TestAnchorAndTitle:
    """The anchor and title decide whether a directive exists at all."""

    def test_full_directive(self) -> None:
        """All segments of a canonical directive are extracted."""
        directive = parse_directive("Feature12: Build login -> alice -> sp:5 -> in-progress")

        assert directive is not None, "expected a directive"
        assert directive.feature_code == "Feature12", "wrong feature code"
        assert directive.title == "Build login", "wrong title"
        assert directive.assignee == "alice", "wrong assignee"
        assert directive.story_points == 5, "wrong story points"
        assert directive.status is TaskStatus.IN_PROGRESS, "wrong status"
        assert directive.status_explicit is True, "status should be explicit"

    @pytest.mark.parametrize(
        "message",
        [
            pytest.param("Fixed typo", id="no-anchor"),
            pytest.param("Feature12 Build login", id="anchor-without-colon"),
            pytest.param("Feature12:   -> alice", id="empty-title"),
            pytest.param("Feature12:", id="nothing-after-colon"),
            pytest.param("", id="empty-message"),
            pytest.param("F1234567890: Too long a number", id="overlong-feature-number"),
        ],
    )
    def test_messages_without_directive(self, message: str) -> None:
        """Messages missing an anchor or title yield no directive."""
        assert parse_directive(message) is None, f"{message!r} should not parse"

    def test_none_message(self) -> None:
        """A missing message yields no directive."""
        assert parse_directive(None) is None, "None should not parse"

    @pytest.mark.parametrize(
        ("message", "code"),
        [
            pytest.param("F7: Short anchor", "Feature7", id="short"),
            pytest.param("feature7: Lower case", "Feature7", id="lower"),
            pytest.param("FEATURE7: Upper case", "Feature7", id="upper"),
            pytest.param("Merge branch; f7: Embedded anchor", "Feature7", id="embedded"),
        ],
    )
    def test_anchor_spellings_normalise(self, message: str, code: str) -> None:
        """Every anchor spelling maps to the same Feature<N> code."""
        directive = parse_directive(message)
        assert directive is not None, f"{message!r} should parse"
        assert directive.feature_code == code, "feature code not normalised"
        assert directive.feature_number == 7, "wrong feature number"

    def test_title_runs_to_end_without_arrow(self) -> None:
        """Without an arrow the title is the rest of the message."""
        directive = parse_directive("Feature3: Fix bug in parser  ")
        assert directive is not None
        assert directive.title == "Fix bug in parser", "title should be trimmed"
        assert directive.segments == (), "no segments expected"

    def test_title_keeps_hyphens(self) -> None:
        """Single hyphens inside the title are not arrows."""
        directive = parse_directive("Feature3: Re-enable sign-in -> bob")
        assert directive is not None
        assert directive.title == "Re-enable sign-in", "hyphens lost from title"


class TestStatusResolution:
    """Default status order: explicit terminal, backlog, assignee, TODO."""

    @pytest.mark.parametrize(
        ("message", "status"),
        [
            pytest.param("Feature3: Fix bug -> backlog-high", TaskStatus.BACKLOG, id="backlog"),
            pytest.param("Feature3: Fix bug -> bob", TaskStatus.IN_PROGRESS, id="assignee"),
            pytest.param("Feature3: Fix bug", TaskStatus.TODO, id="bare"),
            pytest.param(
                "Feature3: Fix bug -> bob -> backlog-low",
                TaskStatus.BACKLOG,
                id="backlog-beats-assignee",
            ),
            pytest.param("Feature3: Fix bug -> bob -> review", TaskStatus.REVIEW, id="explicit"),
            pytest.param("Feature3: Fix bug -> DONE", TaskStatus.DONE, id="case-insensitive"),
        ],
    )
    def test_status(self, message: str, status: TaskStatus) -> None:
        """Status follows the resolution order."""
        directive = parse_directive(message)
        assert directive is not None
        assert directive.status is status, f"wrong status for {message!r}"

    def test_non_terminal_status_is_ignored(self) -> None:
        """A status keyword before the last segment neither sets status nor assigns."""
        directive = parse_directive("Feature3: Fix bug -> done -> bob")
        assert directive is not None
        assert directive.status is TaskStatus.IN_PROGRESS, "non-terminal status honoured"
        assert directive.status_explicit is False
        assert directive.assignee == "bob", "assignee should be bob"

    def test_trailing_empty_segment_makes_status_non_terminal(self) -> None:
        """``-> done ->`` leaves ``done`` in a non-final position."""
        directive = parse_directive("Feature3: Fix bug -> done ->")
        assert directive is not None
        assert directive.status is TaskStatus.TODO, "done should not be terminal"


class TestSegments:
    """Classification of individual segments."""

    def test_planning_segments(self) -> None:
        """Sprint, priority, points, estimate and type are all captured."""
        directive = parse_directive(
            "F9: Payments -> Sprint4 -> backlog-critical -> sp:8 -> estimate:3D -> bug"
        )
        assert directive is not None
        assert directive.sprint == "4", "sprint token"
        assert directive.backlog_priority is PriorityLevel.CRITICAL, "priority"
        assert directive.story_points == 8, "story points"
        assert directive.time_estimate == "3D", "estimate keeps its case"
        assert directive.task_type is TaskType.BUG, "task type"
        assert directive.assignee is None, "no assignee expected"

    @pytest.mark.parametrize(
        ("segment", "token"),
        [
            pytest.param("sprintcurrent", "current", id="current"),
            pytest.param("SprintNext", "next", id="next"),
            pytest.param("sprint12", "12", id="number"),
        ],
    )
    def test_sprint_tokens(self, segment: str, token: str) -> None:
        """Sprint tokens are lower-cased."""
        directive = parse_directive(f"F1: Thing -> {segment}")
        assert directive is not None
        assert directive.sprint == token, f"wrong sprint token for {segment}"

    @pytest.mark.parametrize(
        "segment",
        [
            pytest.param("sp:five", id="word"),
            pytest.param("sp:1.5", id="decimal"),
            pytest.param("sp:-2", id="negative"),
            pytest.param("sp:99999999999", id="overflow"),
        ],
    )
    def test_unparseable_story_points_dropped(self, segment: str) -> None:
        """Bad story points vanish without losing the directive."""
        directive = parse_directive(f"F1: Thing -> {segment} -> carol")
        assert directive is not None, "directive should survive"
        assert directive.story_points is None, f"{segment} should be dropped"
        assert directive.assignee == "carol", "keyword segment must not become assignee"

    @pytest.mark.parametrize(
        ("segment", "field"),
        [
            pytest.param("estimate:1234567h", "time_estimate", id="estimate"),
            pytest.param("sprint1234567890", "sprint", id="sprint"),
        ],
    )
    def test_overlong_numbers_dropped(self, segment: str, field: str) -> None:
        """Over-long estimates and sprint numbers vanish, the directive survives."""
        directive = parse_directive(f"F1: Thing -> {segment} -> carol")
        assert directive is not None, "directive should survive"
        assert getattr(directive, field) is None, f"{segment} should be dropped"
        assert directive.assignee == "carol", "keyword segment must not become assignee"

    def test_longest_estimate_kept(self) -> None:
        """Six estimate digits still fit."""
        directive = parse_directive("F1: Thing -> estimate:123456h")
        assert directive is not None
        assert directive.time_estimate == "123456h"

    def test_malformed_estimate_dropped(self) -> None:
        """An estimate without a unit is dropped."""
        directive = parse_directive("F1: Thing -> estimate:3")
        assert directive is not None
        assert directive.time_estimate is None

    def test_first_assignee_wins(self) -> None:
        """Only the first non-keyword segment is the assignee."""
        directive = parse_directive("F1: Thing -> dave -> erin")
        assert directive is not None
        assert directive.assignee == "dave"

    def test_tokenize_marks_only_last_piece_terminal(self) -> None:
        """Only the final raw piece carries ``terminal=True``."""
        segments = tokenize_segments(" review -> frank -> done")
        assert segments == (
            StatusSegment(status=TaskStatus.REVIEW, terminal=False),
            AssigneeSegment(token="frank"),
            StatusSegment(status=TaskStatus.DONE, terminal=True),
        ), "unexpected segments"


class TestTags:
    """Tag extraction across the whole message."""

    def test_tags_in_order(self) -> None:
        """Tags are collected in order of appearance."""
        directive = parse_directive("Feature5: Refactor #perf #cleanup -> todo")
        assert directive is not None
        assert directive.tags == ("perf", "cleanup"), "wrong tags"
        assert directive.status is TaskStatus.TODO, "wrong status"

    def test_tags_not_deduplicated(self) -> None:
        """Repeated tags are all returned."""
        assert extract_tags("#a x #b y #a") == ("a", "b", "a"), "duplicates dropped"

    def test_tags_after_arrows_count(self) -> None:
        """Tags inside segments are still collected."""
        directive = parse_directive("F2: Thing -> gina #urgent")
        assert directive is not None
        assert directive.tags == ("urgent",)


class TestHelpers:
    """Batch parsing, normalisation and serialisation helpers."""

    def test_parse_lines(self) -> None:
        """Each line parses independently."""
        results = parse_directive_lines(["F1: One", "nothing here", "F2: Two -> done"])
        assert [item.feature_code if item else None for item in results] == [
            "Feature1",
            None,
            "Feature2",
        ]

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            pytest.param("Feature12", "Feature12", id="long"),
            pytest.param("f12", "Feature12", id="short"),
            pytest.param("12", "Feature12", id="digits"),
            pytest.param("bug-12", None, id="invalid"),
            pytest.param("F1234567890", None, id="too-long"),
        ],
    )
    def test_normalize_feature_code(self, value: str, expected: str | None) -> None:
        """Feature codes normalise to Feature<N>."""
        assert normalize_feature_code(value) == expected

    def test_directive_to_dict_uses_camel_case(self) -> None:
        """Serialised directives use camelCase keys and enum values."""
        directive = parse_directive("F4: Docs -> backlog-low -> sp:2")
        assert directive is not None
        data = directive_to_dict(directive)
        assert data["featureCode"] == "Feature4"
        assert data["status"] == "BACKLOG"
        assert data["backlogPriority"] == "LOW"
        assert data["storyPoints"] == 2
