"""Unit tests for applying directives to tasks."""

from __future__ import annotations

import datetime as dt
import typing as typ

import pytest
from sqlalchemy import func, select

from taskline.directives import ParsedDirective, parse_directive
from taskline.tasks import (
    ReconcileOutcome,
    TaskEventKind,
    TaskReconcileError,
    TaskReconciler,
)
from taskline.tracking.enums import PriorityLevel, SprintStatus, TaskStatus, TaskType
from taskline.tracking.storage import Task
from tests.helpers.tracking_builders import (
    BASE_TIME,
    seed_project,
    seed_sprint,
    seed_user,
)

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


def _directive(message: str) -> ParsedDirective:
    directive = parse_directive(message)
    assert directive is not None, f"{message!r} should parse"
    return directive


async def _reconcile(
    session_factory: async_sessionmaker[AsyncSession],
    project_id: str,
    message: str,
    *,
    sha: str = "a1",
    reconciler: TaskReconciler | None = None,
) -> ReconcileOutcome:
    async with session_factory() as session, session.begin():
        return await (reconciler or TaskReconciler()).reconcile(
            session, project_id, _directive(message), commit_sha=sha
        )


async def _load_task(
    session_factory: async_sessionmaker[AsyncSession],
    project_id: str,
    feature_code: str = "Feature12",
) -> Task:
    async with session_factory() as session:
        task = await TaskReconciler.find_task(session, project_id, feature_code)
    assert task is not None, f"{feature_code} should exist"
    return task


class TestTaskCreation:
    """First directive for a feature code creates the task."""

    @pytest.mark.asyncio
    async def test_creates_task_with_directive_fields(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """Every directive field lands on the new task."""
        project_id = await seed_project(session_factory)
        alice = await seed_user(session_factory, "alice", "alice@example.com")
        sprint = await seed_sprint(session_factory, project_id, 3)

        outcome = await _reconcile(
            session_factory,
            project_id,
            "F12: Build login #auth -> alice -> sprint3 -> backlog-high "
            "-> sp:5 -> estimate:2d -> story -> review",
        )

        assert outcome.created is True, "task should be created"
        assert [event.kind for event in outcome.events] == [TaskEventKind.CREATED]
        assert outcome.events[0].recipient_id == alice
        task = await _load_task(session_factory, project_id)
        assert task.title == "Build login #auth"
        assert task.status == TaskStatus.REVIEW
        assert task.assignee_id == alice
        assert task.sprint_id == sprint
        assert task.tags == ["auth"]
        assert task.backlog_priority == PriorityLevel.HIGH
        assert task.story_points == 5
        assert task.time_estimate == "2d"
        assert task.task_type == TaskType.STORY

    @pytest.mark.asyncio
    async def test_unresolved_tokens_leave_fields_empty(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """Unknown users and sprints do not block creation."""
        project_id = await seed_project(session_factory)

        outcome = await _reconcile(
            session_factory, project_id, "Feature12: Build login -> nobody -> sprint9"
        )

        assert outcome.created is True
        task = await _load_task(session_factory, project_id)
        assert task.assignee_id is None, "unknown user should not be assigned"
        assert task.sprint_id is None, "unknown sprint should not be linked"
        assert task.status == TaskStatus.IN_PROGRESS, "assignee implies in progress"


class TestTaskUpdate:
    """Later directives update the existing task."""

    @pytest.mark.asyncio
    async def test_status_change_emits_event(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """A new status updates the task and reports old and new values."""
        project_id = await seed_project(session_factory)
        await _reconcile(session_factory, project_id, "Feature12: Build login")

        outcome = await _reconcile(
            session_factory, project_id, "Feature12: Build login -> done", sha="b2"
        )

        assert outcome.created is False
        (event,) = outcome.events
        assert event.kind is TaskEventKind.STATUS_CHANGED
        assert (event.old_value, event.new_value) == ("TODO", "DONE")
        assert event.commit_sha == "b2"
        task = await _load_task(session_factory, project_id)
        assert task.status == TaskStatus.DONE

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("keyword", "reopened"),
        [
            pytest.param("in-progress", TaskStatus.IN_PROGRESS, id="in-progress"),
            pytest.param("todo", TaskStatus.TODO, id="todo"),
        ],
    )
    async def test_done_task_can_be_reopened(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        keyword: str,
        reopened: TaskStatus,
    ) -> None:
        """A finished task moves back when a later commit says so."""
        project_id = await seed_project(session_factory)
        await _reconcile(session_factory, project_id, "Feature12: Build login -> done")

        outcome = await _reconcile(
            session_factory,
            project_id,
            f"F12: Fix login regression -> {keyword}",
            sha="c3",
        )

        (event,) = outcome.events
        assert event.kind is TaskEventKind.STATUS_CHANGED
        assert (event.old_value, event.new_value) == ("DONE", reopened.value)
        assert event.commit_sha == "c3"
        task = await _load_task(session_factory, project_id)
        assert task.status == reopened

    @pytest.mark.asyncio
    async def test_same_status_emits_nothing(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """Repeating the current status is not a change."""
        project_id = await seed_project(session_factory)
        await _reconcile(session_factory, project_id, "Feature12: Build login -> done")

        outcome = await _reconcile(
            session_factory, project_id, "F12: Build login again -> done"
        )

        assert outcome.events == ()

    @pytest.mark.asyncio
    async def test_assignee_resolved_by_email(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """An email token finds the user when no nickname matches."""
        project_id = await seed_project(session_factory)
        bob = await seed_user(session_factory, "bobby", "bob@example.com")
        await _reconcile(session_factory, project_id, "Feature12: Build login")

        outcome = await _reconcile(
            session_factory,
            project_id,
            "Feature12: Build login -> Bob@Example.com -> todo",
        )

        kinds = [event.kind for event in outcome.events]
        assert kinds == [TaskEventKind.ASSIGNEE_CHANGED]
        assert outcome.events[0].new_value == bob
        assert outcome.events[0].recipient_id == bob

    @pytest.mark.asyncio
    async def test_unresolved_assignee_keeps_existing(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """An unknown assignee token leaves the current assignee alone."""
        project_id = await seed_project(session_factory)
        alice = await seed_user(session_factory, "alice")
        await _reconcile(session_factory, project_id, "Feature12: Build login -> alice")

        await _reconcile(
            session_factory, project_id, "Feature12: Build login -> ghost -> in-progress"
        )

        task = await _load_task(session_factory, project_id)
        assert task.assignee_id == alice

    @pytest.mark.asyncio
    async def test_tags_are_unioned(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """Tags accumulate across commits without duplicates."""
        project_id = await seed_project(session_factory)
        await _reconcile(session_factory, project_id, "Feature12: Login #auth #ui")

        await _reconcile(session_factory, project_id, "Feature12: Login #ui #api")

        task = await _load_task(session_factory, project_id)
        assert task.tags == ["auth", "ui", "api"]

    @pytest.mark.asyncio
    async def test_optional_fields_only_overwritten_when_given(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """Fields absent from a later directive keep their values."""
        project_id = await seed_project(session_factory)
        await _reconcile(
            session_factory, project_id, "Feature12: Login -> sp:3 -> bug -> todo"
        )

        await _reconcile(session_factory, project_id, "Feature12: Login -> estimate:4h")

        task = await _load_task(session_factory, project_id)
        assert task.story_points == 3
        assert task.task_type == TaskType.BUG
        assert task.time_estimate == "4h"


class TestSprintResolution:
    """sprint<N|current|next> tokens resolve within the project."""

    @pytest.mark.asyncio
    async def test_current_and_next(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """current picks the active sprint; next the earliest upcoming one."""
        project_id = await seed_project(session_factory)
        active = await seed_sprint(
            session_factory, project_id, 1, status=SprintStatus.ACTIVE
        )
        later = await seed_sprint(
            session_factory,
            project_id,
            3,
            starts_at=BASE_TIME + dt.timedelta(days=28),
        )
        upcoming = await seed_sprint(
            session_factory,
            project_id,
            2,
            starts_at=BASE_TIME + dt.timedelta(days=14),
        )

        async with session_factory() as session:
            current = await TaskReconciler.resolve_sprint(session, project_id, "current")
            nxt = await TaskReconciler.resolve_sprint(session, project_id, "next")
            third = await TaskReconciler.resolve_sprint(session, project_id, "3")
            missing = await TaskReconciler.resolve_sprint(session, project_id, "7")

        assert current is not None and current.id == active
        assert nxt is not None and nxt.id == upcoming
        assert third is not None and third.id == later
        assert missing is None

    @pytest.mark.asyncio
    async def test_sprint_change_emits_event(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """Moving a task to another sprint reports the new sprint."""
        project_id = await seed_project(session_factory)
        first = await seed_sprint(session_factory, project_id, 1)
        second = await seed_sprint(session_factory, project_id, 2)
        await _reconcile(session_factory, project_id, "Feature12: Login -> sprint1")

        outcome = await _reconcile(
            session_factory, project_id, "Feature12: Login -> sprint2 -> todo"
        )

        (event,) = outcome.events
        assert event.kind is TaskEventKind.SPRINT_CHANGED
        assert (event.old_value, event.new_value) == (first, second)


class _StaleReadReconciler(TaskReconciler):
    """Misses the task on the first lookup, as a racing creator would."""

    def __init__(self) -> None:
        self.lookups = 0

    async def find_task(  # type: ignore[override]
        self, session: AsyncSession, project_id: str, feature_code: str
    ) -> Task | None:
        self.lookups += 1
        if self.lookups == 1:
            return None
        return await TaskReconciler.find_task(session, project_id, feature_code)


@pytest.mark.asyncio
async def test_create_conflict_falls_back_to_update(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """A losing creator updates the winner's task instead of failing."""
    project_id = await seed_project(session_factory)
    await _reconcile(session_factory, project_id, "Feature12: Build login")
    reconciler = _StaleReadReconciler()

    outcome = await _reconcile(
        session_factory,
        project_id,
        "Feature12: Build login -> done",
        reconciler=reconciler,
    )

    assert outcome.created is False, "conflict should turn into an update"
    assert [event.kind for event in outcome.events] == [
        TaskEventKind.STATUS_CHANGED
    ]
    async with session_factory() as session:
        count = await session.scalar(select(func.count()).select_from(Task))
    assert count == 1, "only one task may exist per feature code"


class _BlindReconciler(TaskReconciler):
    """Never sees the existing task."""

    async def find_task(  # type: ignore[override]
        self, session: AsyncSession, project_id: str, feature_code: str
    ) -> Task | None:
        return None


@pytest.mark.asyncio
async def test_create_conflict_without_visible_winner_raises(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """A conflict whose winner cannot be reloaded is an error, not a silent skip."""
    project_id = await seed_project(session_factory)
    await _reconcile(session_factory, project_id, "Feature12: Build login")

    with pytest.raises(TaskReconcileError, match="Feature12"):
        await _reconcile(
            session_factory,
            project_id,
            "Feature12: Build login -> done",
            reconciler=_BlindReconciler(),
        )
