"""Apply parsed directives to tasks.

Tasks are keyed by ``(project_id, feature_code)``. A directive for an
unknown feature code creates the task; later directives diff against it:

* status follows the directive and emits an event when it changes,
* the assignee changes only when the token resolves to a known user,
* tags are unioned, never removed,
* sprint, priority, points, estimate and type are overwritten when given.

Unresolvable assignee or sprint tokens leave the field untouched.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from taskline.logging import get_logger, log_debug
from taskline.tracking.enums import SprintStatus
from taskline.tracking.storage import Sprint, Task, User

from .errors import TaskReconcileError
from .events import TaskChangeEvent, TaskEventKind

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from taskline.directives.models import ParsedDirective

logger = get_logger(__name__)

_SPRINT_CURRENT = "current"
_SPRINT_NEXT = "next"


@dc.dataclass(frozen=True, slots=True)
class ReconcileOutcome:
    """Result of reconciling one directive."""

    task: Task
    created: bool
    events: tuple[TaskChangeEvent, ...] = ()


def _merge_tags(existing: typ.Sequence[str], incoming: typ.Iterable[str]) -> list[str]:
    merged = list(existing)
    for tag in incoming:
        if tag not in merged:
            merged.append(tag)
    return merged


class _EventBuilder:
    """Collect events for one task and commit."""

    def __init__(self, task: Task, commit_sha: str) -> None:
        self._task = task
        self._commit_sha = commit_sha
        self.events: list[TaskChangeEvent] = []

    def add(
        self,
        kind: TaskEventKind,
        *,
        old_value: str | None = None,
        new_value: str | None = None,
    ) -> None:
        self.events.append(
            TaskChangeEvent(
                kind=kind,
                project_id=self._task.project_id,
                task_id=self._task.id,
                feature_code=self._task.feature_code,
                title=self._task.title,
                commit_sha=self._commit_sha,
                recipient_id=self._task.assignee_id,
                old_value=old_value,
                new_value=new_value,
            )
        )


class TaskReconciler:
    """Create or update the task a directive refers to."""

    async def reconcile(
        self,
        session: AsyncSession,
        project_id: str,
        directive: ParsedDirective,
        *,
        commit_sha: str,
    ) -> ReconcileOutcome:
        """Create or update the task for ``directive`` within ``session``.

        The caller owns the transaction. Task creation runs in a savepoint
        so a concurrent creator of the same feature code turns this call
        into an update of the winner's row.
        """
        task = await self.find_task(session, project_id, directive.feature_code)
        if task is None:
            outcome = await self._try_create(
                session, project_id, directive, commit_sha=commit_sha
            )
            if outcome is not None:
                return outcome
            task = await self.find_task(session, project_id, directive.feature_code)
            if task is None:
                raise TaskReconcileError.vanished_after_conflict(directive.feature_code)

        return await self._update(session, task, directive, commit_sha=commit_sha)

    @staticmethod
    async def find_task(
        session: AsyncSession, project_id: str, feature_code: str
    ) -> Task | None:
        """Return the task for ``(project_id, feature_code)`` if it exists."""
        return await session.scalar(
            select(Task).where(
                Task.project_id == project_id,
                Task.feature_code == feature_code,
            )
        )

    @staticmethod
    async def resolve_user(session: AsyncSession, token: str) -> User | None:
        """Find a user by nickname, then by email, ignoring case."""
        needle = token.strip().lower()
        if not needle:
            return None
        user = await session.scalar(
            select(User).where(func.lower(User.nickname) == needle).limit(1)
        )
        if user is not None:
            return user
        return await session.scalar(
            select(User).where(func.lower(User.email) == needle).limit(1)
        )

    @staticmethod
    async def resolve_sprint(
        session: AsyncSession, project_id: str, token: str
    ) -> Sprint | None:
        """Resolve ``sprint<N|current|next>`` within a project."""
        base = select(Sprint).where(Sprint.project_id == project_id)
        if token == _SPRINT_CURRENT:
            stmt = base.where(Sprint.status == SprintStatus.ACTIVE.value).order_by(
                Sprint.number.desc()
            )
        elif token == _SPRINT_NEXT:
            stmt = base.where(Sprint.status == SprintStatus.UPCOMING.value).order_by(
                Sprint.starts_at.is_(None), Sprint.starts_at, Sprint.number
            )
        elif token.isdigit():
            stmt = base.where(Sprint.number == int(token))
        else:
            return None
        return await session.scalar(stmt.limit(1))

    async def _resolve_refs(
        self, session: AsyncSession, project_id: str, directive: ParsedDirective
    ) -> tuple[User | None, Sprint | None]:
        user = (
            await self.resolve_user(session, directive.assignee)
            if directive.assignee
            else None
        )
        sprint = (
            await self.resolve_sprint(session, project_id, directive.sprint)
            if directive.sprint
            else None
        )
        if directive.assignee and user is None:
            log_debug(logger, "Unresolved assignee token %r", directive.assignee)
        if directive.sprint and sprint is None:
            log_debug(logger, "Unresolved sprint token %r", directive.sprint)
        return (user, sprint)

    async def _try_create(
        self,
        session: AsyncSession,
        project_id: str,
        directive: ParsedDirective,
        *,
        commit_sha: str,
    ) -> ReconcileOutcome | None:
        user, sprint = await self._resolve_refs(session, project_id, directive)
        task = Task(
            project_id=project_id,
            feature_code=directive.feature_code,
            title=directive.title,
            status=directive.status.value,
            assignee_id=user.id if user else None,
            sprint_id=sprint.id if sprint else None,
            tags=_merge_tags([], directive.tags),
            backlog_priority=(
                directive.backlog_priority.value if directive.backlog_priority else None
            ),
            story_points=directive.story_points,
            time_estimate=directive.time_estimate,
            task_type=directive.task_type.value if directive.task_type else None,
        )
        try:
            async with session.begin_nested():
                session.add(task)
                await session.flush()
        except IntegrityError:
            return None

        builder = _EventBuilder(task, commit_sha)
        builder.add(TaskEventKind.CREATED, new_value=task.status)
        return ReconcileOutcome(task=task, created=True, events=tuple(builder.events))

    async def _update(
        self,
        session: AsyncSession,
        task: Task,
        directive: ParsedDirective,
        *,
        commit_sha: str,
    ) -> ReconcileOutcome:
        user, sprint = await self._resolve_refs(session, task.project_id, directive)
        builder = _EventBuilder(task, commit_sha)

        if task.status != directive.status:
            old_status = task.status
            task.status = directive.status.value
            builder.add(
                TaskEventKind.STATUS_CHANGED,
                old_value=old_status,
                new_value=task.status,
            )

        if user is not None and user.id != task.assignee_id:
            old_assignee = task.assignee_id
            task.assignee_id = user.id
            builder.add(
                TaskEventKind.ASSIGNEE_CHANGED,
                old_value=old_assignee,
                new_value=user.id,
            )

        if sprint is not None and sprint.id != task.sprint_id:
            old_sprint = task.sprint_id
            task.sprint_id = sprint.id
            builder.add(
                TaskEventKind.SPRINT_CHANGED,
                old_value=old_sprint,
                new_value=sprint.id,
            )

        merged = _merge_tags(task.tags or [], directive.tags)
        if merged != (task.tags or []):
            task.tags = merged

        if directive.backlog_priority is not None:
            task.backlog_priority = directive.backlog_priority.value
        if directive.story_points is not None:
            task.story_points = directive.story_points
        if directive.time_estimate is not None:
            task.time_estimate = directive.time_estimate
        if directive.task_type is not None:
            task.task_type = directive.task_type.value

        await session.flush()
        return ReconcileOutcome(task=task, created=False, events=tuple(builder.events))
