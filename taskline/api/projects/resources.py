"""Project read resources: contributor scores and task snapshots.

Usage
-----
::

    app.add_route(
        "/projects/{project_id}/contributors",
        ContributorsResource(session_factory, score_service),
    )
    app.add_route(
        "/projects/{project_id}/tasks/{feature_code}",
        TaskResource(),
    )

"""

from __future__ import annotations

import typing as typ

import falcon
from sqlalchemy import select

from taskline.api.errors import InvalidInputError, TaskNotFoundError
from taskline.directives import normalize_feature_code
from taskline.tasks.reconciler import TaskReconciler
from taskline.tracking.storage import CommitRecord, Project
from taskline.webhooks.errors import ProjectNotFoundError

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from taskline.ledger.read import ContributorScoreService
    from taskline.tracking.storage import Task

__all__ = ["ContributorsResource", "TaskResource"]


async def _require_project(session: AsyncSession, project_id: str) -> None:
    if await session.get(Project, project_id) is None:
        raise ProjectNotFoundError(f"project_id={project_id}")


def _serialize_task(task: Task, commit_shas: list[str]) -> dict[str, typ.Any]:
    return {
        "id": task.id,
        "projectId": task.project_id,
        "featureCode": task.feature_code,
        "title": task.title,
        "status": task.status,
        "assigneeId": task.assignee_id,
        "sprintId": task.sprint_id,
        "tags": list(task.tags or []),
        "backlogPriority": task.backlog_priority,
        "storyPoints": task.story_points,
        "timeEstimate": task.time_estimate,
        "taskType": task.task_type,
        "createdAt": task.created_at.isoformat(),
        "updatedAt": task.updated_at.isoformat(),
        "commits": commit_shas,
    }


class ContributorsResource:
    """``GET /projects/{project_id}/contributors``: scored ledger, best first."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        score_service: ContributorScoreService,
    ) -> None:
        """Store the session factory and score service."""
        self._session_factory = session_factory
        self._score_service = score_service

    async def on_get(self, _req: Request, resp: Response, *, project_id: str) -> None:
        """Return the project's contributors sorted by productivity.

        The existence check closes its session before scores are read, so
        at most one connection is held per request.
        """
        async with self._session_factory() as session:
            await _require_project(session, project_id)
        summaries = await self._score_service.list_scores(project_id)
        resp.media = {
            "projectId": project_id,
            "contributors": [summary.to_dict() for summary in summaries],
        }
        resp.status = falcon.HTTP_200


class TaskResource:
    """``GET /projects/{project_id}/tasks/{feature_code}``.

    ``feature_code`` may be spelled ``Feature12``, ``F12`` or ``12``.
    """

    async def on_get(
        self,
        req: Request,
        resp: Response,
        *,
        project_id: str,
        feature_code: str,
    ) -> None:
        """Return the task with the commits linked to it, oldest first."""
        code = normalize_feature_code(feature_code)
        if code is None:
            raise InvalidInputError(
                "expected Feature<N>, F<N> or <N>", field="feature_code"
            )

        session: AsyncSession = req.context.session
        await _require_project(session, project_id)
        task = await TaskReconciler.find_task(session, project_id, code)
        if task is None:
            raise TaskNotFoundError(project_id, code)

        rows = await session.scalars(
            select(CommitRecord.sha)
            .where(CommitRecord.task_id == task.id)
            .order_by(CommitRecord.committed_at, CommitRecord.id)
        )
        resp.media = _serialize_task(task, list(rows.all()))
        resp.status = falcon.HTTP_200
