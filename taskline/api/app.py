"""Application factory for the Taskline Falcon ASGI application.

Usage
-----
Create a health-only app (no database)::

    app = create_app()

Create a full app with ingestion and project endpoints::

    from taskline.api.app import AppDependencies, create_app

    deps = AppDependencies(
        session_factory=session_factory,
        ingestion_service=ingestion_service,
        score_service=score_service,
    )
    app = create_app(deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from taskline.api.errors import (
    InvalidInputError,
    TaskNotFoundError,
    handle_authentication_error,
    handle_invalid_input,
    handle_invalid_payload,
    handle_project_not_found,
    handle_task_not_found,
)
from taskline.api.health.resources import HealthResource, ReadyResource
from taskline.webhooks.errors import (
    AuthenticationError,
    InvalidPayloadError,
    ProjectNotFoundError,
)

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from taskline.api.middleware import ShutdownHook
    from taskline.ledger.read import ContributorScoreService
    from taskline.webhooks.service import CommitIngestionService

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Collaborators for the domain routes.

    Domain routes are registered only when the session factory and both
    services are present; otherwise the app serves the health probes
    alone. ``shutdown_hooks`` run when the ASGI server shuts down.
    """

    session_factory: async_sessionmaker[AsyncSession] | None = None
    ingestion_service: CommitIngestionService | None = None
    score_service: ContributorScoreService | None = None
    shutdown_hooks: tuple[ShutdownHook, ...] = ()

    @property
    def complete(self) -> bool:
        """Return whether every collaborator is set."""
        return (
            self.session_factory is not None
            and self.ingestion_service is not None
            and self.score_service is not None
        )


def _add_domain_routes(app: falcon.asgi.App, deps: AppDependencies) -> None:
    from taskline.api.ingest.resources import (
        CommitSubmissionResource,
        GitHubWebhookResource,
    )
    from taskline.api.projects.resources import ContributorsResource, TaskResource

    sf = typ.cast("async_sessionmaker[AsyncSession]", deps.session_factory)
    ingestion = typ.cast("CommitIngestionService", deps.ingestion_service)
    scores = typ.cast("ContributorScoreService", deps.score_service)

    app.add_route("/webhooks/github", GitHubWebhookResource(ingestion))
    app.add_route("/commits", CommitSubmissionResource(ingestion))
    app.add_route(
        "/projects/{project_id}/contributors", ContributorsResource(sf, scores)
    )
    app.add_route("/projects/{project_id}/tasks/{feature_code}", TaskResource())


def create_app(dependencies: AppDependencies | None = None) -> falcon.asgi.App:
    """Create the Falcon ASGI application.

    Parameters
    ----------
    dependencies
        Domain collaborators. ``None`` or an incomplete set yields a
        health-only app.

    Returns
    -------
    falcon.asgi.App
        Configured application.

    """
    full = dependencies is not None and dependencies.complete
    middleware: list[object] = []
    if full and dependencies is not None:
        from taskline.api.middleware import SQLAlchemySessionManager

        sf = typ.cast("async_sessionmaker[AsyncSession]", dependencies.session_factory)
        middleware.append(SQLAlchemySessionManager(sf))

    if dependencies is not None and dependencies.shutdown_hooks:
        from taskline.api.middleware import ShutdownHooks

        middleware.append(ShutdownHooks(dependencies.shutdown_hooks))

    app = falcon.asgi.App(middleware=middleware)  # type: ignore[no-matching-overload]  # Falcon stubs

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(domain_routes=full))

    if full and dependencies is not None:
        _add_domain_routes(app, dependencies)

    app.add_error_handler(AuthenticationError, handle_authentication_error)
    app.add_error_handler(ProjectNotFoundError, handle_project_not_found)
    app.add_error_handler(InvalidPayloadError, handle_invalid_payload)
    app.add_error_handler(TaskNotFoundError, handle_task_not_found)
    app.add_error_handler(InvalidInputError, handle_invalid_input)

    return app
