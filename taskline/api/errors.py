"""API-level exceptions and the Falcon handlers that render errors.

Ingestion errors raised by :mod:`taskline.webhooks` are mapped here too,
so resources let them propagate untouched.

Usage
-----
Handlers are registered by :func:`taskline.api.app.create_app`::

    app.add_error_handler(AuthenticationError, handle_authentication_error)

"""

from __future__ import annotations

import typing as typ

import falcon

from taskline.webhooks.errors import (
    AuthenticationError,
    InvalidPayloadError,
    ProjectNotFoundError,
)

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

__all__ = [
    "InvalidInputError",
    "TaskNotFoundError",
    "handle_authentication_error",
    "handle_invalid_input",
    "handle_invalid_payload",
    "handle_project_not_found",
    "handle_task_not_found",
]


class TaskNotFoundError(Exception):
    """Raised when no task exists for a project and feature code."""

    def __init__(self, project_id: str, feature_code: str) -> None:
        """Record the lookup key."""
        self.project_id = project_id
        self.feature_code = feature_code
        super().__init__(
            f"No task '{feature_code}' exists in project '{project_id}'."
        )


class InvalidInputError(Exception):
    """Raised for client validation errors that should map to HTTP 400.

    Attributes
    ----------
    reason
        Human-readable description of the validation failure.
    field
        Optional name of the input field that failed validation.

    """

    def __init__(self, reason: str, *, field: str | None = None) -> None:
        """Store the reason and optional field name."""
        self.reason = reason
        self.field = field
        message = f"{field}: {reason}" if field is not None else reason
        super().__init__(message)


def _error_media(title: str, description: str, reason: str | None) -> dict[str, str]:
    media = {"title": title, "description": description}
    if reason is not None:
        media["reason"] = reason
    return media


async def handle_authentication_error(
    _req: Request,
    resp: Response,
    ex: AuthenticationError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``AuthenticationError`` to HTTP 401."""
    resp.status = falcon.HTTP_401
    resp.media = _error_media("Signature rejected", str(ex), ex.reason)


async def handle_project_not_found(
    _req: Request,
    resp: Response,
    ex: ProjectNotFoundError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``ProjectNotFoundError`` to HTTP 404."""
    resp.status = falcon.HTTP_404
    resp.media = _error_media("Project not found", str(ex), ex.reason)


async def handle_invalid_payload(
    _req: Request,
    resp: Response,
    ex: InvalidPayloadError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InvalidPayloadError`` to HTTP 400."""
    resp.status = falcon.HTTP_400
    resp.media = _error_media("Invalid payload", str(ex), ex.reason)


async def handle_task_not_found(
    _req: Request,
    resp: Response,
    ex: TaskNotFoundError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``TaskNotFoundError`` to HTTP 404."""
    resp.status = falcon.HTTP_404
    resp.media = {"title": "Task not found", "description": str(ex)}


async def handle_invalid_input(
    _req: Request,
    resp: Response,
    ex: InvalidInputError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InvalidInputError`` to HTTP 400, naming the field when known."""
    resp.status = falcon.HTTP_400
    media: dict[str, str] = {
        "title": "Invalid input",
        "description": ex.reason,
    }
    if ex.field is not None:
        media["field"] = ex.field
    resp.media = media
