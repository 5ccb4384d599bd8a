"""Liveness and readiness probe resources.

Neither probe touches the database, so both are registered even when the
app runs without a ``TASKLINE_DATABASE_URL``.
"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

__all__ = ["HealthResource", "ReadyResource"]


class HealthResource:
    """``GET /health`` answers ``{"status": "ok"}`` while the process runs."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Report liveness."""
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """``GET /ready`` reports whether domain routes are mounted."""

    def __init__(self, *, domain_routes: bool = False) -> None:
        """Remember whether ingestion routes were registered."""
        self._domain_routes = domain_routes

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Report readiness."""
        resp.media = {
            "status": "ready",
            "mode": "full" if self._domain_routes else "health-only",
        }
        resp.status = HTTPStatus.OK
