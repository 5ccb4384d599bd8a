"""Request-scoped SQLAlchemy sessions for Falcon ASGI resources.

Each request gets ``req.context.session``, created lazily by the session
factory: no connection is checked out until a resource actually queries.
Resources that run their own units of work (the ingestion pipeline) leave
the request session untouched.

Usage
-----
::

    app = falcon.asgi.App(middleware=[SQLAlchemySessionManager(session_factory)])

"""

from __future__ import annotations

import collections.abc as cabc
import typing as typ

from sqlalchemy.exc import SQLAlchemyError

from taskline.logging import get_logger, log_error

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

__all__ = ["SQLAlchemySessionManager", "ShutdownHook", "ShutdownHooks"]

logger = get_logger(__name__)


class SQLAlchemySessionManager:
    """Attach a session per request; commit on success, roll back otherwise."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Store the factory used for each request."""
        self._session_factory = session_factory

    async def process_request(self, req: Request, _resp: Response) -> None:
        """Attach a fresh ``AsyncSession`` to ``req.context.session``."""
        req.context.session = self._session_factory()

    def _should_commit(self, resp: Response, *, req_succeeded: bool) -> bool:
        status = str(resp.status)
        return req_succeeded and not status.startswith(("4", "5"))

    async def _finalize_session(
        self,
        session: AsyncSession,
        resp: Response,
        *,
        req_succeeded: bool,
    ) -> None:
        try:
            if session.is_active:
                if self._should_commit(resp, req_succeeded=req_succeeded):
                    await session.commit()
                else:
                    await session.rollback()
        except SQLAlchemyError:
            log_error(logger, "Session cleanup failed during process_response", exc_info=True)
            if session.is_active:
                await session.rollback()
            raise
        finally:
            await session.close()

    async def process_response(
        self,
        req: Request,
        resp: Response,
        _resource: object,
        req_succeeded: bool,  # noqa: FBT001 - Falcon middleware signature
    ) -> None:
        """Commit or roll back the request session, then close it."""
        session: AsyncSession | None = getattr(req.context, "session", None)
        if session is None:
            return
        await self._finalize_session(session, resp, req_succeeded=req_succeeded)


type ShutdownHook = cabc.Callable[[], cabc.Awaitable[None]]


class ShutdownHooks:
    """Falcon lifespan component that awaits hooks on ASGI shutdown."""

    def __init__(self, hooks: cabc.Sequence[ShutdownHook]) -> None:
        """Store hooks in the order they should run."""
        self._hooks = tuple(hooks)

    async def process_shutdown(self, _scope: dict[str, typ.Any], _event: object) -> None:
        """Run every hook; a failing hook does not stop the rest."""
        for hook in self._hooks:
            try:
                await hook()
            except Exception:  # noqa: BLE001
                log_error(logger, "Shutdown hook %r failed", hook, exc_info=True)
