"""Taskline runtime entrypoint.

``create_app`` is the Granian factory target. When
``TASKLINE_DATABASE_URL`` is set it builds the ingestion and scoring
services so the app serves the webhook, submission and project routes;
otherwise only ``/health`` and ``/ready`` are mounted.

Configuration is driven by environment variables:

- ``TASKLINE_HOST``: Bind address (default ``0.0.0.0``)
- ``TASKLINE_PORT``: Listen port (default ``8080``)
- ``TASKLINE_LOG_LEVEL``: Log level (default ``INFO``)
- ``TASKLINE_DATABASE_URL``: SQLAlchemy async URL (optional)
- ``TASKLINE_CREATE_SCHEMA``: create missing tables at startup when truthy

Service tunables are read by :class:`taskline.config.TasklineConfig` and
:class:`taskline.stats.client.CommitDetailConfig`.

Run the service with ``taskline`` or ``python -m taskline.runtime``.
"""

from __future__ import annotations

import asyncio
import os
import typing as typ

from taskline.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi
    from sqlalchemy.ext.asyncio import AsyncEngine

__all__ = ["create_app", "main"]

logger = get_logger(__name__)

_MIN_PORT = 1
_MAX_PORT = 65535
_TRUTHY = frozenset({"1", "true", "yes"})


def _parse_port(port_str: str) -> int:
    """Parse and validate a port number string.

    Raises
    ------
    SystemExit
        If port_str is not a valid integer in range 1-65535.

    """
    try:
        port = int(port_str)
        if not (_MIN_PORT <= port <= _MAX_PORT):
            msg = f"port {port} outside valid range {_MIN_PORT}-{_MAX_PORT}"
            raise ValueError(msg)  # noqa: TRY301 - unify conversion and range errors
    except ValueError as exc:
        log_error(
            logger,
            "Invalid TASKLINE_PORT value: %r (must be %d-%d): %s",
            port_str,
            _MIN_PORT,
            _MAX_PORT,
            exc,
        )
        raise SystemExit(1) from exc
    return port


def _create_schema_requested() -> bool:
    return os.environ.get("TASKLINE_CREATE_SCHEMA", "").strip().lower() in _TRUTHY


def _create_schema(engine: AsyncEngine) -> None:
    """Create missing tables, then drop the connections opened on this loop."""
    from taskline.tracking.storage import init_tracking_storage

    async def _run() -> None:
        await init_tracking_storage(engine)
        await engine.dispose()

    asyncio.run(_run())


def create_app() -> falcon.asgi.App:
    """Create the Falcon ASGI application from the environment.

    Returns
    -------
    falcon.asgi.App
        Full app when ``TASKLINE_DATABASE_URL`` is set, health-only otherwise.

    """
    from taskline.api.app import create_app as _create_api_app

    database_url = os.environ.get("TASKLINE_DATABASE_URL")
    if database_url is None:
        return _create_api_app()

    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from taskline.api.factory import build_services
    from taskline.tracking.storage import enable_sqlite_transactions

    engine = create_async_engine(database_url)
    enable_sqlite_transactions(engine)
    if _create_schema_requested():
        _create_schema(engine)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    services = build_services(session_factory, database_url=database_url)
    return _create_api_app(services.to_dependencies(session_factory))


def main() -> None:
    """Start the Taskline runtime server using Granian."""
    from granian import Granian
    from granian.constants import Interfaces

    host = os.environ.get("TASKLINE_HOST", "0.0.0.0")  # noqa: S104 - bind all interfaces for container
    port = _parse_port(os.environ.get("TASKLINE_PORT", "8080"))
    log_level_str = os.environ.get("TASKLINE_LOG_LEVEL", "INFO")

    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid TASKLINE_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    log_info(
        logger,
        "Starting Taskline runtime on %s:%d (log_level=%s)",
        host,
        port,
        normalized_level,
    )

    server = Granian(
        "taskline.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()
