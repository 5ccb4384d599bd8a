"""Dramatiq actor that stores task notifications for their recipients.

Usage
-----
>>> deliver_task_event.send(
...     "postgresql+asyncpg://...",
...     {"kind": "task.created", "task_id": "...", ...},
... )

"""

from __future__ import annotations

import asyncio
import threading
import typing as typ

import dramatiq
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from taskline.logging import get_logger, log_debug
from taskline.tasks.events import TaskChangeEvent
from taskline.tracking.storage import Notification

from ._broker import ensure_broker_configured

type SessionFactory = async_sessionmaker[AsyncSession]

logger = get_logger(__name__)

_ENGINE_CACHE: dict[str, AsyncEngine] = {}
_SESSION_FACTORY_CACHE: dict[str, SessionFactory] = {}
_CACHE_LOCK = threading.Lock()


def _get_or_create_session_factory(database_url: str) -> SessionFactory:
    """Return a cached session factory for ``database_url``.

    Thread-safe: Dramatiq runs actors on a pool of worker threads.
    """
    with _CACHE_LOCK:
        if database_url not in _SESSION_FACTORY_CACHE:
            engine = _ENGINE_CACHE.get(database_url)
            if engine is None:
                engine = create_async_engine(database_url)
                _ENGINE_CACHE[database_url] = engine
            _SESSION_FACTORY_CACHE[database_url] = async_sessionmaker(
                engine, expire_on_commit=False
            )
        return _SESSION_FACTORY_CACHE[database_url]


async def store_notification(
    session_factory: SessionFactory, event: TaskChangeEvent
) -> int | None:
    """Persist ``event`` for its recipient; return the row id.

    Events without a recipient are dropped and ``None`` is returned.
    """
    if event.recipient_id is None:
        log_debug(logger, "No recipient for %s on %s", event.kind, event.task_id)
        return None

    async with session_factory() as session, session.begin():
        notification = Notification(
            recipient_id=event.recipient_id,
            task_id=event.task_id,
            kind=event.kind.value,
            message=event.describe(),
        )
        session.add(notification)
        await session.flush()
        return notification.id


ensure_broker_configured()


@dramatiq.actor(max_retries=3)
def deliver_task_event(database_url: str, payload: dict[str, typ.Any]) -> int | None:
    """Store the notification described by ``payload``.

    Parameters
    ----------
    database_url
        SQLAlchemy URL of the tracking database.
    payload
        Output of :meth:`TaskChangeEvent.to_payload`.

    Returns
    -------
    int | None
        The notification id, or ``None`` when the event had no recipient.

    """
    event = TaskChangeEvent.from_payload(payload)
    session_factory = _get_or_create_session_factory(database_url)
    return asyncio.run(store_notification(session_factory, event))
