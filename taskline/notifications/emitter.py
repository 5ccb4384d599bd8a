"""Outbound channels for task change events."""

from __future__ import annotations

import asyncio
import typing as typ

from taskline.logging import get_logger, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from taskline.tasks.events import TaskChangeEvent

logger = get_logger(__name__)


class NotificationEmitter(typ.Protocol):
    """Receives task change events after their transaction committed."""

    async def emit(self, events: cabc.Sequence[TaskChangeEvent]) -> None:
        """Deliver ``events``; failures must not affect persisted state."""
        ...


class LoggingNotificationEmitter:
    """Write each event to the log."""

    async def emit(self, events: cabc.Sequence[TaskChangeEvent]) -> None:
        """Log one line per event."""
        for event in events:
            log_info(
                logger,
                "[%s] project_id=%s task_id=%s commit=%s recipient=%s %s",
                event.kind,
                event.project_id,
                event.task_id,
                event.commit_sha,
                event.recipient_id,
                event.describe(),
            )


class _SendsMessages(typ.Protocol):
    def send(self, *args: object, **kwargs: object) -> object: ...


class DramatiqNotificationEmitter:
    """Enqueue events for the ``deliver_task_event`` actor.

    ``actor`` defaults to :func:`taskline.notifications.actor.deliver_task_event`,
    imported on first use so the broker is only configured when this
    emitter is selected.
    """

    def __init__(self, database_url: str, *, actor: _SendsMessages | None = None) -> None:
        """Store the database URL passed to the actor."""
        self._database_url = database_url
        self._actor = actor

    def _resolve_actor(self) -> _SendsMessages:
        if self._actor is None:
            from taskline.notifications.actor import deliver_task_event

            self._actor = typ.cast("_SendsMessages", deliver_task_event)
        return self._actor

    async def emit(self, events: cabc.Sequence[TaskChangeEvent]) -> None:
        """Send one message per event off the event loop."""
        if not events:
            return
        actor = self._resolve_actor()
        for event in events:
            await asyncio.to_thread(actor.send, self._database_url, event.to_payload())
