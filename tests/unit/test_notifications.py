"""Unit tests for notification emitters and the delivery actor."""

from __future__ import annotations

import asyncio
import typing as typ

import pytest
from sqlalchemy import select

from taskline.notifications import (
    DramatiqNotificationEmitter,
    LoggingNotificationEmitter,
)
from taskline.notifications import actor as actor_module
from taskline.tasks import TaskChangeEvent, TaskEventKind
from taskline.tracking.storage import Notification
from tests.helpers.femtologging_capture import capture_femto_logs
from tests.helpers.tracking_builders import seed_user

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


def _event(
    kind: TaskEventKind = TaskEventKind.STATUS_CHANGED,
    *,
    recipient_id: str | None = "user-1",
) -> TaskChangeEvent:
    return TaskChangeEvent(
        kind=kind,
        project_id="proj-1",
        task_id="task-1",
        feature_code="Feature12",
        title="Build login",
        commit_sha="a1",
        recipient_id=recipient_id,
        old_value="TODO",
        new_value="DONE",
    )


class _FakeActor:
    """Captures ``send`` calls instead of enqueuing."""

    def __init__(self) -> None:
        self.sent: list[tuple[object, ...]] = []

    def send(self, *args: object, **kwargs: object) -> None:
        self.sent.append(args)


class TestTaskChangeEvent:
    """Event descriptions and queue payloads."""

    @pytest.mark.parametrize(
        ("kind", "expected"),
        [
            pytest.param(TaskEventKind.CREATED, "Feature12 created: Build login", id="created"),
            pytest.param(
                TaskEventKind.STATUS_CHANGED,
                "Feature12 status changed from TODO to DONE",
                id="status",
            ),
            pytest.param(
                TaskEventKind.ASSIGNEE_CHANGED, "Feature12 assigned to DONE", id="assignee"
            ),
            pytest.param(
                TaskEventKind.SPRINT_CHANGED, "Feature12 moved to sprint DONE", id="sprint"
            ),
        ],
    )
    def test_describe(self, kind: TaskEventKind, expected: str) -> None:
        """Each kind renders a one-line summary."""
        assert _event(kind).describe() == expected

    def test_payload_round_trip(self) -> None:
        """Queue payloads rebuild an equal event."""
        event = _event()
        payload = event.to_payload()
        assert payload["kind"] == "task.status_changed"
        assert TaskChangeEvent.from_payload(payload) == event


class TestLoggingNotificationEmitter:
    """Events are written to the log."""

    def test_logs_one_line_per_event(self) -> None:
        """Every event produces a log record naming its kind."""
        emitter = LoggingNotificationEmitter()
        events = [_event(TaskEventKind.CREATED), _event()]

        with capture_femto_logs("taskline.notifications.emitter") as capture:
            asyncio.run(emitter.emit(events))
            capture.wait_for_count(2)

        assert capture.messages_containing("[task.created]")
        assert capture.messages_containing("status changed from TODO to DONE")


class TestDramatiqNotificationEmitter:
    """Events are handed to the actor one message each."""

    def test_sends_payload_per_event(self) -> None:
        """send receives the database URL and the event payload."""
        fake = _FakeActor()
        emitter = DramatiqNotificationEmitter("sqlite+aiosqlite:///x.db", actor=fake)

        asyncio.run(emitter.emit([_event(), _event(TaskEventKind.CREATED)]))

        assert [args[0] for args in fake.sent] == ["sqlite+aiosqlite:///x.db"] * 2
        assert fake.sent[1][1]["kind"] == "task.created"

    def test_empty_batch_sends_nothing(self) -> None:
        """No events means no messages."""
        fake = _FakeActor()
        asyncio.run(DramatiqNotificationEmitter("db", actor=fake).emit([]))
        assert fake.sent == []


class TestStoreNotification:
    """Persisting notifications for recipients."""

    @pytest.mark.asyncio
    async def test_stores_row_for_recipient(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """A recipient gets a notification carrying the description."""
        user_id = await seed_user(session_factory, "alice")

        notification_id = await actor_module.store_notification(
            session_factory, _event(recipient_id=user_id)
        )

        assert notification_id is not None
        async with session_factory() as session:
            stored = await session.get(Notification, notification_id)
        assert stored is not None
        assert stored.recipient_id == user_id
        assert stored.kind == "task.status_changed"
        assert stored.read is False

    @pytest.mark.asyncio
    async def test_skips_event_without_recipient(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        """Unassigned tasks produce no notification."""
        result = await actor_module.store_notification(
            session_factory, _event(recipient_id=None)
        )

        assert result is None
        async with session_factory() as session:
            assert (await session.scalars(select(Notification))).all() == []


def test_actor_stores_notification(
    database_url: str,
    sync_session_factory: async_sessionmaker[AsyncSession],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Calling the actor directly persists the notification."""
    monkeypatch.setattr(
        actor_module,
        "_get_or_create_session_factory",
        lambda _url: sync_session_factory,
    )

    notification_id = actor_module.deliver_task_event(
        database_url, _event(recipient_id="user-9").to_payload()
    )

    assert isinstance(notification_id, int)


def test_session_factory_cached_per_url(monkeypatch: pytest.MonkeyPatch) -> None:
    """Repeated lookups for a URL reuse one engine and factory."""
    monkeypatch.setattr(actor_module, "_ENGINE_CACHE", {})
    monkeypatch.setattr(actor_module, "_SESSION_FACTORY_CACHE", {})
    url = "sqlite+aiosqlite:///:memory:"

    first = actor_module._get_or_create_session_factory(url)
    second = actor_module._get_or_create_session_factory(url)

    assert first is second
    assert list(actor_module._ENGINE_CACHE) == [url]
