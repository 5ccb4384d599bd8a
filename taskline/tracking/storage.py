"""Persistence models for projects, tasks, commits and the contributor ledger."""

from __future__ import annotations

import datetime as dt
import typing as typ
import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from taskline.common.time import utcnow
from taskline.tracking.enums import SprintStatus, StatsSource, TaskStatus
from taskline.tracking.errors import TimezoneAwareRequiredError

if typ.TYPE_CHECKING:
    from sqlalchemy.engine import Dialect
    from sqlalchemy.ext.asyncio import AsyncEngine


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base declarative class for tracking models."""


class UTCDateTime(TypeDecorator[dt.datetime]):
    """DateTime wrapper that round-trips UTC tzinfo even on SQLite."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Reject naive values and bind everything else as UTC."""
        if value is None:
            return None
        if value.tzinfo is None:
            raise TimezoneAwareRequiredError.for_column()
        return value.astimezone(dt.UTC)

    def process_result_value(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Return aware UTC datetimes regardless of backend."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)


class Project(Base):
    """A tracked project bound to one source repository."""

    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255))
    repo_external_id: Mapped[str | None] = mapped_column(
        String(64), unique=True, default=None
    )
    repo_url: Mapped[str | None] = mapped_column(String(512), default=None)
    webhook_secret: Mapped[str | None] = mapped_column(String(255), default=None)
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)

    tasks: Mapped[list[Task]] = relationship(back_populates="project")
    sprints: Mapped[list[Sprint]] = relationship(back_populates="project")


class User(Base):
    """A person who can be assigned tasks."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    nickname: Mapped[str] = mapped_column(String(255), unique=True)
    email: Mapped[str | None] = mapped_column(String(320), unique=True, default=None)
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)


class Sprint(Base):
    """Numbered sprint within a project."""

    __tablename__ = "sprints"
    __table_args__ = (
        UniqueConstraint("project_id", "number", name="uq_sprints_project_number"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    number: Mapped[int] = mapped_column(Integer)
    name: Mapped[str] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(16), default=SprintStatus.UPCOMING.value)
    starts_at: Mapped[dt.datetime | None] = mapped_column(UTCDateTime(), default=None)
    ends_at: Mapped[dt.datetime | None] = mapped_column(UTCDateTime(), default=None)

    project: Mapped[Project] = relationship(back_populates="sprints")


class Task(Base):
    """Unit of work keyed by ``(project_id, feature_code)``."""

    __tablename__ = "tasks"
    __table_args__ = (
        UniqueConstraint(
            "project_id", "feature_code", name="uq_tasks_project_feature_code"
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    project_id: Mapped[str] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    feature_code: Mapped[str] = mapped_column(String(64))
    title: Mapped[str] = mapped_column(Text())
    status: Mapped[str] = mapped_column(String(16), default=TaskStatus.TODO.value)
    assignee_id: Mapped[str | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), default=None
    )
    sprint_id: Mapped[str | None] = mapped_column(
        ForeignKey("sprints.id", ondelete="SET NULL"), default=None
    )
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    backlog_priority: Mapped[str | None] = mapped_column(String(16), default=None)
    story_points: Mapped[int | None] = mapped_column(Integer, default=None)
    time_estimate: Mapped[str | None] = mapped_column(String(16), default=None)
    task_type: Mapped[str | None] = mapped_column(String(16), default=None)
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow
    )

    project: Mapped[Project] = relationship(back_populates="tasks")
    commits: Mapped[list[CommitRecord]] = relationship(back_populates="task")


class CommitRecord(Base):
    """A commit ingested once per ``(project_id, sha)``."""

    __tablename__ = "commit_records"
    __table_args__ = (
        UniqueConstraint("project_id", "sha", name="uq_commit_records_project_sha"),
        Index("ix_commit_records_project_time", "project_id", "committed_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    project_id: Mapped[str] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    sha: Mapped[str] = mapped_column(String(64))
    message: Mapped[str] = mapped_column(Text(), default="")
    author_name: Mapped[str | None] = mapped_column(Text(), default=None)
    author_email: Mapped[str | None] = mapped_column(Text(), default=None)
    committed_at: Mapped[dt.datetime] = mapped_column(UTCDateTime())
    url: Mapped[str | None] = mapped_column(Text(), default=None)
    lines_added: Mapped[int] = mapped_column(Integer, default=0)
    lines_modified: Mapped[int] = mapped_column(Integer, default=0)
    lines_deleted: Mapped[int] = mapped_column(Integer, default=0)
    files_changed: Mapped[int] = mapped_column(Integer, default=0)
    stats_source: Mapped[str] = mapped_column(
        String(16), default=StatsSource.FALLBACK.value
    )
    task_id: Mapped[str | None] = mapped_column(
        ForeignKey("tasks.id", ondelete="SET NULL"), default=None
    )
    ingested_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)

    task: Mapped[Task | None] = relationship(back_populates="commits")
    file_changes: Mapped[list[FileChangeRecord]] = relationship(
        back_populates="commit", cascade="all, delete-orphan"
    )


class FileChangeRecord(Base):
    """One touched file of a commit, with estimated or reported deltas."""

    __tablename__ = "file_change_records"
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    commit_id: Mapped[int] = mapped_column(
        ForeignKey("commit_records.id", ondelete="CASCADE"), nullable=False
    )
    project_id: Mapped[str] = mapped_column(String(36))
    file_path: Mapped[str] = mapped_column(Text())
    file_extension: Mapped[str | None] = mapped_column(Text(), default=None)
    change_kind: Mapped[str] = mapped_column(String(16))
    lines_added: Mapped[int] = mapped_column(Integer, default=0)
    lines_modified: Mapped[int] = mapped_column(Integer, default=0)
    lines_deleted: Mapped[int] = mapped_column(Integer, default=0)

    commit: Mapped[CommitRecord] = relationship(back_populates="file_changes")


class ContributorLedgerEntry(Base):
    """Running totals per ``(project_id, contributor_email)``."""

    __tablename__ = "contributor_ledger"
    __table_args__ = (
        UniqueConstraint(
            "project_id", "contributor_email", name="uq_contributor_ledger_key"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    project_id: Mapped[str] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    contributor_email: Mapped[str] = mapped_column(String(320))
    contributor_name: Mapped[str | None] = mapped_column(Text(), default=None)
    total_commits: Mapped[int] = mapped_column(Integer, default=0)
    total_lines_added: Mapped[int] = mapped_column(Integer, default=0)
    total_lines_modified: Mapped[int] = mapped_column(Integer, default=0)
    total_lines_deleted: Mapped[int] = mapped_column(Integer, default=0)
    total_files_changed: Mapped[int] = mapped_column(Integer, default=0)
    first_commit_at: Mapped[dt.datetime | None] = mapped_column(
        UTCDateTime(), default=None
    )
    last_commit_at: Mapped[dt.datetime | None] = mapped_column(
        UTCDateTime(), default=None
    )
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow
    )


class Notification(Base):
    """Delivered task notification addressed to a user."""

    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_recipient", "recipient_id", "read"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    recipient_id: Mapped[str | None] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), default=None
    )
    task_id: Mapped[str] = mapped_column(String(36))
    kind: Mapped[str] = mapped_column(String(32))
    message: Mapped[str] = mapped_column(Text())
    read: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)


def enable_sqlite_transactions(engine: AsyncEngine) -> None:
    """Make SQLite honour BEGIN and SAVEPOINT the way PostgreSQL does.

    The sqlite3 driver defers BEGIN until the first DML statement, which
    turns a released SAVEPOINT into a commit. Taking over transaction
    control and starting with ``BEGIN IMMEDIATE`` gives savepoints their
    normal semantics and serialises concurrent writers instead of failing
    them with ``database is locked``.
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: typ.Any, _record: object) -> None:  # noqa: ANN401
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: typ.Any) -> None:  # noqa: ANN401
        conn.exec_driver_sql("BEGIN IMMEDIATE")


async def init_tracking_storage(engine: AsyncEngine) -> None:
    """Create all tables registered with Base if they are absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
