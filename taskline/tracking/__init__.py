"""Task-tracking data model shared by the ingestion pipeline."""

from __future__ import annotations

from .enums import (
    ChangeKind,
    PriorityLevel,
    SprintStatus,
    StatsSource,
    TaskStatus,
    TaskType,
)
from .errors import TimezoneAwareRequiredError
from .storage import (
    Base,
    CommitRecord,
    ContributorLedgerEntry,
    FileChangeRecord,
    Notification,
    Project,
    Sprint,
    Task,
    User,
    UTCDateTime,
    enable_sqlite_transactions,
    init_tracking_storage,
)

__all__ = [
    "Base",
    "ChangeKind",
    "CommitRecord",
    "ContributorLedgerEntry",
    "FileChangeRecord",
    "Notification",
    "PriorityLevel",
    "Project",
    "Sprint",
    "SprintStatus",
    "StatsSource",
    "Task",
    "TaskStatus",
    "TaskType",
    "UTCDateTime",
    "User",
    "enable_sqlite_transactions",
    "init_tracking_storage",
]
