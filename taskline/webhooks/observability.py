"""Structured log events for commit ingestion.

Every event is a single line ``[<event>] key=value ...`` so log
aggregators can split on the bracketed event name.
"""

from __future__ import annotations

import enum
import typing as typ

from taskline.logging import get_logger, log_debug, log_exception, log_info, log_warning

if typ.TYPE_CHECKING:
    import datetime as dt

    from .errors import WebhookError
    from .service import IngestionResult

logger = get_logger(__name__)


class IngestionEventType(enum.StrEnum):
    """Event names emitted during ingestion."""

    PAYLOAD_STARTED = "ingestion.payload.started"
    PAYLOAD_COMPLETED = "ingestion.payload.completed"
    PAYLOAD_REJECTED = "ingestion.payload.rejected"
    COMMIT_DUPLICATE = "ingestion.commit.duplicate"
    STATS_DEGRADED = "ingestion.stats.degraded"
    NOTIFY_FAILED = "notifications.emit.failed"


class IngestionEventLogger:
    """Emit ingestion events through femtologging.

    INFO for payload start and completion, DEBUG for duplicates, WARNING
    for rejections and degraded statistics, ERROR for notification
    failures.
    """

    def log_payload_started(self, source: str, reference: str, commit_count: int) -> None:
        """Log receipt of a payload before any persistence."""
        log_info(
            logger,
            "[%s] source=%s repository=%s commits=%d",
            IngestionEventType.PAYLOAD_STARTED,
            source,
            reference,
            commit_count,
        )

    def log_payload_completed(
        self, project_id: str, result: IngestionResult, duration: dt.timedelta
    ) -> None:
        """Log a committed payload with its counters."""
        log_info(
            logger,
            "[%s] project_id=%s duration_seconds=%.3f commits_recorded=%d "
            "duplicates=%d degraded=%d tasks_created=%d tasks_updated=%d",
            IngestionEventType.PAYLOAD_COMPLETED,
            project_id,
            duration.total_seconds(),
            result.commits_recorded,
            result.duplicates,
            result.degraded,
            result.tasks_created,
            result.tasks_updated,
        )

    def log_payload_rejected(self, source: str, error: WebhookError) -> None:
        """Log a payload refused before anything was written."""
        log_warning(
            logger,
            "[%s] source=%s error_type=%s reason=%s error_message=%s",
            IngestionEventType.PAYLOAD_REJECTED,
            source,
            type(error).__name__,
            error.reason,
            str(error),
        )

    def log_commit_duplicate(self, project_id: str, sha: str) -> None:
        """Log a commit skipped because it was already recorded."""
        log_debug(
            logger,
            "[%s] project_id=%s sha=%s",
            IngestionEventType.COMMIT_DUPLICATE,
            project_id,
            sha,
        )

    def log_stats_degraded(self, project_id: str, sha: str, files_changed: int) -> None:
        """Log a commit whose statistics came from file counts."""
        log_warning(
            logger,
            "[%s] project_id=%s sha=%s files_changed=%d",
            IngestionEventType.STATS_DEGRADED,
            project_id,
            sha,
            files_changed,
        )

    def log_notify_failed(
        self, project_id: str, event_count: int, error: Exception
    ) -> None:
        """Log a notification failure; ingestion has already committed."""
        log_exception(
            logger,
            f"[{IngestionEventType.NOTIFY_FAILED}] project_id={project_id} "
            f"events={event_count} error_type={type(error).__name__} "
            f"error_message={error}",
            error,
        )
