"""Commit ingestion pipeline.

One call handles one payload:

1. decode the body and resolve the project it addresses,
2. verify the signature against the project's secret,
3. fetch statistics for commits not yet recorded (outside any transaction),
4. in a single transaction, per commit in payload order: claim the
   ``(project_id, sha)`` key, record file changes, reconcile the task named
   by the commit's directive and fold the commit into the ledger,
5. after commit, hand change events to the notification emitter.

Payload-level failures in steps 1-2 raise :class:`WebhookError` subclasses
before anything is written.
"""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ

from sqlalchemy import or_, select

from taskline.common.time import utcnow
from taskline.directives import parse_directive
from taskline.ledger.models import LedgerIncrement
from taskline.ledger.service import ContributorLedger
from taskline.stats.extractor import (
    CommitStatistics,
    StatisticsExtractor,
    estimate_file_changes,
)
from taskline.stats.metrics import CommitSize, categorize_commit_size, commit_impact_score
from taskline.tasks.reconciler import TaskReconciler
from taskline.tracking.storage import CommitRecord, FileChangeRecord, Project

from .dedupe import CommitDeduplicator
from .errors import ProjectNotFoundError, WebhookError
from .observability import IngestionEventLogger
from .payload import decode_commit_submission, decode_push_payload
from .signature import verify_signature

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from taskline.notifications.emitter import NotificationEmitter
    from taskline.tasks.events import TaskChangeEvent

    from .payload import CommitEvent, IncomingPush, RepositoryRef

_GIT_SUFFIX = ".git"


class CommitStatus(enum.StrEnum):
    """What happened to one commit of a payload."""

    RECORDED = "recorded"
    DUPLICATE = "duplicate"


class IngestionSource(enum.StrEnum):
    """Entry point a payload arrived through."""

    WEBHOOK = "webhook"
    SUBMISSION = "submission"


class ScoreInvalidator(typ.Protocol):
    """Anything holding per-project cached scores."""

    def invalidate(self, project_id: str) -> None:
        """Drop cached state for ``project_id``."""
        ...


@dc.dataclass(frozen=True, slots=True)
class CommitOutcome:
    """Per-commit result reported back to the caller."""

    sha: str
    status: CommitStatus
    feature_code: str | None = None
    task_created: bool = False
    degraded: bool = False
    size: CommitSize | None = None
    impact: int | None = None

    def to_dict(self) -> dict[str, typ.Any]:
        """Return a JSON-ready mapping."""
        return {
            "sha": self.sha,
            "status": self.status.value,
            "featureCode": self.feature_code,
            "taskCreated": self.task_created,
            "degraded": self.degraded,
            "size": self.size.value if self.size else None,
            "impact": self.impact,
        }


@dc.dataclass(frozen=True, slots=True)
class IngestionResult:
    """Summary of one ingested payload."""

    project_id: str
    authenticated: bool
    outcomes: tuple[CommitOutcome, ...] = ()

    def _recorded(self) -> list[CommitOutcome]:
        return [item for item in self.outcomes if item.status is CommitStatus.RECORDED]

    @property
    def commits_recorded(self) -> int:
        """Commits written by this call."""
        return len(self._recorded())

    @property
    def duplicates(self) -> int:
        """Commits skipped because they were already recorded."""
        return sum(1 for item in self.outcomes if item.status is CommitStatus.DUPLICATE)

    @property
    def degraded(self) -> int:
        """Recorded commits whose statistics came from file counts."""
        return sum(1 for item in self._recorded() if item.degraded)

    @property
    def tasks_created(self) -> int:
        """Tasks created by directives in this payload."""
        return sum(1 for item in self._recorded() if item.task_created)

    @property
    def tasks_updated(self) -> int:
        """Directives applied to tasks that already existed."""
        return sum(
            1
            for item in self._recorded()
            if item.feature_code is not None and not item.task_created
        )

    def to_dict(self) -> dict[str, typ.Any]:
        """Return a JSON-ready mapping."""
        return {
            "projectId": self.project_id,
            "authenticated": self.authenticated,
            "commitsRecorded": self.commits_recorded,
            "duplicates": self.duplicates,
            "degraded": self.degraded,
            "tasksCreated": self.tasks_created,
            "tasksUpdated": self.tasks_updated,
            "commits": [item.to_dict() for item in self.outcomes],
        }


@dc.dataclass(frozen=True, slots=True)
class _ResolvedProject:
    id: str
    webhook_secret: str | None


def _url_variants(url: str) -> list[str]:
    base = url.strip().rstrip("/")
    stripped = base.removesuffix(_GIT_SUFFIX)
    return sorted({base, stripped, f"{stripped}{_GIT_SUFFIX}"})


class CommitIngestionService:
    """Run payloads through the ingestion pipeline.

    Parameters
    ----------
    session_factory
        Source of database sessions; one read session and one write
        session are opened per call, never concurrently.
    stats_extractor
        Statistics source; defaults to file-count statistics only.
    emitter
        Receives change events after the transaction committed. ``None``
        drops them.
    score_cache
        Invalidated for the project whenever commits were recorded.

    """

    def __init__(  # noqa: PLR0913
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        stats_extractor: StatisticsExtractor | None = None,
        reconciler: TaskReconciler | None = None,
        ledger: ContributorLedger | None = None,
        deduplicator: CommitDeduplicator | None = None,
        emitter: NotificationEmitter | None = None,
        score_cache: ScoreInvalidator | None = None,
        event_logger: IngestionEventLogger | None = None,
    ) -> None:
        """Store collaborators, defaulting the stateless ones."""
        self._session_factory = session_factory
        self._stats = stats_extractor or StatisticsExtractor()
        self._reconciler = reconciler or TaskReconciler()
        self._ledger = ledger or ContributorLedger()
        self._dedupe = deduplicator or CommitDeduplicator()
        self._emitter = emitter
        self._score_cache = score_cache
        self._events = event_logger or IngestionEventLogger()

    async def ingest_webhook(self, body: bytes, signature: str | None) -> IngestionResult:
        """Ingest a push webhook body."""
        return await self._ingest(
            IngestionSource.WEBHOOK, body, signature, decode_push_payload
        )

    async def ingest_submission(
        self, body: bytes, signature: str | None
    ) -> IngestionResult:
        """Ingest a direct commit submission body."""
        return await self._ingest(
            IngestionSource.SUBMISSION, body, signature, decode_commit_submission
        )

    async def _ingest(
        self,
        source: IngestionSource,
        body: bytes,
        signature: str | None,
        decode: cabc.Callable[[bytes], IncomingPush],
    ) -> IngestionResult:
        try:
            push = decode(body)
        except WebhookError as exc:
            self._events.log_payload_rejected(source, exc)
            raise
        return await self.ingest(push, body, signature, source=source)

    async def ingest(
        self,
        push: IncomingPush,
        body: bytes,
        signature: str | None,
        *,
        source: IngestionSource = IngestionSource.WEBHOOK,
    ) -> IngestionResult:
        """Ingest an already decoded payload.

        ``body`` must be the exact bytes the signature was computed over.

        Raises
        ------
        ProjectNotFoundError
            If no project matches the payload's repository identity.
        AuthenticationError
            If the signature does not match the project's secret.

        """
        started_at = utcnow()
        self._events.log_payload_started(
            source, push.repository.describe(), len(push.commits)
        )
        try:
            async with self._session_factory() as session:
                project = await self._resolve_project(session, push.repository)
                authenticated = verify_signature(
                    body, signature, project.webhook_secret
                )
                seen = await self._dedupe.seen(
                    session, project.id, (commit.sha for commit in push.commits)
                )
        except WebhookError as exc:
            self._events.log_payload_rejected(source, exc)
            raise

        fresh = _unique_unseen(push.commits, seen)
        stats = await self._stats.extract_many(fresh)

        outcomes, events = await self._record(project.id, push.commits, stats)
        result = IngestionResult(
            project_id=project.id,
            authenticated=authenticated,
            outcomes=tuple(outcomes),
        )
        self._events.log_payload_completed(project.id, result, utcnow() - started_at)

        if result.commits_recorded and self._score_cache is not None:
            self._score_cache.invalidate(project.id)
        await self._emit(project.id, events)
        return result

    async def _resolve_project(
        self, session: AsyncSession, ref: RepositoryRef
    ) -> _ResolvedProject:
        project: Project | None = None
        if ref.project_id is not None:
            project = await session.get(Project, ref.project_id)
        if project is None and ref.external_id is not None:
            project = await session.scalar(
                select(Project).where(Project.repo_external_id == ref.external_id)
            )
        if project is None and ref.url is not None:
            variants = _url_variants(ref.url)
            project = await session.scalar(
                select(Project)
                .where(or_(*(Project.repo_url == variant for variant in variants)))
                .order_by(Project.created_at)
                .limit(1)
            )
        if project is None:
            raise ProjectNotFoundError(ref.describe())
        return _ResolvedProject(id=project.id, webhook_secret=project.webhook_secret)

    async def _record(
        self,
        project_id: str,
        commits: cabc.Sequence[CommitEvent],
        stats: cabc.Mapping[str, CommitStatistics],
    ) -> tuple[list[CommitOutcome], list[TaskChangeEvent]]:
        outcomes: list[CommitOutcome] = []
        events: list[TaskChangeEvent] = []
        increments: dict[str, LedgerIncrement] = {}

        async with self._session_factory() as session, session.begin():
            for commit in commits:
                commit_stats = stats.get(commit.sha) or CommitStatistics.from_file_lists(
                    commit
                )
                record = _build_record(project_id, commit, commit_stats)
                if not await self._dedupe.claim(session, record):
                    self._events.log_commit_duplicate(project_id, commit.sha)
                    outcomes.append(
                        CommitOutcome(sha=commit.sha, status=CommitStatus.DUPLICATE)
                    )
                    continue

                if commit_stats.degraded:
                    self._events.log_stats_degraded(
                        project_id, commit.sha, commit_stats.files_changed
                    )

                feature_code: str | None = None
                created = False
                directive = parse_directive(commit.message)
                if directive is not None:
                    outcome = await self._reconciler.reconcile(
                        session, project_id, directive, commit_sha=commit.sha
                    )
                    record.task_id = outcome.task.id
                    feature_code = outcome.task.feature_code
                    created = outcome.created
                    events.extend(outcome.events)

                if commit.ledger_key is not None:
                    increment = LedgerIncrement.for_commit(commit, commit_stats)
                    previous = increments.get(commit.ledger_key)
                    increments[commit.ledger_key] = (
                        previous.combine(increment) if previous else increment
                    )

                outcomes.append(
                    CommitOutcome(
                        sha=commit.sha,
                        status=CommitStatus.RECORDED,
                        feature_code=feature_code,
                        task_created=created,
                        degraded=commit_stats.degraded,
                        size=categorize_commit_size(commit_stats.total_lines),
                        impact=commit_impact_score(
                            commit_stats.lines_added,
                            commit_stats.lines_modified,
                            commit_stats.lines_deleted,
                        ),
                    )
                )

            await self._ledger.apply_many(session, project_id, increments)

        return (outcomes, events)

    async def _emit(self, project_id: str, events: list[TaskChangeEvent]) -> None:
        if not events or self._emitter is None:
            return
        try:
            await self._emitter.emit(events)
        except Exception as exc:  # noqa: BLE001
            self._events.log_notify_failed(project_id, len(events), exc)


def _unique_unseen(
    commits: cabc.Sequence[CommitEvent], seen: frozenset[str]
) -> list[CommitEvent]:
    fresh: dict[str, CommitEvent] = {}
    for commit in commits:
        if commit.sha not in seen and commit.sha not in fresh:
            fresh[commit.sha] = commit
    return list(fresh.values())


def _build_record(
    project_id: str, commit: CommitEvent, stats: CommitStatistics
) -> CommitRecord:
    return CommitRecord(
        project_id=project_id,
        sha=commit.sha,
        message=commit.message,
        author_name=commit.author_name,
        author_email=commit.author_email,
        committed_at=commit.committed_at,
        url=commit.url,
        lines_added=stats.lines_added,
        lines_modified=stats.lines_modified,
        lines_deleted=stats.lines_deleted,
        files_changed=stats.files_changed,
        stats_source=stats.source.value,
        file_changes=[
            FileChangeRecord(
                project_id=project_id,
                file_path=change.path,
                file_extension=change.extension,
                change_kind=change.kind.value,
                lines_added=change.lines_added,
                lines_modified=change.lines_modified,
                lines_deleted=change.lines_deleted,
            )
            for change in estimate_file_changes(commit, stats)
        ],
    )
