"""Per-commit line statistics with a remote-first, file-count fallback."""

from __future__ import annotations

import asyncio
import dataclasses as dc
import typing as typ
from pathlib import PurePosixPath

import httpx

from taskline.logging import get_logger, log_debug, log_warning
from taskline.tracking.enums import ChangeKind, StatsSource

from .errors import CommitDetailError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from taskline.webhooks.payload import CommitEvent

    from .client import CommitDetail, CommitDetailClient

logger = get_logger(__name__)

_DEFAULT_CONCURRENCY = 4


@dc.dataclass(frozen=True, slots=True)
class FileStatistics:
    """Line deltas the remote reported for one file."""

    path: str
    additions: int
    deletions: int
    modified: int


@dc.dataclass(frozen=True, slots=True)
class CommitStatistics:
    """Line and file totals recorded for a commit."""

    lines_added: int
    lines_modified: int
    lines_deleted: int
    files_changed: int
    source: StatsSource
    files: tuple[FileStatistics, ...] = ()

    @property
    def degraded(self) -> bool:
        """Return whether these figures came from the file-count fallback."""
        return self.source is StatsSource.FALLBACK

    @property
    def total_lines(self) -> int:
        """Sum of added, modified and deleted lines."""
        return self.lines_added + self.lines_modified + self.lines_deleted

    def for_path(self, path: str) -> FileStatistics | None:
        """Return the remote figures for ``path`` if it was reported."""
        return next((item for item in self.files if item.path == path), None)

    @classmethod
    def from_file_lists(cls, commit: CommitEvent) -> CommitStatistics:
        """Fallback: count touched files, report zero line deltas."""
        return cls(
            lines_added=0,
            lines_modified=0,
            lines_deleted=0,
            files_changed=commit.touched_file_count,
            source=StatsSource.FALLBACK,
        )

    @classmethod
    def from_detail(cls, detail: CommitDetail) -> CommitStatistics:
        """Derive totals from a commit detail response.

        Per file, modified lines are ``max(0, changes - additions - deletions)``.
        """
        files = tuple(
            FileStatistics(
                path=item.filename,
                additions=item.additions,
                deletions=item.deletions,
                modified=max(0, item.changes - item.additions - item.deletions),
            )
            for item in detail.files
        )
        return cls(
            lines_added=detail.stats.additions,
            lines_modified=sum(item.modified for item in files),
            lines_deleted=detail.stats.deletions,
            files_changed=len(files),
            source=StatsSource.REMOTE,
            files=files,
        )

    def is_empty(self) -> bool:
        """Return whether every total is zero."""
        return self.total_lines == 0 and self.files_changed == 0


@dc.dataclass(frozen=True, slots=True)
class FileChangeEstimate:
    """One file row to persist for a commit."""

    path: str
    extension: str | None
    kind: ChangeKind
    lines_added: int = 0
    lines_modified: int = 0
    lines_deleted: int = 0


def file_extension(path: str) -> str | None:
    """Return the lower-cased extension of ``path`` without the dot."""
    suffix = PurePosixPath(path).suffix
    return suffix[1:].lower() if len(suffix) > 1 else None


def _modified_estimate(
    path: str, stats: CommitStatistics, share: tuple[int, int, int]
) -> FileChangeEstimate:
    reported = stats.for_path(path)
    if reported is not None:
        added, modified, deleted = (
            reported.additions,
            reported.modified,
            reported.deletions,
        )
    else:
        added, modified, deleted = share
    return FileChangeEstimate(
        path=path,
        extension=file_extension(path),
        kind=ChangeKind.MODIFIED,
        lines_added=added,
        lines_modified=modified,
        lines_deleted=deleted,
    )


def estimate_file_changes(
    commit: CommitEvent, stats: CommitStatistics
) -> list[FileChangeEstimate]:
    """Build per-file rows for a commit.

    Added and removed files carry zero deltas. Modified files use the
    remote per-file figures when reported, otherwise an even integer share
    of the commit totals across ``files_changed``.
    """
    divisor = stats.files_changed
    share = (
        (
            stats.lines_added // divisor,
            stats.lines_modified // divisor,
            stats.lines_deleted // divisor,
        )
        if divisor
        else (0, 0, 0)
    )
    rows = [
        FileChangeEstimate(path=path, extension=file_extension(path), kind=ChangeKind.ADDED)
        for path in commit.added
    ]
    rows.extend(
        FileChangeEstimate(
            path=path, extension=file_extension(path), kind=ChangeKind.DELETED
        )
        for path in commit.removed
    )
    rows.extend(_modified_estimate(path, stats, share) for path in commit.modified)
    return rows


class StatisticsExtractor:
    """Compute :class:`CommitStatistics`, never raising for remote failures.

    Parameters
    ----------
    client
        Remote commit-detail client. ``None`` disables remote lookups so
        every commit uses the fallback.
    concurrency
        Maximum lookups in flight in :meth:`extract_many`.

    """

    def __init__(
        self,
        client: CommitDetailClient | None = None,
        *,
        concurrency: int = _DEFAULT_CONCURRENCY,
    ) -> None:
        """Store the client and concurrency bound."""
        if concurrency < 1:
            msg = "concurrency must be at least 1"
            raise ValueError(msg)
        self._client = client
        self._concurrency = concurrency

    async def extract(self, commit: CommitEvent) -> CommitStatistics:
        """Return remote statistics, or the fallback on any lookup failure."""
        if self._client is None or not commit.url:
            return CommitStatistics.from_file_lists(commit)

        try:
            detail = await self._client.fetch_commit(commit.url)
        except (CommitDetailError, httpx.HTTPError) as exc:
            log_warning(
                logger,
                "Commit stats degraded sha=%s reason=%s",
                commit.sha,
                exc,
            )
            return CommitStatistics.from_file_lists(commit)

        stats = CommitStatistics.from_detail(detail)
        if stats.is_empty():
            log_debug(logger, "Commit stats empty sha=%s; using file counts", commit.sha)
            return CommitStatistics.from_file_lists(commit)
        return stats

    async def extract_many(
        self, commits: cabc.Sequence[CommitEvent]
    ) -> dict[str, CommitStatistics]:
        """Extract statistics for ``commits`` with bounded concurrency."""
        semaphore = asyncio.Semaphore(self._concurrency)

        async def bounded(commit: CommitEvent) -> CommitStatistics:
            async with semaphore:
                return await self.extract(commit)

        results = await asyncio.gather(*(bounded(commit) for commit in commits))
        return {commit.sha: stats for commit, stats in zip(commits, results, strict=True)}
