"""Value objects for contributor ledger updates."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

if typ.TYPE_CHECKING:
    import datetime as dt

    from taskline.stats.extractor import CommitStatistics
    from taskline.webhooks.payload import CommitEvent


def _earliest(a: dt.datetime | None, b: dt.datetime | None) -> dt.datetime | None:
    if a is None:
        return b
    if b is None:
        return a
    return min(a, b)


def _latest(a: dt.datetime | None, b: dt.datetime | None) -> dt.datetime | None:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


@dc.dataclass(frozen=True, slots=True)
class LedgerIncrement:
    """Additive change to one contributor's running totals.

    :meth:`combine` is commutative and associative: counters add and the
    timestamp window widens, so increments may be folded in any order.
    ``contributor_name`` follows the increment with the latest commit,
    ties broken by the larger name.
    """

    commits: int = 0
    lines_added: int = 0
    lines_modified: int = 0
    lines_deleted: int = 0
    files_changed: int = 0
    first_commit_at: dt.datetime | None = None
    last_commit_at: dt.datetime | None = None
    contributor_name: str | None = None

    @classmethod
    def for_commit(
        cls, commit: CommitEvent, stats: CommitStatistics
    ) -> LedgerIncrement:
        """Return the increment contributed by one ingested commit."""
        return cls(
            commits=1,
            lines_added=stats.lines_added,
            lines_modified=stats.lines_modified,
            lines_deleted=stats.lines_deleted,
            files_changed=stats.files_changed,
            first_commit_at=commit.committed_at,
            last_commit_at=commit.committed_at,
            contributor_name=commit.author_name,
        )

    def combine(self, other: LedgerIncrement) -> LedgerIncrement:
        """Return the sum of two increments."""
        return LedgerIncrement(
            commits=self.commits + other.commits,
            lines_added=self.lines_added + other.lines_added,
            lines_modified=self.lines_modified + other.lines_modified,
            lines_deleted=self.lines_deleted + other.lines_deleted,
            files_changed=self.files_changed + other.files_changed,
            first_commit_at=_earliest(self.first_commit_at, other.first_commit_at),
            last_commit_at=_latest(self.last_commit_at, other.last_commit_at),
            contributor_name=self._pick_name(other),
        )

    def _pick_name(self, other: LedgerIncrement) -> str | None:
        candidates = [
            (inc.last_commit_at, inc.contributor_name)
            for inc in (self, other)
            if inc.contributor_name
        ]
        if not candidates:
            return None
        if any(stamp is None for stamp, _ in candidates):
            return max(name for _, name in candidates if name)
        return max(candidates)[1]


EMPTY_INCREMENT = LedgerIncrement()
