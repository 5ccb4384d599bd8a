"""Scores derived from ledger totals at read time.

Scores are pure functions of the running counters and a
:class:`ScoringWeights` instance, so changing the weights re-scores every
contributor without touching stored data. All scores lie in ``[0, 100]``.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from taskline.stats.metrics import CommitSize, categorize_commit_size

if typ.TYPE_CHECKING:
    import datetime as dt

    from taskline.tracking.storage import ContributorLedgerEntry

_SECONDS_PER_DAY = 86_400
_MAX_SCORE = 100.0


@dc.dataclass(frozen=True, slots=True)
class ScoringWeights:
    """Normalisation targets and weights for the derived scores."""

    commits_target: float = 50.0
    lines_added_target: float = 5000.0
    files_target: float = 200.0
    productivity_commit_weight: float = 0.4
    productivity_lines_weight: float = 0.4
    productivity_files_weight: float = 0.2
    impact_lines_per_commit_target: float = 100.0
    impact_files_per_commit_target: float = 10.0
    impact_lines_points: float = 70.0
    impact_files_points: float = 30.0
    consistency_commits_per_day_points: float = 20.0
    quality_by_size: typ.Mapping[CommitSize, float] = dc.field(
        default_factory=lambda: {
            CommitSize.EMPTY: 0.0,
            CommitSize.SMALL: 100.0,
            CommitSize.MEDIUM: 85.0,
            CommitSize.LARGE: 60.0,
            CommitSize.HUGE: 30.0,
        }
    )


DEFAULT_WEIGHTS = ScoringWeights()


@dc.dataclass(frozen=True, slots=True)
class LedgerTotals:
    """Read-only snapshot of one ledger entry."""

    contributor_email: str
    contributor_name: str | None
    commits: int
    lines_added: int
    lines_modified: int
    lines_deleted: int
    files_changed: int
    first_commit_at: dt.datetime | None
    last_commit_at: dt.datetime | None

    @classmethod
    def from_entry(cls, entry: ContributorLedgerEntry) -> LedgerTotals:
        """Snapshot a persisted ledger row."""
        return cls(
            contributor_email=entry.contributor_email,
            contributor_name=entry.contributor_name,
            commits=entry.total_commits,
            lines_added=entry.total_lines_added,
            lines_modified=entry.total_lines_modified,
            lines_deleted=entry.total_lines_deleted,
            files_changed=entry.total_files_changed,
            first_commit_at=entry.first_commit_at,
            last_commit_at=entry.last_commit_at,
        )

    @property
    def average_commit_size(self) -> float:
        """Changed lines per commit."""
        if self.commits <= 0:
            return 0.0
        total = self.lines_added + self.lines_modified + self.lines_deleted
        return total / self.commits


@dc.dataclass(frozen=True, slots=True)
class ContributorScores:
    """Derived scores for one contributor, rounded to two decimals."""

    productivity: float
    code_quality: float
    impact: float
    consistency: float


def _ratio(value: float, target: float) -> float:
    if target <= 0:
        return 0.0
    return min(value / target, 1.0)


def productivity_score(
    totals: LedgerTotals, weights: ScoringWeights = DEFAULT_WEIGHTS
) -> float:
    """Blend commit count, added lines and files touched against targets."""
    blended = (
        _ratio(totals.commits, weights.commits_target)
        * weights.productivity_commit_weight
        + _ratio(totals.lines_added, weights.lines_added_target)
        * weights.productivity_lines_weight
        + _ratio(totals.files_changed, weights.files_target)
        * weights.productivity_files_weight
    )
    return blended * _MAX_SCORE


def code_quality_score(
    totals: LedgerTotals, weights: ScoringWeights = DEFAULT_WEIGHTS
) -> float:
    """Score by the size class of the average commit; small commits score best."""
    if totals.commits <= 0:
        return 0.0
    size = categorize_commit_size(round(totals.average_commit_size))
    return weights.quality_by_size.get(size, 0.0)


def impact_score(totals: LedgerTotals, weights: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    """Reward added lines and file spread per commit."""
    if totals.commits <= 0:
        return 0.0
    lines_per_commit = totals.lines_added / totals.commits
    files_per_commit = totals.files_changed / totals.commits
    return (
        _ratio(lines_per_commit, weights.impact_lines_per_commit_target)
        * weights.impact_lines_points
        + _ratio(files_per_commit, weights.impact_files_per_commit_target)
        * weights.impact_files_points
    )


def consistency_score(
    totals: LedgerTotals, weights: ScoringWeights = DEFAULT_WEIGHTS
) -> float:
    """Commits per elapsed day between first and last commit.

    Fewer than two commits score zero; all commits within one day score
    the maximum.
    """
    if totals.commits < 2 or totals.first_commit_at is None or totals.last_commit_at is None:  # noqa: PLR2004
        return 0.0
    elapsed = totals.last_commit_at - totals.first_commit_at
    days = int(elapsed.total_seconds() // _SECONDS_PER_DAY)
    if days <= 0:
        return _MAX_SCORE
    per_day = totals.commits / days
    return min(per_day * weights.consistency_commits_per_day_points, _MAX_SCORE)


def score_contributor(
    totals: LedgerTotals, weights: ScoringWeights = DEFAULT_WEIGHTS
) -> ContributorScores:
    """Compute every score for ``totals``."""
    return ContributorScores(
        productivity=round(productivity_score(totals, weights), 2),
        code_quality=round(code_quality_score(totals, weights), 2),
        impact=round(impact_score(totals, weights), 2),
        consistency=round(consistency_score(totals, weights), 2),
    )
