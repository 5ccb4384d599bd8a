"""Cached, scored ledger listings per project."""

from __future__ import annotations

import collections
import dataclasses as dc
import typing as typ

from taskline.logging import get_logger, log_debug

from .scoring import DEFAULT_WEIGHTS, LedgerTotals, ScoringWeights, score_contributor
from .service import ContributorLedger

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from taskline.common.cache import TTLCache

    from .scoring import ContributorScores

logger = get_logger(__name__)


@dc.dataclass(frozen=True, slots=True)
class ContributorSummary:
    """Ledger totals plus derived scores for one contributor."""

    totals: LedgerTotals
    scores: ContributorScores

    def to_dict(self) -> dict[str, typ.Any]:
        """Return a JSON-ready mapping."""
        totals = self.totals
        return {
            "email": totals.contributor_email,
            "name": totals.contributor_name,
            "totalCommits": totals.commits,
            "linesAdded": totals.lines_added,
            "linesModified": totals.lines_modified,
            "linesDeleted": totals.lines_deleted,
            "filesChanged": totals.files_changed,
            "firstCommitAt": (
                totals.first_commit_at.isoformat() if totals.first_commit_at else None
            ),
            "lastCommitAt": (
                totals.last_commit_at.isoformat() if totals.last_commit_at else None
            ),
            "scores": dc.asdict(self.scores),
        }


type ScoreCache = TTLCache[str, tuple[ContributorSummary, ...]]


class ContributorScoreService:
    """List a project's contributors with scores, caching per project.

    The cache is injected so its lifetime and TTL belong to the caller;
    ingestion calls :meth:`invalidate` after committing a project's
    commits.

    A listing read while the project is invalidated is returned but not
    cached; a per-project generation counter detects the overlap.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: ScoreCache,
        *,
        weights: ScoringWeights = DEFAULT_WEIGHTS,
        ledger: ContributorLedger | None = None,
    ) -> None:
        """Store collaborators."""
        self._session_factory = session_factory
        self._cache = cache
        self._weights = weights
        self._ledger = ledger or ContributorLedger()
        self._generations: collections.Counter[str] = collections.Counter()

    async def list_scores(self, project_id: str) -> tuple[ContributorSummary, ...]:
        """Return summaries sorted by productivity, highest first."""
        cached = self._cache.get(project_id)
        if cached is not None:
            return cached

        generation = self._generations[project_id]
        async with self._session_factory() as session:
            entries = await self._ledger.entries(session, project_id)

        summaries = tuple(
            sorted(
                (
                    ContributorSummary(
                        totals=totals, scores=score_contributor(totals, self._weights)
                    )
                    for totals in map(LedgerTotals.from_entry, entries)
                ),
                key=lambda item: (-item.scores.productivity, item.totals.contributor_email),
            )
        )
        if self._generations[project_id] != generation:
            log_debug(logger, "Scores for %s invalidated during read; not cached", project_id)
            return summaries
        self._cache.set(project_id, summaries)
        log_debug(logger, "Cached %d contributor scores for %s", len(summaries), project_id)
        return summaries

    def invalidate(self, project_id: str) -> None:
        """Drop the cached listing for ``project_id``."""
        self._generations[project_id] += 1
        self._cache.invalidate(project_id)
