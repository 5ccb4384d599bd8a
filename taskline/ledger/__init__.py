"""Per-contributor running totals and derived scores."""

from __future__ import annotations

from .models import EMPTY_INCREMENT, LedgerIncrement
from .read import ContributorScoreService, ContributorSummary
from .scoring import (
    DEFAULT_WEIGHTS,
    ContributorScores,
    LedgerTotals,
    ScoringWeights,
    code_quality_score,
    consistency_score,
    impact_score,
    productivity_score,
    score_contributor,
)
from .service import ContributorLedger

__all__ = [
    "DEFAULT_WEIGHTS",
    "EMPTY_INCREMENT",
    "ContributorLedger",
    "ContributorScoreService",
    "ContributorScores",
    "ContributorSummary",
    "LedgerIncrement",
    "LedgerTotals",
    "ScoringWeights",
    "code_quality_score",
    "consistency_score",
    "impact_score",
    "productivity_score",
    "score_contributor",
]
