"""Commit statistics extraction."""

from __future__ import annotations

from .client import (
    CommitDetail,
    CommitDetailClient,
    CommitDetailConfig,
    GitHubCommitDetailClient,
    commit_api_url,
)
from .errors import CommitDetailError
from .extractor import (
    CommitStatistics,
    FileChangeEstimate,
    FileStatistics,
    StatisticsExtractor,
    estimate_file_changes,
    file_extension,
)
from .metrics import CommitSize, categorize_commit_size, commit_impact_score

__all__ = [
    "CommitDetail",
    "CommitDetailClient",
    "CommitDetailConfig",
    "CommitDetailError",
    "CommitSize",
    "CommitStatistics",
    "FileChangeEstimate",
    "FileStatistics",
    "GitHubCommitDetailClient",
    "StatisticsExtractor",
    "categorize_commit_size",
    "commit_api_url",
    "commit_impact_score",
    "estimate_file_changes",
    "file_extension",
]
