"""Unit tests for environment-driven configuration."""

from __future__ import annotations

import pytest

from taskline.config import NotificationMode, TasklineConfig
from taskline.stats.client import CommitDetailConfig

_VARS = (
    "TASKLINE_STATS_CONCURRENCY",
    "TASKLINE_SCORE_CACHE_TTL_S",
    "TASKLINE_NOTIFICATIONS",
    "TASKLINE_GITHUB_TOKEN",
    "TASKLINE_STATS_TIMEOUT_S",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _VARS:
        monkeypatch.delenv(name, raising=False)


class TestTasklineConfig:
    """TasklineConfig.from_env parsing."""

    def test_defaults(self) -> None:
        """Unset variables give the documented defaults."""
        config = TasklineConfig.from_env()
        assert config == TasklineConfig(), "defaults differ from dataclass defaults"
        assert config.stats_concurrency == 4
        assert config.score_cache_ttl_s == 300.0
        assert config.notification_mode is NotificationMode.LOG

    def test_reads_values(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Set variables override defaults."""
        monkeypatch.setenv("TASKLINE_STATS_CONCURRENCY", "8")
        monkeypatch.setenv("TASKLINE_SCORE_CACHE_TTL_S", "12.5")
        monkeypatch.setenv("TASKLINE_NOTIFICATIONS", "Dramatiq")

        config = TasklineConfig.from_env()

        assert config.stats_concurrency == 8
        assert config.score_cache_ttl_s == 12.5
        assert config.notification_mode is NotificationMode.DRAMATIQ

    @pytest.mark.parametrize(
        ("name", "value", "match"),
        [
            pytest.param("TASKLINE_STATS_CONCURRENCY", "0", "must be positive", id="zero"),
            pytest.param("TASKLINE_STATS_CONCURRENCY", "many", "must be an integer", id="word"),
            pytest.param("TASKLINE_SCORE_CACHE_TTL_S", "-1", "must be positive", id="negative"),
            pytest.param("TASKLINE_NOTIFICATIONS", "email", "TASKLINE_NOTIFICATIONS", id="mode"),
        ],
    )
    def test_invalid_values_name_the_variable(
        self, monkeypatch: pytest.MonkeyPatch, name: str, value: str, match: str
    ) -> None:
        """Invalid values raise ValueError mentioning the variable."""
        monkeypatch.setenv(name, value)
        with pytest.raises(ValueError, match=match) as excinfo:
            TasklineConfig.from_env()
        assert name in str(excinfo.value), "error should name the variable"


class TestCommitDetailConfig:
    """CommitDetailConfig.from_env parsing."""

    def test_defaults(self) -> None:
        """Anonymous access with a ten second timeout by default."""
        config = CommitDetailConfig.from_env()
        assert config.token is None
        assert config.timeout_s == 10.0

    def test_reads_token_and_timeout(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Token and timeout come from the environment."""
        monkeypatch.setenv("TASKLINE_GITHUB_TOKEN", " ghp_abc ")
        monkeypatch.setenv("TASKLINE_STATS_TIMEOUT_S", "2.5")
        config = CommitDetailConfig.from_env()
        assert config.token == "ghp_abc"
        assert config.timeout_s == 2.5
