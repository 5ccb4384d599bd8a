"""Build the ingestion and scoring services from environment configuration.

Usage
-----
::

    from taskline.api.factory import build_services

    services = build_services(session_factory, database_url=url)
    app = create_app(services.to_dependencies(session_factory))

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from taskline.common.cache import TTLCache
from taskline.config import NotificationMode, TasklineConfig
from taskline.ledger.read import ContributorScoreService
from taskline.notifications import (
    DramatiqNotificationEmitter,
    LoggingNotificationEmitter,
)
from taskline.stats.client import CommitDetailConfig, GitHubCommitDetailClient
from taskline.stats.extractor import StatisticsExtractor
from taskline.webhooks.observability import IngestionEventLogger
from taskline.webhooks.service import CommitIngestionService

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from taskline.api.app import AppDependencies
    from taskline.notifications import NotificationEmitter

__all__ = ["Services", "build_emitter", "build_services"]


@dc.dataclass(frozen=True, slots=True)
class Services:
    """Services shared by the API resources of one process."""

    ingestion: CommitIngestionService
    scores: ContributorScoreService
    stats_client: GitHubCommitDetailClient

    def to_dependencies(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> AppDependencies:
        """Return :class:`AppDependencies` wired to these services."""
        from taskline.api.app import AppDependencies

        return AppDependencies(
            session_factory=session_factory,
            ingestion_service=self.ingestion,
            score_service=self.scores,
            shutdown_hooks=(self.stats_client.aclose,),
        )


def build_emitter(config: TasklineConfig, database_url: str) -> NotificationEmitter:
    """Return the emitter selected by ``TASKLINE_NOTIFICATIONS``."""
    if config.notification_mode is NotificationMode.DRAMATIQ:
        return DramatiqNotificationEmitter(database_url)
    return LoggingNotificationEmitter()


def build_services(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    database_url: str,
    config: TasklineConfig | None = None,
) -> Services:
    """Assemble services from ``config`` (read from the environment by default).

    The commit-detail client owns an ``httpx.AsyncClient``;
    :meth:`Services.to_dependencies` registers its ``aclose`` as a
    shutdown hook.
    """
    config = config or TasklineConfig.from_env()
    stats_client = GitHubCommitDetailClient(CommitDetailConfig.from_env())
    scores = ContributorScoreService(
        session_factory,
        TTLCache(config.score_cache_ttl_s),
    )
    ingestion = CommitIngestionService(
        session_factory,
        stats_extractor=StatisticsExtractor(
            stats_client, concurrency=config.stats_concurrency
        ),
        emitter=build_emitter(config, database_url),
        score_cache=scores,
        event_logger=IngestionEventLogger(),
    )
    return Services(ingestion=ingestion, scores=scores, stats_client=stats_client)
