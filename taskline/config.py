"""Service configuration read from ``TASKLINE_*`` environment variables.

Usage
-----
Defaults suit local development:

>>> config = TasklineConfig()
>>> config.stats_concurrency
4

Or load from the environment:

>>> import os
>>> os.environ["TASKLINE_SCORE_CACHE_TTL_S"] = "60"
>>> TasklineConfig.from_env().score_cache_ttl_s
60.0

"""

from __future__ import annotations

import dataclasses as dc
import enum
import os


class NotificationMode(enum.StrEnum):
    """How task change events leave the ingestion process."""

    LOG = "log"
    DRAMATIQ = "dramatiq"


def env_positive_int(env_var: str, default: int) -> int:
    """Read a positive integer env var, falling back to a default."""
    raw = os.environ.get(env_var, "")
    if not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        msg = f"{env_var} must be an integer, got: {raw!r}"
        raise ValueError(msg) from exc
    if value < 1:
        msg = f"{env_var} must be positive, got: {value}"
        raise ValueError(msg)
    return value


def env_positive_float(env_var: str, default: float) -> float:
    """Read a positive float env var, falling back to a default."""
    raw = os.environ.get(env_var, "")
    if not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        msg = f"{env_var} must be a number, got: {raw!r}"
        raise ValueError(msg) from exc
    if value <= 0:
        msg = f"{env_var} must be positive, got: {value}"
        raise ValueError(msg)
    return value


@dc.dataclass(frozen=True, slots=True)
class TasklineConfig:
    """Tunables for the ingestion pipeline.

    Attributes
    ----------
    stats_concurrency
        Commit-detail lookups in flight per payload.
    score_cache_ttl_s
        Seconds a project's contributor score listing stays cached.
    notification_mode
        ``log`` writes change events to the log; ``dramatiq`` enqueues them
        for the notification actor.

    """

    stats_concurrency: int = 4
    score_cache_ttl_s: float = 300.0
    notification_mode: NotificationMode = NotificationMode.LOG

    @classmethod
    def from_env(cls) -> TasklineConfig:
        """Create configuration from environment variables.

        Reads ``TASKLINE_STATS_CONCURRENCY``, ``TASKLINE_SCORE_CACHE_TTL_S``
        and ``TASKLINE_NOTIFICATIONS``.

        Raises
        ------
        ValueError
            If a numeric variable is not positive or the notification mode
            is unknown.

        """
        raw_mode = os.environ.get("TASKLINE_NOTIFICATIONS", "").strip().lower()
        try:
            mode = NotificationMode(raw_mode) if raw_mode else NotificationMode.LOG
        except ValueError as exc:
            msg = f"TASKLINE_NOTIFICATIONS must be 'log' or 'dramatiq', got: {raw_mode!r}"
            raise ValueError(msg) from exc

        return cls(
            stats_concurrency=env_positive_int("TASKLINE_STATS_CONCURRENCY", 4),
            score_cache_ttl_s=env_positive_float("TASKLINE_SCORE_CACHE_TTL_S", 300.0),
            notification_mode=mode,
        )
