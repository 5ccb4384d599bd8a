"""Remote commit-detail lookups over the GitHub REST API."""

from __future__ import annotations

import dataclasses
import os
import re
import typing as typ

import httpx
import msgspec

from taskline.config import env_positive_float

from .errors import CommitDetailError

_HTML_COMMIT_RE = re.compile(
    r"https?://github\.com/(?P<owner>[^/\s]+)/(?P<repo>[^/\s]+)/commit/(?P<sha>[0-9A-Fa-f]+)/?"
)
_HTTP_ERROR_THRESHOLD = 400


class CommitDetailStats(msgspec.Struct, frozen=True):
    """``stats`` object of a commit detail response."""

    additions: int = 0
    deletions: int = 0
    total: int = 0


class CommitDetailFile(msgspec.Struct, frozen=True):
    """One entry of ``files[]``."""

    filename: str = ""
    status: str | None = None
    additions: int = 0
    deletions: int = 0
    changes: int = 0


class CommitDetail(msgspec.Struct, frozen=True):
    """The subset of a commit detail response used for statistics."""

    sha: str | None = None
    stats: CommitDetailStats = msgspec.field(default_factory=CommitDetailStats)
    files: list[CommitDetailFile] = msgspec.field(default_factory=list)


class CommitDetailClient(typ.Protocol):
    """Interface for fetching commit detail by URL."""

    async def fetch_commit(self, url: str) -> CommitDetail:
        """Return commit detail for a commit page or API URL."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class CommitDetailConfig:
    """Configuration for the commit-detail client."""

    token: str | None = None
    api_base: str = "https://api.github.com"
    timeout_s: float = 10.0
    user_agent: str = "taskline/0.1"

    @classmethod
    def from_env(cls) -> CommitDetailConfig:
        """Build configuration from ``TASKLINE_GITHUB_TOKEN`` and ``TASKLINE_STATS_TIMEOUT_S``.

        The token is optional; anonymous lookups work against public
        repositories at a lower rate limit.
        """
        token = os.environ.get("TASKLINE_GITHUB_TOKEN", "").strip() or None
        timeout_s = env_positive_float("TASKLINE_STATS_TIMEOUT_S", 10.0)
        return cls(token=token, timeout_s=timeout_s)


def commit_api_url(url: str, *, api_base: str = "https://api.github.com") -> str:
    """Map a commit page URL to its REST detail URL.

    ``https://github.com/o/r/commit/<sha>`` becomes
    ``<api_base>/repos/o/r/commits/<sha>``. URLs already under ``api_base``
    are returned unchanged.
    """
    candidate = url.strip()
    if candidate.startswith(api_base.rstrip("/") + "/"):
        return candidate
    match = _HTML_COMMIT_RE.fullmatch(candidate)
    if match is None:
        raise CommitDetailError.unsupported_url(url)
    return (
        f"{api_base.rstrip('/')}/repos/{match['owner']}/{match['repo']}"
        f"/commits/{match['sha']}"
    )


class GitHubCommitDetailClient:
    """httpx implementation of :class:`CommitDetailClient`."""

    def __init__(
        self,
        config: CommitDetailConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with the provided API configuration."""
        self._config = config
        self._owns_client = http_client is None
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": config.user_agent,
        }
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"
        self._headers = headers
        self._client = http_client or httpx.AsyncClient(timeout=config.timeout_s)

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def fetch_commit(self, url: str) -> CommitDetail:
        """Fetch and decode commit detail.

        Raises
        ------
        CommitDetailError
            On unsupported URLs, transport failures or timeouts, non-2xx
            responses, and undecodable bodies.

        """
        target = commit_api_url(url, api_base=self._config.api_base)
        try:
            response = await self._client.get(target, headers=self._headers)
        except httpx.HTTPError as exc:
            raise CommitDetailError.transport_failure(exc) from exc

        if response.status_code >= _HTTP_ERROR_THRESHOLD:
            raise CommitDetailError.http_error(response.status_code)

        try:
            return msgspec.json.decode(response.content, type=CommitDetail)
        except msgspec.DecodeError as exc:
            raise CommitDetailError.invalid_response(str(exc)) from exc
