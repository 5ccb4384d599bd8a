"""Wire shapes for push webhooks and direct submissions.

Both shapes decode with msgspec and normalise into :class:`IncomingPush`,
the only form the ingestion pipeline consumes.
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt

import msgspec

from taskline.common.time import parse_aware_timestamp

from .errors import InvalidPayloadError

MAX_EMAIL_LENGTH = 320
MAX_COMMIT_ID_LENGTH = 64


class WebhookAuthor(msgspec.Struct, frozen=True):
    """``commits[].author`` of a push webhook."""

    name: str | None = None
    email: str | None = None
    username: str | None = None


class WebhookCommit(msgspec.Struct, frozen=True):
    """One entry of ``commits[]``."""

    id: str
    message: str = ""
    url: str | None = None
    timestamp: str | None = None
    author: WebhookAuthor = msgspec.field(default_factory=WebhookAuthor)
    added: list[str] = msgspec.field(default_factory=list)
    removed: list[str] = msgspec.field(default_factory=list)
    modified: list[str] = msgspec.field(default_factory=list)


class WebhookRepository(msgspec.Struct, frozen=True):
    """``repository`` object; ``id`` is numeric on GitHub."""

    id: int | str | None = None
    html_url: str | None = None


class PushPayload(msgspec.Struct, frozen=True):
    """Push webhook body."""

    repository: WebhookRepository | None = None
    commits: list[WebhookCommit] = msgspec.field(default_factory=list)


class SubmittedCommit(msgspec.Struct, frozen=True, rename="camel"):
    """Commit as sent by the editor extension."""

    id: str
    message: str = ""
    url: str | None = None
    author_name: str | None = None
    author_email: str | None = None
    timestamp: str | None = None
    added_files: list[str] = msgspec.field(default_factory=list)
    modified_files: list[str] = msgspec.field(default_factory=list)
    removed_files: list[str] = msgspec.field(default_factory=list)


class CommitSubmission(msgspec.Struct, frozen=True, rename="camel"):
    """Direct submission body addressed by project id or repository URL."""

    project_id: int | str | None = None
    repository_url: str | None = None
    commits: list[SubmittedCommit] = msgspec.field(default_factory=list)


@dc.dataclass(frozen=True, slots=True)
class RepositoryRef:
    """Whatever the payload says about which project it belongs to."""

    external_id: str | None = None
    url: str | None = None
    project_id: str | None = None

    def describe(self) -> str:
        """Return a short label for errors and logs."""
        parts = [
            f"{label}={value}"
            for label, value in (
                ("project_id", self.project_id),
                ("id", self.external_id),
                ("url", self.url),
            )
            if value
        ]
        return " ".join(parts) or "<none>"


@dc.dataclass(frozen=True, slots=True)
class CommitEvent:
    """Immutable inbound commit."""

    sha: str
    message: str
    author_name: str | None
    author_email: str | None
    committed_at: dt.datetime
    url: str | None = None
    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    modified: tuple[str, ...] = ()

    @property
    def touched_file_count(self) -> int:
        """Number of entries across the added, removed and modified lists."""
        return len(self.added) + len(self.removed) + len(self.modified)

    @property
    def ledger_key(self) -> str | None:
        """Lower-cased author email used to key the contributor ledger.

        Blank addresses and addresses longer than an SMTP path allows yield
        ``None``; such commits are recorded but not credited.
        """
        email = (self.author_email or "").strip().lower()
        if not email or len(email) > MAX_EMAIL_LENGTH:
            return None
        return email


@dc.dataclass(frozen=True, slots=True)
class IncomingPush:
    """A decoded payload: repository identity plus commits in payload order."""

    repository: RepositoryRef
    commits: tuple[CommitEvent, ...]


def _as_text(value: int | str | None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _commit_id(value: str) -> str:
    sha = value.strip()
    if not sha or len(sha) > MAX_COMMIT_ID_LENGTH:
        raise InvalidPayloadError.invalid_commit_id(value)
    return sha


def _parse_commit_time(sha: str, value: str | None, *, assume_utc: bool) -> dt.datetime:
    if value is None:
        raise InvalidPayloadError.invalid_timestamp(sha)
    try:
        return parse_aware_timestamp(value)
    except ValueError as exc:
        if not assume_utc:
            raise InvalidPayloadError.invalid_timestamp(sha) from exc
    try:
        naive = dt.datetime.fromisoformat(value.strip())
    except ValueError as exc:
        raise InvalidPayloadError.invalid_timestamp(sha) from exc
    if naive.tzinfo is not None:
        return naive.astimezone(dt.UTC)
    return naive.replace(tzinfo=dt.UTC)


def _decode[StructT: msgspec.Struct](body: bytes, model: type[StructT]) -> StructT:
    try:
        return msgspec.json.decode(body, type=model)
    except (msgspec.DecodeError, msgspec.ValidationError) as exc:
        raise InvalidPayloadError.undecodable(str(exc)) from exc


def decode_push_payload(body: bytes) -> IncomingPush:
    """Decode a push webhook body.

    Raises
    ------
    InvalidPayloadError
        When the JSON is malformed, carries no repository id or URL, or a
        commit timestamp lacks a UTC offset.

    """
    payload = _decode(body, PushPayload)
    repository = payload.repository
    ref = RepositoryRef(
        external_id=_as_text(repository.id) if repository else None,
        url=_as_text(repository.html_url) if repository else None,
    )
    if ref.external_id is None and ref.url is None:
        raise InvalidPayloadError.missing_repository()

    commits = tuple(
        CommitEvent(
            sha=_commit_id(commit.id),
            message=commit.message,
            author_name=commit.author.name,
            author_email=commit.author.email,
            committed_at=_parse_commit_time(
                commit.id, commit.timestamp, assume_utc=False
            ),
            url=commit.url,
            added=tuple(commit.added),
            removed=tuple(commit.removed),
            modified=tuple(commit.modified),
        )
        for commit in payload.commits
    )
    return IncomingPush(repository=ref, commits=commits)


def decode_commit_submission(body: bytes) -> IncomingPush:
    """Decode an editor-extension submission.

    Timestamps without an offset are read as UTC because the extension
    sends local wall-clock values without zone information.
    """
    submission = _decode(body, CommitSubmission)
    ref = RepositoryRef(
        url=_as_text(submission.repository_url),
        project_id=_as_text(submission.project_id),
    )
    if ref.project_id is None and ref.url is None:
        raise InvalidPayloadError.missing_repository()

    commits = tuple(
        CommitEvent(
            sha=_commit_id(commit.id),
            message=commit.message,
            author_name=commit.author_name,
            author_email=commit.author_email,
            committed_at=_parse_commit_time(
                commit.id, commit.timestamp, assume_utc=True
            ),
            url=commit.url,
            added=tuple(commit.added_files),
            removed=tuple(commit.removed_files),
            modified=tuple(commit.modified_files),
        )
        for commit in submission.commits
    )
    return IncomingPush(repository=ref, commits=commits)
