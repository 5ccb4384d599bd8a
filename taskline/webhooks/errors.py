"""Errors that reject a whole ingestion call."""

from __future__ import annotations

import enum


class PayloadRejectionReason(enum.StrEnum):
    """Machine-readable reasons a payload was rejected."""

    BAD_SIGNATURE = "bad_signature"
    MISSING_SIGNATURE = "missing_signature"
    MALFORMED_SIGNATURE = "malformed_signature"
    PROJECT_NOT_FOUND = "project_not_found"
    UNDECODABLE = "undecodable"
    MISSING_REPOSITORY = "missing_repository"
    INVALID_TIMESTAMP = "invalid_timestamp"
    INVALID_COMMIT_ID = "invalid_commit_id"


class WebhookError(Exception):
    """Base class for payload-level failures; nothing is persisted."""

    def __init__(
        self,
        message: str,
        reason: PayloadRejectionReason | None = None,
    ) -> None:
        """Store a machine-readable reason alongside the message."""
        super().__init__(message)
        self.reason = reason


class AuthenticationError(WebhookError):
    """Raised when the payload signature does not match the project secret."""

    @classmethod
    def signature_mismatch(cls) -> AuthenticationError:
        """Return an error for a well-formed but wrong signature."""
        return cls(
            "payload signature does not match",
            reason=PayloadRejectionReason.BAD_SIGNATURE,
        )

    @classmethod
    def missing_signature(cls) -> AuthenticationError:
        """Return an error for an unsigned payload to a project with a secret."""
        return cls(
            "payload signature is required for this project",
            reason=PayloadRejectionReason.MISSING_SIGNATURE,
        )

    @classmethod
    def malformed_signature(cls) -> AuthenticationError:
        """Return an error for a header without the ``sha256=`` prefix."""
        return cls(
            "signature header must look like 'sha256=<hex>'",
            reason=PayloadRejectionReason.MALFORMED_SIGNATURE,
        )


class ProjectNotFoundError(WebhookError):
    """Raised when no project matches the payload's repository identity."""

    def __init__(self, reference: str) -> None:
        """Record the repository reference that failed to resolve."""
        super().__init__(
            f"no project matches {reference}",
            reason=PayloadRejectionReason.PROJECT_NOT_FOUND,
        )
        self.reference = reference


class InvalidPayloadError(WebhookError):
    """Raised when the body cannot be decoded into a usable push."""

    @classmethod
    def undecodable(cls, detail: str) -> InvalidPayloadError:
        """Return an error for JSON or schema decoding failures."""
        return cls(
            f"payload could not be decoded: {detail}",
            reason=PayloadRejectionReason.UNDECODABLE,
        )

    @classmethod
    def missing_repository(cls) -> InvalidPayloadError:
        """Return an error when no repository identity is present."""
        return cls(
            "payload carries no repository id, URL or project id",
            reason=PayloadRejectionReason.MISSING_REPOSITORY,
        )

    @classmethod
    def invalid_commit_id(cls, sha: str) -> InvalidPayloadError:
        """Return an error for an empty or over-long commit id."""
        return cls(
            f"commit id must be 1-64 characters, got {len(sha.strip())}",
            reason=PayloadRejectionReason.INVALID_COMMIT_ID,
        )

    @classmethod
    def invalid_timestamp(cls, sha: str) -> InvalidPayloadError:
        """Return an error for a commit without an offset-aware ISO timestamp."""
        return cls(
            f"commit {sha} timestamp must be ISO-8601 with a UTC offset",
            reason=PayloadRejectionReason.INVALID_TIMESTAMP,
        )
