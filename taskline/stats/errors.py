"""Commit-detail lookup errors; always absorbed by the extractor."""

from __future__ import annotations


class CommitDetailError(RuntimeError):
    """Raised when the remote commit-detail lookup fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int) -> CommitDetailError:
        """Return an error for non-2xx HTTP responses."""
        return cls(f"commit detail HTTP {status_code}", status_code=status_code)

    @classmethod
    def transport_failure(cls, exc: Exception) -> CommitDetailError:
        """Return an error for timeouts and connection failures."""
        return cls(f"commit detail request failed: {type(exc).__name__}: {exc}")

    @classmethod
    def invalid_response(cls, detail: str) -> CommitDetailError:
        """Return an error for bodies that do not decode as commit detail."""
        return cls(f"commit detail response invalid: {detail}")

    @classmethod
    def unsupported_url(cls, url: str) -> CommitDetailError:
        """Return an error for URLs that do not identify a commit."""
        return cls(f"cannot derive a commit detail URL from {url!r}")
