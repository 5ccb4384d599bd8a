"""Commit ingestion: payload decoding, signature checks and the pipeline."""

from __future__ import annotations

from .dedupe import CommitDeduplicator
from .errors import (
    AuthenticationError,
    InvalidPayloadError,
    PayloadRejectionReason,
    ProjectNotFoundError,
    WebhookError,
)
from .observability import IngestionEventLogger, IngestionEventType
from .payload import (
    CommitEvent,
    IncomingPush,
    RepositoryRef,
    decode_commit_submission,
    decode_push_payload,
)
from .service import (
    CommitIngestionService,
    CommitOutcome,
    CommitStatus,
    IngestionResult,
    IngestionSource,
)
from .signature import (
    SIGNATURE_HEADER,
    SIGNATURE_PREFIX,
    compute_signature,
    verify_signature,
)

__all__ = [
    "SIGNATURE_HEADER",
    "SIGNATURE_PREFIX",
    "AuthenticationError",
    "CommitDeduplicator",
    "CommitEvent",
    "CommitIngestionService",
    "CommitOutcome",
    "CommitStatus",
    "IncomingPush",
    "IngestionEventLogger",
    "IngestionEventType",
    "IngestionResult",
    "IngestionSource",
    "InvalidPayloadError",
    "PayloadRejectionReason",
    "ProjectNotFoundError",
    "RepositoryRef",
    "WebhookError",
    "compute_signature",
    "decode_commit_submission",
    "decode_push_payload",
    "verify_signature",
]
