"""Resources that feed request bodies into the ingestion pipeline.

The raw body bytes are handed to the pipeline unparsed so the signature
is checked over exactly what the sender signed.

Usage
-----
::

    app.add_route("/webhooks/github", GitHubWebhookResource(service))
    app.add_route("/commits", CommitSubmissionResource(service))

"""

from __future__ import annotations

import typing as typ

import falcon

from taskline.api.errors import InvalidInputError
from taskline.logging import get_logger, log_debug
from taskline.webhooks.signature import SIGNATURE_HEADER

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from taskline.webhooks.service import CommitIngestionService

__all__ = ["EVENT_HEADER", "CommitSubmissionResource", "GitHubWebhookResource"]

logger = get_logger(__name__)

EVENT_HEADER = "X-GitHub-Event"
_PUSH_EVENT = "push"


class GitHubWebhookResource:
    """``POST /webhooks/github`` ingests ``push`` deliveries.

    Other event types are acknowledged with ``{"status": "ignored"}`` so
    GitHub does not mark the hook as failing.
    """

    def __init__(self, service: CommitIngestionService) -> None:
        """Store the ingestion service."""
        self._service = service

    async def on_post(self, req: Request, resp: Response) -> None:
        """Ingest a push delivery."""
        event = req.get_header(EVENT_HEADER)
        if event is None or not event.strip():
            raise InvalidInputError("header is required", field=EVENT_HEADER)

        event = event.strip().lower()
        if event != _PUSH_EVENT:
            log_debug(logger, "Ignoring GitHub event %s", event)
            resp.media = {"status": "ignored", "event": event}
            resp.status = falcon.HTTP_200
            return

        body = await req.stream.read()
        result = await self._service.ingest_webhook(body, req.get_header(SIGNATURE_HEADER))
        resp.media = result.to_dict()
        resp.status = falcon.HTTP_200


class CommitSubmissionResource:
    """``POST /commits`` ingests commits sent by editor tooling."""

    def __init__(self, service: CommitIngestionService) -> None:
        """Store the ingestion service."""
        self._service = service

    async def on_post(self, req: Request, resp: Response) -> None:
        """Ingest a direct submission."""
        body = await req.stream.read()
        result = await self._service.ingest_submission(
            body, req.get_header(SIGNATURE_HEADER)
        )
        resp.media = result.to_dict()
        resp.status = falcon.HTTP_200
