"""HMAC-SHA256 verification of webhook bodies."""

from __future__ import annotations

import hashlib
import hmac

from .errors import AuthenticationError

SIGNATURE_HEADER = "X-Hub-Signature-256"
SIGNATURE_PREFIX = "sha256="


def compute_signature(body: bytes, secret: str) -> str:
    """Return ``sha256=<hex>`` for ``body`` keyed by ``secret``."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_signature(body: bytes, signature: str | None, secret: str | None) -> bool:
    """Authenticate ``body`` against ``secret``.

    Returns ``True`` when the signature was checked and matched and
    ``False`` when no secret is configured. With a secret, a missing,
    malformed or mismatched signature raises :class:`AuthenticationError`.
    """
    if not secret:
        return False
    candidate = (signature or "").strip()
    if not candidate:
        raise AuthenticationError.missing_signature()
    if not candidate.startswith(SIGNATURE_PREFIX):
        raise AuthenticationError.malformed_signature()
    expected = compute_signature(body, secret)
    if not hmac.compare_digest(expected.encode("ascii"), candidate.encode("utf-8")):
        raise AuthenticationError.signature_mismatch()
    return True
