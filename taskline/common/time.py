"""Common time utilities."""

from __future__ import annotations

import datetime as dt


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp suitable for DB defaults."""
    return dt.datetime.now(dt.UTC)


def parse_aware_timestamp(value: str) -> dt.datetime:
    """Parse an ISO-8601 timestamp carrying an offset and convert it to UTC.

    A trailing ``Z`` is accepted. Raises ``ValueError`` when the text is not
    ISO-8601 or carries no offset.
    """
    parsed = dt.datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        msg = f"timestamp {value!r} has no UTC offset"
        raise ValueError(msg)
    return parsed.astimezone(dt.UTC)


def ensure_utc(value: dt.datetime) -> dt.datetime:
    """Convert an aware datetime to UTC; reject naive values."""
    if value.tzinfo is None:
        msg = "datetime must be timezone aware"
        raise ValueError(msg)
    return value.astimezone(dt.UTC)
