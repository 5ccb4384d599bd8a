"""In-process TTL cache passed to services as an explicit collaborator."""

from __future__ import annotations

import dataclasses as dc
import threading
import time
import typing as typ

type Clock = typ.Callable[[], float]


@dc.dataclass(slots=True)
class _Entry[V]:
    value: V
    expires_at: float


class TTLCache[K, V]:
    """Thread-safe mapping whose entries expire ``ttl_seconds`` after writing.

    Expired entries are evicted lazily on read and whenever the cache grows
    past ``max_entries``. ``clock`` defaults to :func:`time.monotonic` and is
    injectable so tests can advance time deterministically.
    """

    def __init__(
        self,
        ttl_seconds: float,
        *,
        max_entries: int | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Create an empty cache."""
        if ttl_seconds <= 0:
            msg = "ttl_seconds must be positive"
            raise ValueError(msg)
        self.ttl_seconds = float(ttl_seconds)
        self.max_entries = max_entries
        self._clock = clock or time.monotonic
        self._entries: dict[K, _Entry[V]] = {}
        self._lock = threading.RLock()

    def get(self, key: K) -> V | None:
        """Return the live value for ``key`` or ``None``."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: K, value: V) -> None:
        """Store ``value`` under ``key`` with a fresh TTL."""
        with self._lock:
            now = self._clock()
            self._entries[key] = _Entry(value=value, expires_at=now + self.ttl_seconds)
            if self.max_entries is not None and len(self._entries) > self.max_entries:
                self._prune(now)

    def invalidate(self, key: K) -> bool:
        """Drop ``key``; return whether an entry was present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _prune(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        if self.max_entries is None:
            return
        # Oldest writes are evicted first once live entries still exceed the cap.
        overflow = len(self._entries) - self.max_entries
        if overflow > 0:
            oldest = sorted(self._entries, key=lambda k: self._entries[k].expires_at)
            for key in oldest[:overflow]:
                del self._entries[key]
