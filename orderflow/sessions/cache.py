"""Read cache for sessions (in memory + TTL)."""

import time
from collections.abc import Callable
from dataclasses import dataclass

from orderflow.sessions.models import Session


@dataclass
class CacheEntry:
    """Cached session copy and its expiry (monotonic seconds)."""

    session: Session
    expires_at: float


class SessionCache:
    """TTL cache of session copies keyed by session key.

    Entries are deep copies on the way in and on the way out, so callers
    can never mutate what the cache holds.

    Expired entries are purged on insertion at most once per TTL window,
    which bounds the cache to the keys written during the last two windows.
    """

    def __init__(
        self, ttl_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._next_purge = clock() + ttl_seconds

    def get(self, key: str) -> Session | None:
        """Return a copy of a fresh cached session, dropping expired entries."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry.session.model_copy(deep=True)

    def set(self, key: str, session: Session) -> None:
        if self._ttl <= 0:
            return
        current = self._clock()
        if current >= self._next_purge:
            self.clear_expired()
        self._entries[key] = CacheEntry(
            session=session.model_copy(deep=True),
            expires_at=current + self._ttl,
        )

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear_expired(self) -> int:
        """Remove expired entries, returning how many were dropped."""
        current = self._clock()
        self._next_purge = current + self._ttl
        expired = [key for key, entry in self._entries.items() if current >= entry.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
