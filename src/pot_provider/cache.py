"""In-memory token cache keyed by content binding."""

import threading
from datetime import datetime, timedelta
from typing import Callable, Mapping

from pot_provider.models import SessionToken, utc_now

DEFAULT_TTL = timedelta(hours=6)


class TokenCache:
    """Maps content bindings to tokens with expiry.

    All access goes through a lock so concurrent callers never observe a
    half-applied cleanup or reset.
    """

    def __init__(
        self,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, SessionToken] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, content_binding: str) -> SessionToken | None:
        """Return the fresh entry for a binding, dropping it if expired."""
        now = self._clock()
        with self._lock:
            session = self._entries.get(content_binding)
            if session is None:
                return None
            if session.is_expired(now):
                del self._entries[content_binding]
                return None
            return session

    def put(self, content_binding: str, token: str) -> SessionToken:
        """Store a token, computing its expiry from the configured TTL."""
        session = SessionToken(
            content_binding=content_binding,
            token=token,
            expires_at=self._clock() + self.ttl,
        )
        with self._lock:
            self._entries[content_binding] = session
        return session

    def cleanup(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, session in self._entries.items() if session.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def invalidate_all(self) -> None:
        with self._lock:
            self._entries = {}

    def snapshot(self, cleanup: bool = False) -> dict[str, SessionToken]:
        """Return a copy of the current entries."""
        if cleanup:
            self.cleanup()
        with self._lock:
            return dict(self._entries)

    def replace(self, entries: Mapping[str, SessionToken]) -> None:
        """Swap in a new set of entries, e.g. restored from disk."""
        with self._lock:
            self._entries = dict(entries)
