"""In-memory TTL cache of seen (keyid, nonce) pairs for replay rejection."""

from __future__ import annotations

import threading
import time
from typing import Callable

from .config import MAX_VALIDITY_SECONDS


class NonceCache:
    """Thread-safe record of nonces seen within the last ``ttl`` seconds.

    The TTL should be at least the verifier's maximum validity window so a
    nonce is remembered for as long as its signature could still be accepted.
    The Verifier passes its own clock reading as ``now`` so entry lifetimes
    follow the same time as the timestamp checks; ``clock`` is only the
    fallback for direct callers.
    """

    def __init__(
        self,
        ttl: int = MAX_VALIDITY_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl = ttl
        self._clock = clock
        self._seen: dict[tuple[str, str], float] = {}
        self._lock = threading.Lock()

    def check_and_record(self, key_id: str, nonce: str, now: float | None = None) -> bool:
        """Record a nonce for a key.

        Args:
            key_id: Key the nonce was signed under.
            nonce: The nonce value.
            now: Current time; defaults to the cache's own clock.

        Returns:
            True if the nonce is new, False if it was already seen and has
            not yet expired.
        """
        if now is None:
            now = self._clock()
        entry = (key_id, nonce)
        with self._lock:
            self._purge(now)
            if entry in self._seen:
                return False
            self._seen[entry] = now + self._ttl
            return True

    def _purge(self, now: float) -> None:
        expired = [k for k, until in self._seen.items() if until <= now]
        for k in expired:
            del self._seen[k]

    def __len__(self) -> int:
        with self._lock:
            self._purge(self._clock())
            return len(self._seen)

    def clear(self) -> None:
        """Forget all recorded nonces."""
        with self._lock:
            self._seen.clear()
