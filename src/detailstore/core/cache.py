# src/detailstore/core/cache.py
"""Process-wide cache provider with TTL expiry and single-flight misses.

Contract relied upon by the schema cache:
    remember(key, ttl_seconds, producer) returns the cached value for key
    while it is younger than ttl_seconds. On a miss, exactly one caller
    runs producer(); concurrent callers for the same key block until that
    value is stored and then observe it. A producer that raises caches
    nothing and the exception propagates to the caller that ran it.

Entry age is measured on an injectable monotonic Clock so tests can step
past a TTL window without sleeping.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

T = TypeVar("T")


class Clock(Protocol):
    """Monotonic time source used for expiry."""

    def monotonic(self) -> float: ...


class SystemClock:
    """Clock backed by time.monotonic()."""

    def monotonic(self) -> float:
        return time.monotonic()


class CacheProvider(Protocol):
    """Memoizing key/value store with a per-call TTL."""

    def remember(self, key: str, ttl_seconds: float, producer: Callable[[], T]) -> T:
        """Return the cached value for key, producing and storing it on a miss."""
        ...


@dataclass(frozen=True)
class _Entry:
    value: Any
    expires_at: float


class MemoryCacheProvider:
    """In-process CacheProvider.

    Thread-safe. A registry lock guards the entry table; a lock per key
    serialises producers so a cold key is produced once no matter how many
    threads ask for it at the same moment.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock: Clock = clock if clock is not None else SystemClock()
        self._entries: dict[str, _Entry] = {}
        self._key_locks: dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def remember(self, key: str, ttl_seconds: float, producer: Callable[[], T]) -> T:
        """Return the cached value for key, producing it once per miss.

        Args:
            key: Cache key
            ttl_seconds: Lifetime of a freshly produced value (must be > 0)
            producer: Zero-argument callable run on a miss

        Returns:
            Cached or freshly produced value

        Raises:
            ValueError: If ttl_seconds is not positive
        """
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")

        hit, value = self._lookup(key)
        if hit:
            return value  # type: ignore[no-any-return]

        with self._lock_for(key):
            # Another caller may have produced the value while we waited.
            hit, value = self._lookup(key)
            if hit:
                return value  # type: ignore[no-any-return]

            produced = producer()
            with self._lock:
                self._entries[key] = _Entry(value=produced, expires_at=self._clock.monotonic() + ttl_seconds)
            return produced

    def forget(self, key: str) -> None:
        """Drop one entry (test isolation only)."""
        with self._lock:
            self._entries.pop(key, None)

    def flush(self) -> None:
        """Drop every entry (test isolation only)."""
        with self._lock:
            self._entries.clear()

    def _lookup(self, key: str) -> tuple[bool, Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False, None
            if self._clock.monotonic() >= entry.expires_at:
                del self._entries[key]
                return False, None
            return True, entry.value

    def _lock_for(self, key: str) -> threading.Lock:
        with self._lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[key] = lock
            return lock
