"""Memoization of resolved setting values.

Reads are plain dict lookups; the lock only guards stats counters and
expiry. Writers take the lock and bump a generation counter, so
``put_if_current`` drops values computed before a write or a full
invalidation.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any

logger = logging.getLogger(__name__)

MISSING = object()


class CacheEntry:
    """A single resolved value with optional TTL"""

    __slots__ = ("value", "created_at", "ttl")

    def __init__(self, value: Any, ttl: float | None = None):
        self.value = value
        self.created_at = time.monotonic()
        self.ttl = ttl

    def is_expired(self) -> bool:
        if self.ttl is None:
            return False
        return time.monotonic() - self.created_at > self.ttl


class ResolvedValueCache:
    """Cache of resolved values keyed by full key."""

    def __init__(self, ttl_seconds: float | None = None):
        self._ttl = ttl_seconds
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._generation = 0
        self._stats = {"hits": 0, "misses": 0, "expirations": 0, "invalidations": 0}

    @property
    def generation(self) -> int:
        return self._generation

    def lookup(self, full_key: str) -> Any:
        """Return the cached value, or ``MISSING``."""
        entry = self._entries.get(full_key)
        if entry is not None and not entry.is_expired():
            with self._lock:
                self._stats["hits"] += 1
            return entry.value

        with self._lock:
            self._stats["misses"] += 1
            if entry is not None:
                self._stats["expirations"] += 1
                # Only drop the expired entry, not one a writer stored since
                if self._entries.get(full_key) is entry:
                    del self._entries[full_key]
        return MISSING

    def put(self, full_key: str, value: Any) -> None:
        """Store a written value; in-flight reads started before this are not memoized."""
        with self._lock:
            self._generation += 1
            self._entries[full_key] = CacheEntry(value, self._ttl)

    def put_if_current(self, full_key: str, value: Any, generation: int) -> bool:
        """Store a value computed at ``generation`` unless the cache was cleared since."""
        with self._lock:
            if generation != self._generation:
                return False
            self._entries[full_key] = CacheEntry(value, self._ttl)
            return True

    def discard(self, full_key: str) -> None:
        with self._lock:
            self._entries.pop(full_key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._generation += 1
            self._stats["invalidations"] += 1
        logger.debug("Settings cache invalidated")

    def __contains__(self, full_key: object) -> bool:
        return full_key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get_stats(self) -> dict[str, Any]:
        total_requests = self._stats["hits"] + self._stats["misses"]
        return {
            "size": len(self._entries),
            "ttl_seconds": self._ttl,
            "generation": self._generation,
            "hit_rate": self._stats["hits"] / total_requests if total_requests > 0 else 0,
            **self._stats,
        }

