from __future__ import annotations

import logging
import time
from typing import Any

from rental_mcp.domain.entities import CacheEntry, CacheStats

logger = logging.getLogger(__name__)

# TTL tiers (in seconds)
TTL_SHORT = 120  # List/search results, availability
TTL_MEDIUM = 300  # Single-entity reads
TTL_LONG = 900  # Aggregate statistics
TTL_VERY_LONG = 3600


class QueryCache:
    """In-process TTL cache for backend query results.

    Expiry is checked lazily on get(); nothing sweeps in the background, so dead
    entries stay until they are read, deleted, pattern-cleared or purged.
    Accessed from a single event loop only; no locking added.
    """

    def __init__(self, default_ttl: float = TTL_MEDIUM) -> None:
        self._default_ttl = default_ttl
        self._store: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Any | None:
        """Return cached value or None if missing or expired."""
        entry = self._store.get(key)
        if entry is None:
            return None
        if entry.is_expired(time.monotonic()):
            del self._store[key]
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store value with given TTL (seconds). Uses default_ttl when ttl is None."""
        effective_ttl = ttl if ttl is not None else self._default_ttl
        now = time.monotonic()
        self._store[key] = CacheEntry(
            key=key, value=value, inserted_at=now, expires_at=now + effective_ttl
        )

    def delete(self, key: str) -> None:
        """Remove a specific key immediately."""
        self._store.pop(key, None)

    def clear_pattern(self, pattern: str) -> int:
        """Remove every entry whose key contains pattern; return how many were removed."""
        matched = [k for k in self._store if pattern in k]
        for k in matched:
            del self._store[k]
        if matched:
            logger.debug("Invalidated %d cache entries matching %r", len(matched), pattern)
        return len(matched)

    def clear(self) -> None:
        """Remove all cached entries."""
        self._store.clear()

    def stats(self) -> CacheStats:
        return CacheStats(size=len(self._store), keys=list(self._store))

    def purge_expired(self) -> int:
        """Remove all expired entries from the store."""
        now = time.monotonic()
        expired_keys = [k for k, entry in self._store.items() if entry.is_expired(now)]
        for k in expired_keys:
            del self._store[k]
        return len(expired_keys)

    def __len__(self) -> int:
        """Number of stored entries, expired ones included."""
        return len(self._store)
