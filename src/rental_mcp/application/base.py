from __future__ import annotations

from typing import Any, Awaitable, Callable, Iterable, TypeVar

from rental_mcp.infrastructure.cache import QueryCache
from rental_mcp.infrastructure.supabase_client import SupabaseClient

T = TypeVar("T")


class CachedQueries:
    """Shared plumbing for the query wrappers: read-through and invalidation."""

    def __init__(self, client: SupabaseClient, cache: QueryCache) -> None:
        self._client = client
        self._cache = cache

    async def _read_through(
        self, key: str, ttl: float, loader: Callable[[], Awaitable[T]]
    ) -> T:
        """Return the cached value for key, or load it, cache it and return it.

        None results are returned but never cached, so a row that appears
        later is picked up on the next read.
        """
        cached: Any = self._cache.get(key)
        if cached is not None:
            return cached  # type: ignore[no-any-return]
        value = await loader()
        if value is not None:
            self._cache.set(key, value, ttl=ttl)
        return value

    def _invalidate(self, keys: Iterable[str] = (), patterns: Iterable[str] = ()) -> None:
        """Drop exact keys and whole key families after a write has completed."""
        for key in keys:
            self._cache.delete(key)
        for pattern in patterns:
            self._cache.clear_pattern(pattern)
