from __future__ import annotations

from typing import Any

from rental_mcp.application.base import CachedQueries
from rental_mcp.domain.entities import Page
from rental_mcp.domain.exceptions import NotFoundError
from rental_mcp.domain.services import count_by_status, page_range, paginate
from rental_mcp.infrastructure import cache_keys
from rental_mcp.infrastructure.cache import TTL_LONG, TTL_MEDIUM, TTL_SHORT
from rental_mcp.infrastructure.supabase_client import eq, order

TABLE = "guests"
GUEST_STATUSES = ["active", "inactive", "blocked"]


class GuestQueries(CachedQueries):
    """Guest account reads and writes."""

    async def get_by_id(self, guest_id: str) -> dict[str, Any] | None:
        async def load() -> dict[str, Any] | None:
            return await self._client.select_one(TABLE, [eq("id", guest_id)])

        return await self._read_through(cache_keys.guest(guest_id), TTL_MEDIUM, load)

    async def get_by_email(self, email: str) -> dict[str, Any] | None:
        """Look up a guest by email; None (never cached) for unknown addresses."""

        async def load() -> dict[str, Any] | None:
            return await self._client.select_one(TABLE, [eq("email", email.strip().lower())])

        return await self._read_through(cache_keys.guest_by_email(email), TTL_MEDIUM, load)

    async def get_all(self, page: int = 1, limit: int = 50) -> Page:
        async def load() -> Page:
            first, last = page_range(page, limit)
            rows, total = await self._client.select(
                TABLE,
                [
                    order("created_at", ascending=False),
                    ("offset", str(first)),
                    ("limit", str(last - first + 1)),
                ],
                count=True,
            )
            return paginate(rows, total or 0, page, limit)

        return await self._read_through(cache_keys.guest_list(page, limit), TTL_SHORT, load)

    async def get_stats(self) -> dict[str, int]:
        async def load() -> dict[str, int]:
            rows, _ = await self._client.select(TABLE, columns="status")
            return count_by_status(rows, GUEST_STATUSES)

        return await self._read_through(cache_keys.GUEST_STATS, TTL_LONG, load)

    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        rows = await self._client.insert(TABLE, values)
        guest = rows[0]
        self._invalidate(
            keys=[cache_keys.guest_by_email(str(values.get("email", ""))), cache_keys.GUEST_STATS],
            patterns=[cache_keys.GUEST_LIST_PREFIX],
        )
        return guest

    async def get_or_create(self, values: dict[str, Any]) -> dict[str, Any]:
        existing = await self.get_by_email(str(values["email"]))
        if existing is not None:
            return existing
        return await self.create(values)

    async def update(self, guest_id: str, values: dict[str, Any]) -> dict[str, Any]:
        """Update a guest, dropping both the old and the new email key."""
        current = await self._client.select_one(TABLE, [eq("id", guest_id)])
        rows = await self._client.update(TABLE, [eq("id", guest_id)], values)
        if not rows:
            raise NotFoundError(f"Guest not found: {guest_id}")

        keys = [cache_keys.guest(guest_id)]
        if current is not None and current.get("email"):
            keys.append(cache_keys.guest_by_email(current["email"]))
        if values.get("email"):
            keys.append(cache_keys.guest_by_email(values["email"]))
        patterns: list[str] = []
        if "status" in values:
            keys.append(cache_keys.GUEST_STATS)
            patterns.append(cache_keys.GUEST_LIST_PREFIX)
        self._invalidate(keys=keys, patterns=patterns)
        return rows[0]

    async def update_preferences(
        self, guest_id: str, preferences: dict[str, Any]
    ) -> dict[str, Any]:
        return await self.update(guest_id, {"preferences": preferences})

    async def delete(self, guest_id: str) -> None:
        rows = await self._client.delete(TABLE, [eq("id", guest_id)])
        if not rows:
            raise NotFoundError(f"Guest not found: {guest_id}")
        keys = [cache_keys.guest(guest_id), cache_keys.GUEST_STATS]
        if rows[0].get("email"):
            keys.append(cache_keys.guest_by_email(rows[0]["email"]))
        self._invalidate(keys=keys, patterns=[cache_keys.GUEST_LIST_PREFIX])
