from __future__ import annotations

import logging
from typing import Any

from rental_mcp.application.base import CachedQueries
from rental_mcp.domain.entities import Page
from rental_mcp.domain.exceptions import NotFoundError
from rental_mcp.domain.services import count_by_status, page_range, paginate
from rental_mcp.infrastructure import cache_keys
from rental_mcp.infrastructure.cache import TTL_LONG, TTL_MEDIUM, TTL_SHORT
from rental_mcp.infrastructure.supabase_client import eq, order

logger = logging.getLogger(__name__)

TABLE = "hosts"
PROPERTIES_TABLE = "properties"
HOST_STATUSES = ["active", "inactive", "suspended", "pending_verification"]


class HostQueries(CachedQueries):
    """Host account reads and writes, cached the same way as guests."""

    async def get_by_id(self, host_id: str) -> dict[str, Any] | None:
        async def load() -> dict[str, Any] | None:
            return await self._client.select_one(TABLE, [eq("id", host_id)])

        return await self._read_through(cache_keys.host(host_id), TTL_MEDIUM, load)

    async def get_by_email(self, email: str) -> dict[str, Any] | None:
        async def load() -> dict[str, Any] | None:
            return await self._client.select_one(TABLE, [eq("email", email.strip().lower())])

        return await self._read_through(cache_keys.host_by_email(email), TTL_MEDIUM, load)

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

        return await self._read_through(cache_keys.host_list(page, limit), TTL_SHORT, load)

    async def get_stats(self) -> dict[str, int]:
        async def load() -> dict[str, int]:
            rows, _ = await self._client.select(TABLE, columns="status")
            return count_by_status(rows, HOST_STATUSES)

        return await self._read_through(cache_keys.HOST_STATS, TTL_LONG, load)

    async def get_property_count(self, host_id: str) -> int:
        """Number of properties owned by a host; a zero count is cached too."""

        async def load() -> int:
            return await self._client.count(PROPERTIES_TABLE, [eq("host_id", host_id)])

        return await self._read_through(
            cache_keys.host_property_count(host_id), TTL_MEDIUM, load
        )

    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        rows = await self._client.insert(TABLE, values)
        host = rows[0]
        self._invalidate(
            keys=[cache_keys.host_by_email(str(values.get("email", ""))), cache_keys.HOST_STATS],
            patterns=[cache_keys.HOST_LIST_PREFIX],
        )
        logger.info("Created host %s", host.get("id"))
        return host

    async def update(self, host_id: str, values: dict[str, Any]) -> dict[str, Any]:
        """Update a host, dropping both the old and the new email key.

        Status or verification changes also drop the stats and list entries.
        """
        current = await self._client.select_one(TABLE, [eq("id", host_id)])
        rows = await self._client.update(TABLE, [eq("id", host_id)], values)
        if not rows:
            raise NotFoundError(f"Host not found: {host_id}")

        keys = [cache_keys.host(host_id)]
        if current is not None and current.get("email"):
            keys.append(cache_keys.host_by_email(current["email"]))
        if values.get("email"):
            keys.append(cache_keys.host_by_email(values["email"]))
        patterns: list[str] = []
        if "status" in values or "is_verified" in values:
            keys.append(cache_keys.HOST_STATS)
            patterns.append(cache_keys.HOST_LIST_PREFIX)
        if "status" in values:
            keys.append(cache_keys.host_property_count(host_id))
        self._invalidate(keys=keys, patterns=patterns)
        return rows[0]
