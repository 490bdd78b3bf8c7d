from __future__ import annotations

from typing import Any

from rental_mcp.application.base import CachedQueries
from rental_mcp.domain.exceptions import NotFoundError
from rental_mcp.infrastructure import cache_keys
from rental_mcp.infrastructure.cache import TTL_SHORT
from rental_mcp.infrastructure.supabase_client import eq, order

TABLE = "payment_config"


class PaymentConfigQueries(CachedQueries):
    """Payment methods shown to guests (mobile money numbers, bank accounts).

    Only the guest-facing active list is cached; admin reads always hit the
    backend so edits show up immediately in the management view.
    """

    async def get_active(self) -> list[dict[str, Any]]:
        async def load() -> list[dict[str, Any]]:
            rows, _ = await self._client.select(
                TABLE, [eq("is_active", True), order("display_order")]
            )
            return rows

        return await self._read_through(cache_keys.ACTIVE_PAYMENT_CONFIG, TTL_SHORT, load)

    async def get_all(self) -> list[dict[str, Any]]:
        rows, _ = await self._client.select(TABLE, [order("display_order")])
        return rows

    async def get_by_id(self, config_id: str) -> dict[str, Any] | None:
        return await self._client.select_one(TABLE, [eq("id", config_id)])

    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        rows = await self._client.insert(TABLE, values)
        self._invalidate(keys=[cache_keys.ACTIVE_PAYMENT_CONFIG])
        return rows[0]

    async def update(self, config_id: str, values: dict[str, Any]) -> dict[str, Any]:
        rows = await self._client.update(TABLE, [eq("id", config_id)], values)
        if not rows:
            raise NotFoundError(f"Payment config not found: {config_id}")
        self._invalidate(keys=[cache_keys.ACTIVE_PAYMENT_CONFIG])
        return rows[0]

    async def delete(self, config_id: str) -> None:
        rows = await self._client.delete(TABLE, [eq("id", config_id)])
        if not rows:
            raise NotFoundError(f"Payment config not found: {config_id}")
        self._invalidate(keys=[cache_keys.ACTIVE_PAYMENT_CONFIG])
