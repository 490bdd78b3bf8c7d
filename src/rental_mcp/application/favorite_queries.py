from __future__ import annotations

import logging
from typing import Any

from rental_mcp.application.base import CachedQueries
from rental_mcp.domain.exceptions import ApiError
from rental_mcp.domain.services import sort_embedded_property_images
from rental_mcp.infrastructure import cache_keys
from rental_mcp.infrastructure.cache import TTL_MEDIUM
from rental_mcp.infrastructure.supabase_client import eq, order

logger = logging.getLogger(__name__)

TABLE = "favorites"
WITH_DETAILS = "*,property:properties(*,images:property_images(*)),guest:guests(*)"


class FavoriteQueries(CachedQueries):
    """Properties a guest has saved. One row per (guest, property) pair."""

    async def get_by_guest(self, guest_id: str) -> list[dict[str, Any]]:
        async def load() -> list[dict[str, Any]]:
            rows, _ = await self._client.select(
                TABLE,
                [eq("guest_id", guest_id), order("created_at", ascending=False)],
                columns=WITH_DETAILS,
            )
            return [sort_embedded_property_images(r) for r in rows]

        return await self._read_through(cache_keys.guest_favorites(guest_id), TTL_MEDIUM, load)

    async def is_favorited(self, guest_id: str, property_id: str) -> bool:
        """Whether the pair exists. False is cached like any other answer."""

        async def load() -> bool:
            row = await self._client.select_one(
                TABLE,
                [eq("guest_id", guest_id), eq("property_id", property_id)],
                columns="id",
            )
            return row is not None

        return await self._read_through(
            cache_keys.favorite(guest_id, property_id), TTL_MEDIUM, load
        )

    async def get_favorite_property_ids(self, guest_id: str) -> list[str]:
        async def load() -> list[str]:
            rows, _ = await self._client.select(
                TABLE, [eq("guest_id", guest_id)], columns="property_id"
            )
            return [r["property_id"] for r in rows]

        return await self._read_through(
            cache_keys.guest_favorite_ids(guest_id), TTL_MEDIUM, load
        )

    async def get_property_favorite_count(self, property_id: str) -> int:
        async def load() -> int:
            return await self._client.count(TABLE, [eq("property_id", property_id)])

        return await self._read_through(
            cache_keys.property_favorite_count(property_id), TTL_MEDIUM, load
        )

    async def get_favorite(self, guest_id: str, property_id: str) -> dict[str, Any] | None:
        return await self._client.select_one(
            TABLE, [eq("guest_id", guest_id), eq("property_id", property_id)]
        )

    async def create(self, guest_id: str, property_id: str) -> dict[str, Any] | None:
        """Save a property for a guest; an existing pair is returned as is."""
        try:
            rows = await self._client.insert(
                TABLE, {"guest_id": guest_id, "property_id": property_id}
            )
            favorite = rows[0]
        except ApiError as exc:
            if exc.status_code != 409:
                raise
            logger.info("Property %s already saved by guest %s", property_id, guest_id)
            favorite = await self.get_favorite(guest_id, property_id)
        self._invalidate_pair(guest_id, property_id)
        return favorite

    async def delete(self, guest_id: str, property_id: str) -> None:
        await self._client.delete(
            TABLE, [eq("guest_id", guest_id), eq("property_id", property_id)]
        )
        self._invalidate_pair(guest_id, property_id)

    async def toggle(self, guest_id: str, property_id: str) -> dict[str, Any]:
        """Save the property if it is not saved yet, remove it otherwise."""
        if await self.is_favorited(guest_id, property_id):
            await self.delete(guest_id, property_id)
            return {"is_favorited": False, "favorite": None}
        favorite = await self.create(guest_id, property_id)
        return {"is_favorited": True, "favorite": favorite}

    def _invalidate_pair(self, guest_id: str, property_id: str) -> None:
        self._invalidate(
            keys=[cache_keys.favorite(guest_id, property_id)],
            patterns=[
                cache_keys.guest_favorites_prefix(guest_id),
                cache_keys.property_favorites_prefix(property_id),
            ],
        )
