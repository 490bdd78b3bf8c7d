from __future__ import annotations

import dataclasses
import logging
from typing import Any

from rental_mcp.application.base import CachedQueries
from rental_mcp.domain.entities import Page, SearchParams
from rental_mcp.domain.exceptions import NotFoundError
from rental_mcp.domain.services import page_range, paginate, sort_images
from rental_mcp.infrastructure import cache_keys
from rental_mcp.infrastructure.cache import TTL_LONG, TTL_MEDIUM, TTL_SHORT
from rental_mcp.infrastructure.supabase_client import (
    Params,
    any_ilike,
    eq,
    gte,
    lte,
    order,
    overlaps,
)

logger = logging.getLogger(__name__)

TABLE = "properties"
IMAGES_TABLE = "property_images"
WITH_DETAILS = "*,images:property_images(*),host:hosts(*)"

# Columns matched by the free-text search box
SEARCH_COLUMNS = [
    "title",
    "description",
    "city",
    "state",
    "address",
    "zip_code",
    "property_type",
]


class PropertyQueries(CachedQueries):
    """Property reads (public listings only) and admin writes."""

    async def get_by_id(self, property_id: str) -> dict[str, Any] | None:
        """Single active property, cached MEDIUM."""

        async def load() -> dict[str, Any] | None:
            return await self._client.select_one(
                TABLE, [eq("id", property_id), eq("status", "active")]
            )

        return await self._read_through(cache_keys.property_by_id(property_id), TTL_MEDIUM, load)

    async def get_with_images(self, property_id: str) -> dict[str, Any] | None:
        """Active property with its images (by display_order) and host embedded."""

        async def load() -> dict[str, Any] | None:
            row = await self._client.select_one(
                TABLE,
                [eq("id", property_id), eq("status", "active")],
                columns=WITH_DETAILS,
            )
            return sort_images(row) if row is not None else None

        return await self._read_through(
            cache_keys.property_with_images(property_id), TTL_MEDIUM, load
        )

    async def get_featured(self, limit: int = 6) -> list[dict[str, Any]]:
        async def load() -> list[dict[str, Any]]:
            rows, _ = await self._client.select(
                TABLE,
                [
                    eq("status", "active"),
                    eq("is_featured", True),
                    order("created_at", ascending=False),
                    ("limit", str(limit)),
                ],
                columns=WITH_DETAILS,
            )
            return [sort_images(r) for r in rows]

        return await self._read_through(cache_keys.featured_properties(limit), TTL_MEDIUM, load)

    async def search(self, params: SearchParams) -> Page:
        """Filtered, sorted, paginated search over active properties, cached SHORT.

        The cache key is the canonical serialization of the whole parameter set,
        so every page/sort/filter combination is its own entry.
        """
        key_params = dataclasses.asdict(params)
        key_params["sort_order"] = params.sort_order.value
        if params.query is not None:
            key_params["query"] = params.query.strip() or None

        async def load() -> Page:
            query = self._search_params(params)
            first, last = page_range(params.page, params.limit)
            query.append(("offset", str(first)))
            query.append(("limit", str(last - first + 1)))
            rows, total = await self._client.select(
                TABLE, query, columns=WITH_DETAILS, count=True
            )
            return paginate(
                [sort_images(r) for r in rows], total or 0, params.page, params.limit
            )

        return await self._read_through(cache_keys.property_list(key_params), TTL_SHORT, load)

    async def get_by_city(self, city: str, limit: int = 12) -> list[dict[str, Any]]:
        async def load() -> list[dict[str, Any]]:
            rows, _ = await self._client.select(
                TABLE,
                [
                    eq("status", "active"),
                    eq("city", city),
                    order("created_at", ascending=False),
                    ("limit", str(limit)),
                ],
                columns=WITH_DETAILS,
            )
            return [sort_images(r) for r in rows]

        return await self._read_through(
            cache_keys.properties_by_city(city, limit), TTL_MEDIUM, load
        )

    async def get_images(self, property_id: str) -> list[dict[str, Any]]:
        async def load() -> list[dict[str, Any]]:
            rows, _ = await self._client.select(
                IMAGES_TABLE,
                [eq("property_id", property_id), order("display_order")],
            )
            return rows

        return await self._read_through(
            cache_keys.property_images(property_id), TTL_MEDIUM, load
        )

    async def get_stats(self) -> dict[str, int]:
        """Admin counters; they change rarely, so cached LONG."""

        async def load() -> dict[str, int]:
            return {
                "total": await self._client.count(TABLE),
                "active": await self._client.count(TABLE, [eq("status", "active")]),
                "inactive": await self._client.count(TABLE, [eq("status", "inactive")]),
                "featured": await self._client.count(
                    TABLE, [eq("status", "active"), eq("is_featured", True)]
                ),
            }

        return await self._read_through(cache_keys.PROPERTY_STATS, TTL_LONG, load)

    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        rows = await self._client.insert(TABLE, values)
        self._invalidate_listings()
        self._invalidate_host_count(rows[0])
        return rows[0]

    async def update(self, property_id: str, values: dict[str, Any]) -> dict[str, Any]:
        """Raises NotFoundError when no row was updated (missing, or blocked by RLS)."""
        rows = await self._client.update(TABLE, [eq("id", property_id)], values)
        if not rows:
            raise NotFoundError(f"Property not found or not editable: {property_id}")
        self._invalidate_property(property_id)
        return rows[0]

    async def delete(self, property_id: str) -> None:
        """Delete a property; its image rows go with it via ON DELETE CASCADE."""
        rows = await self._client.delete(TABLE, [eq("id", property_id)])
        if not rows:
            raise NotFoundError(f"Property not found: {property_id}")
        self._invalidate_property(property_id)
        self._invalidate(keys=[cache_keys.property_images(property_id)])
        self._invalidate_host_count(rows[0])
        logger.info("Deleted property %s", property_id)

    async def add_image(self, values: dict[str, Any]) -> dict[str, Any]:
        rows = await self._client.insert(IMAGES_TABLE, values)
        property_id = str(values["property_id"])
        self._invalidate(
            keys=[
                cache_keys.property_by_id(property_id),
                cache_keys.property_with_images(property_id),
                cache_keys.property_images(property_id),
            ],
            # Listings embed images too
            patterns=[cache_keys.PROPERTY_LIST_PREFIX, cache_keys.FEATURED_PREFIX],
        )
        return rows[0]

    def _invalidate_listings(self) -> None:
        self._invalidate(
            keys=[cache_keys.PROPERTY_STATS],
            patterns=[cache_keys.PROPERTY_LIST_PREFIX, cache_keys.FEATURED_PREFIX],
        )

    def _invalidate_host_count(self, row: dict[str, Any]) -> None:
        if row.get("host_id"):
            self._invalidate(keys=[cache_keys.host_property_count(str(row["host_id"]))])

    def _invalidate_property(self, property_id: str) -> None:
        self._invalidate(
            keys=[
                cache_keys.property_by_id(property_id),
                cache_keys.property_with_images(property_id),
            ]
        )
        self._invalidate_listings()

    @staticmethod
    def _search_params(params: SearchParams) -> Params:
        """Translate SearchParams into PostgREST filters, sort order included."""
        f = params.filters
        query: Params = [eq("status", "active")]
        if f.city:
            query.append(eq("city", f.city))
        if f.state:
            query.append(eq("state", f.state))
        if f.property_type:
            query.append(eq("property_type", f.property_type))
        if f.min_price is not None:
            query.append(gte("price_per_night", f.min_price))
        if f.max_price is not None:
            query.append(lte("price_per_night", f.max_price))
        if f.min_bedrooms is not None:
            query.append(gte("bedrooms", f.min_bedrooms))
        if f.min_bathrooms is not None:
            query.append(gte("bathrooms", f.min_bathrooms))
        if f.min_guests is not None:
            query.append(gte("max_guests", f.min_guests))
        if f.amenities:
            query.append(overlaps("amenities", f.amenities))
        if f.is_featured is not None:
            query.append(eq("is_featured", f.is_featured))
        if params.query and params.query.strip():
            query.append(any_ilike(SEARCH_COLUMNS, params.query.strip()))
        query.append(order(params.sort_by, ascending=params.sort_order.value == "asc"))
        return query
