from __future__ import annotations

import logging
from typing import Any

from rental_mcp.application.base import CachedQueries
from rental_mcp.domain.services import rating_stats, sort_embedded_property_images
from rental_mcp.infrastructure import cache_keys
from rental_mcp.infrastructure.cache import TTL_MEDIUM
from rental_mcp.infrastructure.supabase_client import eq, order
from rental_mcp.infrastructure.time_utils import now_utc, parse_iso_date

logger = logging.getLogger(__name__)

TABLE = "reviews"
BOOKINGS_TABLE = "bookings"
WITH_GUEST = "*,guest:guests(*)"
WITH_PROPERTY = "*,guest:guests(*),property:properties(*,images:property_images(*))"


class ReviewQueries(CachedQueries):
    """Guest reviews of properties.

    Only approved reviews are listed publicly; new reviews start as pending
    and wait for moderation.
    """

    async def get_by_property(self, property_id: str, limit: int = 50) -> list[dict[str, Any]]:
        async def load() -> list[dict[str, Any]]:
            rows, _ = await self._client.select(
                TABLE,
                [
                    eq("property_id", property_id),
                    eq("status", "approved"),
                    order("created_at", ascending=False),
                    ("limit", str(limit)),
                ],
                columns=WITH_GUEST,
            )
            return rows

        return await self._read_through(
            cache_keys.property_reviews(property_id, limit), TTL_MEDIUM, load
        )

    async def get_rating_stats(self, property_id: str) -> dict[str, float]:
        async def load() -> dict[str, float]:
            rows, _ = await self._client.select(
                TABLE,
                [eq("property_id", property_id), eq("status", "approved")],
                columns="rating",
            )
            return rating_stats(rows)

        return await self._read_through(
            cache_keys.property_review_stats(property_id), TTL_MEDIUM, load
        )

    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        rows = await self._client.insert(TABLE, {**values, "status": "pending"})
        review = rows[0]
        self._invalidate(
            patterns=[cache_keys.property_reviews_prefix(str(values["property_id"]))]
        )
        logger.info("Created review %s for property %s", review.get("id"), values["property_id"])
        return review

    async def can_guest_review(self, property_id: str, guest_id: str) -> dict[str, Any]:
        """Whether a guest may review a property, based on their latest completed stay.

        Returns can_review with either the booking_id to attach or a reason.
        """
        booking = await self._client.select_one(
            BOOKINGS_TABLE,
            [
                eq("property_id", property_id),
                eq("guest_id", guest_id),
                eq("status", "completed"),
                order("check_out_date", ascending=False),
            ],
            columns="id,check_out_date,status",
        )
        if booking is None:
            return {"can_review": False, "reason": "No completed bookings found"}
        if parse_iso_date(booking["check_out_date"]) > now_utc().date():
            return {"can_review": False, "reason": "Booking has not completed yet"}

        existing = await self.get_by_booking(booking["id"])
        if existing is not None:
            return {"can_review": False, "reason": "Review already submitted for this booking"}
        return {"can_review": True, "booking_id": booking["id"]}

    async def get_by_booking(self, booking_id: str) -> dict[str, Any] | None:
        return await self._client.select_one(TABLE, [eq("booking_id", booking_id)])

    async def get_by_guest(self, guest_id: str, limit: int = 50) -> list[dict[str, Any]]:
        rows, _ = await self._client.select(
            TABLE,
            [
                eq("guest_id", guest_id),
                order("created_at", ascending=False),
                ("limit", str(limit)),
            ],
            columns=WITH_PROPERTY,
        )
        return [sort_embedded_property_images(r) for r in rows]
