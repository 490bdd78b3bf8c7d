from __future__ import annotations

from typing import Any

from rental_mcp.application.base import CachedQueries
from rental_mcp.domain.exceptions import ValidationError
from rental_mcp.infrastructure import cache_keys
from rental_mcp.infrastructure.cache import TTL_SHORT
from rental_mcp.infrastructure.supabase_client import eq, gte, lte, order
from rental_mcp.infrastructure.time_utils import date_span, parse_iso_date

TABLE = "availability_calendar"


class AvailabilityQueries(CachedQueries):
    """Per-date availability calendar of a property.

    Dates without a calendar row count as available.
    """

    async def get_range(
        self, property_id: str, start_date: str, end_date: str
    ) -> list[dict[str, Any]]:
        """Calendar rows from start_date to end_date inclusive, cached SHORT.

        Raises ValidationError when end_date is before start_date.
        """
        try:
            first, last = parse_iso_date(start_date), parse_iso_date(end_date)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        if last < first:
            raise ValidationError(f"End date {end_date} is before start date {start_date}")

        async def load() -> list[dict[str, Any]]:
            rows, _ = await self._client.select(
                TABLE,
                [
                    eq("property_id", property_id),
                    gte("date", start_date),
                    lte("date", end_date),
                    order("date"),
                ],
            )
            return rows

        return await self._read_through(
            cache_keys.availability(property_id, start_date, end_date), TTL_SHORT, load
        )

    async def get_available_dates(
        self, property_id: str, start_date: str, end_date: str
    ) -> list[str]:
        rows = await self.get_range(property_id, start_date, end_date)
        return [r["date"] for r in rows if r.get("is_available", True)]

    async def get_unavailable_dates(
        self, property_id: str, start_date: str, end_date: str
    ) -> list[str]:
        rows = await self.get_range(property_id, start_date, end_date)
        return [r["date"] for r in rows if not r.get("is_available", True)]

    async def check_dates_available(self, property_id: str, dates: list[str]) -> dict[str, bool]:
        if not dates:
            return {}
        ordered = sorted(dates)
        rows = await self.get_range(property_id, ordered[0], ordered[-1])
        by_date = {r["date"]: bool(r.get("is_available", True)) for r in rows}
        return {d: by_date.get(d, True) for d in dates}

    async def bulk_update(self, updates: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Upsert calendar rows on (property_id, date) and clear affected properties."""
        if not updates:
            return []
        rows = await self._client.upsert(TABLE, updates, on_conflict="property_id,date")
        property_ids = {str(u["property_id"]) for u in updates}
        self._invalidate(patterns=[cache_keys.availability_prefix(p) for p in sorted(property_ids)])
        return rows

    async def set_unavailable(
        self, property_id: str, dates: list[str], reason: str | None = None
    ) -> list[dict[str, Any]]:
        return await self.bulk_update(
            [
                {"property_id": property_id, "date": d, "is_available": False, "notes": reason}
                for d in dates
            ]
        )

    async def set_available(
        self,
        property_id: str,
        dates: list[str],
        price_override: float | None = None,
        minimum_nights_override: int | None = None,
    ) -> list[dict[str, Any]]:
        return await self.bulk_update(
            [
                {
                    "property_id": property_id,
                    "date": d,
                    "is_available": True,
                    "price_override": price_override,
                    "minimum_nights_override": minimum_nights_override,
                }
                for d in dates
            ]
        )

    async def generate(
        self,
        property_id: str,
        start_date: str,
        end_date: str,
        available: bool = True,
        price_override: float | None = None,
    ) -> list[dict[str, Any]]:
        """Create one calendar row per day from start_date to end_date inclusive."""
        try:
            dates = date_span(start_date, end_date)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        return await self.bulk_update(
            [
                {
                    "property_id": property_id,
                    "date": d,
                    "is_available": available,
                    "price_override": price_override,
                }
                for d in dates
            ]
        )
