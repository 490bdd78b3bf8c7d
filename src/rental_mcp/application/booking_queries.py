from __future__ import annotations

import dataclasses
import logging
from typing import Any

from rental_mcp.application.base import CachedQueries
from rental_mcp.domain.entities import AvailabilityCheck, BookingFilters, ExpiryResult, Page
from rental_mcp.domain.exceptions import (
    InvalidStatusTransitionError,
    NotFoundError,
    RentalMcpError,
    ValidationError,
)
from rental_mcp.domain.services import (
    allowed_transitions,
    booking_stats,
    commission_split,
    is_valid_status_transition,
    page_range,
    paginate,
    payment_deadline,
)
from rental_mcp.domain.value_objects import BookingStatus
from rental_mcp.infrastructure import cache_keys
from rental_mcp.infrastructure.cache import QueryCache, TTL_MEDIUM, TTL_SHORT
from rental_mcp.infrastructure.config import (
    DEFAULT_COMMISSION_RATE,
    DEFAULT_PAYMENT_DEADLINE_HOURS,
)
from rental_mcp.infrastructure.supabase_client import (
    Params,
    SupabaseClient,
    eq,
    gt,
    gte,
    in_,
    is_not_null,
    lt,
    lte,
    order,
)
from rental_mcp.infrastructure.time_utils import now_utc, parse_iso_date, to_iso

logger = logging.getLogger(__name__)

TABLE = "bookings"
WITH_DETAILS = "*,property:properties(*),guest:guests(*)"
EXPIRE_RPC = "expire_unpaid_bookings"

# Statuses that hold the dates of a property
HOLDING_STATUSES = [
    BookingStatus.PENDING.value,
    BookingStatus.AWAITING_PAYMENT.value,
    BookingStatus.AWAITING_CONFIRMATION.value,
    BookingStatus.CONFIRMED.value,
]


class BookingQueries(CachedQueries):
    """Booking reads and the request -> payment -> confirmation lifecycle.

    Every status change validates against a fresh backend read rather than the
    cache, then invalidates the booking, its guest/property lists, the search
    and stats families, and the property's availability.
    """

    def __init__(
        self,
        client: SupabaseClient,
        cache: QueryCache,
        commission_rate: float = DEFAULT_COMMISSION_RATE,
        payment_deadline_hours: int = DEFAULT_PAYMENT_DEADLINE_HOURS,
    ) -> None:
        super().__init__(client, cache)
        self._commission_rate = commission_rate
        self._deadline_hours = payment_deadline_hours

    async def get_by_id(self, booking_id: str) -> dict[str, Any] | None:
        async def load() -> dict[str, Any] | None:
            return await self._fetch(booking_id)

        return await self._read_through(cache_keys.booking(booking_id), TTL_MEDIUM, load)

    async def get_by_guest(self, guest_id: str, limit: int = 20) -> list[dict[str, Any]]:
        async def load() -> list[dict[str, Any]]:
            rows, _ = await self._client.select(
                TABLE,
                [eq("guest_id", guest_id), order("created_at", ascending=False), ("limit", str(limit))],
                columns=WITH_DETAILS,
            )
            return rows

        return await self._read_through(
            cache_keys.guest_bookings(guest_id, limit), TTL_MEDIUM, load
        )

    async def get_by_property(self, property_id: str, limit: int = 20) -> list[dict[str, Any]]:
        async def load() -> list[dict[str, Any]]:
            rows, _ = await self._client.select(
                TABLE,
                [
                    eq("property_id", property_id),
                    order("check_in_date", ascending=False),
                    ("limit", str(limit)),
                ],
                columns=WITH_DETAILS,
            )
            return rows

        return await self._read_through(
            cache_keys.property_bookings(property_id, limit), TTL_MEDIUM, load
        )

    async def search(self, filters: BookingFilters, page: int = 1, limit: int = 20) -> Page:
        key = cache_keys.booking_search(
            {"filters": dataclasses.asdict(filters), "page": page, "limit": limit}
        )

        async def load() -> Page:
            query = self._filter_params(filters)
            first, last = page_range(page, limit)
            query += [
                order("created_at", ascending=False),
                ("offset", str(first)),
                ("limit", str(last - first + 1)),
            ]
            rows, total = await self._client.select(
                TABLE, query, columns=WITH_DETAILS, count=True
            )
            return paginate(rows, total or 0, page, limit)

        return await self._read_through(key, TTL_SHORT, load)

    async def check_availability(
        self, property_id: str, check_in_date: str, check_out_date: str
    ) -> AvailabilityCheck:
        """Report whether any date-holding booking overlaps [check_in, check_out).

        Raises ValidationError unless check_out_date is after check_in_date.
        """
        self._validate_stay(check_in_date, check_out_date)

        async def load() -> AvailabilityCheck:
            conflicts = await self._find_conflicts(property_id, check_in_date, check_out_date)
            return AvailabilityCheck(available=not conflicts, conflicting_bookings=conflicts)

        return await self._read_through(
            cache_keys.booking_conflicts(property_id, check_in_date, check_out_date),
            TTL_SHORT,
            load,
        )

    async def get_stats(
        self, property_id: str | None = None, guest_id: str | None = None
    ) -> dict[str, float]:
        async def load() -> dict[str, float]:
            params: Params = []
            if property_id:
                params.append(eq("property_id", property_id))
            if guest_id:
                params.append(eq("guest_id", guest_id))
            rows, _ = await self._client.select(TABLE, params, columns="status,total_amount")
            return booking_stats(rows)

        return await self._read_through(
            cache_keys.booking_stats(property_id, guest_id), TTL_MEDIUM, load
        )

    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        """Insert a booking request after checking the dates are free.

        The conflict check bypasses the cache so a just-made booking is seen.
        Raises ValidationError for bad dates or when the dates are taken.
        """
        property_id = str(values["property_id"])
        check_in = str(values["check_in_date"])
        check_out = str(values["check_out_date"])
        self._validate_stay(check_in, check_out)

        if await self._find_conflicts(property_id, check_in, check_out):
            raise ValidationError("Property is not available for the selected dates")

        rows = await self._client.insert(TABLE, values)
        booking = rows[0]
        self._invalidate_booking(booking, property_id=property_id, guest_id=str(values["guest_id"]))
        logger.info("Created booking %s for property %s", booking.get("id"), property_id)
        return booking

    async def update_status(
        self, booking_id: str, status: str, cancellation_reason: str | None = None
    ) -> dict[str, Any]:
        """Move a booking to status, enforcing the lifecycle transition table."""
        current = await self._require(booking_id)
        if not is_valid_status_transition(current["status"], status):
            raise InvalidStatusTransitionError(
                current["status"], status, allowed_transitions(current["status"])
            )

        values: dict[str, Any] = {"status": status}
        if status == BookingStatus.CANCELLED:
            values["cancelled_at"] = to_iso(now_utc())
            if cancellation_reason:
                values["cancellation_reason"] = cancellation_reason
        elif status == BookingStatus.EXPIRED:
            values["cancelled_at"] = to_iso(now_utc())
        return await self._apply(booking_id, values)

    async def cancel(self, booking_id: str, reason: str) -> dict[str, Any]:
        return await self.update_status(booking_id, BookingStatus.CANCELLED.value, reason)

    async def confirm(self, booking_id: str) -> dict[str, Any]:
        """Admin approves a pending request: set commission split and payment deadline."""
        current = await self._require(booking_id)
        self._expect_status(current, BookingStatus.AWAITING_PAYMENT, [BookingStatus.PENDING])

        commission, payout = commission_split(
            float(current.get("total_amount") or 0), self._commission_rate
        )
        expires_at = payment_deadline(now_utc(), self._deadline_hours)
        return await self._apply(
            booking_id,
            {
                "status": BookingStatus.AWAITING_PAYMENT.value,
                "platform_commission": commission,
                "host_payout_amount": payout,
                "payment_expires_at": to_iso(expires_at),
            },
        )

    async def mark_as_paid(
        self,
        booking_id: str,
        payment_method: str,
        payment_reference: str,
        payment_proof_url: str | None = None,
    ) -> dict[str, Any]:
        """Guest reports a payment; the booking waits for admin confirmation."""
        current = await self._require(booking_id)
        self._expect_status(
            current,
            BookingStatus.AWAITING_CONFIRMATION,
            [BookingStatus.AWAITING_PAYMENT, BookingStatus.PAYMENT_FAILED],
        )
        values: dict[str, Any] = {
            "status": BookingStatus.AWAITING_CONFIRMATION.value,
            "payment_method": payment_method,
            "payment_reference": payment_reference,
        }
        if payment_proof_url:
            values["payment_proof_url"] = payment_proof_url
        return await self._apply(booking_id, values)

    async def confirm_payment(self, booking_id: str, confirmed_by: str = "admin") -> dict[str, Any]:
        current = await self._require(booking_id)
        self._expect_status(
            current, BookingStatus.CONFIRMED, [BookingStatus.AWAITING_CONFIRMATION]
        )
        return await self._apply(
            booking_id,
            {
                "status": BookingStatus.CONFIRMED.value,
                "payment_confirmed_by": confirmed_by,
                "payment_confirmed_at": to_iso(now_utc()),
            },
        )

    async def reject_payment(self, booking_id: str, reason: str) -> dict[str, Any]:
        current = await self._require(booking_id)
        self._expect_status(
            current, BookingStatus.PAYMENT_FAILED, [BookingStatus.AWAITING_CONFIRMATION]
        )
        # bookings has no column for the reason
        logger.info("Rejected payment for booking %s: %s", booking_id, reason)
        return await self._apply(booking_id, {"status": BookingStatus.PAYMENT_FAILED.value})

    async def expire_unpaid_bookings(self) -> ExpiryResult:
        """Expire awaiting_payment bookings whose payment deadline has passed.

        Uses the backend function when available and falls back to expiring rows
        one by one. Which bookings changed is unknown afterwards, so every booking
        and availability entry is invalidated, even when the run fails midway.
        """
        try:
            try:
                expired = await self._client.rpc(EXPIRE_RPC)
                return ExpiryResult(expired=int(expired or 0), errors=0)
            except RentalMcpError as exc:
                logger.warning("%s RPC failed, expiring directly: %s", EXPIRE_RPC, exc)
                return await self._expire_directly()
        finally:
            self._invalidate(patterns=[cache_keys.BOOKINGS, cache_keys.AVAILABILITY])

    async def _expire_directly(self) -> ExpiryResult:
        try:
            rows, _ = await self._client.select(
                TABLE,
                [
                    eq("status", BookingStatus.AWAITING_PAYMENT.value),
                    is_not_null("payment_expires_at"),
                    lt("payment_expires_at", to_iso(now_utc())),
                ],
                columns="id",
            )
        except RentalMcpError as exc:
            logger.warning("Could not list unpaid bookings: %s", exc)
            return ExpiryResult(expired=0, errors=1)
        expired = errors = 0
        for row in rows:
            try:
                await self.update_status(str(row["id"]), BookingStatus.EXPIRED.value)
                expired += 1
            except RentalMcpError as exc:
                logger.warning("Could not expire booking %s: %s", row["id"], exc)
                errors += 1
        return ExpiryResult(expired=expired, errors=errors)

    @staticmethod
    def _validate_stay(check_in_date: str, check_out_date: str) -> None:
        try:
            check_in = parse_iso_date(check_in_date)
            check_out = parse_iso_date(check_out_date)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        if check_out <= check_in:
            raise ValidationError("check_out_date must be after check_in_date")

    async def _fetch(self, booking_id: str) -> dict[str, Any] | None:
        return await self._client.select_one(
            TABLE, [eq("id", booking_id)], columns=WITH_DETAILS
        )

    async def _require(self, booking_id: str) -> dict[str, Any]:
        booking = await self._fetch(booking_id)
        if booking is None:
            raise NotFoundError(f"Booking not found: {booking_id}")
        return booking

    @staticmethod
    def _expect_status(
        booking: dict[str, Any], target: BookingStatus, expected: list[BookingStatus]
    ) -> None:
        if booking["status"] not in [s.value for s in expected]:
            raise InvalidStatusTransitionError(
                booking["status"], target.value, allowed_transitions(booking["status"])
            )

    async def _apply(self, booking_id: str, values: dict[str, Any]) -> dict[str, Any]:
        rows = await self._client.update(TABLE, [eq("id", booking_id)], values)
        if not rows:
            raise NotFoundError(f"Booking not found or not editable: {booking_id}")
        booking = rows[0]
        self._invalidate_booking(booking)
        logger.info("Booking %s is now %s", booking_id, values["status"])
        return booking

    async def _find_conflicts(
        self, property_id: str, check_in_date: str, check_out_date: str
    ) -> list[dict[str, Any]]:
        rows, _ = await self._client.select(
            TABLE,
            [
                eq("property_id", property_id),
                in_("status", HOLDING_STATUSES),
                lt("check_in_date", check_out_date),
                gt("check_out_date", check_in_date),
            ],
        )
        return rows

    def _invalidate_booking(
        self,
        booking: dict[str, Any],
        property_id: str | None = None,
        guest_id: str | None = None,
    ) -> None:
        property_id = property_id or str(booking.get("property_id", ""))
        guest_id = guest_id or str(booking.get("guest_id", ""))
        keys = []
        if booking.get("id") is not None:
            keys.append(cache_keys.booking(str(booking["id"])))
        self._invalidate(
            keys=keys,
            patterns=[
                cache_keys.guest_bookings_prefix(guest_id),
                cache_keys.property_bookings_prefix(property_id),
                cache_keys.availability_prefix(property_id),
                cache_keys.BOOKING_SEARCH_PREFIX,
                cache_keys.BOOKING_STATS_PREFIX,
            ],
        )

    @staticmethod
    def _filter_params(filters: BookingFilters) -> Params:
        query: Params = []
        if filters.property_id:
            query.append(eq("property_id", filters.property_id))
        if filters.guest_id:
            query.append(eq("guest_id", filters.guest_id))
        if filters.status:
            query.append(eq("status", filters.status))
        if filters.check_in_date_from:
            query.append(gte("check_in_date", filters.check_in_date_from))
        if filters.check_in_date_to:
            query.append(lte("check_in_date", filters.check_in_date_to))
        if filters.check_out_date_from:
            query.append(gte("check_out_date", filters.check_out_date_from))
        if filters.check_out_date_to:
            query.append(lte("check_out_date", filters.check_out_date_to))
        return query
