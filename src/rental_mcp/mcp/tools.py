from __future__ import annotations

import dataclasses
import json
import logging
from typing import Any

import httpx
from mcp import types
from mcp.server.fastmcp import FastMCP

from rental_mcp.application.query_services import QueryServices
from rental_mcp.domain.entities import PropertyFilters, SearchParams
from rental_mcp.domain.exceptions import (
    ApiError,
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationError,
)
from rental_mcp.domain.value_objects import SortOrder
from rental_mcp.infrastructure.time_utils import parse_iso_date

logger = logging.getLogger(__name__)

_RESULT_URI = "mcp://rental-mcp/result"

MAX_PAGE_SIZE = 50


def _as_resource(json_str: str) -> list[types.EmbeddedResource]:
    """Wrap a JSON string as an embedded resource so the LLM does not narrate it."""
    return [
        types.EmbeddedResource(
            type="resource",
            resource=types.TextResourceContents(
                uri=_RESULT_URI,  # type: ignore[arg-type]
                mimeType="application/json",
                text=json_str,
            ),
        )
    ]


def _result(value: Any) -> list[types.EmbeddedResource]:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)
    return _as_resource(json.dumps(value, default=str, ensure_ascii=False))


def _error_json(message: str) -> str:
    return json.dumps({"error": message}, ensure_ascii=False)


def _handle_exception(exc: Exception) -> list[types.EmbeddedResource]:
    if isinstance(exc, (NotFoundError, InvalidStatusTransitionError, ValidationError)):
        return _as_resource(_error_json(str(exc)))
    if isinstance(exc, ApiError):
        if exc.status_code in (401, 403):
            return _as_resource(_error_json("Not allowed to access this resource."))
        if exc.status_code == 404:
            return _as_resource(_error_json("Resource not found."))
        if exc.status_code >= 500:
            return _as_resource(
                _error_json(f"Backend error ({exc.status_code}). Please try again later.")
            )
        return _as_resource(_error_json(str(exc)))
    if isinstance(exc, httpx.TimeoutException):
        return _as_resource(_error_json("Request timed out. Please try again."))
    if isinstance(exc, ValueError):
        return _as_resource(_error_json(str(exc)))
    logger.exception("Unexpected error in MCP tool: %s", exc)
    return _as_resource(_error_json("An unexpected error occurred."))


def _require_id(value: str, name: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{name} cannot be empty")
    return value.strip()


def _validate_date(value: str, name: str) -> str:
    try:
        return parse_iso_date(value).isoformat()
    except ValueError:
        raise ValueError(f"Invalid {name}, expected YYYY-MM-DD")


def _validate_sort_order(sort_order: str) -> SortOrder:
    try:
        return SortOrder(sort_order.lower())
    except ValueError:
        raise ValueError(f"Unknown sort order: {sort_order}")


def _validate_page(page: int, limit: int) -> None:
    if page < 1:
        raise ValueError("page must be 1 or greater")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValueError(f"limit must be between 1 and {MAX_PAGE_SIZE}")


def register_tools(mcp: FastMCP, services: QueryServices) -> None:
    """Bind all @mcp.tool decorators. Called once during server setup."""

    @mcp.tool()
    async def search_properties(
        query: str | None = None,
        city: str | None = None,
        property_type: str | None = None,
        min_price: float | None = None,
        max_price: float | None = None,
        min_guests: int | None = None,
        amenities: list[str] | None = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 12,
    ) -> list[types.EmbeddedResource]:
        """Search active property listings.

        Args:
            query: Optional free text matched against title, description, city,
                   state, address, zip code and property type.
            city: Optional exact city filter.
            property_type: Optional exact property type filter, e.g. "apartment".
            min_price: Optional minimum nightly price.
            max_price: Optional maximum nightly price.
            min_guests: Optional minimum guest capacity.
            amenities: Optional amenities; listings with any of them match.
            sort_by: Column to sort by (default "created_at").
            sort_order: "asc" or "desc" (default "desc").
            page: 1-based page number.
            limit: Page size (1-50, default 12).
        """
        try:
            _validate_page(page, limit)
            params = SearchParams(
                query=query,
                filters=PropertyFilters(
                    city=city,
                    property_type=property_type,
                    min_price=min_price,
                    max_price=max_price,
                    min_guests=min_guests,
                    amenities=amenities or [],
                ),
                sort_by=sort_by,
                sort_order=_validate_sort_order(sort_order),
                page=page,
                limit=limit,
            )
            return _result(await services.properties.search(params))
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def get_property(property_id: str) -> list[types.EmbeddedResource]:
        """Get one active property with its images and host.

        Args:
            property_id: Property UUID.
        """
        try:
            property_id = _require_id(property_id, "property_id")
            prop = await services.properties.get_with_images(property_id)
            if prop is None:
                raise NotFoundError(f"Property not found: {property_id}")
            return _result(prop)
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def get_featured_properties(limit: int = 6) -> list[types.EmbeddedResource]:
        """Get featured listings for the home page, newest first."""
        try:
            _validate_page(1, limit)
            return _result(await services.properties.get_featured(limit))
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def get_property_availability(
        property_id: str, start_date: str, end_date: str
    ) -> list[types.EmbeddedResource]:
        """Get unavailable dates of a property in a date range.

        Args:
            property_id: Property UUID.
            start_date: First date, YYYY-MM-DD.
            end_date: Last date (inclusive), YYYY-MM-DD.
        """
        try:
            property_id = _require_id(property_id, "property_id")
            start = _validate_date(start_date, "start_date")
            end = _validate_date(end_date, "end_date")
            unavailable = await services.availability.get_unavailable_dates(
                property_id, start, end
            )
            return _result(
                {
                    "property_id": property_id,
                    "start_date": start,
                    "end_date": end,
                    "unavailable_dates": unavailable,
                }
            )
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def get_booking(booking_id: str) -> list[types.EmbeddedResource]:
        """Get a booking with its property and guest."""
        try:
            booking_id = _require_id(booking_id, "booking_id")
            booking = await services.bookings.get_by_id(booking_id)
            if booking is None:
                raise NotFoundError(f"Booking not found: {booking_id}")
            return _result(booking)
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def list_guest_bookings(
        guest_id: str, limit: int = 20
    ) -> list[types.EmbeddedResource]:
        """List a guest's bookings, newest first."""
        try:
            guest_id = _require_id(guest_id, "guest_id")
            _validate_page(1, limit)
            bookings = await services.bookings.get_by_guest(guest_id, limit)
            return _result({"bookings": bookings, "count": len(bookings)})
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def request_booking(
        property_id: str,
        guest_id: str,
        check_in_date: str,
        check_out_date: str,
        guests_count: int,
        base_price: float,
        cleaning_fee: float = 0.0,
        taxes: float = 0.0,
        special_requests: str | None = None,
    ) -> list[types.EmbeddedResource]:
        """Request a stay. The booking starts as "pending" until an admin confirms it.

        Args:
            property_id: Property UUID.
            guest_id: Guest UUID.
            check_in_date: Arrival date, YYYY-MM-DD.
            check_out_date: Departure date, YYYY-MM-DD (after check-in).
            guests_count: Number of guests (at least 1).
            base_price: Nightly price times nights.
            cleaning_fee: Optional cleaning fee.
            taxes: Optional taxes.
            special_requests: Optional note for the host.
        """
        try:
            if guests_count < 1:
                raise ValueError("guests_count must be at least 1")
            values: dict[str, Any] = {
                "property_id": _require_id(property_id, "property_id"),
                "guest_id": _require_id(guest_id, "guest_id"),
                "check_in_date": _validate_date(check_in_date, "check_in_date"),
                "check_out_date": _validate_date(check_out_date, "check_out_date"),
                "guests_count": guests_count,
                "base_price": base_price,
                "cleaning_fee": cleaning_fee,
                "taxes": taxes,
                # bookings.valid_booking_amount requires this exact sum
                "total_amount": round(base_price + cleaning_fee + taxes, 2),
            }
            if special_requests:
                values["special_requests"] = special_requests
            return _result(await services.bookings.create(values))
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def confirm_booking(booking_id: str) -> list[types.EmbeddedResource]:
        """Admin: approve a pending booking and open the payment window."""
        try:
            return _result(await services.bookings.confirm(_require_id(booking_id, "booking_id")))
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def mark_booking_paid(
        booking_id: str,
        payment_method: str,
        payment_reference: str,
        payment_proof_url: str | None = None,
    ) -> list[types.EmbeddedResource]:
        """Guest: report a payment for a booking awaiting payment.

        Args:
            booking_id: Booking UUID.
            payment_method: One of the active payment methods, e.g. "mtn_momo".
            payment_reference: Transaction ID from the payment provider.
            payment_proof_url: Optional URL of an uploaded receipt.
        """
        try:
            if not payment_reference.strip():
                raise ValueError("payment_reference cannot be empty")
            booking = await services.bookings.mark_as_paid(
                _require_id(booking_id, "booking_id"),
                payment_method,
                payment_reference.strip(),
                payment_proof_url,
            )
            return _result(booking)
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def confirm_booking_payment(booking_id: str) -> list[types.EmbeddedResource]:
        """Admin: confirm a reported payment was received."""
        try:
            booking = await services.bookings.confirm_payment(
                _require_id(booking_id, "booking_id")
            )
            return _result(booking)
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def reject_booking_payment(
        booking_id: str, reason: str
    ) -> list[types.EmbeddedResource]:
        """Admin: reject a reported payment; the guest may pay again."""
        try:
            booking = await services.bookings.reject_payment(
                _require_id(booking_id, "booking_id"), reason
            )
            return _result(booking)
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def cancel_booking(booking_id: str, reason: str) -> list[types.EmbeddedResource]:
        """Cancel a booking that is not already cancelled or completed."""
        try:
            booking = await services.bookings.cancel(_require_id(booking_id, "booking_id"), reason)
            return _result(booking)
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def expire_unpaid_bookings() -> list[types.EmbeddedResource]:
        """Admin: expire bookings whose payment window has passed."""
        try:
            return _result(await services.bookings.expire_unpaid_bookings())
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def get_payment_methods() -> list[types.EmbeddedResource]:
        """List the active payment methods guests can pay with."""
        try:
            return _result({"payment_methods": await services.payment_config.get_active()})
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def get_property_reviews(
        property_id: str, limit: int = 20
    ) -> list[types.EmbeddedResource]:
        """Get approved reviews of a property with its average rating."""
        try:
            property_id = _require_id(property_id, "property_id")
            _validate_page(1, limit)
            reviews = await services.reviews.get_by_property(property_id, limit)
            stats = await services.reviews.get_rating_stats(property_id)
            return _result({"reviews": reviews, **stats})
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def list_guest_favorites(guest_id: str) -> list[types.EmbeddedResource]:
        """List the properties a guest has saved, newest first."""
        try:
            favorites = await services.favorites.get_by_guest(_require_id(guest_id, "guest_id"))
            return _result({"favorites": favorites, "count": len(favorites)})
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def toggle_favorite(guest_id: str, property_id: str) -> list[types.EmbeddedResource]:
        """Save a property for a guest, or remove it if it is already saved."""
        try:
            return _result(
                await services.favorites.toggle(
                    _require_id(guest_id, "guest_id"), _require_id(property_id, "property_id")
                )
            )
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def send_contact_message(
        full_name: str, email: str, subject: str, message: str, phone: str | None = None
    ) -> list[types.EmbeddedResource]:
        """Send a message to the platform team. Limited to 3 messages per hour per email.

        Args:
            full_name: Sender name.
            email: Sender email, used for the reply.
            subject: Message subject.
            message: Message body.
            phone: Optional phone number.
        """
        try:
            values: dict[str, Any] = {
                "full_name": _require_id(full_name, "full_name"),
                "email": _require_id(email, "email").lower(),
                "subject": _require_id(subject, "subject"),
                "message": _require_id(message, "message"),
            }
            if phone:
                values["phone"] = phone.strip()
            return _result(await services.contact_messages.create(values))
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def cache_stats() -> list[types.EmbeddedResource]:
        """Show the number of cached query results and their keys."""
        try:
            return _result(services.cache.stats())
        except Exception as exc:
            return _handle_exception(exc)

    @mcp.tool()
    async def clear_cache(pattern: str | None = None) -> list[types.EmbeddedResource]:
        """Drop cached query results.

        Args:
            pattern: Optional key substring, e.g. "properties:list:". Everything
                     is dropped when omitted.
        """
        try:
            if pattern:
                removed = services.cache.clear_pattern(pattern)
            else:
                removed = len(services.cache)
                services.cache.clear()
            return _result({"removed": removed})
        except Exception as exc:
            return _handle_exception(exc)
