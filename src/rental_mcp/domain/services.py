from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Any

from rental_mcp.domain.entities import Page
from rental_mcp.domain.value_objects import BookingStatus

# Maps each status to the statuses it may move to next.
VALID_STATUS_TRANSITIONS: dict[BookingStatus, list[BookingStatus]] = {
    BookingStatus.PENDING: [BookingStatus.AWAITING_PAYMENT, BookingStatus.CANCELLED],
    BookingStatus.AWAITING_PAYMENT: [
        BookingStatus.AWAITING_CONFIRMATION,
        BookingStatus.EXPIRED,
        BookingStatus.CANCELLED,
    ],
    BookingStatus.AWAITING_CONFIRMATION: [
        BookingStatus.CONFIRMED,
        BookingStatus.PAYMENT_FAILED,
        BookingStatus.CANCELLED,
    ],
    # Guests may retry a rejected payment directly
    BookingStatus.PAYMENT_FAILED: [
        BookingStatus.AWAITING_PAYMENT,
        BookingStatus.AWAITING_CONFIRMATION,
        BookingStatus.CANCELLED,
    ],
    BookingStatus.CONFIRMED: [BookingStatus.CANCELLED, BookingStatus.COMPLETED],
    BookingStatus.CANCELLED: [],
    BookingStatus.COMPLETED: [],
    BookingStatus.EXPIRED: [BookingStatus.CANCELLED],
}

TERMINAL_STATUSES = frozenset({BookingStatus.CANCELLED.value, BookingStatus.COMPLETED.value})


def allowed_transitions(current: str) -> list[str]:
    """Return the raw status values reachable from current ([] for unknown statuses)."""
    try:
        status = BookingStatus(current)
    except ValueError:
        return []
    return [s.value for s in VALID_STATUS_TRANSITIONS[status]]


def is_valid_status_transition(current: str, new: str) -> bool:
    """Return True when a booking in status current may move to status new.

    Cancellation is allowed from every non-terminal status.
    """
    if new == BookingStatus.CANCELLED and current not in TERMINAL_STATUSES:
        return True
    return new in allowed_transitions(current)


def commission_split(total_amount: float, rate: float) -> tuple[float, float]:
    """Return (platform_commission, host_payout_amount) for a booking total."""
    commission = round(total_amount * rate, 2)
    return commission, round(total_amount - commission, 2)


def payment_deadline(now: datetime, hours: int) -> datetime:
    return now + timedelta(hours=hours)


def paginate(rows: list[dict[str, Any]], total: int, page: int, limit: int) -> Page:
    """Wrap one page of rows with the derived pagination metadata."""
    total_pages = math.ceil(total / limit) if limit > 0 else 0
    return Page(
        data=rows,
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )


def page_range(page: int, limit: int) -> tuple[int, int]:
    """Return the inclusive (first, last) row offsets for a 1-based page."""
    first = (page - 1) * limit
    return first, first + limit - 1


def sort_images(row: dict[str, Any]) -> dict[str, Any]:
    """Sort an embedded images list by display_order in place and return the row."""
    images = row.get("images")
    if images:
        images.sort(key=lambda img: img.get("display_order", 0))
    return row


def count_by_status(rows: list[dict[str, Any]], statuses: list[str]) -> dict[str, int]:
    """Tally rows per status; rows with statuses outside the list only count towards total."""
    stats = {"total": 0, **{s: 0 for s in statuses}}
    for row in rows:
        stats["total"] += 1
        status = row.get("status")
        if status in stats and status != "total":
            stats[status] += 1
    return stats


def booking_stats(rows: list[dict[str, Any]]) -> dict[str, float]:
    """Aggregate booking counts per status and revenue from confirmed/completed bookings."""
    counts = count_by_status(
        rows,
        [
            BookingStatus.CONFIRMED.value,
            BookingStatus.PENDING.value,
            BookingStatus.CANCELLED.value,
            BookingStatus.COMPLETED.value,
        ],
    )
    revenue = sum(
        float(row.get("total_amount") or 0)
        for row in rows
        if row.get("status") in (BookingStatus.CONFIRMED, BookingStatus.COMPLETED)
    )
    return {**counts, "total_revenue": revenue}


def rating_stats(rows: list[dict[str, Any]]) -> dict[str, float]:
    """Average rating rounded to one decimal and review count; 0 for no reviews."""
    ratings = [float(row["rating"]) for row in rows if row.get("rating") is not None]
    if not ratings:
        return {"average_rating": 0, "total_reviews": 0}
    return {
        "average_rating": round(sum(ratings) / len(ratings), 1),
        "total_reviews": len(ratings),
    }


def sort_embedded_property_images(row: dict[str, Any]) -> dict[str, Any]:
    """Order the images of an embedded property primary image first, then by display_order."""
    prop = row.get("property")
    if prop and prop.get("images"):
        prop["images"].sort(
            key=lambda img: (not img.get("is_primary", False), img.get("display_order") or 0)
        )
    return row
