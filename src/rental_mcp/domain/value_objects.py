from __future__ import annotations

from enum import Enum


class BookingStatus(str, Enum):
    """Lifecycle states of a booking row (bookings.status column).

    Using (str, Enum) so members compare equal to the raw column values.
    """

    PENDING = "pending"
    AWAITING_PAYMENT = "awaiting_payment"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    PAYMENT_FAILED = "payment_failed"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    EXPIRED = "expired"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"
