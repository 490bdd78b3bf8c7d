from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from rental_mcp.domain.value_objects import SortOrder


@dataclass
class CacheEntry:
    """A single memoized query result held by the query cache."""

    key: str
    value: Any  # Opaque to the cache; callers know the shape they stored
    inserted_at: float  # time.monotonic() at set()
    expires_at: float  # inserted_at + ttl

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass
class CacheStats:
    size: int
    keys: list[str] = field(default_factory=list)


@dataclass
class PropertyFilters:
    """Optional property search filters; None means "do not filter"."""

    city: str | None = None
    state: str | None = None
    property_type: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    min_bedrooms: int | None = None
    min_bathrooms: int | None = None
    min_guests: int | None = None
    amenities: list[str] = field(default_factory=list)
    is_featured: bool | None = None


@dataclass
class SearchParams:
    """Full-text query, filters, sort and page for a property search."""

    query: str | None = None
    filters: PropertyFilters = field(default_factory=PropertyFilters)
    sort_by: str = "created_at"
    sort_order: SortOrder = SortOrder.DESC
    page: int = 1
    limit: int = 12


@dataclass
class BookingFilters:
    property_id: str | None = None
    guest_id: str | None = None
    status: str | None = None
    check_in_date_from: str | None = None  # YYYY-MM-DD
    check_in_date_to: str | None = None
    check_out_date_from: str | None = None
    check_out_date_to: str | None = None


@dataclass
class Page:
    """One page of rows plus the pagination metadata the views need."""

    data: list[dict[str, Any]]
    total: int
    page: int
    limit: int
    total_pages: int
    has_next: bool
    has_prev: bool


@dataclass
class AvailabilityCheck:
    available: bool
    conflicting_bookings: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class ExpiryResult:
    expired: int
    errors: int
