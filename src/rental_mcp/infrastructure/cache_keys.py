"""Cache key builders.

Every cached query builds its key here so identical logical queries map to the
same string regardless of call site. Family prefixes end with ":" so that
clearing "bookings:guest:1:" never touches guest 12's entries.
"""
from __future__ import annotations

import json
from typing import Any

PROPERTY_LIST_PREFIX = "properties:list:"
FEATURED_PREFIX = "properties:featured"
PROPERTY_STATS = "properties:stats"

BOOKINGS = "bookings:"
BOOKING_SEARCH_PREFIX = "bookings:search:"
BOOKING_STATS_PREFIX = "bookings:stats:"

GUEST_LIST_PREFIX = "guests:all:"
GUEST_STATS = "guests:stats"

HOST_LIST_PREFIX = "hosts:all:"
HOST_STATS = "hosts:stats"

AVAILABILITY = "availability:"

ACTIVE_PAYMENT_CONFIG = "payment_config:active"


def _prune(value: Any) -> Any:
    """Drop None-valued dict items recursively so unset filters do not alter the key."""
    if isinstance(value, dict):
        return {k: _prune(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [_prune(v) for v in value]
    return value


def stable_params(params: dict[str, Any]) -> str:
    """Serialize a parameter set canonically: sorted keys, compact separators."""
    return json.dumps(_prune(params), sort_keys=True, separators=(",", ":"), default=str)


def property_by_id(property_id: str) -> str:
    return f"properties:{property_id}"


def property_with_images(property_id: str) -> str:
    return f"properties:{property_id}:with-images"


def property_images(property_id: str) -> str:
    return f"properties:{property_id}:images"


def property_list(params: dict[str, Any]) -> str:
    return PROPERTY_LIST_PREFIX + stable_params(params)


def properties_by_city(city: str, limit: int) -> str:
    return f"{PROPERTY_LIST_PREFIX}city:{city}:{limit}"


def featured_properties(limit: int) -> str:
    return f"{FEATURED_PREFIX}:{limit}"


def booking(booking_id: str) -> str:
    return f"bookings:{booking_id}"


def guest_bookings_prefix(guest_id: str) -> str:
    return f"bookings:guest:{guest_id}:"


def guest_bookings(guest_id: str, limit: int) -> str:
    return f"{guest_bookings_prefix(guest_id)}{limit}"


def property_bookings_prefix(property_id: str) -> str:
    return f"bookings:property:{property_id}:"


def property_bookings(property_id: str, limit: int) -> str:
    return f"{property_bookings_prefix(property_id)}{limit}"


def booking_search(params: dict[str, Any]) -> str:
    return BOOKING_SEARCH_PREFIX + stable_params(params)


def booking_stats(property_id: str | None, guest_id: str | None) -> str:
    return f"{BOOKING_STATS_PREFIX}{property_id or 'all'}:{guest_id or 'all'}"


def guest(guest_id: str) -> str:
    return f"guests:{guest_id}"


def guest_by_email(email: str) -> str:
    # Emails are case-insensitive for lookups
    return f"guests:email:{email.strip().lower()}"


def guest_list(page: int, limit: int) -> str:
    return f"{GUEST_LIST_PREFIX}{page}:{limit}"


def availability_prefix(property_id: str) -> str:
    return f"availability:{property_id}:"


def availability(property_id: str, start_date: str, end_date: str) -> str:
    return f"{availability_prefix(property_id)}{start_date}:{end_date}"


def booking_conflicts(property_id: str, check_in: str, check_out: str) -> str:
    return f"{availability_prefix(property_id)}conflicts:{check_in}:{check_out}"


def host(host_id: str) -> str:
    return f"hosts:{host_id}"


def host_by_email(email: str) -> str:
    return f"hosts:email:{email.strip().lower()}"


def host_list(page: int, limit: int) -> str:
    return f"{HOST_LIST_PREFIX}{page}:{limit}"


def host_property_count(host_id: str) -> str:
    return f"hosts:{host_id}:property_count"


def property_reviews_prefix(property_id: str) -> str:
    return f"reviews:property:{property_id}:"


def property_reviews(property_id: str, limit: int) -> str:
    return f"{property_reviews_prefix(property_id)}{limit}"


def property_review_stats(property_id: str) -> str:
    return f"{property_reviews_prefix(property_id)}stats"


def guest_favorites_prefix(guest_id: str) -> str:
    return f"favorites:guest:{guest_id}:"


def guest_favorites(guest_id: str) -> str:
    return f"{guest_favorites_prefix(guest_id)}all"


def guest_favorite_ids(guest_id: str) -> str:
    return f"{guest_favorites_prefix(guest_id)}ids"


def property_favorites_prefix(property_id: str) -> str:
    return f"favorites:property:{property_id}:"


def property_favorite_count(property_id: str) -> str:
    return f"{property_favorites_prefix(property_id)}count"


def favorite(guest_id: str, property_id: str) -> str:
    return f"favorites:{guest_id}:{property_id}"
