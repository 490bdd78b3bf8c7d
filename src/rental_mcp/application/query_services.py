from __future__ import annotations

from dataclasses import dataclass

from rental_mcp.application.availability_queries import AvailabilityQueries
from rental_mcp.application.booking_queries import BookingQueries
from rental_mcp.application.contact_message_queries import ContactMessageQueries
from rental_mcp.application.favorite_queries import FavoriteQueries
from rental_mcp.application.guest_queries import GuestQueries
from rental_mcp.application.host_queries import HostQueries
from rental_mcp.application.payment_config_queries import PaymentConfigQueries
from rental_mcp.application.property_queries import PropertyQueries
from rental_mcp.application.review_queries import ReviewQueries
from rental_mcp.infrastructure.cache import QueryCache
from rental_mcp.infrastructure.supabase_client import SupabaseClient


@dataclass
class QueryServices:
    """All query wrappers sharing one backend client and one cache."""

    cache: QueryCache
    properties: PropertyQueries
    bookings: BookingQueries
    guests: GuestQueries
    availability: AvailabilityQueries
    payment_config: PaymentConfigQueries
    hosts: HostQueries
    reviews: ReviewQueries
    favorites: FavoriteQueries
    contact_messages: ContactMessageQueries


def build_query_services(
    client: SupabaseClient,
    cache: QueryCache,
    commission_rate: float,
    payment_deadline_hours: int,
) -> QueryServices:
    return QueryServices(
        cache=cache,
        properties=PropertyQueries(client, cache),
        bookings=BookingQueries(
            client,
            cache,
            commission_rate=commission_rate,
            payment_deadline_hours=payment_deadline_hours,
        ),
        guests=GuestQueries(client, cache),
        availability=AvailabilityQueries(client, cache),
        payment_config=PaymentConfigQueries(client, cache),
        hosts=HostQueries(client, cache),
        reviews=ReviewQueries(client, cache),
        favorites=FavoriteQueries(client, cache),
        contact_messages=ContactMessageQueries(client, cache),
    )
