"""Shared pytest fixtures for the rental platform MCP test suite."""
from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from rental_mcp.infrastructure.cache import QueryCache


@pytest.fixture
def cache() -> QueryCache:
    """A fresh, empty cache per test."""
    return QueryCache()


@pytest.fixture
def client() -> MagicMock:
    """A SupabaseClient stand-in; every backend call is an AsyncMock returning nothing."""
    mock = MagicMock()
    mock.select = AsyncMock(return_value=([], None))
    mock.select_one = AsyncMock(return_value=None)
    mock.count = AsyncMock(return_value=0)
    mock.insert = AsyncMock(return_value=[])
    mock.update = AsyncMock(return_value=[])
    mock.upsert = AsyncMock(return_value=[])
    mock.delete = AsyncMock(return_value=[])
    mock.rpc = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def sample_property_row() -> dict[str, Any]:
    """Sample properties row with embedded images and host, as PostgREST returns it."""
    return {
        "id": "11111111-1111-1111-1111-111111111111",
        "title": "Lagoon View Apartment",
        "description": "Two-bedroom apartment overlooking the Ebrié lagoon.",
        "property_type": "apartment",
        "address": "12 Boulevard de Marseille",
        "city": "Abidjan",
        "state": "Lagunes",
        "zip_code": "00225",
        "price_per_night": 85.0,
        "bedrooms": 2,
        "bathrooms": 1,
        "max_guests": 4,
        "amenities": ["wifi", "air_conditioning"],
        "is_featured": True,
        "status": "active",
        "images": [
            {"id": "img-2", "image_url": "https://cdn.example/2.jpg", "display_order": 2},
            {"id": "img-1", "image_url": "https://cdn.example/1.jpg", "display_order": 1},
        ],
        "host": {"id": "h1", "first_name": "Awa", "last_name": "Koné"},
    }


@pytest.fixture
def sample_booking_row() -> dict[str, Any]:
    """Sample bookings row for a pending request."""
    return {
        "id": "b1",
        "property_id": "p1",
        "guest_id": "g1",
        "check_in_date": "2026-03-10",
        "check_out_date": "2026-03-14",
        "guests_count": 2,
        "base_price": 340.0,
        "cleaning_fee": 20.0,
        "taxes": 0.0,
        "total_amount": 360.0,
        "status": "pending",
    }
