"""Tests for ReviewQueries."""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from freezegun import freeze_time

from rental_mcp.application.review_queries import ReviewQueries
from rental_mcp.domain.exceptions import ApiError
from rental_mcp.infrastructure import cache_keys
from rental_mcp.infrastructure.cache import QueryCache


@pytest.fixture
def queries(client: MagicMock, cache: QueryCache) -> ReviewQueries:
    return ReviewQueries(client, cache)


async def test_get_by_property_lists_approved_only(
    queries: ReviewQueries, client: MagicMock
) -> None:
    client.select.return_value = ([{"id": "r1"}], None)

    await queries.get_by_property("p1", limit=10)
    await queries.get_by_property("p1", limit=10)

    client.select.assert_awaited_once()
    sent = client.select.await_args.args[1]
    assert ("status", "eq.approved") in sent
    assert ("limit", "10") in sent
    assert client.select.await_args.kwargs["columns"] == "*,guest:guests(*)"


async def test_rating_stats_cached_under_property_family(
    queries: ReviewQueries, client: MagicMock, cache: QueryCache
) -> None:
    client.select.return_value = ([{"rating": 5}, {"rating": 4}], None)

    assert await queries.get_rating_stats("p1") == {"average_rating": 4.5, "total_reviews": 2}
    assert cache.get(cache_keys.property_review_stats("p1")) == {
        "average_rating": 4.5,
        "total_reviews": 2,
    }


async def test_rating_stats_without_reviews_is_cached(
    queries: ReviewQueries, client: MagicMock
) -> None:
    assert await queries.get_rating_stats("p1") == {"average_rating": 0, "total_reviews": 0}
    await queries.get_rating_stats("p1")

    client.select.assert_awaited_once()


async def test_create_starts_pending_and_clears_property_reviews(
    queries: ReviewQueries, client: MagicMock, cache: QueryCache
) -> None:
    cache.set(cache_keys.property_reviews("p1", 50), [])
    cache.set(cache_keys.property_review_stats("p1"), {"total_reviews": 0})
    cache.set(cache_keys.property_reviews("p2", 50), [])
    client.insert.return_value = [{"id": "r1", "status": "pending"}]

    await queries.create(
        {"property_id": "p1", "guest_id": "g1", "rating": 5, "status": "approved"}
    )

    assert client.insert.await_args.args[1]["status"] == "pending"
    assert cache.get(cache_keys.property_reviews("p1", 50)) is None
    assert cache.get(cache_keys.property_review_stats("p1")) is None
    assert cache.get(cache_keys.property_reviews("p2", 50)) == []


async def test_can_guest_review_without_completed_booking(
    queries: ReviewQueries, client: MagicMock
) -> None:
    result = await queries.can_guest_review("p1", "g1")

    assert result == {"can_review": False, "reason": "No completed bookings found"}
    sent = client.select_one.await_args.args[1]
    assert ("status", "eq.completed") in sent
    assert ("order", "check_out_date.desc") in sent


@freeze_time("2026-03-12T10:00:00Z")
async def test_can_guest_review_before_checkout(
    queries: ReviewQueries, client: MagicMock
) -> None:
    client.select_one.return_value = {"id": "b1", "check_out_date": "2026-03-14"}

    result = await queries.can_guest_review("p1", "g1")

    assert result == {"can_review": False, "reason": "Booking has not completed yet"}


@freeze_time("2026-03-20T10:00:00Z")
async def test_can_guest_review_already_reviewed(
    queries: ReviewQueries, client: MagicMock
) -> None:
    client.select_one.side_effect = [
        {"id": "b1", "check_out_date": "2026-03-14"},
        {"id": "r1", "booking_id": "b1"},
    ]

    result = await queries.can_guest_review("p1", "g1")

    assert result == {"can_review": False, "reason": "Review already submitted for this booking"}


@freeze_time("2026-03-20T10:00:00Z")
async def test_can_guest_review_allowed(queries: ReviewQueries, client: MagicMock) -> None:
    client.select_one.side_effect = [{"id": "b1", "check_out_date": "2026-03-14"}, None]

    assert await queries.can_guest_review("p1", "g1") == {"can_review": True, "booking_id": "b1"}


async def test_can_guest_review_propagates_backend_errors(
    queries: ReviewQueries, client: MagicMock
) -> None:
    client.select_one.side_effect = ApiError(500)

    with pytest.raises(ApiError):
        await queries.can_guest_review("p1", "g1")


async def test_get_by_guest_sorts_property_images(
    queries: ReviewQueries, client: MagicMock
) -> None:
    client.select.return_value = (
        [
            {
                "id": "r1",
                "property": {
                    "images": [
                        {"id": "b", "display_order": 2},
                        {"id": "main", "display_order": 5, "is_primary": True},
                        {"id": "a", "display_order": 1},
                    ]
                },
            }
        ],
        None,
    )

    reviews = await queries.get_by_guest("g1")

    assert [i["id"] for i in reviews[0]["property"]["images"]] == ["main", "a", "b"]
