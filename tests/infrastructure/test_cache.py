"""Tests for the query cache."""
from __future__ import annotations

from unittest.mock import patch

from rental_mcp.infrastructure.cache import (
    TTL_LONG,
    TTL_MEDIUM,
    TTL_SHORT,
    TTL_VERY_LONG,
    QueryCache,
)

BASE_TIME = 1000.0


def test_cache_miss_returns_none() -> None:
    cache = QueryCache()
    assert cache.get("absent") is None


def test_set_and_get() -> None:
    cache = QueryCache()
    cache.set("guests:42", {"id": 42, "status": "active"}, ttl=300)
    assert cache.get("guests:42") == {"id": 42, "status": "active"}


def test_falsy_values_are_hits() -> None:
    cache = QueryCache()
    cache.set("favorites:1:2", False)
    cache.set("properties:list:{}", [])
    assert cache.get("favorites:1:2") is False
    assert cache.get("properties:list:{}") == []


def test_guest_entry_expires_after_ttl() -> None:
    """A 300 s entry is served right away and gone 300.001 s later."""
    cache = QueryCache()
    with patch("rental_mcp.infrastructure.cache.time") as mock_time:
        mock_time.monotonic.return_value = BASE_TIME
        cache.set("guests:42", {"id": 42, "status": "active"}, ttl=300)
        assert cache.get("guests:42") == {"id": 42, "status": "active"}

        mock_time.monotonic.return_value = BASE_TIME + 300.001
        assert cache.get("guests:42") is None


def test_entry_is_expired_exactly_at_deadline() -> None:
    cache = QueryCache()
    with patch("rental_mcp.infrastructure.cache.time") as mock_time:
        mock_time.monotonic.return_value = BASE_TIME
        cache.set("k", "v", ttl=30)
        mock_time.monotonic.return_value = BASE_TIME + 30
        assert cache.get("k") is None


def test_expired_entry_is_removed_on_get() -> None:
    cache = QueryCache()
    with patch("rental_mcp.infrastructure.cache.time") as mock_time:
        mock_time.monotonic.return_value = BASE_TIME
        cache.set("k", "v", ttl=1)
        mock_time.monotonic.return_value = BASE_TIME + 2
        assert len(cache) == 1
        cache.get("k")
        assert len(cache) == 0


def test_default_ttl_used_when_omitted() -> None:
    cache = QueryCache()
    with patch("rental_mcp.infrastructure.cache.time") as mock_time:
        mock_time.monotonic.return_value = BASE_TIME
        cache.set("k", "v")
        mock_time.monotonic.return_value = BASE_TIME + TTL_MEDIUM - 1
        assert cache.get("k") == "v"
        mock_time.monotonic.return_value = BASE_TIME + TTL_MEDIUM + 1
        assert cache.get("k") is None


def test_ttl_tiers_are_ordered() -> None:
    assert TTL_SHORT < TTL_MEDIUM < TTL_LONG < TTL_VERY_LONG


def test_custom_ttl_outlives_default() -> None:
    cache = QueryCache(default_ttl=90)
    with patch("rental_mcp.infrastructure.cache.time") as mock_time:
        mock_time.monotonic.return_value = BASE_TIME
        cache.set("k", "v", ttl=TTL_LONG)
        mock_time.monotonic.return_value = BASE_TIME + 91.0
        assert cache.get("k") == "v"


def test_set_overwrites() -> None:
    cache = QueryCache()
    cache.set("key", "original", ttl=60)
    cache.set("key", "updated", ttl=60)
    assert cache.get("key") == "updated"


def test_overwrite_resets_expiry() -> None:
    cache = QueryCache()
    with patch("rental_mcp.infrastructure.cache.time") as mock_time:
        mock_time.monotonic.return_value = BASE_TIME
        cache.set("k", "v1", ttl=10)
        mock_time.monotonic.return_value = BASE_TIME + 8
        cache.set("k", "v2", ttl=10)
        mock_time.monotonic.return_value = BASE_TIME + 15
        assert cache.get("k") == "v2"


def test_delete() -> None:
    cache = QueryCache()
    cache.set("key", "value")
    cache.delete("key")
    assert cache.get("key") is None


def test_delete_absent_key_is_noop() -> None:
    cache = QueryCache()
    cache.delete("never-set")
    cache.delete("never-set")
    assert len(cache) == 0


def test_clear_pattern_removes_only_matching_keys() -> None:
    cache = QueryCache()
    cache.set("properties:list:A", 1)
    cache.set("properties:list:B", 2)
    cache.set("hosts:1", 3)

    removed = cache.clear_pattern("properties:list:")

    assert removed == 2
    assert cache.stats().keys == ["hosts:1"]


def test_clear_pattern_keeps_featured_list() -> None:
    cache = QueryCache()
    cache.set("properties:list:{}", list(range(10)), ttl=30)
    cache.set("properties:featured", ["a", "b", "c"], ttl=180)

    cache.clear_pattern("properties:list:")

    assert cache.get("properties:list:{}") is None
    assert cache.get("properties:featured") == ["a", "b", "c"]


def test_clear_pattern_is_literal_not_regex() -> None:
    cache = QueryCache()
    cache.set('properties:list:{"page":1}', 1)
    cache.set("properties:listing", 2)

    cache.clear_pattern('{"page":1}')

    assert cache.get('properties:list:{"page":1}') is None
    assert cache.get("properties:listing") == 2


def test_clear_pattern_without_match_is_noop() -> None:
    cache = QueryCache()
    cache.set("hosts:1", 1)
    assert cache.clear_pattern("bookings:") == 0
    assert cache.get("hosts:1") == 1


def test_clear() -> None:
    cache = QueryCache()
    cache.set("k1", "v1")
    cache.set("k2", "v2")
    cache.clear()
    assert cache.get("k1") is None
    assert cache.get("k2") is None


def test_stats_lists_keys() -> None:
    cache = QueryCache()
    cache.set("a", 1)
    cache.set("b", 2)
    stats = cache.stats()
    assert stats.size == 2
    assert sorted(stats.keys) == ["a", "b"]


def test_purge_expired() -> None:
    cache = QueryCache()
    with patch("rental_mcp.infrastructure.cache.time") as mock_time:
        mock_time.monotonic.return_value = BASE_TIME
        cache.set("short", 1, ttl=TTL_SHORT)
        cache.set("long", 2, ttl=TTL_LONG)
        mock_time.monotonic.return_value = BASE_TIME + TTL_SHORT + 1

        assert cache.purge_expired() == 1
        assert cache.stats().keys == ["long"]


def test_cache_prevents_second_fetch() -> None:
    """Read-through usage: the loader runs once while the entry is fresh."""
    cache = QueryCache()
    call_count = 0

    def fetch() -> dict:  # type: ignore[type-arg]
        nonlocal call_count
        call_count += 1
        return {"result": call_count}

    for _ in range(2):
        result = cache.get("op")
        if result is None:
            result = fetch()
            cache.set("op", result, ttl=TTL_SHORT)

    assert call_count == 1
    assert result == {"result": 1}
