"""Tests for PaymentConfigQueries."""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from rental_mcp.application.payment_config_queries import PaymentConfigQueries
from rental_mcp.domain.exceptions import NotFoundError
from rental_mcp.infrastructure import cache_keys
from rental_mcp.infrastructure.cache import QueryCache

ORANGE = {"id": "c1", "method": "orange_money", "is_active": True, "display_order": 1}


@pytest.fixture
def queries(client: MagicMock, cache: QueryCache) -> PaymentConfigQueries:
    return PaymentConfigQueries(client, cache)


async def test_get_active_is_cached(queries: PaymentConfigQueries, client: MagicMock) -> None:
    client.select.return_value = ([ORANGE], None)

    assert await queries.get_active() == [ORANGE]
    assert await queries.get_active() == [ORANGE]

    client.select.assert_awaited_once()
    assert ("is_active", "eq.true") in client.select.await_args.args[1]


async def test_admin_reads_bypass_cache(queries: PaymentConfigQueries, client: MagicMock) -> None:
    client.select.return_value = ([ORANGE], None)

    await queries.get_all()
    await queries.get_all()

    assert client.select.await_count == 2


@pytest.mark.parametrize("operation", ["create", "update", "delete"])
async def test_writes_invalidate_active_list(
    queries: PaymentConfigQueries, client: MagicMock, cache: QueryCache, operation: str
) -> None:
    cache.set(cache_keys.ACTIVE_PAYMENT_CONFIG, [ORANGE])
    client.insert.return_value = [ORANGE]
    client.update.return_value = [ORANGE]
    client.delete.return_value = [ORANGE]

    if operation == "create":
        await queries.create({"method": "wave"})
    elif operation == "update":
        await queries.update("c1", {"is_active": False})
    else:
        await queries.delete("c1")

    assert cache.get(cache_keys.ACTIVE_PAYMENT_CONFIG) is None


async def test_update_missing_raises(queries: PaymentConfigQueries, client: MagicMock) -> None:
    client.update.return_value = []

    with pytest.raises(NotFoundError):
        await queries.update("c404", {"is_active": False})
