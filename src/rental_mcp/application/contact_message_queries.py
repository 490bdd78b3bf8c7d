from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from rental_mcp.application.base import CachedQueries
from rental_mcp.domain.exceptions import (
    ApiError,
    NotFoundError,
    RentalMcpError,
    ValidationError,
)
from rental_mcp.infrastructure.supabase_client import eq, gte, order
from rental_mcp.infrastructure.time_utils import now_utc, to_iso

logger = logging.getLogger(__name__)

TABLE = "contact_messages"
RATE_LIMIT_PER_HOUR = 3
MESSAGE_STATUSES = ["new", "read", "replied", "archived"]
RATE_LIMIT_MESSAGE = (
    f"Rate limit exceeded. You can only submit {RATE_LIMIT_PER_HOUR} messages per hour. "
    "Please try again later."
)


class ContactMessageQueries(CachedQueries):
    """Contact form submissions. Nothing here is cached."""

    async def check_rate_limit(self, email: str) -> bool:
        """True while the address has sent fewer than RATE_LIMIT_PER_HOUR messages in the last hour.

        Fails open when the count cannot be read.
        """
        since = to_iso(now_utc() - timedelta(hours=1))
        try:
            recent = await self._client.count(TABLE, [eq("email", email), gte("created_at", since)])
        except RentalMcpError as exc:
            logger.warning("Could not check contact rate limit for %s: %s", email, exc)
            return True
        return recent < RATE_LIMIT_PER_HOUR

    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        if not await self.check_rate_limit(str(values["email"])):
            raise ValidationError(RATE_LIMIT_MESSAGE)
        try:
            rows = await self._client.insert(TABLE, {**values, "status": "new"})
        except ApiError as exc:
            # The table trigger enforces the same limit server side
            if "Rate limit exceeded" in str(exc):
                raise ValidationError(RATE_LIMIT_MESSAGE) from exc
            raise
        logger.info("Stored contact message %s", rows[0].get("id"))
        return rows[0]

    async def get_by_id(self, message_id: str) -> dict[str, Any] | None:
        return await self._client.select_one(TABLE, [eq("id", message_id)])

    async def get_all(self) -> list[dict[str, Any]]:
        rows, _ = await self._client.select(TABLE, [order("created_at", ascending=False)])
        return rows

    async def update_status(self, message_id: str, status: str) -> dict[str, Any]:
        if status not in MESSAGE_STATUSES:
            raise ValidationError(
                f"Invalid message status {status!r}, expected one of {', '.join(MESSAGE_STATUSES)}"
            )
        rows = await self._client.update(TABLE, [eq("id", message_id)], {"status": status})
        if not rows:
            raise NotFoundError(f"Contact message not found: {message_id}")
        return rows[0]
