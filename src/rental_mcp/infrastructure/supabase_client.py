from __future__ import annotations

import logging
from typing import Any

import httpx

from rental_mcp.domain.exceptions import ApiError
from rental_mcp.infrastructure.headers import make_headers

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0  # seconds

Params = list[tuple[str, str]]


def _fmt(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# PostgREST filter helpers. Each returns one (column, "op.value") query pair;
# a column may appear more than once (e.g. gte and lte on the same date).
def eq(column: str, value: Any) -> tuple[str, str]:
    return column, f"eq.{_fmt(value)}"


def gt(column: str, value: Any) -> tuple[str, str]:
    return column, f"gt.{_fmt(value)}"


def gte(column: str, value: Any) -> tuple[str, str]:
    return column, f"gte.{_fmt(value)}"


def lt(column: str, value: Any) -> tuple[str, str]:
    return column, f"lt.{_fmt(value)}"


def lte(column: str, value: Any) -> tuple[str, str]:
    return column, f"lte.{_fmt(value)}"


def in_(column: str, values: list[Any]) -> tuple[str, str]:
    return column, f"in.({','.join(_fmt(v) for v in values)})"


def is_not_null(column: str) -> tuple[str, str]:
    return column, "not.is.null"


def overlaps(column: str, values: list[str]) -> tuple[str, str]:
    return column, "ov.{" + ",".join(values) + "}"


def any_ilike(columns: list[str], term: str) -> tuple[str, str]:
    """OR of case-insensitive substring matches of term across columns."""
    # Reserved PostgREST characters would split the or=() expression
    cleaned = "".join(ch for ch in term if ch not in ",()")
    return "or", "(" + ",".join(f"{c}.ilike.*{cleaned}*" for c in columns) + ")"


def order(column: str, ascending: bool = True) -> tuple[str, str]:
    return "order", f"{column}.{'asc' if ascending else 'desc'}"


def parse_content_range(value: str | None) -> int | None:
    """Extract the total from a Content-Range header such as "0-11/42" or "*/0"."""
    if not value or "/" not in value:
        return None
    total = value.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else None


class SupabaseClient:
    """Thin async client for the backend's PostgREST endpoint (<base_url>/rest/v1).

    A single httpx.AsyncClient instance is shared for the process lifetime.
    Caching is the caller's concern; every call here goes to the network.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str,
        api_key: str,
        access_token: str | None = None,
    ) -> None:
        self._http = http_client
        self._rest_url = base_url.rstrip("/") + "/rest/v1"
        self._api_key = api_key
        self._access_token = access_token

    async def select(
        self,
        table: str,
        params: Params | None = None,
        *,
        columns: str = "*",
        count: bool = False,
    ) -> tuple[list[dict[str, Any]], int | None]:
        """GET /<table>?select=<columns>&<filters> and return (rows, exact total or None)."""
        query: Params = [("select", columns), *(params or [])]
        prefer = ["count=exact"] if count else None
        response = await self._request("GET", table, params=query, prefer=prefer)
        rows: list[dict[str, Any]] = response.json()
        total = parse_content_range(response.headers.get("content-range")) if count else None
        return rows, total

    async def select_one(
        self, table: str, params: Params, *, columns: str = "*"
    ) -> dict[str, Any] | None:
        """Return the first matching row or None when nothing matches."""
        rows, _ = await self.select(table, [*params, ("limit", "1")], columns=columns)
        return rows[0] if rows else None

    async def count(self, table: str, params: Params | None = None) -> int:
        """Exact row count via a HEAD request."""
        query: Params = [("select", "id"), *(params or [])]
        response = await self._request("HEAD", table, params=query, prefer=["count=exact"])
        return parse_content_range(response.headers.get("content-range")) or 0

    async def insert(
        self, table: str, rows: dict[str, Any] | list[dict[str, Any]]
    ) -> list[dict[str, Any]]:
        response = await self._request(
            "POST", table, json=rows, prefer=["return=representation"]
        )
        created: list[dict[str, Any]] = response.json()
        return created

    async def update(
        self, table: str, filters: Params, values: dict[str, Any]
    ) -> list[dict[str, Any]]:
        """PATCH matching rows. An empty result means no row matched (or RLS hid it)."""
        response = await self._request(
            "PATCH", table, params=filters, json=values, prefer=["return=representation"]
        )
        updated: list[dict[str, Any]] = response.json()
        return updated

    async def upsert(
        self, table: str, rows: list[dict[str, Any]], on_conflict: str
    ) -> list[dict[str, Any]]:
        response = await self._request(
            "POST",
            table,
            params=[("on_conflict", on_conflict)],
            json=rows,
            prefer=["resolution=merge-duplicates", "return=representation"],
        )
        merged: list[dict[str, Any]] = response.json()
        return merged

    async def delete(self, table: str, filters: Params) -> list[dict[str, Any]]:
        response = await self._request(
            "DELETE", table, params=filters, prefer=["return=representation"]
        )
        deleted: list[dict[str, Any]] = response.json()
        return deleted

    async def rpc(self, function: str, args: dict[str, Any] | None = None) -> Any:
        """POST /rpc/<function> and return the decoded result."""
        response = await self._request("POST", f"rpc/{function}", json=args or {})
        return response.json() if response.content else None

    async def _request(
        self,
        method: str,
        path: str,
        params: Params | None = None,
        json: Any = None,
        prefer: list[str] | None = None,
    ) -> httpx.Response:
        headers = make_headers(self._api_key, self._access_token, prefer)
        response = await self._http.request(
            method,
            f"{self._rest_url}/{path}",
            params=params,
            json=json,
            headers=headers,
        )
        self._raise_for_status(method, path, response)
        return response

    def _raise_for_status(self, method: str, path: str, response: httpx.Response) -> None:
        """Raise ApiError for non-2xx responses, carrying the PostgREST message when present."""
        if response.status_code < 400:
            return
        logger.warning("Backend request failed: %s %s -> %d", method, path, response.status_code)
        message = ""
        if response.content:
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                message = body.get("message") or ""
        if response.status_code == 404:
            raise ApiError(404, message or f"Resource not found (404): {path}")
        raise ApiError(response.status_code, message)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()
