from __future__ import annotations

import httpx
from mcp.server.fastmcp import FastMCP

from rental_mcp.application.query_services import build_query_services
from rental_mcp.infrastructure.cache import TTL_MEDIUM, QueryCache
from rental_mcp.infrastructure.config import Settings
from rental_mcp.infrastructure.supabase_client import DEFAULT_TIMEOUT, SupabaseClient
from rental_mcp.mcp.tools import register_tools


def create_mcp_app(settings: Settings) -> FastMCP:
    """Create and configure the FastMCP application with all services wired.

    One QueryCache is created here and shared by every query wrapper.
    """
    cache = QueryCache(default_ttl=TTL_MEDIUM)
    http_client = httpx.AsyncClient(timeout=DEFAULT_TIMEOUT, follow_redirects=True)
    client = SupabaseClient(
        http_client=http_client,
        base_url=settings.supabase_url,
        api_key=settings.supabase_anon_key,
        access_token=settings.supabase_access_token,
    )
    services = build_query_services(
        client,
        cache,
        commission_rate=settings.commission_rate,
        payment_deadline_hours=settings.payment_deadline_hours,
    )

    mcp = FastMCP("Rental Platform MCP", stateless_http=True)
    register_tools(mcp, services)
    return mcp
