#!/usr/bin/env python3
"""Rental Platform MCP Server: repository root entry point.

Usage:
    uv run server.py           # HTTP mode (default)
    uv run server.py --stdio   # stdio mode for Claude Desktop

Requires SUPABASE_URL and SUPABASE_ANON_KEY in the environment.
"""
from __future__ import annotations

import logging
import sys

import uvicorn
from starlette.middleware.cors import CORSMiddleware

from rental_mcp.infrastructure.config import load_settings
from rental_mcp.mcp import create_mcp_app

settings = load_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

if __name__ == "__main__":
    mcp = create_mcp_app(settings)
    if "--stdio" in sys.argv:
        # Claude Desktop mode
        mcp.run(transport="stdio")
    else:
        # HTTP mode with CORS
        app = mcp.streamable_http_app()
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["*"],
            allow_headers=["*"],
        )
        print(f"Rental Platform MCP Server listening on http://{settings.host}:{settings.port}/mcp")
        uvicorn.run(app, host=settings.host, port=settings.port)
