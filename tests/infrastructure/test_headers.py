"""Tests for the header factory."""
from __future__ import annotations

import re

from rental_mcp.infrastructure.headers import make_headers

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"
)


def test_anon_key_used_for_both_headers_without_token() -> None:
    headers = make_headers("anon-key")
    assert headers["apikey"] == "anon-key"
    assert headers["Authorization"] == "Bearer anon-key"


def test_access_token_used_for_authorization() -> None:
    headers = make_headers("anon-key", access_token="user-jwt")
    assert headers["apikey"] == "anon-key"
    assert headers["Authorization"] == "Bearer user-jwt"


def test_request_id_format() -> None:
    headers = make_headers("k")
    assert UUID_PATTERN.match(headers["x-request-id"])


def test_request_id_different_each_call() -> None:
    assert make_headers("k")["x-request-id"] != make_headers("k")["x-request-id"]


def test_prefer_joined() -> None:
    headers = make_headers("k", prefer=["count=exact", "return=representation"])
    assert headers["Prefer"] == "count=exact,return=representation"


def test_no_prefer_by_default() -> None:
    assert "Prefer" not in make_headers("k")


def test_json_content_negotiation() -> None:
    headers = make_headers("k")
    assert headers["Accept"] == "application/json"
    assert headers["Content-Type"] == "application/json"
