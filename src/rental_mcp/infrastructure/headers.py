from __future__ import annotations

from uuid import uuid4


def make_headers(
    api_key: str,
    access_token: str | None = None,
    prefer: list[str] | None = None,
) -> dict[str, str]:
    """Return the headers the backend REST endpoint expects on every request.

    The anon key always goes in apikey. Authorization carries the user's access
    token when one is set (row-level security evaluates against it), otherwise
    the anon key itself. x-request-id is freshly generated on every call.
    """
    headers = {
        "apikey": api_key,
        "Authorization": f"Bearer {access_token or api_key}",
        "Accept": "application/json",
        "Content-Type": "application/json",
        "x-request-id": str(uuid4()),
    }
    if prefer:
        headers["Prefer"] = ",".join(prefer)
    return headers
