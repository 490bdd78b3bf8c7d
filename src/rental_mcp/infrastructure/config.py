"""Environment-driven settings."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from rental_mcp.domain.exceptions import ValidationError

DEFAULT_COMMISSION_RATE = 0.10
DEFAULT_PAYMENT_DEADLINE_HOURS = 2


@dataclass(frozen=True)
class Settings:
    supabase_url: str
    supabase_anon_key: str
    supabase_access_token: str | None = None
    commission_rate: float = DEFAULT_COMMISSION_RATE
    payment_deadline_hours: int = DEFAULT_PAYMENT_DEADLINE_HOURS
    host: str = "0.0.0.0"
    port: int = 3001
    log_level: str = "INFO"


def _as_float(value: str | None, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _as_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from environment variables (os.environ unless env is given).

    Raises ValidationError when SUPABASE_URL or SUPABASE_ANON_KEY is missing.
    """
    env = os.environ if env is None else env
    url = env.get("SUPABASE_URL", "").strip()
    anon_key = env.get("SUPABASE_ANON_KEY", "").strip()
    if not url or not anon_key:
        raise ValidationError("SUPABASE_URL and SUPABASE_ANON_KEY must be set")

    rate = _as_float(env.get("PLATFORM_COMMISSION_RATE"), DEFAULT_COMMISSION_RATE)
    if not 0 <= rate < 1:
        rate = DEFAULT_COMMISSION_RATE

    return Settings(
        supabase_url=url,
        supabase_anon_key=anon_key,
        supabase_access_token=env.get("SUPABASE_ACCESS_TOKEN") or None,
        commission_rate=rate,
        payment_deadline_hours=_as_int(
            env.get("PAYMENT_DEADLINE_HOURS"), DEFAULT_PAYMENT_DEADLINE_HOURS
        ),
        host=env.get("HOST", "0.0.0.0"),
        port=_as_int(env.get("PORT"), 3001),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
    )
