"""Tests for environment-driven settings."""
from __future__ import annotations

import pytest

from rental_mcp.domain.exceptions import ValidationError
from rental_mcp.infrastructure.config import (
    DEFAULT_COMMISSION_RATE,
    DEFAULT_PAYMENT_DEADLINE_HOURS,
    load_settings,
)

BASE_ENV = {"SUPABASE_URL": "https://proj.supabase.co", "SUPABASE_ANON_KEY": "anon"}


def test_defaults() -> None:
    settings = load_settings(BASE_ENV)
    assert settings.supabase_url == "https://proj.supabase.co"
    assert settings.supabase_access_token is None
    assert settings.commission_rate == DEFAULT_COMMISSION_RATE
    assert settings.payment_deadline_hours == DEFAULT_PAYMENT_DEADLINE_HOURS
    assert settings.port == 3001
    assert settings.log_level == "INFO"


def test_overrides() -> None:
    settings = load_settings(
        {
            **BASE_ENV,
            "PLATFORM_COMMISSION_RATE": "0.15",
            "PAYMENT_DEADLINE_HOURS": "24",
            "PORT": "8080",
            "LOG_LEVEL": "debug",
            "SUPABASE_ACCESS_TOKEN": "jwt",
        }
    )
    assert settings.commission_rate == 0.15
    assert settings.payment_deadline_hours == 24
    assert settings.port == 8080
    assert settings.log_level == "DEBUG"
    assert settings.supabase_access_token == "jwt"


def test_bad_numbers_fall_back_to_defaults() -> None:
    settings = load_settings({**BASE_ENV, "PLATFORM_COMMISSION_RATE": "ten", "PORT": "x"})
    assert settings.commission_rate == DEFAULT_COMMISSION_RATE
    assert settings.port == 3001


def test_out_of_range_commission_falls_back() -> None:
    settings = load_settings({**BASE_ENV, "PLATFORM_COMMISSION_RATE": "1.5"})
    assert settings.commission_rate == DEFAULT_COMMISSION_RATE


@pytest.mark.parametrize("missing", ["SUPABASE_URL", "SUPABASE_ANON_KEY"])
def test_missing_backend_settings_raise(missing: str) -> None:
    env = {k: v for k, v in BASE_ENV.items() if k != missing}
    with pytest.raises(ValidationError):
        load_settings(env)


def test_reads_os_environ(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://env.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "env-anon")
    assert load_settings().supabase_url == "https://env.supabase.co"
