"""Tests for date/time helpers."""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest
from freezegun import freeze_time

from rental_mcp.infrastructure.time_utils import date_span, now_utc, parse_iso_date, to_iso


@freeze_time("2026-03-01 12:00:00")
def test_now_utc_is_aware() -> None:
    now = now_utc()
    assert now.tzinfo is not None
    assert now == datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_to_iso_converts_to_utc() -> None:
    dt = datetime(2026, 3, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
    assert to_iso(dt) == "2026-03-01T12:00:00+00:00"


def test_parse_iso_date() -> None:
    assert parse_iso_date("2026-03-01") == date(2026, 3, 1)


def test_parse_iso_date_strips_whitespace() -> None:
    assert parse_iso_date(" 2026-03-01 ") == date(2026, 3, 1)


def test_parse_iso_date_empty_raises() -> None:
    with pytest.raises(ValueError, match="Empty"):
        parse_iso_date("")


def test_parse_iso_date_garbage_raises() -> None:
    with pytest.raises(ValueError, match="YYYY-MM-DD"):
        parse_iso_date("01/03/2026")


def test_date_span_inclusive() -> None:
    assert date_span("2026-02-27", "2026-03-02") == [
        "2026-02-27",
        "2026-02-28",
        "2026-03-01",
        "2026-03-02",
    ]


def test_date_span_single_day() -> None:
    assert date_span("2026-03-01", "2026-03-01") == ["2026-03-01"]


def test_date_span_reversed_raises() -> None:
    with pytest.raises(ValueError, match="before"):
        date_span("2026-03-02", "2026-03-01")
