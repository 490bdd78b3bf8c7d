from __future__ import annotations

from datetime import date, datetime, timedelta, timezone


def now_utc() -> datetime:
    """Return the current moment as a timezone-aware datetime in UTC."""
    return datetime.now(tz=timezone.utc)


def to_iso(dt: datetime) -> str:
    """Format a timezone-aware datetime the way timestamptz columns are written."""
    return dt.astimezone(timezone.utc).isoformat()


def parse_iso_date(s: str) -> date:
    """Parse a YYYY-MM-DD date string.

    Raises ValueError on empty or unparseable input.
    """
    if not s or not s.strip():
        raise ValueError("Empty date string")
    try:
        return date.fromisoformat(s.strip())
    except ValueError:
        raise ValueError(f"Cannot parse date string: {s!r}, expected YYYY-MM-DD")


def date_span(start: str, end: str) -> list[str]:
    """Return every date from start to end inclusive as YYYY-MM-DD strings."""
    first = parse_iso_date(start)
    last = parse_iso_date(end)
    if last < first:
        raise ValueError(f"End date {end} is before start date {start}")
    return [(first + timedelta(days=i)).isoformat() for i in range((last - first).days + 1)]
