# frontdesk/clock.py
"""
Front Desk Visitor Log - Wall Clock Helpers

Every timestamp stored in the database goes through to_iso() so that
plain string comparison in SQL orders them correctly.
"""

from __future__ import annotations

import datetime as dt


def utc_now() -> dt.datetime:
    """Current time as an aware UTC datetime."""
    return dt.datetime.now(dt.timezone.utc)


def to_iso(value: dt.datetime) -> str:
    """
    Format a datetime as ISO-8601 UTC with milliseconds and a 'Z' suffix.

    Naive datetimes are assumed to already be UTC.

    Example:
        >>> to_iso(dt.datetime(2026, 1, 31, 9, 15, tzinfo=dt.timezone.utc))
        '2026-01-31T09:15:00.000Z'
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=dt.timezone.utc)
    value = value.astimezone(dt.timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def utc_now_iso() -> str:
    return to_iso(utc_now())


def utc_today() -> str:
    """Current UTC calendar date as YYYY-MM-DD."""
    return utc_now().date().isoformat()
