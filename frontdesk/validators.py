# frontdesk/validators.py
"""
Front Desk Visitor Log - Shared Validation Utilities

Pure validation functions that raise ValueError.
API layer wraps these to return HTTPException as needed.
"""

from __future__ import annotations

import datetime as dt


def validate_date_format(date_str: str, field_name: str = "date") -> dt.date:
    """
    Parse and validate a date string in YYYY-MM-DD format.

    Raises:
        ValueError: If the format is invalid.
    """
    try:
        return dt.date.fromisoformat(date_str)
    except ValueError:
        raise ValueError(
            f"Invalid {field_name} format: '{date_str}'. Expected YYYY-MM-DD."
        )


def validate_date_range_exclusive(
    date_from: str | None, date_to: str | None
) -> tuple[str | None, str | None]:
    """
    Validate an inclusive date range and compute the exclusive end date.

    Stored entry times are ISO strings, so this is the pattern for:
        WHERE entry_time >= ? AND entry_time < ?

    Args:
        date_from: Start date (YYYY-MM-DD, inclusive), or None
        date_to: End date (YYYY-MM-DD, inclusive), or None

    Returns:
        Tuple of (date_from, next_day) where next_day = date_to + 1 day.

    Raises:
        ValueError: If dates are invalid or date_from > date_to.
    """
    from_date = validate_date_format(date_from, "start_date") if date_from else None
    to_date = validate_date_format(date_to, "end_date") if date_to else None

    if from_date and to_date and from_date > to_date:
        raise ValueError(
            f"Invalid date range: start_date ({date_from}) cannot be after "
            f"end_date ({date_to})."
        )

    next_day = (to_date + dt.timedelta(days=1)).isoformat() if to_date else None
    return (from_date.isoformat() if from_date else None), next_day


def validate_length(
    value: str | None, max_length: int, field_name: str
) -> str | None:
    """
    Validate string length constraint.

    Returns:
        Original value if valid (None passes through).

    Raises:
        ValueError: If value exceeds max_length.
    """
    if value is None:
        return None

    if len(value) > max_length:
        raise ValueError(
            f"{field_name} exceeds maximum length of {max_length} characters "
            f"(got {len(value)})."
        )

    return value


def validate_required(value: str | None, field_name: str) -> str:
    """Reject None and blank strings; return the stripped value."""
    if value is None or not str(value).strip():
        raise ValueError(f"{field_name} is required.")
    return str(value).strip()


def parse_iso_timestamp(value: str, field_name: str = "timestamp") -> dt.datetime:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Accepts the 'Z' suffix browsers send (Date.toISOString()).
    Naive values are taken as UTC.

    Raises:
        ValueError: If the value is not a valid ISO-8601 timestamp.
    """
    if not value:
        raise ValueError(f"{field_name} is required.")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = dt.datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(
            f"Invalid {field_name}: '{value}'. Expected ISO-8601 (e.g., 2026-01-15T09:30:00Z)."
        )
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed.astimezone(dt.timezone.utc)


def escape_like_wildcards(value: str) -> str:
    """
    Escape SQL LIKE wildcard characters (% and _) in a string.

    Use together with "LIKE ? ESCAPE '\\'".

    Example:
        >>> escape_like_wildcards("o_brien")
        'o\\_brien'
        >>> escape_like_wildcards("100%")
        '100\\%'
    """
    if not value:
        return value
    # Escape backslash first, then percent and underscore
    return value.replace("\\", "\\\\").replace("%", r"\%").replace("_", r"\_")
