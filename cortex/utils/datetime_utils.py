"""
Centralized datetime parsing utilities for cortex.

Item timestamps and filter bounds arrive as ISO 8601 strings, date-only
strings, or already-parsed objects. Everything is normalized to
timezone-aware UTC so comparisons never mix naive and aware values.
"""

from datetime import date, datetime, time, timezone
from typing import Optional, Union

DISPLAY_FORMAT = "%Y-%m-%d %H:%M"  # Human-readable: "2024-01-15 10:30"
DATE_ONLY_FORMAT = "%Y-%m-%d"  # Date only: "2024-01-15"

DateLike = Union[str, datetime, date, None]


def utc_now() -> datetime:
    """Get current UTC time with timezone awareness."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_datetime(value: DateLike, default: Optional[datetime] = None) -> Optional[datetime]:
    """
    Parse a datetime value from various formats.

    Handles:
    - ISO 8601 strings (with or without timezone, 'Z' suffix)
    - Date-only strings ("2024-01-15" becomes midnight UTC)
    - datetime and date objects

    Returns:
        Timezone-aware UTC datetime, or default if value is None/unparseable

    Examples:
        >>> parse_datetime("2024-01-15T10:30:00Z")
        datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
    """
    if value is None:
        return default

    if isinstance(value, datetime):
        return ensure_utc(value)

    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)

    if not isinstance(value, str):
        return default

    normalized = value.strip()
    if not normalized:
        return default

    if normalized.endswith("Z"):
        normalized = normalized[:-1] + "+00:00"

    # SQLite-style space separator
    if " " in normalized and "T" not in normalized:
        normalized = normalized.replace(" ", "T", 1)

    try:
        return ensure_utc(datetime.fromisoformat(normalized))
    except ValueError:
        return default


def parse_date_bound(value: DateLike, end_of_day: bool = False) -> Optional[datetime]:
    """Parse a date-range bound.

    A bare date (object or "YYYY-MM-DD" string) covers the whole day, so an
    upper bound is pushed to the last microsecond of that day.
    """
    is_bare_date = isinstance(value, date) and not isinstance(value, datetime)
    if isinstance(value, str) and len(value.strip()) == 10:
        is_bare_date = True

    dt = parse_datetime(value)
    if dt is None:
        return None
    if end_of_day and is_bare_date:
        return datetime.combine(dt.date(), time.max, tzinfo=timezone.utc)
    return dt


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime for JSON storage."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()


def format_datetime(dt: DateLike, format_str: str = DISPLAY_FORMAT) -> str:
    """
    Format a datetime value for display.

    Returns:
        Formatted string, or "N/A" if value is None/unparseable
    """
    parsed = parse_datetime(dt)
    if parsed is None:
        return "N/A"
    return parsed.strftime(format_str)
