"""
Datetime utility functions.
Provides replacements for deprecated datetime functions.
"""

from datetime import datetime
from typing import Optional, Union
import pytz


def utcnow() -> datetime:
    """
    Get current UTC datetime using pytz.UTC.

    Returns:
        Current UTC datetime with pytz timezone information
    """
    return datetime.now(pytz.UTC)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Return an aware UTC datetime.

    Naive values (SQLite drops tzinfo on the way back out) are assumed to
    already be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return pytz.UTC.localize(value)
    return value.astimezone(pytz.UTC)


def parse_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp (provider or request input) into aware UTC.

    Accepts a trailing "Z", date-only strings ("2025-10-22") and datetime
    objects. Returns None when the value cannot be parsed.

    Examples:
        >>> parse_datetime("2025-10-22T23:30Z")
        datetime.datetime(2025, 10, 22, 23, 30, tzinfo=<UTC>)
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        # Some feeds send minutes without seconds and no offset, e.g. "2025-10-22T23:30"
        for fmt in ("%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M:%S", "%m/%d/%Y %H:%M:%S", "%m/%d/%Y"):
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
        else:
            return None
    return ensure_utc(parsed)


def format_short_date(date_input: datetime) -> str:
    """
    Format a date as M/D/YYYY (no leading zeros), e.g. "1/21/2026".

    Used when describing a game in offer summaries.
    """
    return f"{date_input.month}/{date_input.day}/{date_input.year}"
