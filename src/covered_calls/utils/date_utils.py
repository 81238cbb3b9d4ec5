"""Date utility functions."""

from datetime import date, datetime
from typing import Optional, Union

DateLike = Union[date, datetime, str]


def parse_date(value: DateLike) -> date:
    """
    Normalize a date-like value to a calendar date.

    Datetimes are truncated to their date (time of day is dropped) and
    strings are parsed as ISO-8601. A full ISO timestamp string is accepted
    and truncated the same way.

    Args:
        value: date, datetime, or ISO-8601 string

    Returns:
        Calendar date

    Raises:
        ValueError: If the string is not a valid ISO date
        TypeError: If the value is not date-like
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            return datetime.fromisoformat(text).date()
    raise TypeError(f"Expected a date or ISO date string, got {type(value).__name__}")


def days_between(start: DateLike, end: DateLike) -> int:
    """
    Whole calendar days from start to end (negative if end is earlier).

    Example: Jan 19 to Jan 23 = 4 calendar days
    """
    return (parse_date(end) - parse_date(start)).days


def days_to_expiration(expiration_date: DateLike, today: Optional[DateLike] = None) -> int:
    """
    Calculate calendar days until expiration, floored at zero.

    Both dates are midnight-normalized before diffing. A position past its
    expiration reports 0 rather than a negative count.

    Args:
        expiration_date: Option expiration date
        today: Reference date (defaults to the system date)

    Returns:
        Days to expiration (minimum 0)
    """
    reference = parse_date(today) if today is not None else date.today()
    return max(0, days_between(reference, expiration_date))


def holding_days(open_date: DateLike, expiration_date: DateLike) -> int:
    """
    Full open-to-expiration window in days, floored at one.

    Used to annualize yield and spread premium per day. The floor keeps
    same-day open/expiry positions from dividing by zero.
    """
    return max(1, days_between(open_date, expiration_date))
