"""
Date parsing utilities.

Pure functions, no external dependencies. Query filters compare calendar
days only, so everything here returns ``datetime.date``.
"""

import re
from datetime import date, datetime, timedelta
from typing import Optional

ISO_DATE_FORMAT = "%Y-%m-%d"

_DAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def today() -> date:
    """Current calendar day. Single seam so tests can patch the clock."""
    return datetime.now().date()


def parse_iso_date(date_str: Optional[str]) -> Optional[date]:
    """Parse a strict ``YYYY-MM-DD`` string, or return None."""
    if not date_str:
        return None
    try:
        return datetime.strptime(date_str.strip(), ISO_DATE_FORMAT).date()
    except ValueError:
        return None


def format_date(value: Optional[date]) -> Optional[str]:
    return value.strftime(ISO_DATE_FORMAT) if value else None


def parse_date(date_str: str, reference: Optional[date] = None) -> Optional[date]:
    """
    Parse free-form date text into a calendar date.

    Supports:
    - ISO 8601: "2026-02-15"
    - Named days: "today", "tomorrow", "yesterday"
    - Weekdays: "friday", "next monday", "last monday"
    - Relative: "in 3 days", "in 2 weeks", "3 days ago", "next week", "last month"
    - Month names: "March 15", "Mar 15, 2027", "03/15"

    Args:
        date_str: Text to parse
        reference: Day that relative expressions are anchored to (default: today)

    Returns:
        The parsed date, or None if the text is not understood
    """
    if not date_str:
        return None

    date_str = date_str.strip()
    base = reference or today()
    lowered = date_str.lower()

    if lowered in ("today", "now"):
        return base
    if lowered == "tomorrow":
        return base + timedelta(days=1)
    if lowered == "yesterday":
        return base - timedelta(days=1)

    parsed = parse_iso_date(date_str)
    if parsed:
        return parsed

    for fmt in ("%B %d, %Y", "%b %d, %Y", "%B %d %Y", "%b %d %Y", "%m/%d/%Y"):
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    for fmt in ("%B %d", "%b %d", "%m/%d"):
        try:
            # Year-less formats default to 1900; use a leap year so "Feb 29" parses.
            parsed = datetime.strptime(f"2000 {date_str}", f"%Y {fmt}").date()
        except ValueError:
            continue
        try:
            return parsed.replace(year=base.year)
        except ValueError:
            return None

    direction = 0
    rest = lowered
    if rest.startswith("next "):
        direction, rest = 1, rest[5:].strip()
    elif rest.startswith("last "):
        direction, rest = -1, rest[5:].strip()

    if rest in _DAY_NAMES:
        index = _DAY_NAMES.index(rest)
        if direction < 0:
            days_back = (base.weekday() - index) % 7 or 7
            return base - timedelta(days=days_back)
        days_ahead = (index - base.weekday()) % 7 or 7
        return base + timedelta(days=days_ahead)

    if direction and rest in ("week", "month", "year"):
        return shift(base, rest, direction)

    relative = re.fullmatch(r"in (\d+) (days?|weeks?|months?|years?)", lowered)
    if relative:
        return shift(base, relative.group(2), int(relative.group(1)))

    ago = re.fullmatch(r"(\d+) (days?|weeks?|months?|years?) ago", lowered)
    if ago:
        return shift(base, ago.group(2), -int(ago.group(1)))

    return None


def shift(value: date, unit: str, amount: int) -> date:
    """
    Move ``value`` by ``amount`` units of day/week/month/year.

    Month and year shifts clamp to the last day of the target month.
    """
    unit = unit.rstrip("s")
    if unit == "day":
        return value + timedelta(days=amount)
    if unit == "week":
        return value + timedelta(weeks=amount)
    if unit == "year":
        amount *= 12
    elif unit != "month":
        raise ValueError(f"Unknown date unit: {unit}")

    month_index = value.month - 1 + amount
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, _days_in_month(year, month))
    return date(year, month, day)


def _days_in_month(year: int, month: int) -> int:
    if month == 12:
        return 31
    return (date(year, month + 1, 1) - timedelta(days=1)).day
