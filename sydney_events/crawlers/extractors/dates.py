"""Heuristic date resolution for listing cards.

Each source gets one resolver with the signature ``(text, now) -> datetime``.
They recognise "today"/"tomorrow" with an optional ``H:MM AM/PM`` time, one
fully qualified format per source, and otherwise fall back to a fixed offset
from ``now``. They never raise.
"""

import re
from datetime import datetime, timedelta

TIME_RE = re.compile(r"(\d{1,2}):(\d{2})\s*(AM|PM)", re.IGNORECASE)
# "Wed, Jan 5, 2025, 7:30 PM"; the year is optional on Eventbrite cards.
WEEKDAY_DATE_TIME_RE = re.compile(
    r"([A-Za-z]{3})[A-Za-z]*,?\s+([A-Za-z]{3})[A-Za-z]*\s+(\d{1,2}),?\s+(?:(\d{4}),?\s+)?"
    r"(\d{1,2}):(\d{2})\s*(AM|PM)",
    re.IGNORECASE,
)
DAY_MONTH_YEAR_RE = re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{4})\b")
MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

def _to_24h(hour: int, meridiem: str) -> int:
    meridiem = meridiem.upper()
    if meridiem == "PM" and hour != 12:
        return hour + 12
    if meridiem == "AM" and hour == 12:
        return 0
    return hour


def _relative_day(text: str, now: datetime) -> datetime | None:
    lowered = text.lower()
    if "today" in lowered:
        day = now
    elif "tomorrow" in lowered:
        day = now + timedelta(days=1)
    else:
        return None

    match = TIME_RE.search(text)
    if not match:
        return day
    hour = _to_24h(int(match.group(1)), match.group(3))
    return day.replace(hour=hour, minute=int(match.group(2)), second=0, microsecond=0)


def _weekday_date_time(text: str, now: datetime, *, year_required: bool) -> datetime | None:
    match = WEEKDAY_DATE_TIME_RE.search(text)
    if not match:
        return None
    _, month_name, day, year, hour, minute, meridiem = match.groups()
    if year is None and year_required:
        return None
    month = MONTHS.get(month_name.lower())
    if month is None:
        return None

    resolved = datetime(
        int(year) if year else now.year,
        month,
        int(day),
        _to_24h(int(hour), meridiem),
        int(minute),
    )
    if year is None and resolved < now - timedelta(days=1):
        # A yearless card dated in the past belongs to next year's listing.
        resolved = resolved.replace(year=now.year + 1)
    return resolved


def _day_month_year(text: str) -> datetime | None:
    match = DAY_MONTH_YEAR_RE.search(text)
    if not match:
        return None
    day, month, year = (int(part) for part in match.groups())
    return datetime(year, month, day)


def resolve_eventbrite(text: str, now: datetime) -> datetime:
    text = text or ""
    try:
        return (
            _relative_day(text, now)
            or _weekday_date_time(text, now, year_required=False)
            or now + timedelta(days=1)
        )
    except (ValueError, OverflowError, TypeError, AttributeError):
        return now + timedelta(days=1)


def resolve_meetup(text: str, now: datetime) -> datetime:
    text = text or ""
    try:
        return (
            _weekday_date_time(text, now, year_required=True)
            or _relative_day(text, now)
            or now + timedelta(days=2)
        )
    except (ValueError, OverflowError, TypeError, AttributeError):
        return now + timedelta(days=2)


def resolve_timeout(text: str, now: datetime) -> datetime:
    text = text or ""
    try:
        relative = _relative_day(text, now)
        if relative is not None:
            return relative
        if "this week" in text.lower():
            return now + timedelta(days=3)
        return _day_month_year(text) or now + timedelta(days=1)
    except (ValueError, OverflowError, TypeError, AttributeError):
        return now + timedelta(days=1)
