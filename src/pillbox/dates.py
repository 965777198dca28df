"""Calendar date and time-of-day helpers.

Pure functions with no clock access.  Dates are naive calendar dates in a
single implicit zone; times of day are carried around as minutes since
midnight (0-1439).

Parsing is strict: a malformed value raises :class:`~pillbox.errors.InvalidDate`
or :class:`~pillbox.errors.InvalidTime` and is never coerced.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from datetime import date, datetime, time, timedelta
from typing import Any

from pillbox.errors import InvalidDate, InvalidTime

MINUTES_PER_DAY = 24 * 60

TIME_STYLE_24H = "24h"
TIME_STYLE_12H = "12h"
TIME_STYLES = (TIME_STYLE_24H, TIME_STYLE_12H)

_DATE_PATTERN = re.compile(r"([0-9]{4})-([0-9]{2})-([0-9]{2})")
_TIME_PATTERN = re.compile(r"([0-9]{1,2}):([0-9]{2})")
_DB_TIME_PATTERN = re.compile(r"([0-9]{1,2}):([0-9]{2})(?::([0-9]{2})(?:\.[0-9]+)?)?")


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------


def parse_date(value: Any) -> date:
    """Parse a strict ``YYYY-MM-DD`` string into a :class:`date`.

    Single-digit months or days, other separators, surrounding whitespace and
    impossible calendar dates (``2023-02-29``) are all rejected.
    """
    if not isinstance(value, str):
        raise InvalidDate(value)
    match = _DATE_PATTERN.fullmatch(value)
    if match is None:
        raise InvalidDate(value)
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        raise InvalidDate(value) from None


def coerce_date(value: Any) -> date:
    """Accept a :class:`date`, a :class:`datetime` (date part) or a strict string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_date(value)


def format_date(day: date) -> str:
    """Render *day* as ``YYYY-MM-DD``."""
    return day.isoformat()


def days_between(start: date, end: date) -> int:
    """Number of days from *start* to *end* (exclusive, negative when reversed)."""
    return (end - start).days


def days_inclusive(start: date, end: date) -> int:
    """Number of calendar days in ``[start, end]``."""
    return days_between(start, end) + 1


def add_days(day: date, n: int) -> date:
    """Shift *day* by *n* days."""
    return day + timedelta(days=n)


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every date in ``[start, end]`` in ascending order."""
    current = start
    while current <= end:
        yield current
        current = add_days(current, 1)


def start_of_week(day: date) -> date:
    """Monday of the ISO week containing *day*."""
    return add_days(day, -day.weekday())


# ---------------------------------------------------------------------------
# Times of day
# ---------------------------------------------------------------------------


def parse_time_of_day(value: Any) -> int:
    """Parse ``H:MM`` or ``HH:MM`` (24-hour) into minutes since midnight."""
    if not isinstance(value, str):
        raise InvalidTime(value)
    match = _TIME_PATTERN.fullmatch(value)
    if match is None:
        raise InvalidTime(value)
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidTime(value)
    return hours * 60 + minutes


def parse_db_time(value: Any) -> int:
    """Parse a database TIME value into minutes since midnight.

    Accepts :class:`datetime.time` objects and ``HH:MM[:SS]`` strings as
    PostgreSQL renders them.  Seconds are truncated.
    """
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    if not isinstance(value, str):
        raise InvalidTime(value)
    match = _DB_TIME_PATTERN.fullmatch(value)
    if match is None:
        raise InvalidTime(value)
    hours, minutes = int(match.group(1)), int(match.group(2))
    seconds = int(match.group(3) or 0)
    if hours > 23 or minutes > 59 or seconds > 59:
        raise InvalidTime(value)
    return hours * 60 + minutes


def _check_minutes(minutes: Any) -> int:
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise ValueError(f"Minute of day must be an int, got {minutes!r}")
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"Minute of day out of range: {minutes}")
    return minutes


def format_time_of_day(minutes: int, style: str = TIME_STYLE_24H) -> str:
    """Render minutes since midnight as ``HH:MM`` or ``h:MM AM/PM``.

    >>> format_time_of_day(510)
    '08:30'
    >>> format_time_of_day(0, "12h")
    '12:00 AM'
    """
    _check_minutes(minutes)
    hours, mins = divmod(minutes, 60)
    if style == TIME_STYLE_24H:
        return f"{hours:02d}:{mins:02d}"
    if style == TIME_STYLE_12H:
        suffix = "PM" if hours >= 12 else "AM"
        if hours == 0:
            display = 12
        elif hours > 12:
            display = hours - 12
        else:
            display = hours
        return f"{display}:{mins:02d} {suffix}"
    raise ValueError(f"Unknown time style {style!r}; expected one of {TIME_STYLES}")


def hour_of(minutes: int) -> int:
    """Hour of day (0-23) for a minute-of-day value."""
    return _check_minutes(minutes) // 60


def minute_of_day(moment: datetime) -> int:
    """Minutes since midnight of *moment*, seconds truncated."""
    return moment.hour * 60 + moment.minute


def at_minute(day: date, minutes: int) -> datetime:
    """The naive instant *minutes* after midnight on *day*."""
    hours, mins = divmod(_check_minutes(minutes), 60)
    return datetime(day.year, day.month, day.day, hours, mins)


# ---------------------------------------------------------------------------
# Instants
# ---------------------------------------------------------------------------


def parse_instant(value: Any) -> datetime:
    """Parse a naive local instant.

    Accepts a :class:`datetime` or an ISO string such as ``2024-01-15T10:00``.
    A timezone offset, if present, is dropped: the wall-clock reading is kept.
    A bare date means the start of that day.
    """
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if not isinstance(value, str):
        raise InvalidDate(value)
    if _DATE_PATTERN.fullmatch(value):
        return datetime.combine(parse_date(value), time.min)
    # The date part must still be strict YYYY-MM-DD.
    try:
        parse_date(value[:10])
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise InvalidDate(value) from None
    return parsed.replace(tzinfo=None)
