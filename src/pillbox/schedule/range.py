"""Multi-day schedules over a bounded, inclusive date span."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from pillbox.dates import add_days, coerce_date, days_inclusive, iter_days, start_of_week
from pillbox.errors import InvalidRange, RangeTooLarge, ValidationError
from pillbox.models import Medication, RangeSchedule
from pillbox.schedule.daily import DosesByMedication, SkipsByMedication, resolve_day

DEFAULT_MAX_RANGE_DAYS = 30
DAYS_PER_WEEK = 7


def validate_range(
    start: date | str,
    end: date | str,
    max_days: int = DEFAULT_MAX_RANGE_DAYS,
) -> tuple[date, date]:
    """Parse and check a span, returning ``(start, end)`` as dates.

    Raises :class:`InvalidDate` for unparsable input, :class:`InvalidRange`
    when *end* precedes *start* and :class:`RangeTooLarge` when the span holds
    more than *max_days* calendar days.  Nothing is ever truncated.
    """
    start_day = coerce_date(start)
    end_day = coerce_date(end)
    if start_day > end_day:
        raise InvalidRange(start_day, end_day)
    days = days_inclusive(start_day, end_day)
    if days > max_days:
        raise RangeTooLarge(start_day, end_day, days, max_days)
    return start_day, end_day


def resolve_range(
    start: date | str,
    end: date | str,
    medications: Iterable[Medication],
    doses_by_medication: DosesByMedication,
    skips_by_medication: SkipsByMedication,
    max_days: int = DEFAULT_MAX_RANGE_DAYS,
) -> RangeSchedule:
    """Resolve every date in ``[start, end]`` in ascending order."""
    start_day, end_day = validate_range(start, end, max_days)
    snapshot = tuple(medications)
    # Every day re-reads the skips, so one-shot iterables are materialised once.
    skips = {med_id: tuple(entries) for med_id, entries in skips_by_medication.items()}
    schedules = tuple(
        resolve_day(day, snapshot, doses_by_medication, skips)
        for day in iter_days(start_day, end_day)
    )
    return RangeSchedule(start_date=start_day, end_date=end_day, schedules=schedules)


def week_bounds(reference: date | str) -> tuple[date, date]:
    """Monday and Sunday of the week containing *reference*."""
    monday = start_of_week(coerce_date(reference))
    return monday, add_days(monday, DAYS_PER_WEEK - 1)


def resolve_week(
    reference: date | str,
    medications: Iterable[Medication],
    doses_by_medication: DosesByMedication,
    skips_by_medication: SkipsByMedication,
) -> RangeSchedule:
    """Resolve the Monday-to-Sunday week containing *reference*."""
    monday, sunday = week_bounds(reference)
    return resolve_range(
        monday,
        sunday,
        medications,
        doses_by_medication,
        skips_by_medication,
        max_days=DAYS_PER_WEEK,
    )


def validate_schedule_params(
    day: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    max_days: int = DEFAULT_MAX_RANGE_DAYS,
) -> list[str]:
    """Collect every problem with a set of schedule parameters.

    Unlike the resolvers, which stop at the first error, this reports all of
    them so a caller can show a complete list.  An empty list means valid.
    """
    errors: list[str] = []
    parsed: dict[str, date] = {}
    for label, value in (("date", day), ("start_date", start_date), ("end_date", end_date)):
        if value is None:
            continue
        try:
            parsed[label] = coerce_date(value)
        except ValidationError as exc:
            errors.append(f"{label}: {exc}")

    if "start_date" in parsed and "end_date" in parsed:
        try:
            validate_range(parsed["start_date"], parsed["end_date"], max_days)
        except ValidationError as exc:
            errors.append(str(exc))
    return errors
