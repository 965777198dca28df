"""Time-of-day periods used to bucket schedule entries for display."""

from __future__ import annotations

from collections.abc import Iterable

from pillbox.dates import hour_of
from pillbox.models import (
    PERIOD_AFTERNOON,
    PERIOD_EVENING,
    PERIOD_MORNING,
    PERIOD_NIGHT,
    PERIODS,
    ScheduleEntry,
)

# (period, first hour, end hour exclusive); anything else is night.
PERIOD_HOURS: tuple[tuple[str, int, int], ...] = (
    (PERIOD_MORNING, 6, 12),
    (PERIOD_AFTERNOON, 12, 18),
    (PERIOD_EVENING, 18, 22),
)


def period_for(time_of_day: int) -> str:
    """Name of the period a minute-of-day falls into."""
    hour = hour_of(time_of_day)
    for period, first, end in PERIOD_HOURS:
        if first <= hour < end:
            return period
    return PERIOD_NIGHT


def group_by_period(
    entries: Iterable[ScheduleEntry],
) -> dict[str, tuple[ScheduleEntry, ...]]:
    """Bucket *entries* into the four periods, each sorted by time of day.

    All four keys are always present.  The sort is stable, so entries sharing
    a time keep the order they were discovered in.
    """
    buckets: dict[str, list[ScheduleEntry]] = {period: [] for period in PERIODS}
    for entry in entries:
        buckets[period_for(entry.time_of_day)].append(entry)
    return {
        period: tuple(sorted(bucket, key=lambda entry: entry.time_of_day))
        for period, bucket in buckets.items()
    }
