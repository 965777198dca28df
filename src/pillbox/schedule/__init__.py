"""Recurring-dose schedule engine.

Pure, synchronous functions over pre-fetched Medication/Dose/SkipDate
snapshots.  Nothing here performs I/O or reads the clock.
"""

from pillbox.schedule.aggregates import (
    active_day_count,
    daily_consumption,
    is_low_inventory,
    schedule_summary,
)
from pillbox.schedule.daily import build_entries, resolve_day, skip_dates_of, skip_on
from pillbox.schedule.next_dose import DEFAULT_HORIZON_DAYS, next_dose
from pillbox.schedule.periods import PERIOD_HOURS, group_by_period, period_for
from pillbox.schedule.range import (
    DAYS_PER_WEEK,
    DEFAULT_MAX_RANGE_DAYS,
    resolve_range,
    resolve_week,
    validate_range,
    validate_schedule_params,
    week_bounds,
)

__all__ = [
    "DAYS_PER_WEEK",
    "DEFAULT_HORIZON_DAYS",
    "DEFAULT_MAX_RANGE_DAYS",
    "PERIOD_HOURS",
    "active_day_count",
    "build_entries",
    "daily_consumption",
    "group_by_period",
    "is_low_inventory",
    "next_dose",
    "period_for",
    "resolve_day",
    "resolve_range",
    "resolve_week",
    "schedule_summary",
    "skip_dates_of",
    "skip_on",
    "validate_range",
    "validate_schedule_params",
    "week_bounds",
]
