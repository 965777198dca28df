"""Aggregate figures derived from a medication's recurrence."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Any

from pillbox.dates import coerce_date, days_inclusive, format_date
from pillbox.errors import UnboundedWindow
from pillbox.models import (
    PERIODS,
    ActiveDaySummary,
    DailySchedule,
    Dose,
    Medication,
    SkipDate,
)


def daily_consumption(doses: Iterable[Dose]) -> float:
    """Total amount taken per day; ``0.0`` when there are no doses."""
    return float(sum(dose.amount for dose in doses))


def is_low_inventory(medication: Medication, doses: Iterable[Dose]) -> bool:
    """True when stock covers at most one day of consumption."""
    return medication.tablets_remaining <= daily_consumption(doses)


def active_day_count(
    medication: Medication,
    skips: Iterable[SkipDate],
    start: date | str | None = None,
    end: date | str | None = None,
) -> ActiveDaySummary:
    """Count the days a medication is actually taken within a window.

    The window defaults to the medication's own ``[active_from,
    active_until]``; *start* and *end* override either bound.  An open-ended
    medication needs an explicit *end*, otherwise :class:`UnboundedWindow` is
    raised.  Skip dates are counted once each and only inside the window, and
    the result never goes negative.
    """
    window_start = coerce_date(start) if start is not None else medication.active_from
    if end is not None:
        window_end = coerce_date(end)
    elif not medication.is_open_ended:
        window_end = medication.active_until
    else:
        raise UnboundedWindow(medication.id)

    if window_start > window_end:
        return ActiveDaySummary(total_days=0, skip_days=0, active_days=0)

    total_days = days_inclusive(window_start, window_end)
    skip_dates = tuple(
        sorted(
            {
                skip.skip_date
                for skip in skips
                if skip.medication_id == medication.id
                and window_start <= skip.skip_date <= window_end
            }
        )
    )
    return ActiveDaySummary(
        total_days=total_days,
        skip_days=len(skip_dates),
        active_days=max(0, total_days - len(skip_dates)),
        skip_dates=skip_dates,
    )


def schedule_summary(schedule: DailySchedule) -> dict[str, Any]:
    """Dashboard counts for one day's schedule."""
    entries = schedule.entries()
    return {
        "date": format_date(schedule.date),
        "total_medications": schedule.total_medications,
        "total_doses": schedule.total_doses,
        "periods": {period: len(schedule.periods.get(period, ())) for period in PERIODS},
        "low_inventory_count": sum(1 for entry in entries if entry.is_low_inventory),
        "skipped_count": len(schedule.skipped_medications),
    }
