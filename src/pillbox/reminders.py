"""Dose reminders: doses coming up shortly and doses left overdue.

Both views work from today's resolved schedule, so skip dates, active windows
and low-stock flags agree with what ``/api/schedule/daily`` shows.  Only
today's doses are considered; a window reaching past midnight does not pick
up tomorrow's.  ``now`` is always supplied by the caller.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from pillbox.dates import at_minute, parse_instant
from pillbox.models import Medication, ScheduleEntry, check_bounded_int
from pillbox.schedule.daily import DosesByMedication, SkipsByMedication, resolve_day

logger = logging.getLogger(__name__)

DEFAULT_MINUTES_AHEAD = 15
MAX_MINUTES_AHEAD = 120
DEFAULT_HOURS_OVERDUE = 1
MAX_HOURS_OVERDUE = 24


class ReminderKind(enum.StrEnum):
    DOSE_DUE = "dose_due"
    MISSED_DOSE = "missed_dose"


@dataclass(frozen=True)
class DoseReminder:
    """One scheduled dose flagged as upcoming or overdue relative to ``now``."""

    kind: ReminderKind
    entry: ScheduleEntry
    scheduled_at: datetime
    minutes_until: int | None = None
    hours_overdue: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "scheduled_at": self.scheduled_at.isoformat(timespec="minutes"),
            "minutes_until": self.minutes_until,
            "hours_overdue": self.hours_overdue,
            **self.entry.to_dict(),
        }


def _todays_doses(
    now: datetime | str,
    medications: Iterable[Medication],
    doses_by_medication: DosesByMedication,
    skips_by_medication: SkipsByMedication,
) -> tuple[datetime, list[tuple[datetime, ScheduleEntry]]]:
    instant = parse_instant(now)
    day = instant.date()
    schedule = resolve_day(day, medications, doses_by_medication, skips_by_medication)
    timed = [(at_minute(day, entry.time_of_day), entry) for entry in schedule.entries()]
    # Night doses before dawn come last in period order; reminders want clock order.
    timed.sort(key=lambda pair: pair[0])
    return instant, timed


def doses_due(
    now: datetime | str,
    medications: Iterable[Medication],
    doses_by_medication: DosesByMedication,
    skips_by_medication: SkipsByMedication,
    minutes_ahead: int = DEFAULT_MINUTES_AHEAD,
) -> list[DoseReminder]:
    """Doses scheduled in ``[now, now + minutes_ahead]``, earliest first.

    *minutes_ahead* must be an integer between 1 and 120.
    """
    check_bounded_int(minutes_ahead, "minutes_ahead", MAX_MINUTES_AHEAD)
    instant, timed = _todays_doses(now, medications, doses_by_medication, skips_by_medication)
    until = instant + timedelta(minutes=minutes_ahead)
    reminders = [
        DoseReminder(
            kind=ReminderKind.DOSE_DUE,
            entry=entry,
            scheduled_at=scheduled_at,
            minutes_until=int((scheduled_at - instant).total_seconds() // 60),
        )
        for scheduled_at, entry in timed
        if instant <= scheduled_at <= until
    ]
    logger.debug("%d dose(s) due within %d minute(s) of %s", len(reminders), minutes_ahead, instant)
    return reminders


def missed_doses(
    now: datetime | str,
    medications: Iterable[Medication],
    doses_by_medication: DosesByMedication,
    skips_by_medication: SkipsByMedication,
    hours_overdue: int = DEFAULT_HOURS_OVERDUE,
) -> list[DoseReminder]:
    """Today's doses scheduled at least *hours_overdue* hours before *now*.

    *hours_overdue* must be an integer between 1 and 24.  Each reminder
    carries the whole hours elapsed since the scheduled time.
    """
    check_bounded_int(hours_overdue, "hours_overdue", MAX_HOURS_OVERDUE)
    instant, timed = _todays_doses(now, medications, doses_by_medication, skips_by_medication)
    cutoff = instant - timedelta(hours=hours_overdue)
    return [
        DoseReminder(
            kind=ReminderKind.MISSED_DOSE,
            entry=entry,
            scheduled_at=scheduled_at,
            hours_overdue=int((instant - scheduled_at).total_seconds() // 3600),
        )
        for scheduled_at, entry in timed
        if scheduled_at <= cutoff
    ]
