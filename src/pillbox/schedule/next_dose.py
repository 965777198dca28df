"""Find the next dose a medication is due after a given instant."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime

from pillbox.dates import add_days, minute_of_day, parse_instant
from pillbox.models import Dose, Medication, NextDose, SkipDate
from pillbox.schedule.daily import skip_dates_of

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 30


def next_dose(
    medication: Medication,
    doses: Sequence[Dose],
    skips: Iterable[SkipDate],
    from_instant: datetime | str,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> NextDose | None:
    """Return the earliest non-skipped dose strictly after *from_instant*.

    A medication that is not active on the instant's date has no next dose:
    the search does not jump forward to a future window.  On the starting
    date only doses later than the instant's time of day qualify; on every
    later date all doses do.  The walk covers the starting date plus
    *horizon_days* further days and stops early once the window closes.
    Ties on time of day go to the dose listed first.
    """
    instant = parse_instant(from_instant)
    start_day = instant.date()

    if not medication.is_active_on(start_day):
        logger.debug("Medication %s not active on %s", medication.id, start_day.isoformat())
        return None
    if not doses:
        return None

    skipped = skip_dates_of(skip for skip in skips if skip.medication_id == medication.id)
    after = minute_of_day(instant)

    for offset in range(horizon_days + 1):
        day = add_days(start_day, offset)
        if not medication.is_active_on(day):
            break
        if day in skipped:
            continue
        candidates = [dose for dose in doses if offset > 0 or dose.time_of_day > after]
        if candidates:
            dose = min(candidates, key=lambda candidate: candidate.time_of_day)
            return NextDose(date=day, time_of_day=dose.time_of_day, dose=dose, medication=medication)

    logger.debug(
        "No dose for medication %s within %d day(s) of %s",
        medication.id,
        horizon_days,
        instant.isoformat(),
    )
    return None
