"""Resolve which medications and doses are due on a single date."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import date

from pillbox.dates import coerce_date
from pillbox.models import (
    DEFAULT_SKIP_REASON,
    DailySchedule,
    Dose,
    Medication,
    MedicationId,
    ScheduleEntry,
    SkipDate,
    SkippedMedication,
)
from pillbox.schedule.aggregates import is_low_inventory
from pillbox.schedule.periods import group_by_period

logger = logging.getLogger(__name__)

DosesByMedication = Mapping[MedicationId, Sequence[Dose]]
SkipsByMedication = Mapping[MedicationId, Iterable[SkipDate]]


def skip_on(skips: Iterable[SkipDate], day: date) -> SkipDate | None:
    """The skip entry suppressing *day*, if any.

    Skips are whole-day exclusions; every view of the schedule goes through
    this helper so "today" and "what's next" agree.
    """
    for skip in skips:
        if skip.applies_to(day):
            return skip
    return None


def skip_dates_of(skips: Iterable[SkipDate]) -> frozenset[date]:
    """The set of suppressed dates in *skips*."""
    return frozenset(skip.skip_date for skip in skips)


def build_entries(medication: Medication, doses: Sequence[Dose]) -> list[ScheduleEntry]:
    """One ScheduleEntry per dose, each flagged with the medication's low-stock state."""
    low = is_low_inventory(medication, doses)
    return [
        ScheduleEntry(
            medication_id=medication.id,
            medication_name=medication.name,
            medication_strength=medication.strength,
            dose_id=dose.id,
            dose_amount=dose.amount,
            time_of_day=dose.time_of_day,
            route=dose.route_name or medication.route,
            instructions=dose.instructions,
            remaining_tablets=medication.tablets_remaining,
            is_low_inventory=low,
        )
        for dose in doses
    ]


def resolve_day(
    day: date | str,
    medications: Iterable[Medication],
    doses_by_medication: DosesByMedication,
    skips_by_medication: SkipsByMedication,
) -> DailySchedule:
    """Build the schedule for *day* from pre-fetched snapshots.

    Medications whose window does not contain *day* are ignored even if the
    caller passed them.  A skipped medication lands in
    ``skipped_medications`` and contributes no entries; an active medication
    without doses contributes nothing at all.  Inputs are never mutated.
    """
    day = coerce_date(day)
    entries: list[ScheduleEntry] = []
    skipped: list[SkippedMedication] = []
    scheduled_count = 0

    for medication in medications:
        if not medication.is_active_on(day):
            continue

        skip = skip_on(skips_by_medication.get(medication.id, ()), day)
        if skip is not None:
            skipped.append(
                SkippedMedication(
                    medication_id=medication.id,
                    name=medication.name,
                    reason=skip.reason or DEFAULT_SKIP_REASON,
                )
            )
            continue

        doses = doses_by_medication.get(medication.id, ())
        if not doses:
            continue
        entries.extend(build_entries(medication, doses))
        scheduled_count += 1

    logger.debug(
        "Resolved %s: %d dose(s) across %d medication(s), %d skipped",
        day.isoformat(),
        len(entries),
        scheduled_count,
        len(skipped),
    )
    return DailySchedule(
        date=day,
        periods=group_by_period(entries),
        skipped_medications=tuple(skipped),
        total_medications=scheduled_count,
        total_doses=len(entries),
    )
