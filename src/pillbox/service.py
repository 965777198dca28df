"""Schedule operations over the database.

Each operation validates its input first, fetches one snapshot through
:mod:`pillbox.repository` and hands it to the pure engine in
:mod:`pillbox.schedule`, :mod:`pillbox.inventory` or :mod:`pillbox.reminders`.
"Today" and "now" are always passed in by the caller; nothing here reads the
clock.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any

import asyncpg

from pillbox import inventory, reminders, repository
from pillbox.dates import add_days, coerce_date, parse_instant
from pillbox.inventory import DepletionProjection, InventoryStatus, RefillAlert
from pillbox.models import (
    ActiveDaySummary,
    DailySchedule,
    Medication,
    MedicationId,
    NextDose,
    RangeSchedule,
    check_bounded_int,
)
from pillbox.reminders import DoseReminder
from pillbox.schedule import (
    DAYS_PER_WEEK,
    DEFAULT_HORIZON_DAYS,
    DEFAULT_MAX_RANGE_DAYS,
    active_day_count,
    next_dose,
    resolve_day,
    resolve_range,
    schedule_summary,
    validate_range,
    week_bounds,
)
from pillbox.schedule.daily import DosesByMedication, SkipsByMedication

logger = logging.getLogger(__name__)


async def _day_snapshot(
    pool: asyncpg.Pool, day: date
) -> tuple[list[Medication], DosesByMedication, SkipsByMedication]:
    """Medications active on *day* with their doses and that day's skips."""
    medications = await repository.active_medications_on(pool, day)
    if not medications:
        return [], {}, {}
    doses = await repository.doses_for(pool, [m.id for m in medications])
    skips = await repository.skips_on(pool, day)
    return medications, doses, skips


async def daily_schedule(pool: asyncpg.Pool, day: date | str) -> DailySchedule:
    """Everything due on *day*."""
    day = coerce_date(day)
    return resolve_day(day, *await _day_snapshot(pool, day))


async def range_schedule(
    pool: asyncpg.Pool,
    start: date | str,
    end: date | str,
    max_days: int = DEFAULT_MAX_RANGE_DAYS,
) -> RangeSchedule:
    """Daily schedules for every date of ``[start, end]``.

    The span is validated before any query runs; one snapshot covers the
    whole span.
    """
    start_day, end_day = validate_range(start, end, max_days)
    medications = await repository.active_medications_between(pool, start_day, end_day)
    doses = await repository.doses_for(pool, [m.id for m in medications])
    skips = await repository.skips_in_range(pool, start_day, end_day)
    logger.info(
        "Resolving %s..%s for %d medication(s)",
        start_day.isoformat(),
        end_day.isoformat(),
        len(medications),
    )
    return resolve_range(start_day, end_day, medications, doses, skips, max_days)


async def weekly_schedule(pool: asyncpg.Pool, reference: date | str) -> RangeSchedule:
    """The Monday-to-Sunday week containing *reference*.

    Always seven days, whatever ``max_range_days`` is configured for
    ``/api/schedule/range``.
    """
    monday, sunday = week_bounds(reference)
    return await range_schedule(pool, monday, sunday, max_days=DAYS_PER_WEEK)


async def daily_summary(pool: asyncpg.Pool, day: date | str) -> dict[str, Any]:
    """Dashboard counts for *day*."""
    return schedule_summary(await daily_schedule(pool, day))


async def next_scheduled_dose(
    pool: asyncpg.Pool,
    medication_id: MedicationId,
    from_instant: datetime | str,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> NextDose | None:
    """The next dose of one medication after *from_instant*, or ``None``.

    Raises :class:`~pillbox.errors.MedicationNotFound` for an unknown id, which
    is distinct from having no upcoming dose.
    """
    instant = parse_instant(from_instant)
    medication = await repository.get_medication(pool, medication_id)
    if not medication.is_active_on(instant.date()):
        return None
    doses = await repository.doses_for(pool, [medication.id])
    first = instant.date()
    skips = await repository.skips_in_range(
        pool, first, add_days(first, horizon_days), medication.id
    )
    return next_dose(
        medication,
        doses.get(medication.id, []),
        skips.get(medication.id, []),
        instant,
        horizon_days,
    )


async def active_days(
    pool: asyncpg.Pool,
    medication_id: MedicationId,
    today: date,
    start: date | str | None = None,
    end: date | str | None = None,
) -> ActiveDaySummary:
    """Active-day summary for one medication.

    The window runs from *start* (default: the medication's first day) to
    *end* (default: its last day, or *today* for an open-ended medication).
    """
    start_day = coerce_date(start) if start is not None else None
    end_day = coerce_date(end) if end is not None else None
    medication = await repository.get_medication(pool, medication_id)

    window_start = start_day or medication.active_from
    window_end = end_day or medication.active_until or today
    if window_start > window_end:
        return active_day_count(medication, [], window_start, window_end)

    skips = await repository.skips_in_range(pool, window_start, window_end, medication.id)
    return active_day_count(medication, skips.get(medication.id, []), window_start, window_end)


async def refill_alerts(
    pool: asyncpg.Pool,
    today: date,
    days_ahead: int = 1,
) -> list[RefillAlert]:
    """Refill alerts for every medication active *today*, most urgent first."""
    check_bounded_int(days_ahead, "days_ahead", inventory.MAX_ALERT_DAYS_AHEAD)
    medications = await repository.active_medications_on(pool, today)
    doses = await repository.doses_for(pool, [m.id for m in medications])
    alerts = inventory.refill_alerts(medications, doses, days_ahead)
    if alerts:
        logger.info("%d medication(s) need a refill within %d day(s)", len(alerts), days_ahead)
    return alerts


async def depletion(
    pool: asyncpg.Pool,
    medication_id: MedicationId,
    today: date,
    days: int = 30,
) -> DepletionProjection:
    """Depletion projection for one medication starting at *today*."""
    check_bounded_int(days, "days", inventory.MAX_PROJECTION_DAYS)
    medication = await repository.get_medication(pool, medication_id)
    doses = await repository.doses_for(pool, [medication.id])
    skips = await repository.skips_in_range(pool, today, add_days(today, days), medication.id)
    return inventory.depletion_projection(
        medication,
        doses.get(medication.id, []),
        skips.get(medication.id, []),
        today,
        days,
    )


async def inventory_status(
    pool: asyncpg.Pool,
    medication_id: MedicationId,
    days_ahead: int = 1,
) -> InventoryStatus:
    """Sheets, loose tablets and refill outlook for one medication."""
    check_bounded_int(days_ahead, "days_ahead", inventory.MAX_ALERT_DAYS_AHEAD)
    medication = await repository.get_medication(pool, medication_id)
    doses = await repository.doses_for(pool, [medication.id])
    return inventory.inventory_status(medication, doses.get(medication.id, []), days_ahead)


async def due_reminders(
    pool: asyncpg.Pool,
    now: datetime | str,
    minutes_ahead: int = reminders.DEFAULT_MINUTES_AHEAD,
) -> list[DoseReminder]:
    """Doses due within *minutes_ahead* minutes of *now*."""
    check_bounded_int(minutes_ahead, "minutes_ahead", reminders.MAX_MINUTES_AHEAD)
    instant = parse_instant(now)
    snapshot = await _day_snapshot(pool, instant.date())
    return reminders.doses_due(instant, *snapshot, minutes_ahead=minutes_ahead)


async def missed_reminders(
    pool: asyncpg.Pool,
    now: datetime | str,
    hours_overdue: int = reminders.DEFAULT_HOURS_OVERDUE,
) -> list[DoseReminder]:
    """Today's doses at least *hours_overdue* hours past their time."""
    check_bounded_int(hours_overdue, "hours_overdue", reminders.MAX_HOURS_OVERDUE)
    instant = parse_instant(now)
    snapshot = await _day_snapshot(pool, instant.date())
    missed = reminders.missed_doses(instant, *snapshot, hours_overdue=hours_overdue)
    if missed:
        logger.info("%d dose(s) overdue by %d hour(s) or more", len(missed), hours_overdue)
    return missed
