"""Tablet inventory: consumption, stock status, refill alerts and depletion projections.

All functions are pure.  Anything that depends on the current date takes it
as an explicit ``today`` argument.
"""

from __future__ import annotations

import enum
import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any

from pillbox.dates import add_days, format_date
from pillbox.errors import ValidationError
from pillbox.models import Dose, Medication, MedicationId, SkipDate, check_bounded_int
from pillbox.schedule.aggregates import daily_consumption
from pillbox.schedule.daily import skip_dates_of

logger = logging.getLogger(__name__)

MAX_ALERT_DAYS_AHEAD = 30
MAX_PROJECTION_DAYS = 365


class AlertLevel(enum.StrEnum):
    """How urgently a medication needs restocking."""

    NONE = "none"
    WARNING = "warning"
    URGENT = "urgent"
    CRITICAL = "critical"


# ---------------------------------------------------------------------------
# Consumption
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConsumeResult:
    """Outcome of taking tablets out of stock."""

    medication: Medication
    consumed: float
    remaining: float
    was_short: bool


def consume_tablets(medication: Medication, amount: float) -> ConsumeResult:
    """Take *amount* tablets from stock, never going below zero.

    Returns a new Medication; the input is left untouched.
    """
    if isinstance(amount, bool) or not isinstance(amount, int | float) or amount <= 0:
        raise ValidationError(f"Amount must be a positive number, got {amount!r}")
    before = medication.tablets_remaining
    remaining = max(0.0, before - amount)
    if before < amount:
        logger.debug("Medication %s short by %s tablet(s)", medication.id, amount - before)
    return ConsumeResult(
        medication=medication.with_tablets(remaining),
        consumed=min(amount, before),
        remaining=remaining,
        was_short=before < amount,
    )


def sheet_equivalent(medication: Medication) -> int:
    """Number of whole blister sheets the current stock amounts to."""
    return math.floor(medication.tablets_remaining / medication.sheet_size)


# ---------------------------------------------------------------------------
# Refill alerts
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RefillAlert:
    """Stock position of one medication against an upcoming period."""

    medication_id: MedicationId
    medication_name: str
    medication_strength: str | None
    current_tablets: float
    daily_consumption: float
    days_remaining: int | None
    tablets_needed_for_period: float
    needs_refill: bool
    alert_level: AlertLevel

    def to_dict(self) -> dict[str, Any]:
        return {
            "medication_id": self.medication_id,
            "medication_name": self.medication_name,
            "medication_strength": self.medication_strength,
            "current_tablets": self.current_tablets,
            "daily_consumption": self.daily_consumption,
            "days_remaining": self.days_remaining,
            "tablets_needed_for_period": self.tablets_needed_for_period,
            "needs_refill": self.needs_refill,
            "alert_level": self.alert_level.value,
        }


def refill_alert(
    medication: Medication,
    doses: Sequence[Dose],
    days_ahead: int = 1,
) -> RefillAlert:
    """Work out whether stock lasts *days_ahead* days and how urgent a refill is.

    Levels: ``critical`` with no full day left, ``urgent`` with exactly one,
    ``warning`` within *days_ahead*, otherwise ``none``.  A medication without
    doses never needs a refill.
    """
    check_bounded_int(days_ahead, "days_ahead", MAX_ALERT_DAYS_AHEAD)
    daily = daily_consumption(doses)
    tablets = medication.tablets_remaining

    if daily == 0:
        return RefillAlert(
            medication_id=medication.id,
            medication_name=medication.name,
            medication_strength=medication.strength,
            current_tablets=tablets,
            daily_consumption=0.0,
            days_remaining=None,
            tablets_needed_for_period=0.0,
            needs_refill=False,
            alert_level=AlertLevel.NONE,
        )

    days_remaining = math.floor(tablets / daily)
    needed = daily * days_ahead
    if days_remaining == 0:
        level = AlertLevel.CRITICAL
    elif days_remaining == 1:
        level = AlertLevel.URGENT
    elif days_remaining <= days_ahead:
        level = AlertLevel.WARNING
    else:
        level = AlertLevel.NONE

    return RefillAlert(
        medication_id=medication.id,
        medication_name=medication.name,
        medication_strength=medication.strength,
        current_tablets=tablets,
        daily_consumption=daily,
        days_remaining=days_remaining,
        tablets_needed_for_period=needed,
        needs_refill=tablets <= needed,
        alert_level=level,
    )


def refill_alerts(
    medications: Iterable[Medication],
    doses_by_medication: Mapping[MedicationId, Sequence[Dose]],
    days_ahead: int = 1,
) -> list[RefillAlert]:
    """Alerts for every medication that needs a refill, most urgent first."""
    alerts: list[RefillAlert] = []
    for medication in medications:
        alert = refill_alert(medication, doses_by_medication.get(medication.id, ()), days_ahead)
        if alert.needs_refill:
            alerts.append(alert)
    # Medications without a known runway sort last.
    alerts.sort(key=lambda a: (a.days_remaining is None, a.days_remaining or 0))
    return alerts


@dataclass(frozen=True)
class InventoryStatus:
    """Stock of one medication in sheets and loose tablets, with its refill outlook."""

    medication_id: MedicationId
    medication_name: str
    medication_strength: str | None
    total_tablets: float
    sheet_size: int
    full_sheets: int
    loose_tablets: float
    daily_consumption: float
    days_remaining: int | None
    alert: RefillAlert

    def to_dict(self) -> dict[str, Any]:
        return {
            "medication_id": self.medication_id,
            "medication_name": self.medication_name,
            "medication_strength": self.medication_strength,
            "total_tablets": self.total_tablets,
            "sheet_size": self.sheet_size,
            "full_sheets": self.full_sheets,
            "loose_tablets": self.loose_tablets,
            "daily_consumption": self.daily_consumption,
            "days_remaining": self.days_remaining,
            "alert": self.alert.to_dict(),
        }


def inventory_status(
    medication: Medication,
    doses: Sequence[Dose],
    days_ahead: int = 1,
) -> InventoryStatus:
    """Break stock into whole sheets plus loose tablets and attach the refill alert."""
    alert = refill_alert(medication, doses, days_ahead)
    sheets = sheet_equivalent(medication)
    return InventoryStatus(
        medication_id=medication.id,
        medication_name=medication.name,
        medication_strength=medication.strength,
        total_tablets=medication.tablets_remaining,
        sheet_size=medication.sheet_size,
        full_sheets=sheets,
        loose_tablets=medication.tablets_remaining - sheets * medication.sheet_size,
        daily_consumption=alert.daily_consumption,
        days_remaining=alert.days_remaining,
        alert=alert,
    )


# ---------------------------------------------------------------------------
# Depletion projection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProjectionDay:
    """Projected stock at the end of one day."""

    date: date
    remaining_tablets: float
    consumption_on_date: float
    is_skip_date: bool
    is_active: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": format_date(self.date),
            "remaining_tablets": self.remaining_tablets,
            "consumption_on_date": self.consumption_on_date,
            "is_skip_date": self.is_skip_date,
            "is_active": self.is_active,
        }


@dataclass(frozen=True)
class DepletionProjection:
    """When a medication runs out at its scheduled consumption rate."""

    medication_id: MedicationId
    current_tablets: float
    daily_consumption: float
    depletion_date: date | None
    days_until_depletion: int | None
    projections: tuple[ProjectionDay, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "medication_id": self.medication_id,
            "current_tablets": self.current_tablets,
            "daily_consumption": self.daily_consumption,
            "depletion_date": format_date(self.depletion_date) if self.depletion_date else None,
            "days_until_depletion": self.days_until_depletion,
            "projections": [day.to_dict() for day in self.projections],
        }


def depletion_projection(
    medication: Medication,
    doses: Sequence[Dose],
    skips: Iterable[SkipDate],
    today: date,
    days: int = 30,
) -> DepletionProjection:
    """Project stock day by day starting at *today*.

    Day 0 shows the current stock.  Each later day on which the medication is
    active and not skipped consumes one day's worth.  The projection stops at
    *days*, at the computed depletion day, or once stock reaches zero,
    whichever comes first.
    """
    check_bounded_int(days, "days", MAX_PROJECTION_DAYS)
    daily = daily_consumption(doses)
    tablets = medication.tablets_remaining

    if daily == 0:
        return DepletionProjection(
            medication_id=medication.id,
            current_tablets=tablets,
            daily_consumption=0.0,
            depletion_date=None,
            days_until_depletion=None,
        )

    days_until = math.floor(tablets / daily)
    skipped = skip_dates_of(skip for skip in skips if skip.medication_id == medication.id)
    stock = medication
    projections: list[ProjectionDay] = []

    for offset in range(min(days, days_until) + 1):
        day = add_days(today, offset)
        active = medication.is_active_on(day)
        is_skip = day in skipped
        consumes = offset > 0 and active and not is_skip
        if consumes:
            stock = consume_tablets(stock, daily).medication
        projections.append(
            ProjectionDay(
                date=day,
                remaining_tablets=stock.tablets_remaining,
                consumption_on_date=daily if consumes else 0.0,
                is_skip_date=is_skip,
                is_active=active,
            )
        )
        if offset > 0 and stock.tablets_remaining <= 0:
            break

    return DepletionProjection(
        medication_id=medication.id,
        current_tablets=tablets,
        daily_consumption=daily,
        depletion_date=add_days(today, days_until),
        days_until_depletion=days_until,
        projections=tuple(projections),
    )
