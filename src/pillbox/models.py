"""Recurrence entities and the derived schedule values built from them.

Medication, Dose and SkipDate map 1:1 to the ``medications``,
``medicine_doses`` and ``skip_dates`` tables and validate themselves on
construction.  The resolvers never re-check these rules; they trust any
instance they are handed.

ScheduleEntry, DailySchedule and friends are derived values: built fresh on
every resolution call, never persisted, and serialised with ``to_dict()`` for
the transport layer.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any

from pillbox.dates import (
    MINUTES_PER_DAY,
    TIME_STYLE_24H,
    at_minute,
    coerce_date,
    format_date,
    format_time_of_day,
    parse_db_time,
    parse_time_of_day,
)
from pillbox.errors import InvalidDate, InvalidTime, ValidationError

MedicationId = int | str

DEFAULT_SHEET_SIZE = 10
DEFAULT_SKIP_REASON = "Skip date"

PERIOD_MORNING = "morning"
PERIOD_AFTERNOON = "afternoon"
PERIOD_EVENING = "evening"
PERIOD_NIGHT = "night"
PERIODS = (PERIOD_MORNING, PERIOD_AFTERNOON, PERIOD_EVENING, PERIOD_NIGHT)


def _parse_optional_date(value: Any) -> date | None:
    """Parse an optional date column (native value or ``YYYY-MM-DD``)."""
    if value is None or value == "":
        return None
    return coerce_date(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _parse_number(value: Any, field_name: str) -> float:
    """Parse a NUMERIC column (Decimal, int, float or numeric string)."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field_name} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number, got {value!r}") from None


def check_bounded_int(value: Any, name: str, maximum: int) -> int:
    """Return *value* when it is an int in ``1..maximum``, else raise ValidationError."""
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= maximum:
        raise ValidationError(f"{name} must be an integer between 1 and {maximum}, got {value!r}")
    return value


# ---------------------------------------------------------------------------
# Source entities
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Medication:
    """A prescribed medication with its active window and tablet inventory."""

    id: MedicationId
    name: str
    active_from: date
    active_until: date | None = None
    tablets_remaining: float = 0.0
    strength: str | None = None
    route: str | None = None
    sheet_size: int = DEFAULT_SHEET_SIZE

    def __post_init__(self) -> None:
        if isinstance(self.active_from, datetime) or not isinstance(self.active_from, date):
            raise InvalidDate(self.active_from)
        if self.active_until is not None:
            if isinstance(self.active_until, datetime) or not isinstance(self.active_until, date):
                raise InvalidDate(self.active_until)
            if self.active_until <= self.active_from:
                raise ValidationError(
                    f"active_until ({format_date(self.active_until)}) must be after "
                    f"active_from ({format_date(self.active_from)})"
                )
        if not _is_number(self.tablets_remaining) or self.tablets_remaining < 0:
            raise ValidationError(
                f"tablets_remaining must be a non-negative number, got {self.tablets_remaining!r}"
            )
        if isinstance(self.sheet_size, bool) or not isinstance(self.sheet_size, int):
            raise ValidationError(f"sheet_size must be a positive integer, got {self.sheet_size!r}")
        if self.sheet_size <= 0:
            raise ValidationError(f"sheet_size must be a positive integer, got {self.sheet_size!r}")

    @property
    def is_open_ended(self) -> bool:
        return self.active_until is None

    def is_active_on(self, day: date) -> bool:
        """True when *day* lies in ``[active_from, active_until]`` (inclusive)."""
        if day < self.active_from:
            return False
        return self.active_until is None or day <= self.active_until

    def with_tablets(self, tablets_remaining: float) -> Medication:
        """Return a copy with a new inventory count."""
        return replace(self, tablets_remaining=tablets_remaining)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a JSON-safe dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "strength": self.strength,
            "route": self.route,
            "active_from": format_date(self.active_from),
            "active_until": format_date(self.active_until) if self.active_until else None,
            "tablets_remaining": self.tablets_remaining,
            "sheet_size": self.sheet_size,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Medication:
        """Build a Medication from a ``medications`` row (asyncpg Record or dict).

        Column names follow the database (``start_date``, ``end_date``,
        ``total_tablets``); the attribute names are accepted as well.
        """
        data = dict(row)
        active_from = data.get("start_date", data.get("active_from"))
        if active_from is None:
            raise ValidationError("active_from (start_date) is required")
        sheet_size = data.get("sheet_size")
        return cls(
            id=data["id"],
            name=data["name"],
            active_from=coerce_date(active_from),
            active_until=_parse_optional_date(data.get("end_date", data.get("active_until"))),
            tablets_remaining=_parse_number(
                data.get("total_tablets", data.get("tablets_remaining", 0)), "tablets_remaining"
            ),
            strength=data.get("strength"),
            route=data.get("route_name", data.get("route")),
            sheet_size=int(sheet_size) if sheet_size is not None else DEFAULT_SHEET_SIZE,
        )


@dataclass(frozen=True)
class Dose:
    """One fixed daily administration of a medication."""

    id: MedicationId
    medication_id: MedicationId
    time_of_day: int
    amount: float
    route_override: int | None = None
    route_name: str | None = None
    instructions: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.time_of_day, bool) or not isinstance(self.time_of_day, int):
            raise InvalidTime(self.time_of_day)
        if not 0 <= self.time_of_day < MINUTES_PER_DAY:
            raise InvalidTime(self.time_of_day)
        if not _is_number(self.amount) or self.amount <= 0:
            raise ValidationError(f"Dose amount must be a positive number, got {self.amount!r}")
        if self.route_override is not None and (
            isinstance(self.route_override, bool)
            or not isinstance(self.route_override, int)
            or self.route_override <= 0
        ):
            raise ValidationError(
                f"route_override must be a positive identifier, got {self.route_override!r}"
            )

    def time_label(self, style: str = TIME_STYLE_24H) -> str:
        return format_time_of_day(self.time_of_day, style)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a JSON-safe dictionary."""
        return {
            "id": self.id,
            "medication_id": self.medication_id,
            "time_of_day": self.time_label(),
            "amount": self.amount,
            "route_override": self.route_override,
            "route_name": self.route_name,
            "instructions": self.instructions,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Dose:
        """Build a Dose from a ``medicine_doses`` row (asyncpg Record or dict)."""
        data = dict(row)
        raw_time = data.get("time_of_day")
        # Rows from the database carry TIME values; API input is strict HH:MM.
        if isinstance(raw_time, int) and not isinstance(raw_time, bool):
            minutes = raw_time
        elif isinstance(raw_time, str) and raw_time.count(":") == 1:
            minutes = parse_time_of_day(raw_time)
        else:
            minutes = parse_db_time(raw_time)
        return cls(
            id=data["id"],
            medication_id=data.get("medicine_id", data.get("medication_id")),
            time_of_day=minutes,
            amount=_parse_number(data.get("dose_amount", data.get("amount")), "dose amount"),
            route_override=data.get("route_override"),
            route_name=data.get("route_name"),
            instructions=data.get("instructions"),
        )


@dataclass(frozen=True)
class SkipDate:
    """A calendar date on which every dose of a medication is suppressed."""

    id: MedicationId | None
    medication_id: MedicationId
    skip_date: date
    reason: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.skip_date, datetime) or not isinstance(self.skip_date, date):
            raise InvalidDate(self.skip_date)

    def applies_to(self, day: date) -> bool:
        return self.skip_date == day

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a JSON-safe dictionary."""
        return {
            "id": self.id,
            "medication_id": self.medication_id,
            "skip_date": format_date(self.skip_date),
            "reason": self.reason,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> SkipDate:
        """Build a SkipDate from a ``skip_dates`` row (asyncpg Record or dict)."""
        data = dict(row)
        return cls(
            id=data.get("id"),
            medication_id=data.get("medicine_id", data.get("medication_id")),
            skip_date=coerce_date(data["skip_date"]),
            reason=data.get("reason"),
        )


# ---------------------------------------------------------------------------
# Derived values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScheduleEntry:
    """One resolved dose occurrence on a given day."""

    medication_id: MedicationId
    medication_name: str
    medication_strength: str | None
    dose_id: MedicationId
    dose_amount: float
    time_of_day: int
    route: str | None
    instructions: str | None
    remaining_tablets: float
    is_low_inventory: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "medication_id": self.medication_id,
            "medication_name": self.medication_name,
            "medication_strength": self.medication_strength,
            "dose_id": self.dose_id,
            "dose_amount": self.dose_amount,
            "time_of_day": format_time_of_day(self.time_of_day),
            "route": self.route,
            "instructions": self.instructions,
            "remaining_tablets": self.remaining_tablets,
            "is_low_inventory": self.is_low_inventory,
        }


@dataclass(frozen=True)
class SkippedMedication:
    """A medication suppressed for the day by a skip date."""

    medication_id: MedicationId
    name: str
    reason: str = DEFAULT_SKIP_REASON

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.medication_id, "name": self.name, "reason": self.reason}


@dataclass(frozen=True)
class DailySchedule:
    """Everything due on one date, grouped into the four periods."""

    date: date
    periods: dict[str, tuple[ScheduleEntry, ...]]
    skipped_medications: tuple[SkippedMedication, ...] = ()
    total_medications: int = 0
    total_doses: int = 0

    def entries(self) -> list[ScheduleEntry]:
        """All entries in period order (morning through night)."""
        return [entry for period in PERIODS for entry in self.periods.get(period, ())]

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": format_date(self.date),
            "schedule": {
                period: [entry.to_dict() for entry in self.periods.get(period, ())]
                for period in PERIODS
            },
            "skipped_medications": [skip.to_dict() for skip in self.skipped_medications],
            "total_medications": self.total_medications,
            "total_doses": self.total_doses,
        }


@dataclass(frozen=True)
class RangeSchedule:
    """Daily schedules for every date of an inclusive span."""

    start_date: date
    end_date: date
    schedules: tuple[DailySchedule, ...] = field(default_factory=tuple)

    @property
    def total_days(self) -> int:
        return len(self.schedules)

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_date": format_date(self.start_date),
            "end_date": format_date(self.end_date),
            "total_days": self.total_days,
            "schedules": [schedule.to_dict() for schedule in self.schedules],
        }


@dataclass(frozen=True)
class NextDose:
    """The next dose a medication is due, found by forward search."""

    date: date
    time_of_day: int
    dose: Dose
    medication: Medication

    @property
    def at(self) -> datetime:
        return at_minute(self.date, self.time_of_day)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": format_date(self.date),
            "time": format_time_of_day(self.time_of_day),
            "dose": self.dose.to_dict(),
            "medication": self.medication.to_dict(),
        }


@dataclass(frozen=True)
class ActiveDaySummary:
    """Calendar days in a window, minus the skip days inside it."""

    total_days: int
    skip_days: int
    active_days: int
    skip_dates: tuple[date, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_days": self.total_days,
            "skip_days": self.skip_days,
            "active_days": self.active_days,
            "skip_dates": [format_date(day) for day in self.skip_dates],
        }
