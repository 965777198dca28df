"""Read-only snapshot lookups against the medication database.

Each function takes an asyncpg pool, runs one query and returns validated
entities ready for the schedule engine.  Writes (CRUD, inventory updates,
audit logging) live elsewhere.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import date
from typing import Any

import asyncpg

from pillbox.errors import MedicationNotFound, ValidationError
from pillbox.models import Dose, Medication, MedicationId, SkipDate

logger = logging.getLogger(__name__)

_MEDICATION_SELECT = """
    SELECT m.id, m.name, m.strength, m.start_date, m.end_date,
           m.sheet_size, m.total_tablets, r.name AS route_name
    FROM medications m
    LEFT JOIN routes r ON r.id = m.route_id
"""

_DOSE_SELECT = """
    SELECT d.id, d.medicine_id, d.dose_amount, d.time_of_day,
           d.route_override, d.instructions, r.name AS route_name
    FROM medicine_doses d
    LEFT JOIN routes r ON r.id = d.route_override
"""

_SKIP_SELECT = "SELECT id, medicine_id, skip_date, reason FROM skip_dates"


def _convert_rows[E](
    rows: Iterable[Mapping[str, Any]],
    factory: Callable[[Mapping[str, Any]], E],
    kind: str,
) -> list[E]:
    """Build entities from rows, leaving out rows that fail validation.

    A malformed row is a data problem, not a caller error, so it is logged
    and excluded from the snapshot instead of failing the whole request.
    """
    items: list[E] = []
    for row in rows:
        try:
            items.append(factory(row))
        except ValidationError as exc:
            logger.warning("Ignoring invalid %s row id=%s: %s", kind, row.get("id"), exc)
    return items


def _group_by_medication[T: (Dose, SkipDate)](items: Iterable[T]) -> dict[MedicationId, list[T]]:
    grouped: dict[MedicationId, list[T]] = defaultdict(list)
    for item in items:
        grouped[item.medication_id].append(item)
    return dict(grouped)


# ---------------------------------------------------------------------------
# Medications
# ---------------------------------------------------------------------------


async def active_medications_on(pool: asyncpg.Pool, day: date) -> list[Medication]:
    """Medications whose active window contains *day*."""
    rows = await pool.fetch(
        f"{_MEDICATION_SELECT}"
        " WHERE m.start_date <= $1 AND (m.end_date IS NULL OR m.end_date >= $1)"
        " ORDER BY m.name, m.id",
        day,
    )
    return _convert_rows(rows, Medication.from_row, "medication")


async def active_medications_between(
    pool: asyncpg.Pool,
    start: date,
    end: date,
) -> list[Medication]:
    """Medications active on at least one day of ``[start, end]``."""
    rows = await pool.fetch(
        f"{_MEDICATION_SELECT}"
        " WHERE m.start_date <= $2 AND (m.end_date IS NULL OR m.end_date >= $1)"
        " ORDER BY m.name, m.id",
        start,
        end,
    )
    return _convert_rows(rows, Medication.from_row, "medication")


async def get_medication(pool: asyncpg.Pool, medication_id: MedicationId) -> Medication:
    """Fetch one medication or raise :class:`MedicationNotFound`."""
    row = await pool.fetchrow(f"{_MEDICATION_SELECT} WHERE m.id = $1", medication_id)
    if row is None:
        raise MedicationNotFound(medication_id)
    return Medication.from_row(row)


# ---------------------------------------------------------------------------
# Doses
# ---------------------------------------------------------------------------


async def doses_for(
    pool: asyncpg.Pool,
    medication_ids: Sequence[MedicationId],
) -> dict[MedicationId, list[Dose]]:
    """Doses of the given medications keyed by medication id, earliest first."""
    if not medication_ids:
        return {}
    rows = await pool.fetch(
        f"{_DOSE_SELECT}"
        " WHERE d.medicine_id = ANY($1)"
        " ORDER BY d.medicine_id, d.time_of_day, d.id",
        list(medication_ids),
    )
    return _group_by_medication(_convert_rows(rows, Dose.from_row, "dose"))


# ---------------------------------------------------------------------------
# Skip dates
# ---------------------------------------------------------------------------


async def skips_on(pool: asyncpg.Pool, day: date) -> dict[MedicationId, list[SkipDate]]:
    """Skip dates falling on *day*, keyed by medication id."""
    rows = await pool.fetch(f"{_SKIP_SELECT} WHERE skip_date = $1", day)
    return _group_by_medication(_convert_rows(rows, SkipDate.from_row, "skip date"))


async def skips_in_range(
    pool: asyncpg.Pool,
    start: date,
    end: date,
    medication_id: MedicationId | None = None,
) -> dict[MedicationId, list[SkipDate]]:
    """Skip dates within ``[start, end]``, optionally for one medication only."""
    conditions = ["skip_date >= $1", "skip_date <= $2"]
    args: list[object] = [start, end]
    if medication_id is not None:
        conditions.append("medicine_id = $3")
        args.append(medication_id)

    where = " AND ".join(conditions)
    rows = await pool.fetch(
        f"{_SKIP_SELECT} WHERE {where} ORDER BY skip_date, medicine_id",
        *args,
    )
    return _group_by_medication(_convert_rows(rows, SkipDate.from_row, "skip date"))
