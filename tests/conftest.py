"""Shared factories for the pillbox test suite.

Entity factories build valid Medication/Dose/SkipDate values with sensible
defaults; row factories mimic asyncpg Records for the repository tests;
``make_mock_pool`` answers queries by table so service and API tests can run
without a database.
"""

from __future__ import annotations

from datetime import date, time
from decimal import Decimal
from unittest.mock import AsyncMock

from pillbox.models import Dose, Medication, SkipDate

# ---------------------------------------------------------------------------
# Entity factories
# ---------------------------------------------------------------------------


def make_medication(
    id: int = 1,
    name: str = "Metformin",
    active_from: date = date(2024, 1, 1),
    active_until: date | None = None,
    tablets_remaining: float = 60.0,
    **kwargs,
) -> Medication:
    return Medication(
        id=id,
        name=name,
        active_from=active_from,
        active_until=active_until,
        tablets_remaining=tablets_remaining,
        **kwargs,
    )


def make_dose(
    id: int = 1,
    medication_id: int = 1,
    time_of_day: int = 8 * 60,
    amount: float = 1.0,
    **kwargs,
) -> Dose:
    return Dose(
        id=id,
        medication_id=medication_id,
        time_of_day=time_of_day,
        amount=amount,
        **kwargs,
    )


def make_skip(
    skip_date: date,
    medication_id: int = 1,
    id: int | None = None,
    reason: str | None = None,
) -> SkipDate:
    return SkipDate(id=id, medication_id=medication_id, skip_date=skip_date, reason=reason)


# ---------------------------------------------------------------------------
# Row factories (asyncpg Record stand-ins)
# ---------------------------------------------------------------------------


def make_medication_row(
    *,
    id: int = 1,
    name: str = "Metformin",
    strength: str | None = "500mg",
    start_date: date = date(2024, 1, 1),
    end_date: date | None = None,
    sheet_size: int = 10,
    total_tablets: Decimal | float = Decimal("60"),
    route_name: str | None = "Oral",
) -> dict:
    """Build a dict mimicking a ``medications`` row joined with ``routes``."""
    return {
        "id": id,
        "name": name,
        "strength": strength,
        "start_date": start_date,
        "end_date": end_date,
        "sheet_size": sheet_size,
        "total_tablets": total_tablets,
        "route_name": route_name,
    }


def make_dose_row(
    *,
    id: int = 1,
    medicine_id: int = 1,
    dose_amount: Decimal | float = Decimal("1"),
    time_of_day: time | str = time(8, 0),
    route_override: int | None = None,
    instructions: str | None = None,
    route_name: str | None = None,
) -> dict:
    """Build a dict mimicking a ``medicine_doses`` row."""
    return {
        "id": id,
        "medicine_id": medicine_id,
        "dose_amount": dose_amount,
        "time_of_day": time_of_day,
        "route_override": route_override,
        "instructions": instructions,
        "route_name": route_name,
    }


def make_skip_row(
    *,
    id: int = 1,
    medicine_id: int = 1,
    skip_date: date = date(2024, 1, 16),
    reason: str | None = None,
) -> dict:
    """Build a dict mimicking a ``skip_dates`` row."""
    return {"id": id, "medicine_id": medicine_id, "skip_date": skip_date, "reason": reason}


# ---------------------------------------------------------------------------
# Mock pool
# ---------------------------------------------------------------------------


def make_mock_pool(
    *,
    medications: list[dict] | None = None,
    doses: list[dict] | None = None,
    skips: list[dict] | None = None,
) -> AsyncMock:
    """An AsyncMock pool that returns rows by the table a query reads.

    ``fetch`` returns every row of the queried table (no WHERE filtering);
    ``fetchrow`` returns the medication row whose id matches the first
    argument, or ``None``.
    """
    medications = medications or []
    doses = doses or []
    skips = skips or []

    async def _fetch(sql: str, *args):
        if "FROM medicine_doses" in sql:
            return doses
        if "FROM skip_dates" in sql:
            return skips
        if "FROM medications" in sql:
            return medications
        raise AssertionError(f"unexpected query: {sql}")

    async def _fetchrow(sql: str, *args):
        for row in medications:
            if row["id"] == args[0]:
                return row
        return None

    pool = AsyncMock()
    pool.fetch = AsyncMock(side_effect=_fetch)
    pool.fetchrow = AsyncMock(side_effect=_fetchrow)
    return pool
