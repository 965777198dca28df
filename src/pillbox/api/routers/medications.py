"""Per-medication endpoints: next dose, active days, inventory and depletion."""

from __future__ import annotations

from datetime import date, datetime

import asyncpg
from fastapi import APIRouter, Depends, Query

from pillbox import service
from pillbox.api.deps import get_now, get_pool, get_schedule_settings, get_today
from pillbox.api.models import (
    ActiveDaySummaryModel,
    ApiResponse,
    DepletionProjectionModel,
    InventoryStatusModel,
    NextDoseModel,
)
from pillbox.config import ScheduleSettings
from pillbox.core.logging import bind_request

router = APIRouter(prefix="/api/medications", tags=["medications"])


@router.get("/{medication_id}/next-dose", response_model=ApiResponse[NextDoseModel | None])
async def get_next_dose(
    medication_id: int,
    from_: str | None = Query(None, alias="from", description="ISO datetime, defaults to now"),
    pool: asyncpg.Pool = Depends(get_pool),
    now: datetime = Depends(get_now),
    settings: ScheduleSettings = Depends(get_schedule_settings),
) -> ApiResponse[NextDoseModel | None]:
    """The next dose strictly after ``from``.

    ``data`` is ``null`` when nothing is due within the search horizon; an
    unknown medication is a 404.
    """
    bind_request(medication_id=medication_id, date=from_)
    found = await service.next_scheduled_dose(
        pool,
        medication_id,
        from_ if from_ is not None else now,
        horizon_days=settings.next_dose_horizon_days,
    )
    if found is None:
        return ApiResponse[NextDoseModel | None](data=None)
    return ApiResponse[NextDoseModel | None](data=NextDoseModel.model_validate(found.to_dict()))


@router.get("/{medication_id}/active-days", response_model=ApiResponse[ActiveDaySummaryModel])
async def get_active_days(
    medication_id: int,
    start_date: str | None = Query(None),
    end_date: str | None = Query(None),
    pool: asyncpg.Pool = Depends(get_pool),
    today: date = Depends(get_today),
) -> ApiResponse[ActiveDaySummaryModel]:
    bind_request(medication_id=medication_id, start_date=start_date, end_date=end_date)
    summary = await service.active_days(pool, medication_id, today, start_date, end_date)
    return ApiResponse[ActiveDaySummaryModel](
        data=ActiveDaySummaryModel.model_validate(summary.to_dict())
    )


@router.get("/{medication_id}/inventory", response_model=ApiResponse[InventoryStatusModel])
async def get_inventory_status(
    medication_id: int,
    days_ahead: int | None = Query(None, description="Defaults to schedule.refill_days_ahead"),
    pool: asyncpg.Pool = Depends(get_pool),
    settings: ScheduleSettings = Depends(get_schedule_settings),
) -> ApiResponse[InventoryStatusModel]:
    """Stock as whole sheets plus loose tablets, with the refill alert."""
    bind_request(medication_id=medication_id, days=days_ahead)
    status = await service.inventory_status(
        pool,
        medication_id,
        days_ahead if days_ahead is not None else settings.refill_days_ahead,
    )
    return ApiResponse[InventoryStatusModel](
        data=InventoryStatusModel.model_validate(status.to_dict())
    )


@router.get("/{medication_id}/depletion", response_model=ApiResponse[DepletionProjectionModel])
async def get_depletion(
    medication_id: int,
    days: int = Query(30),
    pool: asyncpg.Pool = Depends(get_pool),
    today: date = Depends(get_today),
) -> ApiResponse[DepletionProjectionModel]:
    """Day-by-day stock projection starting today."""
    bind_request(medication_id=medication_id, days=days)
    projection = await service.depletion(pool, medication_id, today, days)
    return ApiResponse[DepletionProjectionModel](
        data=DepletionProjectionModel.model_validate(projection.to_dict())
    )
