"""Schedule endpoints: daily, range, weekly and summary views.

All dates are ``YYYY-MM-DD`` query strings parsed by the engine, so a
malformed value is reported as ``INVALID_DATE`` rather than a generic
request validation error.
"""

from __future__ import annotations

from datetime import date

import asyncpg
from fastapi import APIRouter, Depends, Query

from pillbox import service
from pillbox.api.deps import get_pool, get_schedule_settings, get_today
from pillbox.api.models import (
    ApiResponse,
    DailyScheduleModel,
    RangeScheduleModel,
    ScheduleSummaryModel,
)
from pillbox.config import ScheduleSettings
from pillbox.core.logging import bind_request

router = APIRouter(prefix="/api/schedule", tags=["schedule"])


@router.get("/daily", response_model=ApiResponse[DailyScheduleModel])
async def get_daily_schedule(
    day: str | None = Query(None, alias="date", description="YYYY-MM-DD, defaults to today"),
    pool: asyncpg.Pool = Depends(get_pool),
    today: date = Depends(get_today),
) -> ApiResponse[DailyScheduleModel]:
    """Doses due on one date, grouped by period."""
    bind_request(date=day)
    schedule = await service.daily_schedule(pool, day if day is not None else today)
    return ApiResponse[DailyScheduleModel](
        data=DailyScheduleModel.model_validate(schedule.to_dict())
    )


@router.get("/range", response_model=ApiResponse[RangeScheduleModel])
async def get_range_schedule(
    start_date: str = Query(..., description="YYYY-MM-DD"),
    end_date: str = Query(..., description="YYYY-MM-DD"),
    pool: asyncpg.Pool = Depends(get_pool),
    settings: ScheduleSettings = Depends(get_schedule_settings),
) -> ApiResponse[RangeScheduleModel]:
    """Daily schedules for every date of an inclusive span."""
    bind_request(start_date=start_date, end_date=end_date)
    schedule = await service.range_schedule(
        pool, start_date, end_date, max_days=settings.max_range_days
    )
    return ApiResponse[RangeScheduleModel](
        data=RangeScheduleModel.model_validate(schedule.to_dict())
    )


@router.get("/weekly", response_model=ApiResponse[RangeScheduleModel])
async def get_weekly_schedule(
    day: str | None = Query(None, alias="date", description="Any date in the week"),
    pool: asyncpg.Pool = Depends(get_pool),
    today: date = Depends(get_today),
) -> ApiResponse[RangeScheduleModel]:
    """The Monday-to-Sunday week containing the reference date."""
    bind_request(date=day)
    schedule = await service.weekly_schedule(pool, day if day is not None else today)
    return ApiResponse[RangeScheduleModel](
        data=RangeScheduleModel.model_validate(schedule.to_dict())
    )


@router.get("/summary", response_model=ApiResponse[ScheduleSummaryModel])
async def get_schedule_summary(
    day: str | None = Query(None, alias="date"),
    pool: asyncpg.Pool = Depends(get_pool),
    today: date = Depends(get_today),
) -> ApiResponse[ScheduleSummaryModel]:
    bind_request(date=day)
    summary = await service.daily_summary(pool, day if day is not None else today)
    return ApiResponse[ScheduleSummaryModel](data=ScheduleSummaryModel.model_validate(summary))
