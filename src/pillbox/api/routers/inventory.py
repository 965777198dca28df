"""Inventory endpoints."""

from __future__ import annotations

from datetime import date

import asyncpg
from fastapi import APIRouter, Depends, Query

from pillbox import service
from pillbox.api.deps import get_pool, get_schedule_settings, get_today
from pillbox.api.models import ApiResponse, RefillAlertModel
from pillbox.config import ScheduleSettings
from pillbox.core.logging import bind_request

router = APIRouter(prefix="/api/inventory", tags=["inventory"])


@router.get("/alerts", response_model=ApiResponse[list[RefillAlertModel]])
async def get_refill_alerts(
    days_ahead: int | None = Query(None, description="Defaults to schedule.refill_days_ahead"),
    pool: asyncpg.Pool = Depends(get_pool),
    today: date = Depends(get_today),
    settings: ScheduleSettings = Depends(get_schedule_settings),
) -> ApiResponse[list[RefillAlertModel]]:
    """Medications whose stock runs out within ``days_ahead`` days, most urgent first."""
    bind_request(days=days_ahead)
    alerts = await service.refill_alerts(
        pool, today, days_ahead if days_ahead is not None else settings.refill_days_ahead
    )
    return ApiResponse[list[RefillAlertModel]](
        data=[RefillAlertModel.model_validate(alert.to_dict()) for alert in alerts],
        meta={"total": len(alerts)},
    )
