"""Reminder endpoints: doses due shortly and doses overdue today."""

from __future__ import annotations

from datetime import datetime

import asyncpg
from fastapi import APIRouter, Depends, Query

from pillbox import reminders, service
from pillbox.api.deps import get_now, get_pool
from pillbox.api.models import ApiResponse, DoseReminderModel
from pillbox.reminders import DoseReminder

router = APIRouter(prefix="/api/reminders", tags=["reminders"])


def _envelope(found: list[DoseReminder]) -> ApiResponse[list[DoseReminderModel]]:
    return ApiResponse[list[DoseReminderModel]](
        data=[DoseReminderModel.model_validate(reminder.to_dict()) for reminder in found],
        meta={"total": len(found)},
    )


@router.get("/due", response_model=ApiResponse[list[DoseReminderModel]])
async def get_due_reminders(
    minutes_ahead: int = Query(reminders.DEFAULT_MINUTES_AHEAD),
    pool: asyncpg.Pool = Depends(get_pool),
    now: datetime = Depends(get_now),
) -> ApiResponse[list[DoseReminderModel]]:
    """Doses scheduled between now and ``minutes_ahead`` minutes from now."""
    return _envelope(await service.due_reminders(pool, now, minutes_ahead))


@router.get("/missed", response_model=ApiResponse[list[DoseReminderModel]])
async def get_missed_reminders(
    hours_overdue: int = Query(reminders.DEFAULT_HOURS_OVERDUE),
    pool: asyncpg.Pool = Depends(get_pool),
    now: datetime = Depends(get_now),
) -> ApiResponse[list[DoseReminderModel]]:
    """Today's doses at least ``hours_overdue`` hours past their time."""
    return _envelope(await service.missed_reminders(pool, now, hours_overdue))
