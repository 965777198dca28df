"""FastAPI dependencies shared by the schedule routers.

The stubs below are overridden by :func:`pillbox.api.app.create_app` (or by
tests through ``app.dependency_overrides``).  "Today" and "now" are read
here, once per request, and passed into the service explicitly.
"""

from __future__ import annotations

from datetime import date, datetime

import asyncpg
from fastapi import Depends, HTTPException

from pillbox.config import ScheduleSettings
from pillbox.db import Database


def get_database() -> Database:
    """Dependency stub -- overridden at app startup or in tests."""
    raise RuntimeError("Database not initialized")


def get_pool(db: Database = Depends(get_database)) -> asyncpg.Pool:
    """Retrieve the medication database pool.

    Raises HTTPException 503 if the pool is not available.
    """
    try:
        return db.require_pool()
    except KeyError:
        raise HTTPException(
            status_code=503,
            detail="Medication database is not available",
        )


def get_schedule_settings() -> ScheduleSettings:
    """Engine bounds; defaults unless the app was built from a config."""
    return ScheduleSettings()


def get_today() -> date:
    return date.today()


def get_now() -> datetime:
    return datetime.now()
