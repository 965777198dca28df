"""Shared helpers for API tests."""

from __future__ import annotations

from datetime import date, datetime
from unittest.mock import MagicMock

from fastapi import FastAPI

from pillbox.api.app import create_app
from pillbox.api.deps import get_database, get_now, get_today
from pillbox.config import PillboxConfig
from pillbox.db import Database
from tests.conftest import make_mock_pool

TODAY = date(2024, 1, 15)
NOW = datetime(2024, 1, 15, 10, 0)


def build_app(
    *,
    medications: list[dict] | None = None,
    doses: list[dict] | None = None,
    skips: list[dict] | None = None,
    pool_available: bool = True,
    config: PillboxConfig | None = None,
) -> FastAPI:
    """Create the app with a mocked Database and a fixed clock.

    ``pool_available`` controls whether ``Database.require_pool()`` raises
    KeyError, which the API reports as 503.
    """
    pool = make_mock_pool(medications=medications, doses=doses, skips=skips)

    mock_db = MagicMock(spec=Database)
    if pool_available:
        mock_db.require_pool.return_value = pool
    else:
        mock_db.require_pool.side_effect = KeyError("pillbox")

    app = create_app(config=config, database=mock_db)
    app.dependency_overrides[get_database] = lambda: mock_db
    app.dependency_overrides[get_today] = lambda: TODAY
    app.dependency_overrides[get_now] = lambda: NOW
    app.state.mock_pool = pool
    return app
