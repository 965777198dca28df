"""Tests for the due and missed reminder endpoints."""

from __future__ import annotations

from datetime import date, time

import httpx
import pytest

from tests.api.conftest import build_app
from tests.conftest import make_dose_row, make_medication_row, make_skip_row

pytestmark = pytest.mark.unit

MEDICATIONS = [make_medication_row(id=1, name="Metformin")]
DOSES = [
    make_dose_row(id=1, medicine_id=1, time_of_day=time(8, 0)),
    make_dose_row(id=2, medicine_id=1, time_of_day=time(10, 10), instructions="With food"),
    make_dose_row(id=3, medicine_id=1, time_of_day=time(20, 0)),
]


async def _get(app, path: str, **params) -> httpx.Response:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://test"
    ) as client:
        return await client.get(path, params=params)


class TestDueReminders:
    async def test_default_window(self):
        app = build_app(medications=MEDICATIONS, doses=DOSES)
        resp = await _get(app, "/api/reminders/due")

        assert resp.status_code == 200
        body = resp.json()
        assert body["meta"] == {"total": 1}
        (reminder,) = body["data"]
        assert reminder["kind"] == "dose_due"
        assert reminder["dose_id"] == 2
        assert reminder["scheduled_at"] == "2024-01-15T10:10"
        assert reminder["minutes_until"] == 10
        assert reminder["hours_overdue"] is None
        assert reminder["instructions"] == "With food"

    async def test_narrow_window_is_empty(self):
        app = build_app(medications=MEDICATIONS, doses=DOSES)
        body = (await _get(app, "/api/reminders/due", minutes_ahead=5)).json()
        assert body["data"] == []
        assert body["meta"] == {"total": 0}

    async def test_minutes_ahead_validated(self):
        app = build_app(medications=MEDICATIONS, doses=DOSES)
        resp = await _get(app, "/api/reminders/due", minutes_ahead=500)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"
        app.state.mock_pool.fetch.assert_not_awaited()


class TestMissedReminders:
    async def test_default_cutoff(self):
        app = build_app(medications=MEDICATIONS, doses=DOSES)
        body = (await _get(app, "/api/reminders/missed")).json()

        assert body["meta"] == {"total": 1}
        (reminder,) = body["data"]
        assert reminder["kind"] == "missed_dose"
        assert reminder["dose_id"] == 1
        assert reminder["hours_overdue"] == 2
        assert reminder["minutes_until"] is None

    async def test_longer_cutoff_excludes_recent(self):
        app = build_app(medications=MEDICATIONS, doses=DOSES)
        body = (await _get(app, "/api/reminders/missed", hours_overdue=3)).json()
        assert body["data"] == []

    async def test_skip_day(self):
        app = build_app(
            medications=MEDICATIONS,
            doses=DOSES,
            skips=[make_skip_row(skip_date=date(2024, 1, 15))],
        )
        body = (await _get(app, "/api/reminders/missed")).json()
        assert body["data"] == []

    async def test_hours_overdue_validated(self):
        app = build_app()
        resp = await _get(app, "/api/reminders/missed", hours_overdue=0)
        assert resp.status_code == 400

    async def test_database_unavailable(self):
        app = build_app(pool_available=False)
        resp = await _get(app, "/api/reminders/missed")
        assert resp.status_code == 503
