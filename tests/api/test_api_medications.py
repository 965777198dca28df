"""Tests for per-medication and inventory endpoints."""

from __future__ import annotations

from datetime import date, time

import httpx
import pytest

from tests.api.conftest import build_app
from tests.conftest import make_dose_row, make_medication_row, make_skip_row

pytestmark = pytest.mark.unit

DOSES = [
    make_dose_row(id=1, medicine_id=1, time_of_day=time(8, 0)),
    make_dose_row(id=2, medicine_id=1, time_of_day=time(14, 0)),
    make_dose_row(id=3, medicine_id=1, time_of_day=time(20, 0)),
]


async def _get(app, path: str, **params) -> httpx.Response:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://test"
    ) as client:
        return await client.get(path, params=params)


class TestNextDose:
    async def test_defaults_to_now(self):
        app = build_app(medications=[make_medication_row(id=1)], doses=DOSES)
        resp = await _get(app, "/api/medications/1/next-dose")

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["date"] == "2024-01-15"
        assert data["time"] == "14:00"
        assert data["dose"]["id"] == 2
        assert data["medication"]["name"] == "Metformin"

    async def test_from_parameter_and_skips(self):
        app = build_app(
            medications=[make_medication_row(id=1)],
            doses=DOSES,
            skips=[make_skip_row(skip_date=date(2024, 1, 16))],
        )
        resp = await _get(app, "/api/medications/1/next-dose", **{"from": "2024-01-15T21:00"})
        data = resp.json()["data"]
        assert data["date"] == "2024-01-17"
        assert data["time"] == "08:00"

    async def test_no_next_dose_is_null(self):
        app = build_app(
            medications=[make_medication_row(id=1, end_date=date(2024, 1, 15))],
            doses=DOSES,
        )
        resp = await _get(app, "/api/medications/1/next-dose", **{"from": "2024-01-15T21:00"})
        assert resp.status_code == 200
        assert resp.json()["data"] is None

    async def test_unknown_medication_is_404(self):
        app = build_app()
        resp = await _get(app, "/api/medications/42/next-dose")

        assert resp.status_code == 404
        error = resp.json()["error"]
        assert error["code"] == "MEDICATION_NOT_FOUND"
        assert error["details"] == {"medication_id": "42"}

    async def test_invalid_from(self):
        app = build_app(medications=[make_medication_row(id=1)], doses=DOSES)
        resp = await _get(app, "/api/medications/1/next-dose", **{"from": "tomorrow"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "INVALID_DATE"


class TestActiveDays:
    async def test_window(self):
        app = build_app(
            medications=[make_medication_row(id=1, end_date=date(2024, 1, 10))],
            skips=[make_skip_row(skip_date=date(2024, 1, 3))],
        )
        resp = await _get(app, "/api/medications/1/active-days")
        assert resp.json()["data"] == {
            "total_days": 10,
            "skip_days": 1,
            "active_days": 9,
            "skip_dates": ["2024-01-03"],
        }

    async def test_open_ended_runs_to_today(self):
        app = build_app(medications=[make_medication_row(id=1)])
        resp = await _get(app, "/api/medications/1/active-days", start_date="2024-01-11")
        assert resp.json()["data"]["total_days"] == 5


class TestInventoryStatus:
    async def test_sheets_and_alert(self):
        app = build_app(
            medications=[make_medication_row(id=1, total_tablets=25, sheet_size=10)],
            doses=DOSES,
        )
        resp = await _get(app, "/api/medications/1/inventory", days_ahead=10)

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["full_sheets"] == 2
        assert data["loose_tablets"] == 5
        assert data["daily_consumption"] == 3
        assert data["days_remaining"] == 8
        assert data["alert"]["alert_level"] == "warning"
        assert data["alert"]["needs_refill"] is True

    async def test_days_ahead_defaults_to_setting(self):
        app = build_app(medications=[make_medication_row(id=1, total_tablets=25)], doses=DOSES)
        data = (await _get(app, "/api/medications/1/inventory")).json()["data"]
        assert data["alert"]["tablets_needed_for_period"] == 3
        assert data["alert"]["alert_level"] == "none"

    async def test_unknown_medication_is_404(self):
        resp = await _get(build_app(), "/api/medications/7/inventory")
        assert resp.status_code == 404

    async def test_days_ahead_out_of_range(self):
        app = build_app(medications=[make_medication_row(id=1)], doses=DOSES)
        resp = await _get(app, "/api/medications/1/inventory", days_ahead=0)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


class TestDepletion:
    async def test_projection(self):
        app = build_app(
            medications=[make_medication_row(id=1, total_tablets=6)], doses=DOSES
        )
        resp = await _get(app, "/api/medications/1/depletion", days=10)

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["days_until_depletion"] == 2
        assert data["depletion_date"] == "2024-01-17"
        assert [p["remaining_tablets"] for p in data["projections"]] == [6, 3, 0]

    async def test_days_out_of_range(self):
        app = build_app(medications=[make_medication_row(id=1)], doses=DOSES)
        resp = await _get(app, "/api/medications/1/depletion", days=0)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


class TestRefillAlerts:
    async def test_alerts(self):
        app = build_app(
            medications=[
                make_medication_row(id=1, name="Metformin", total_tablets=2),
                make_medication_row(id=2, name="Aspirin", total_tablets=100),
            ],
            doses=DOSES + [make_dose_row(id=4, medicine_id=2)],
        )
        resp = await _get(app, "/api/inventory/alerts")

        assert resp.status_code == 200
        body = resp.json()
        assert body["meta"] == {"total": 1}
        (alert,) = body["data"]
        assert alert["medication_name"] == "Metformin"
        assert alert["alert_level"] == "critical"
        assert alert["needs_refill"] is True

    async def test_days_ahead_validated(self):
        app = build_app()
        resp = await _get(app, "/api/inventory/alerts", days_ahead=31)
        assert resp.status_code == 400
