"""Pydantic response models for the schedule API.

Provides the generic ``ApiResponse`` wrapper, the error envelope and one
model per engine result.  Engine dataclasses are converted with
``Model.model_validate(result.to_dict())``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Base response wrappers
# ---------------------------------------------------------------------------


class ApiMeta(BaseModel):
    """Extensible metadata bag attached to every API response."""

    model_config = {"extra": "allow"}


class ApiResponse[T](BaseModel):
    """Generic API response wrapper.

    All successful responses follow ``{"data": T, "meta": {...}}``.
    """

    data: T
    meta: ApiMeta = Field(default_factory=ApiMeta)


class ErrorDetail(BaseModel):
    """Structured error payload."""

    code: str
    message: str
    details: dict | None = None


class ErrorResponse(BaseModel):
    """Standard error response envelope."""

    error: ErrorDetail


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


class MedicationInfo(BaseModel):
    id: int | str
    name: str
    strength: str | None = None
    route: str | None = None
    active_from: str
    active_until: str | None = None
    tablets_remaining: float
    sheet_size: int


class DoseInfo(BaseModel):
    id: int | str
    medication_id: int | str
    time_of_day: str
    amount: float
    route_override: int | None = None
    route_name: str | None = None
    instructions: str | None = None


# ---------------------------------------------------------------------------
# Schedules
# ---------------------------------------------------------------------------


class ScheduleEntryModel(BaseModel):
    """One dose due at one time of day."""

    medication_id: int | str
    medication_name: str
    medication_strength: str | None = None
    dose_id: int | str
    dose_amount: float
    time_of_day: str
    route: str | None = None
    instructions: str | None = None
    remaining_tablets: float
    is_low_inventory: bool


class SkippedMedicationModel(BaseModel):
    id: int | str
    name: str
    reason: str


class PeriodSchedule(BaseModel):
    """Entries of one day split into the four periods."""

    morning: list[ScheduleEntryModel] = Field(default_factory=list)
    afternoon: list[ScheduleEntryModel] = Field(default_factory=list)
    evening: list[ScheduleEntryModel] = Field(default_factory=list)
    night: list[ScheduleEntryModel] = Field(default_factory=list)


class DailyScheduleModel(BaseModel):
    date: str
    schedule: PeriodSchedule
    skipped_medications: list[SkippedMedicationModel] = Field(default_factory=list)
    total_medications: int
    total_doses: int


class RangeScheduleModel(BaseModel):
    start_date: str
    end_date: str
    total_days: int
    schedules: list[DailyScheduleModel] = Field(default_factory=list)


class ScheduleSummaryModel(BaseModel):
    """Dashboard counts for one day."""

    date: str
    total_medications: int
    total_doses: int
    periods: dict[str, int]
    low_inventory_count: int
    skipped_count: int


class NextDoseModel(BaseModel):
    date: str
    time: str
    dose: DoseInfo
    medication: MedicationInfo


class ActiveDaySummaryModel(BaseModel):
    total_days: int
    skip_days: int
    active_days: int
    skip_dates: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------


class RefillAlertModel(BaseModel):
    """Stock position of one medication against the alert period."""

    medication_id: int | str
    medication_name: str
    medication_strength: str | None = None
    current_tablets: float
    daily_consumption: float
    days_remaining: int | None = None
    tablets_needed_for_period: float
    needs_refill: bool
    alert_level: str


class ProjectionDayModel(BaseModel):
    date: str
    remaining_tablets: float
    consumption_on_date: float
    is_skip_date: bool
    is_active: bool


class DepletionProjectionModel(BaseModel):
    medication_id: int | str
    current_tablets: float
    daily_consumption: float
    depletion_date: str | None = None
    days_until_depletion: int | None = None
    projections: list[ProjectionDayModel] = Field(default_factory=list)


class InventoryStatusModel(BaseModel):
    medication_id: int | str
    medication_name: str
    medication_strength: str | None = None
    total_tablets: float
    sheet_size: int
    full_sheets: int
    loose_tablets: float
    daily_consumption: float
    days_remaining: int | None = None
    alert: RefillAlertModel


# ---------------------------------------------------------------------------
# Reminders
# ---------------------------------------------------------------------------


class DoseReminderModel(ScheduleEntryModel):
    """A schedule entry flagged as due soon or overdue."""

    kind: str
    scheduled_at: str
    minutes_until: int | None = None
    hours_overdue: int | None = None
