"""Error kinds raised by the schedule engine.

Every error is distinguished by its class rather than by message text so the
transport layer can map each one to its own response code.  Validation errors
also derive from ``ValueError`` and lookup failures from ``LookupError`` so
generic handlers keep working.
"""

from __future__ import annotations

from datetime import date
from typing import Any


class ScheduleError(Exception):
    """Base class for all schedule engine errors."""

    code = "SCHEDULE_ERROR"

    def details(self) -> dict[str, Any] | None:
        """Structured context for error responses."""
        return None


class ValidationError(ScheduleError, ValueError):
    """An input or entity failed validation."""

    code = "VALIDATION_ERROR"


class InvalidDate(ValidationError):
    """A date string is not a real ``YYYY-MM-DD`` calendar date."""

    code = "INVALID_DATE"

    def __init__(self, value: Any) -> None:
        self.value = value
        super().__init__(f"Invalid date {value!r}: expected YYYY-MM-DD")

    def details(self) -> dict[str, Any]:
        return {"value": repr(self.value)}


class InvalidTime(ValidationError):
    """A time-of-day string is not a valid 24-hour ``HH:MM`` time."""

    code = "INVALID_TIME"

    def __init__(self, value: Any) -> None:
        self.value = value
        super().__init__(f"Invalid time {value!r}: expected HH:MM (24-hour)")

    def details(self) -> dict[str, Any]:
        return {"value": repr(self.value)}


class InvalidRange(ValidationError):
    """A date range ends before it starts."""

    code = "INVALID_RANGE"

    def __init__(self, start: date, end: date) -> None:
        self.start = start
        self.end = end
        super().__init__(
            f"Start date {start.isoformat()} must be before or equal to end date {end.isoformat()}"
        )

    def details(self) -> dict[str, Any]:
        return {"start_date": self.start.isoformat(), "end_date": self.end.isoformat()}


class RangeTooLarge(ValidationError):
    """A date range spans more days than allowed."""

    code = "RANGE_TOO_LARGE"

    def __init__(self, start: date, end: date, days: int, max_days: int) -> None:
        self.start = start
        self.end = end
        self.days = days
        self.max_days = max_days
        super().__init__(f"Date range cannot exceed {max_days} days (got {days})")

    def details(self) -> dict[str, Any]:
        return {
            "start_date": self.start.isoformat(),
            "end_date": self.end.isoformat(),
            "days": self.days,
            "max_days": self.max_days,
        }


class UnboundedWindow(ValidationError):
    """An open-ended medication window was used where an end date is required."""

    code = "UNBOUNDED_WINDOW"

    def __init__(self, medication_id: Any) -> None:
        self.medication_id = medication_id
        super().__init__(
            f"Medication {medication_id} has no end date; an explicit end date is required"
        )

    def details(self) -> dict[str, Any]:
        return {"medication_id": str(self.medication_id)}


class MedicationNotFound(ScheduleError, LookupError):
    """A referenced medication is absent from the supplied snapshot."""

    code = "MEDICATION_NOT_FOUND"

    def __init__(self, medication_id: Any) -> None:
        self.medication_id = medication_id
        super().__init__(f"Medication {medication_id} not found")

    def details(self) -> dict[str, Any]:
        return {"medication_id": str(self.medication_id)}
