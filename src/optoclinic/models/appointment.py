"""Appointment record, its partial-update type and field validation."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass, fields, replace
from datetime import datetime
from enum import StrEnum
from typing import Any

from optoclinic.errors import ValidationError

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "AppointmentUpdate",
    "validate_appointment",
]

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

MIN_DURATION = 15
MAX_DURATION = 240
DURATION_STEP = 15
DEFAULT_DURATION = 30

# Stored as ISO-8601 strings; everything else is stored as-is.
_TIMESTAMP_FIELDS = ("created_at", "updated_at")


class AppointmentStatus(StrEnum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


@dataclass
class Appointment:
    """One scheduled patient visit.

    ``patient_name``, ``patient_email`` and ``patient_phone`` are a snapshot
    taken at booking time and are not kept in sync with the patient record.
    """

    patient_id: str = ""
    appointment_date: str = ""  # YYYY-MM-DD
    appointment_time: str = ""  # HH:MM
    patient_name: str = ""
    patient_email: str = ""
    patient_phone: str = ""
    duration: int = DEFAULT_DURATION
    status: str = AppointmentStatus.SCHEDULED.value
    notes: str = ""
    reason_for_visit: str = ""
    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_document(self) -> dict[str, Any]:
        """Document body as written to the store (no ``id`` key)."""
        doc = asdict(self)
        doc.pop("id")
        doc["status"] = str(self.status)
        for key in _TIMESTAMP_FIELDS:
            value = doc[key]
            doc[key] = value.isoformat() if isinstance(value, datetime) else value
        return doc

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> Appointment:
        """Build from a stored document; unknown keys are dropped and nulls take the field default."""
        known = {f.name for f in fields(cls)} - {"id"}
        kwargs = {k: v for k, v in data.items() if k in known and v is not None}
        for key in _TIMESTAMP_FIELDS:
            kwargs[key] = _parse_timestamp(kwargs.get(key))
        return cls(id=doc_id, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, **self.to_document()}


@dataclass
class AppointmentUpdate:
    """Partial change to an appointment; ``None`` leaves a field untouched."""

    patient_id: str | None = None
    appointment_date: str | None = None
    appointment_time: str | None = None
    patient_name: str | None = None
    patient_email: str | None = None
    patient_phone: str | None = None
    duration: int | None = None
    status: str | None = None
    notes: str | None = None
    reason_for_visit: str | None = None

    def changes(self) -> dict[str, Any]:
        out = {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }
        if "status" in out:
            out["status"] = str(out["status"])
        return out

    def apply_to(self, appointment: Appointment) -> Appointment:
        """Return a merged copy; the original is left untouched."""
        return replace(appointment, **self.changes())


def validate_appointment(appointment: Appointment) -> None:
    """Raise ``ValidationError`` unless the record is fit to be written."""
    missing = [
        name
        for name in ("patient_id", "appointment_date", "appointment_time")
        if not str(getattr(appointment, name) or "").strip()
    ]
    if missing:
        raise ValidationError("Please fill in all required fields", missing)

    invalid: list[str] = []
    if not _DATE_RE.match(appointment.appointment_date) or not _is_calendar_date(
        appointment.appointment_date
    ):
        invalid.append("appointment_date")
    if not _TIME_RE.match(appointment.appointment_time):
        invalid.append("appointment_time")
    if (
        isinstance(appointment.duration, bool)
        or not isinstance(appointment.duration, int)
        or not MIN_DURATION <= appointment.duration <= MAX_DURATION
        or appointment.duration % DURATION_STEP
    ):
        invalid.append("duration")
    if appointment.status not in {s.value for s in AppointmentStatus}:
        invalid.append("status")
    if invalid:
        raise ValidationError(f"Invalid value for: {', '.join(invalid)}", invalid)


def _is_calendar_date(value: str) -> bool:
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def _parse_timestamp(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None
