"""Report loading: fetch patients and appointments side by side, then aggregate.

The two fetches are independent.  A store failure on one side is logged and
replaced by an empty collection so the report still renders whatever the
other side returned; the failure is reported back in ``load_errors``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from optoclinic.errors import StoreError
from optoclinic.logging import get_logger
from optoclinic.reporting.statistics import (
    AppointmentStats,
    PatientStats,
    PrescriptionStats,
    compute_appointment_stats,
    compute_patient_stats,
    compute_prescription_stats,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable
    from datetime import datetime

    from optoclinic.clock import Clock
    from optoclinic.models.appointment import Appointment
    from optoclinic.models.patient import Patient
    from optoclinic.storage.appointments import AppointmentStore
    from optoclinic.storage.patients import PatientStore

__all__ = ["FetchResult", "Report", "fetch_or_empty", "load_report"]

logger = get_logger("reporting")

_T = TypeVar("_T")


@dataclass(frozen=True)
class FetchResult(Generic[_T]):
    """Outcome of one fetch: the items, or an empty list plus the error."""

    items: list[_T] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class Report:
    generated_at: datetime
    patient_stats: PatientStats
    appointment_stats: AppointmentStats
    prescription_stats: PrescriptionStats
    load_errors: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "generated_at": self.generated_at.isoformat(),
            "patients": self.patient_stats.to_dict(),
            "appointments": self.appointment_stats.to_dict(),
            "prescriptions": self.prescription_stats.to_dict(),
            "load_errors": dict(self.load_errors),
        }


async def fetch_or_empty(source: str, fetch: Awaitable[list[_T]]) -> FetchResult[_T]:
    """Await *fetch*; a ``StoreError`` becomes an empty result, never a raise."""
    try:
        items = await fetch
    except StoreError as e:
        logger.error("report_source_failed", source=source, error=str(e))
        return FetchResult(error=f"Failed to load {source}")
    return FetchResult(items=items)


async def load_report(
    patients: PatientStore,
    appointments: AppointmentStore,
    clock: Clock,
) -> Report:
    """Fetch both collections concurrently and compute the three views."""
    patient_result, appointment_result = await asyncio.gather(
        fetch_or_empty("patients", patients.list_all()),
        fetch_or_empty("appointments", appointments.list_appointments()),
    )

    load_errors = {
        name: result.error
        for name, result in (("patients", patient_result), ("appointments", appointment_result))
        if result.error is not None
    }
    now = clock.now()
    patient_items: list[Patient] = patient_result.items
    appointment_items: list[Appointment] = appointment_result.items

    logger.info(
        "report_loaded",
        patients=len(patient_items),
        appointments=len(appointment_items),
        failed_sources=sorted(load_errors),
    )
    return Report(
        generated_at=now,
        patient_stats=compute_patient_stats(patient_items, now),
        appointment_stats=compute_appointment_stats(appointment_items),
        prescription_stats=compute_prescription_stats(patient_items),
        load_errors=load_errors,
    )
