"""Appointment service — validation and booking rules in front of the store.

The store adapter writes whatever it is handed; this layer is where required
fields are enforced, both on booking and on the merged result of a partial
update, before anything reaches the store.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

from optoclinic.errors import AppointmentNotFoundError
from optoclinic.models.appointment import Appointment, AppointmentUpdate, validate_appointment

if TYPE_CHECKING:
    from collections.abc import Iterable

    from optoclinic.storage.appointments import AppointmentStore
    from optoclinic.storage.patients import PatientStore

__all__ = ["AppointmentService", "filter_appointments"]

logger = logging.getLogger(__name__)

ALL_STATUSES = "all"


def filter_appointments(
    appointments: Iterable[Appointment],
    search: str = "",
    status: str | None = None,
) -> list[Appointment]:
    """Client-side list filter.

    *search* is a case-insensitive substring matched against the patient name
    and the reason for visit; *status* must match exactly unless it is
    ``None`` or ``"all"``.
    """
    needle = search.strip().lower()
    out = []
    for a in appointments:
        haystacks = ((a.patient_name or "").lower(), (a.reason_for_visit or "").lower())
        if needle and not any(needle in h for h in haystacks):
            continue
        if status and status != ALL_STATUSES and a.status != status:
            continue
        out.append(a)
    return out


class AppointmentService:
    def __init__(self, store: AppointmentStore, patients: PatientStore | None = None) -> None:
        self._store = store
        self._patients = patients

    async def book(self, draft: Appointment) -> str:
        """Validate and persist a new appointment; returns its id.

        An empty name/email/phone snapshot is copied from the patient record
        when the patient can be found.
        """
        validate_appointment(draft)
        appointment = replace(draft, id=None, created_at=None, updated_at=None)
        if self._patients is not None and not (
            appointment.patient_name and appointment.patient_email and appointment.patient_phone
        ):
            patient = await self._patients.get_by_id(appointment.patient_id)
            if patient is not None:
                appointment = replace(
                    appointment,
                    patient_name=appointment.patient_name or patient.full_name,
                    patient_email=appointment.patient_email or patient.email,
                    patient_phone=appointment.patient_phone or patient.phone,
                )
        return await self._store.create(appointment)

    async def update(self, appointment_id: str, changes: AppointmentUpdate) -> Appointment:
        """Merge *changes* into the stored record, validating the merged result."""
        current = await self._store.get_by_id(appointment_id)
        if current is None:
            raise AppointmentNotFoundError(appointment_id)

        merged = changes.apply_to(current)
        validate_appointment(merged)

        fields = changes.changes()
        await self._store.update(appointment_id, fields)
        logger.info("Appointment %s updated: %s", appointment_id, sorted(fields))
        return await self._store.get_by_id(appointment_id) or merged

    async def cancel(self, appointment_id: str) -> None:
        await self._store.cancel(appointment_id)

    async def delete(self, appointment_id: str) -> None:
        await self._store.delete(appointment_id)

    async def get(self, appointment_id: str) -> Appointment | None:
        return await self._store.get_by_id(appointment_id)

    async def list_appointments(
        self,
        patient_id: str | None = None,
        *,
        search: str = "",
        status: str | None = None,
    ) -> list[Appointment]:
        appointments = await self._store.list_appointments(patient_id)
        return filter_appointments(appointments, search, status)

    async def list_by_date(self, date: str) -> list[Appointment]:
        return await self._store.list_by_date(date)

    async def list_upcoming(self) -> list[Appointment]:
        return await self._store.list_upcoming()
