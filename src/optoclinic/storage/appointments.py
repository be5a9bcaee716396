"""Appointment store adapter — CRUD and queries over the appointments collection.

The store gives no ordering guarantee without an explicit order-by, so
``list_appointments`` and ``list_by_date`` sort on the client.  Dates are ``YYYY-MM-DD``
and times zero-padded ``HH:MM``, which makes plain string comparison a valid
chronological ordering.

Every call goes to the store; nothing is cached.  The blocking store call
runs in a worker thread so the event loop stays responsive.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from functools import partial
from typing import TYPE_CHECKING, Any, TypeVar

from optoclinic.errors import AppointmentNotFoundError
from optoclinic.models.appointment import Appointment, AppointmentStatus
from optoclinic.storage.document_store import DocumentNotFoundError, FieldFilter, OrderBy

if TYPE_CHECKING:
    from collections.abc import Callable

    from optoclinic.clock import Clock
    from optoclinic.storage.document_store import DocumentStoreProtocol

__all__ = ["APPOINTMENTS_COLLECTION", "AppointmentStore"]

logger = logging.getLogger(__name__)

APPOINTMENTS_COLLECTION = "appointments"
UPCOMING_WINDOW_DAYS = 7

_T = TypeVar("_T")


class AppointmentStore:
    """Async adapter translating appointment operations into document calls."""

    def __init__(
        self,
        documents: DocumentStoreProtocol,
        clock: Clock,
        *,
        collection: str = APPOINTMENTS_COLLECTION,
        upcoming_window_days: int = UPCOMING_WINDOW_DAYS,
    ) -> None:
        self._docs = documents
        self._clock = clock
        self._collection = collection
        self._upcoming_days = upcoming_window_days

    async def _call(self, fn: Callable[..., _T], *args: Any, **kwargs: Any) -> _T:
        return await asyncio.to_thread(partial(fn, *args, **kwargs))

    async def _query(
        self,
        filters: list[FieldFilter],
        order_by: list[OrderBy] | None = None,
    ) -> list[Appointment]:
        rows = await self._call(self._docs.query, self._collection, filters, order_by or [])
        return [Appointment.from_document(doc_id, data) for doc_id, data in rows]

    async def create(self, appointment: Appointment) -> str:
        """Persist a new appointment and return the store-assigned id."""
        now = self._clock.now()
        doc = appointment.to_document()
        doc["created_at"] = now.isoformat()
        doc["updated_at"] = now.isoformat()
        doc_id = await self._call(self._docs.add, self._collection, doc)
        logger.info("Appointment %s booked for patient %s", doc_id, appointment.patient_id)
        return doc_id

    async def list_appointments(self, patient_id: str | None = None) -> list[Appointment]:
        """All appointments (optionally one patient's), newest date first."""
        filters = [FieldFilter("patient_id", "==", patient_id)] if patient_id else []
        appointments = await self._query(filters)
        return sorted(appointments, key=lambda a: a.appointment_date or "", reverse=True)

    async def list_by_date(self, date: str) -> list[Appointment]:
        """Appointments on exactly *date*, earliest time first."""
        appointments = await self._query([FieldFilter("appointment_date", "==", date)])
        return sorted(appointments, key=lambda a: a.appointment_time or "")

    async def list_upcoming(self) -> list[Appointment]:
        """Scheduled appointments from today through the upcoming window."""
        today = self._clock.today()
        until = today + timedelta(days=self._upcoming_days)
        return await self._query(
            [
                FieldFilter("appointment_date", ">=", today.isoformat()),
                FieldFilter("appointment_date", "<=", until.isoformat()),
                FieldFilter("status", "==", AppointmentStatus.SCHEDULED.value),
            ],
            [OrderBy("appointment_date"), OrderBy("appointment_time")],
        )

    async def get_by_id(self, appointment_id: str) -> Appointment | None:
        data = await self._call(self._docs.get, self._collection, appointment_id)
        if data is None:
            return None
        return Appointment.from_document(appointment_id, data)

    async def update(self, appointment_id: str, fields: dict[str, Any]) -> None:
        """Merge *fields* into the stored document and refresh ``updated_at``.

        No validation happens here: the caller decides what may be written.
        """
        changes = {k: v for k, v in fields.items() if k not in ("id", "created_at")}
        changes["updated_at"] = self._clock.now().isoformat()
        try:
            await self._call(self._docs.update, self._collection, appointment_id, changes)
        except DocumentNotFoundError as e:
            raise AppointmentNotFoundError(appointment_id) from e

    async def cancel(self, appointment_id: str) -> None:
        """Set status to cancelled whatever the current status is."""
        await self.update(appointment_id, {"status": AppointmentStatus.CANCELLED.value})
        logger.info("Appointment %s cancelled", appointment_id)

    async def delete(self, appointment_id: str) -> None:
        await self._call(self._docs.delete, self._collection, appointment_id)
        logger.info("Appointment %s deleted", appointment_id)
