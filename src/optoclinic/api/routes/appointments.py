"""Appointment booking and listing endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, Request, Response, status
from pydantic import BaseModel, Field

from optoclinic.models.appointment import (
    DEFAULT_DURATION,
    Appointment,
    AppointmentStatus,
    AppointmentUpdate,
)
from optoclinic.services.appointments import AppointmentService

router = APIRouter(prefix="/appointments")

__all__ = ["router"]


class AppointmentIn(BaseModel):
    """Booking form.

    Required fields default to empty so the service reports them together
    as missing instead of failing schema validation one by one.
    """

    patient_id: str = ""
    patient_name: str = ""
    patient_email: str = ""
    patient_phone: str = ""
    appointment_date: str = ""  # YYYY-MM-DD
    appointment_time: str = ""  # HH:MM
    duration: int = DEFAULT_DURATION
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    notes: str = ""
    reason_for_visit: str = ""


class AppointmentPatch(BaseModel):
    patient_id: str | None = None
    patient_name: str | None = None
    patient_email: str | None = None
    patient_phone: str | None = None
    appointment_date: str | None = None
    appointment_time: str | None = None
    duration: int | None = None
    status: AppointmentStatus | None = None
    notes: str | None = None
    reason_for_visit: str | None = None


class AppointmentOut(BaseModel):
    id: str
    patient_id: str
    patient_name: str
    patient_email: str
    patient_phone: str
    appointment_date: str
    appointment_time: str
    duration: int
    status: str
    notes: str
    reason_for_visit: str
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> AppointmentOut:
        return cls.model_validate(appointment.to_dict())


class BookingResponse(BaseModel):
    id: str
    message: str = "Appointment booked successfully!"


class AppointmentList(BaseModel):
    items: list[AppointmentOut] = Field(default_factory=list)
    count: int = 0


def _service(request: Request) -> AppointmentService:
    return request.app.state.appointment_service  # type: ignore[no-any-return]


def _listing(appointments: list[Appointment]) -> AppointmentList:
    items = [AppointmentOut.from_appointment(a) for a in appointments]
    return AppointmentList(items=items, count=len(items))


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
    operation_id="book_appointment",
)
async def book_appointment(payload: AppointmentIn, request: Request) -> BookingResponse:
    draft = Appointment(**payload.model_dump())
    appointment_id = await _service(request).book(draft)
    return BookingResponse(id=appointment_id)


@router.get("", response_model=AppointmentList, operation_id="list_appointments")
async def list_appointments(
    request: Request,
    patient_id: str | None = Query(None, description="Only this patient's appointments"),
    search: str = Query("", description="Matches patient name or reason for visit"),
    status_filter: str | None = Query(None, alias="status", description="Status, or 'all'"),
) -> AppointmentList:
    """Newest date first, filtered after the fetch."""
    appointments = await _service(request).list_appointments(patient_id, search=search, status=status_filter)
    return _listing(appointments)


@router.get("/upcoming", response_model=AppointmentList, operation_id="list_upcoming_appointments")
async def list_upcoming(request: Request) -> AppointmentList:
    return _listing(await _service(request).list_upcoming())


@router.get(
    "/by-date/{date}",
    response_model=AppointmentList,
    operation_id="list_appointments_by_date",
)
async def list_by_date(date: str, request: Request) -> AppointmentList:
    return _listing(await _service(request).list_by_date(date))


@router.get("/{appointment_id}", response_model=AppointmentOut, operation_id="get_appointment")
async def get_appointment(appointment_id: str, request: Request) -> AppointmentOut:
    appointment = await _service(request).get(appointment_id)
    if appointment is None:
        raise HTTPException(status_code=404, detail=f"Appointment {appointment_id} not found")
    return AppointmentOut.from_appointment(appointment)


@router.patch("/{appointment_id}", response_model=AppointmentOut, operation_id="update_appointment")
async def update_appointment(
    appointment_id: str, payload: AppointmentPatch, request: Request
) -> AppointmentOut:
    changes = AppointmentUpdate(**payload.model_dump(exclude_none=True))
    updated = await _service(request).update(appointment_id, changes)
    return AppointmentOut.from_appointment(updated)


@router.post(
    "/{appointment_id}/cancel",
    status_code=status.HTTP_204_NO_CONTENT,
    operation_id="cancel_appointment",
)
async def cancel_appointment(appointment_id: str, request: Request) -> Response:
    await _service(request).cancel(appointment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    operation_id="delete_appointment",
)
async def delete_appointment(appointment_id: str, request: Request) -> Response:
    await _service(request).delete(appointment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
