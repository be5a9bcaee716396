"""Shared fixtures for unit and contract tests."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import pytest
from fastapi import FastAPI

from optoclinic.api.app import create_app, wire
from optoclinic.clock import FixedClock
from optoclinic.models.appointment import Appointment
from optoclinic.services.appointments import AppointmentService
from optoclinic.settings import Settings
from optoclinic.storage.appointments import AppointmentStore
from optoclinic.storage.document_store import InMemoryDocumentStore
from optoclinic.storage.patients import PatientStore


@pytest.fixture()
def anyio_backend() -> str:
    """The code under test uses asyncio APIs directly; run async tests on asyncio only."""
    return "asyncio"


@pytest.fixture()
def clock() -> FixedClock:
    """Mid-March 2026, morning clinic time."""
    return FixedClock(datetime(2026, 3, 15, 9, 30, tzinfo=UTC))


@pytest.fixture()
def documents() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture()
def appointment_store(documents: InMemoryDocumentStore, clock: FixedClock) -> AppointmentStore:
    return AppointmentStore(documents, clock)


@pytest.fixture()
def patient_store(documents: InMemoryDocumentStore) -> PatientStore:
    return PatientStore(documents)


@pytest.fixture()
def service(appointment_store: AppointmentStore, patient_store: PatientStore) -> AppointmentService:
    return AppointmentService(appointment_store, patient_store)


@pytest.fixture()
def test_settings() -> Settings:
    return Settings(pg_dsn="", environment="dev", log_json=False)


@pytest.fixture()
def app(test_settings: Settings, documents: InMemoryDocumentStore, clock: FixedClock) -> FastAPI:
    """App with state wired (lifespan doesn't fire in ASGITransport)."""
    application = create_app()
    wire(application, test_settings, documents, clock)
    return application


@pytest.fixture()
def sample_appointment() -> Appointment:
    return Appointment(
        patient_id="PAT-001",
        patient_name="Sarah Johnson",
        patient_email="sarah.johnson@example.com",
        patient_phone="(555) 123-4567",
        appointment_date="2026-03-16",
        appointment_time="10:30",
        duration=30,
        reason_for_visit="Annual eye exam",
    )


@pytest.fixture()
def patient_docs() -> list[dict[str, Any]]:
    """Patients collection as another part of the practice system writes it."""
    return [
        {
            "first_name": "Sarah",
            "last_name": "Johnson",
            "email": "sarah.johnson@example.com",
            "phone": "(555) 123-4567",
            "sex": "female",
            "age": "34",
            "created_at": "2026-03-02T14:00:00+00:00",
            "lens_type": "Single Vision",
            "frame_type": "Full Rim",
        },
        {
            "first_name": "Michael",
            "last_name": "Chen",
            "email": "m.chen@example.com",
            "phone": "(555) 234-5678",
            "sex": "male",
            "age": "52",
            "created_at": "2026-02-20T09:00:00+00:00",
            "lens_type": "Progressive",
            "frame_type": "Rimless",
        },
        {
            "first_name": "Robert",
            "last_name": "Williams",
            "email": "r.williams@example.com",
            "phone": "(555) 456-7890",
            "sex": "male",
            "age": "67",
            "created_at": "2025-11-05T09:00:00+00:00",
            "lens_type": "Bifocal",
            "frame_type": "Full Rim",
        },
    ]


@pytest.fixture()
def patient_ids(documents: InMemoryDocumentStore, patient_docs: list[dict[str, Any]]) -> list[str]:
    """Seed the patients collection; ids in ``patient_docs`` order."""
    return [documents.add("patients", doc) for doc in patient_docs]
