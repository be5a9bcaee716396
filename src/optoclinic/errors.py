"""Error taxonomy shared by stores, services and the API."""

from __future__ import annotations

__all__ = [
    "AppointmentNotFoundError",
    "ExportNotAvailableError",
    "StoreError",
    "ValidationError",
]


class StoreError(Exception):
    """Raised when the document store cannot serve a read or commit a write."""


class AppointmentNotFoundError(StoreError):
    """Write target does not exist."""

    def __init__(self, appointment_id: str) -> None:
        super().__init__(f"Appointment {appointment_id} not found")
        self.appointment_id = appointment_id


class ValidationError(Exception):
    """Required or malformed fields, detected before any write is attempted."""

    def __init__(self, message: str, fields: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.fields = fields or []


class ExportNotAvailableError(Exception):
    """Report export has not been built yet."""

    def __init__(self, export_format: str) -> None:
        super().__init__(f"Export as {export_format.upper()} coming soon!")
        self.export_format = export_format
