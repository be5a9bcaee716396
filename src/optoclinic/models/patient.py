"""Patient record as read from the patients collection.

Patients are owned by another part of the practice system; this service only
reads them, so values are kept close to what the document holds (``age`` and
``created_at`` may be missing or malformed).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

__all__ = ["Patient"]


@dataclass(frozen=True)
class Patient:
    id: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    sex: str | None = None
    age: str | int | float | None = None
    created_at: datetime | str | None = None
    lens_type: str | None = None
    frame_type: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> Patient:
        return cls(
            id=doc_id,
            first_name=data.get("first_name") or "",
            last_name=data.get("last_name") or "",
            email=data.get("email") or "",
            phone=data.get("phone") or "",
            sex=data.get("sex"),
            age=data.get("age"),
            created_at=data.get("created_at"),
            lens_type=data.get("lens_type"),
            frame_type=data.get("frame_type"),
        )
