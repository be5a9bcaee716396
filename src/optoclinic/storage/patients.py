"""Read-only access to the patients collection."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from optoclinic.models.patient import Patient

if TYPE_CHECKING:
    from optoclinic.storage.document_store import DocumentStoreProtocol

__all__ = ["PATIENTS_COLLECTION", "PatientStore"]

PATIENTS_COLLECTION = "patients"


class PatientStore:
    def __init__(
        self, documents: DocumentStoreProtocol, *, collection: str = PATIENTS_COLLECTION
    ) -> None:
        self._docs = documents
        self._collection = collection

    async def list_all(self) -> list[Patient]:
        rows = await asyncio.to_thread(self._docs.query, self._collection)
        return [Patient.from_document(doc_id, data) for doc_id, data in rows]

    async def get_by_id(self, patient_id: str) -> Patient | None:
        data = await asyncio.to_thread(self._docs.get, self._collection, patient_id)
        return Patient.from_document(patient_id, data) if data is not None else None
