"""Reporting dashboard endpoints.

``GET /reports`` — patient, appointment and prescription statistics
``GET /reports/export/{format}`` — placeholder, answers 501 "coming soon"
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

from optoclinic.reporting.export import ExportFormat, export_report
from optoclinic.reporting.loader import load_report

router = APIRouter(prefix="/reports")

__all__ = ["router"]


@router.get("", summary="Practice statistics", operation_id="get_reports")
async def get_reports(request: Request) -> dict[str, Any]:
    """Recomputed from scratch on every call.

    A source that fails to load is reported in ``load_errors`` and counted as
    empty; the response is still 200.
    """
    state = request.app.state
    report = await load_report(state.patient_store, state.appointment_store, state.clock)
    return report.to_dict()


@router.get(
    "/export/{export_format}",
    summary="Export the report (not yet available)",
    operation_id="export_report",
)
async def export(export_format: ExportFormat) -> None:
    export_report(export_format)
