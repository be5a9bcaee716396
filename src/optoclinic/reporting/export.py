"""Report export — not built yet; every format answers "coming soon"."""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING, NoReturn

from optoclinic.errors import ExportNotAvailableError

if TYPE_CHECKING:
    from optoclinic.reporting.loader import Report

__all__ = ["ExportFormat", "export_report"]


class ExportFormat(StrEnum):
    PDF = "pdf"
    CSV = "csv"


def export_report(export_format: ExportFormat, report: Report | None = None) -> NoReturn:
    """Always raises ``ExportNotAvailableError``; no file is produced."""
    raise ExportNotAvailableError(ExportFormat(export_format).value)
