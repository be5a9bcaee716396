"""Liveness and readiness endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from optoclinic.healthchecks import check_postgres

router = APIRouter()

__all__ = ["router"]


@router.get("/health", summary="Liveness probe", operation_id="health")
async def health() -> dict[str, str]:
    """Liveness: app process is running."""
    return {"status": "ok"}


@router.get("/ready", summary="Readiness probe", operation_id="ready")
async def ready(request: Request) -> JSONResponse:
    """Readiness: the document store is reachable.

    The in-memory store is always ready; PostgreSQL is probed.
    """
    settings = request.app.state.settings
    if not settings.pg_dsn:
        return JSONResponse(
            status_code=200,
            content={"ready": True, "checks": {"document_store": "memory"}},
        )

    pg = await check_postgres(settings.pg_dsn)
    return JSONResponse(
        status_code=200 if pg else 503,
        content={"ready": pg, "checks": {"postgres": pg}},
    )
