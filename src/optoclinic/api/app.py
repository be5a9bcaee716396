"""FastAPI application factory."""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse

from optoclinic.api.routes import appointments, health, reports
from optoclinic.clock import SystemClock
from optoclinic.errors import (
    AppointmentNotFoundError,
    ExportNotAvailableError,
    StoreError,
    ValidationError,
)
from optoclinic.logging import configure_logging, correlation_id_var, get_logger, new_correlation_id
from optoclinic.services.appointments import AppointmentService
from optoclinic.settings import Settings
from optoclinic.storage.appointments import AppointmentStore
from optoclinic.storage.document_store import InMemoryDocumentStore, PostgresDocumentStore
from optoclinic.storage.patients import PatientStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from optoclinic.clock import Clock
    from optoclinic.storage.document_store import DocumentStoreProtocol

__all__ = ["create_app", "wire"]

logger = get_logger("api")

_ERROR_CODE_BY_STATUS: dict[int, str] = {
    404: "NOT_FOUND",
    501: "NOT_IMPLEMENTED",
    503: "STORE_UNAVAILABLE",
}


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Propagate or mint ``x-correlation-id`` and report request duration."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        cid = request.headers.get("x-correlation-id") or new_correlation_id()
        correlation_id_var.set(cid)
        request.state.request_id = cid

        start = time.perf_counter()
        response = await call_next(request)
        duration = time.perf_counter() - start

        response.headers["x-correlation-id"] = cid
        response.headers["x-request-duration-ms"] = f"{duration * 1000:.1f}"
        return response


def _resolve_request_id(request: Request) -> str:
    state_request_id = getattr(request.state, "request_id", "")
    if state_request_id:
        return state_request_id
    header_request_id = request.headers.get("x-correlation-id", "")
    if header_request_id:
        request.state.request_id = header_request_id
        return header_request_id
    generated = new_correlation_id()
    request.state.request_id = generated
    return generated


def _error_payload(error_code: str, message: str, request_id: str, *, details: Any = None) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "error_code": error_code,
        "message": message,
        "request_id": request_id,
    }
    if details is not None:
        payload["details"] = details
    return payload


def _error_response(
    request: Request, status_code: int, error_code: str, message: str, *, details: Any = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=_error_payload(error_code, message, _resolve_request_id(request), details=details),
    )


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    status_code = exc.status_code
    if status_code in _ERROR_CODE_BY_STATUS:
        error_code = _ERROR_CODE_BY_STATUS[status_code]
    elif 400 <= status_code < 500:
        error_code = "INVALID_REQUEST"
    else:
        error_code = "INTERNAL_ERROR"
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _error_response(request, status_code, error_code, message)


async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(
        request,
        422,
        "INVALID_REQUEST",
        "Request validation failed",
        details=exc.errors(),
    )


async def _validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return _error_response(
        request, 422, "INVALID_REQUEST", exc.message, details={"fields": exc.fields}
    )


async def _not_found_handler(request: Request, exc: AppointmentNotFoundError) -> JSONResponse:
    return _error_response(request, 404, "NOT_FOUND", str(exc))


async def _store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("store_error", path=request.url.path, method=request.method, error=str(exc))
    return _error_response(
        request, 503, "STORE_UNAVAILABLE", "The clinic database is unavailable. Please try again."
    )


async def _export_handler(request: Request, exc: ExportNotAvailableError) -> JSONResponse:
    return _error_response(request, 501, "NOT_IMPLEMENTED", str(exc))


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_exception", path=request.url.path, exc_info=exc)
    return _error_response(request, 500, "INTERNAL_ERROR", "Internal server error")


def wire(
    app: FastAPI,
    settings: Settings,
    documents: DocumentStoreProtocol,
    clock: Clock,
) -> None:
    """Attach stores and services to ``app.state``."""
    appointment_store = AppointmentStore(
        documents,
        clock,
        collection=settings.appointments_collection,
        upcoming_window_days=settings.upcoming_window_days,
    )
    patient_store = PatientStore(documents, collection=settings.patients_collection)

    app.state.settings = settings
    app.state.clock = clock
    app.state.documents = documents
    app.state.appointment_store = appointment_store
    app.state.patient_store = patient_store
    app.state.appointment_service = AppointmentService(appointment_store, patient_store)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = Settings()
    configure_logging(json_output=settings.log_json, level=settings.log_level)

    conn = None
    documents: DocumentStoreProtocol
    if settings.pg_dsn:
        from optoclinic.storage.postgres import get_connection

        conn = get_connection(settings.pg_dsn)
        pg_store = PostgresDocumentStore(conn)
        pg_store.ensure_schema()
        documents = pg_store
    else:
        documents = InMemoryDocumentStore()
    logger.info("document_store_ready", backend="postgres" if conn else "memory")

    wire(app, settings, documents, SystemClock(settings.timezone))

    yield

    if conn is not None:
        conn.close()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Optoclinic",
        version="0.1.0",
        description="Appointments and practice reports for an optical clinic.",
        lifespan=lifespan,
    )
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _request_validation_handler)
    app.add_exception_handler(ValidationError, _validation_error_handler)
    app.add_exception_handler(AppointmentNotFoundError, _not_found_handler)
    app.add_exception_handler(StoreError, _store_error_handler)
    app.add_exception_handler(ExportNotAvailableError, _export_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
    app.add_middleware(CorrelationIdMiddleware)
    app.include_router(health.router, tags=["health"])
    app.include_router(appointments.router, tags=["appointments"])
    app.include_router(reports.router, tags=["reports"])
    return app


app = create_app()
