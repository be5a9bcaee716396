"""structlog setup for the clinic API and report loader.

Events are snake_case names with key/value context, tagged with the emitting
``component`` and, inside a request, the ``correlation_id`` the middleware
assigned:

- ``api``: ``document_store_ready`` (backend), ``store_error`` (path, method,
  error), ``unhandled_exception``
- ``reporting``: ``report_loaded`` (row counts, failed sources),
  ``report_source_failed`` (source, error)

Store and service modules log plain lines through stdlib ``logging``.
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import Any

import structlog

__all__ = [
    "configure_logging",
    "correlation_id_var",
    "get_logger",
    "new_correlation_id",
]

# Set per request by the API middleware; empty outside a request.
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def new_correlation_id() -> str:
    """Mint a request id for a call that arrived without ``x-correlation-id``."""
    cid = uuid.uuid4().hex
    correlation_id_var.set(cid)
    return cid


def _add_correlation_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    cid = correlation_id_var.get("")
    if cid:
        event_dict.setdefault("correlation_id", cid)
    return event_dict


def configure_logging(*, json_output: bool = True, level: str = "INFO") -> None:
    """Configure structlog once at API startup from ``Settings``.

    Args:
        json_output: JSON lines (``OPTOCLINIC_LOG_JSON``) or coloured console output.
        level: Minimum level name (``OPTOCLINIC_LOG_LEVEL``), e.g. ``"INFO"``.
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        _add_correlation_id,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    processors.append(
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            structlog.get_level_from_name(level)  # type: ignore[operator]
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str | None = None, **initial: Any) -> structlog.BoundLogger:
    """Logger bound to *component* (``"api"``, ``"reporting"``) plus any initial context."""
    if component:
        initial["component"] = component
    return structlog.get_logger(**initial)  # type: ignore[no-any-return]
