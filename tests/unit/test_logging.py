"""Tests for structlog configuration and correlation ids."""

from __future__ import annotations

from typing import Any

import structlog

from optoclinic.logging import _add_correlation_id, correlation_id_var, get_logger, new_correlation_id


def test_new_correlation_id_becomes_current() -> None:
    cid = new_correlation_id()
    assert correlation_id_var.get() == cid
    assert len(cid) == 32


def test_correlation_id_added_to_events() -> None:
    token = correlation_id_var.set("req-7")
    try:
        event: dict[str, Any] = _add_correlation_id(None, "info", {"event": "store_error"})
    finally:
        correlation_id_var.reset(token)
    assert event["correlation_id"] == "req-7"


def test_no_correlation_id_outside_request() -> None:
    token = correlation_id_var.set("")
    try:
        event: dict[str, Any] = _add_correlation_id(None, "info", {"event": "report_loaded"})
    finally:
        correlation_id_var.reset(token)
    assert "correlation_id" not in event


def test_get_logger_binds_component() -> None:
    with structlog.testing.capture_logs() as logs:
        get_logger("reporting").info("report_loaded", patients=3)
    assert logs == [{"event": "report_loaded", "patients": 3, "component": "reporting", "log_level": "info"}]
