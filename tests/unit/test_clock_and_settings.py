"""Tests for the clinic clock and environment-driven settings."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

import pytest

from optoclinic.clock import FixedClock, SystemClock
from optoclinic.settings import Settings


def test_fixed_clock_assumes_utc_for_naive_time() -> None:
    clock = FixedClock(datetime(2026, 3, 15, 23, 59))
    assert clock.now().tzinfo is UTC
    assert clock.today() == date(2026, 3, 15)


def test_fixed_clock_advance_crosses_midnight() -> None:
    clock = FixedClock(datetime(2026, 3, 15, 23, 59, tzinfo=UTC))
    clock.advance(timedelta(minutes=2))
    assert clock.today() == date(2026, 3, 16)


def test_system_clock_uses_named_timezone() -> None:
    now = SystemClock("Europe/Madrid").now()
    assert now.tzinfo is not None
    assert now.utcoffset() in (timedelta(hours=1), timedelta(hours=2))


def test_system_clock_utc() -> None:
    assert SystemClock().now().utcoffset() == timedelta(0)


def test_settings_defaults() -> None:
    settings = Settings()
    assert settings.appointments_collection == "appointments"
    assert settings.upcoming_window_days == 7


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPTOCLINIC_PG_DSN", "postgresql://clinic@db/optoclinic")
    monkeypatch.setenv("OPTOCLINIC_UPCOMING_WINDOW_DAYS", "14")
    monkeypatch.setenv("OPTOCLINIC_LOG_JSON", "false")

    settings = Settings()
    assert settings.pg_dsn == "postgresql://clinic@db/optoclinic"
    assert settings.upcoming_window_days == 14
    assert settings.log_json is False
