"""Tests for the health and readiness endpoints."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from optoclinic.settings import Settings


@pytest.mark.anyio()
async def test_health_returns_ok(app: FastAPI) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.anyio()
async def test_ready_in_memory_store(app: FastAPI) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/ready")
    assert resp.status_code == 200
    assert resp.json() == {"ready": True, "checks": {"document_store": "memory"}}


@pytest.mark.anyio()
@pytest.mark.parametrize(("reachable", "expected_status"), [(True, 200), (False, 503)])
async def test_ready_probes_postgres(app: FastAPI, reachable: bool, expected_status: int) -> None:
    app.state.settings = Settings(pg_dsn="postgresql://test")
    with patch(
        "optoclinic.api.routes.health.check_postgres", new_callable=AsyncMock, return_value=reachable
    ):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            resp = await client.get("/ready")

    assert resp.status_code == expected_status
    body = resp.json()
    assert body["ready"] is reachable
    assert body["checks"]["postgres"] is reachable


@pytest.mark.anyio()
async def test_check_postgres_empty_dsn_is_not_ready() -> None:
    from optoclinic.healthchecks import check_postgres

    assert await check_postgres("") is False
