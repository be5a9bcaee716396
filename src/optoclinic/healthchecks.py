"""Health-check probes for the document store backend."""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import psycopg

__all__ = ["check_postgres"]

logger = logging.getLogger(__name__)

_TIMEOUT = 2  # seconds — fast-fail for readiness


def _sync_check_postgres(dsn: str) -> bool:
    """Blocking probe: SELECT 1 plus presence of the documents table."""
    import psycopg as _pg  # noqa: F811

    conn: psycopg.Connection[Any] = _pg.connect(dsn, connect_timeout=_TIMEOUT)
    try:
        with conn.cursor() as cur:
            cur.execute("SELECT to_regclass('documents') IS NOT NULL")
            row = cur.fetchone()
    finally:
        conn.close()
    return bool(row and row[0])


async def check_postgres(dsn: str) -> bool:
    """Probe PostgreSQL without blocking the loop. Returns False on any failure."""
    if not dsn:
        return False
    try:
        return await asyncio.to_thread(partial(_sync_check_postgres, dsn))
    except Exception:
        logger.warning("Postgres health-check failed", exc_info=True)
        return False
