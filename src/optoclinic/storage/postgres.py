"""PostgreSQL connection management."""

from __future__ import annotations

import psycopg

__all__ = ["get_connection"]


def get_connection(dsn: str, *, connect_timeout: int = 10) -> psycopg.Connection[tuple[object, ...]]:
    """Open a connection for the document store (explicit commits)."""
    return psycopg.connect(dsn, autocommit=False, connect_timeout=connect_timeout)
