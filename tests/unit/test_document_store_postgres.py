"""Tests for the PostgreSQL document store (mocked connection, no database)."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import psycopg
import pytest

from optoclinic.errors import StoreError
from optoclinic.storage.document_store import (
    DocumentNotFoundError,
    FieldFilter,
    OrderBy,
    PostgresDocumentStore,
)


def _mock_conn(rows: list[Any] | None = None, rowcount: int = 1) -> tuple[MagicMock, MagicMock]:
    conn = MagicMock()
    cur = conn.cursor.return_value.__enter__.return_value
    cur.fetchall.return_value = rows or []
    cur.rowcount = rowcount
    return conn, cur


class TestPostgresDocumentStore:
    def test_add_inserts_and_commits(self) -> None:
        conn, cur = _mock_conn()
        doc_id = PostgresDocumentStore(conn).add("appointments", {"a": 1})

        assert doc_id
        sql, params = cur.execute.call_args.args
        assert sql.startswith("INSERT INTO documents")
        assert params[:2] == ["appointments", doc_id]
        conn.commit.assert_called_once()

    def test_get_returns_data_or_none(self) -> None:
        conn, _ = _mock_conn(rows=[({"a": 1},)])
        assert PostgresDocumentStore(conn).get("c", "id-1") == {"a": 1}

        conn, _ = _mock_conn(rows=[])
        assert PostgresDocumentStore(conn).get("c", "id-1") is None

    def test_update_missing_row_raises_not_found(self) -> None:
        conn, _ = _mock_conn(rowcount=0)
        with pytest.raises(DocumentNotFoundError):
            PostgresDocumentStore(conn).update("c", "ghost", {"a": 1})

    def test_driver_error_wrapped_and_rolled_back(self) -> None:
        conn, cur = _mock_conn()
        cur.execute.side_effect = psycopg.OperationalError("connection refused")

        with pytest.raises(StoreError, match="connection refused"):
            PostgresDocumentStore(conn).query("appointments")
        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()

    def test_query_builds_filters_and_order(self) -> None:
        conn, cur = _mock_conn(rows=[("id-1", {"appointment_date": "2026-03-15"})])
        rows = PostgresDocumentStore(conn).query(
            "appointments",
            [
                FieldFilter("appointment_date", ">=", "2026-03-15"),
                FieldFilter("status", "==", "scheduled"),
                FieldFilter("duration", ">", 15),
            ],
            [OrderBy("appointment_date"), OrderBy("appointment_time", descending=True)],
        )

        assert rows == [("id-1", {"appointment_date": "2026-03-15"})]
        sql, params = cur.execute.call_args.args
        assert '(data ->> %s) COLLATE "C" >= %s' in sql
        assert "(data -> %s) = %s" in sql
        assert "(data ->> %s)::numeric > %s" in sql
        assert sql.endswith('ORDER BY (data ->> %s) COLLATE "C" ASC, (data ->> %s) COLLATE "C" DESC')
        assert sql.count("%s") == len(params)
        assert params[0] == "appointments"
        assert params[-2:] == ["appointment_date", "appointment_time"]

    def test_delete_commits(self) -> None:
        conn, cur = _mock_conn(rowcount=0)
        PostgresDocumentStore(conn).delete("c", "ghost")
        assert cur.execute.call_args.args[0].startswith("DELETE FROM documents")
        conn.commit.assert_called_once()

    def test_rollback_on_dropped_connection_still_raises_store_error(self) -> None:
        conn, cur = _mock_conn()
        cur.execute.side_effect = psycopg.OperationalError("server closed the connection unexpectedly")
        conn.rollback.side_effect = psycopg.OperationalError("the connection is closed")

        with pytest.raises(StoreError, match="server closed the connection"):
            PostgresDocumentStore(conn).query("appointments")
        conn.rollback.assert_called_once()

    def test_statement_and_commit_run_under_lock(self) -> None:
        conn, cur = _mock_conn()
        store = PostgresDocumentStore(conn)
        held: list[bool] = []
        cur.execute.side_effect = lambda *a, **kw: held.append(store._lock.locked())
        conn.commit.side_effect = lambda: held.append(store._lock.locked())

        store.add("appointments", {"a": 1})

        assert held == [True, True]
        assert not store._lock.locked()

    def test_rollback_runs_under_lock(self) -> None:
        conn, cur = _mock_conn()
        store = PostgresDocumentStore(conn)
        held: list[bool] = []
        cur.execute.side_effect = psycopg.OperationalError("boom")
        conn.rollback.side_effect = lambda: held.append(store._lock.locked())

        with pytest.raises(StoreError):
            store.delete("c", "id-1")
        assert held == [True]
        assert not store._lock.locked()
