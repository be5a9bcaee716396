"""Schema-less document store — protocol + implementations.

Documents are JSON-compatible dicts addressed by ``(collection, doc_id)``.
Queries support field predicates and multi-field ordering; documents that
lack a filtered or ordered field are left out of the result.
"""

from __future__ import annotations

import copy
import logging
import operator
import threading
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

import psycopg
from psycopg.types.json import Jsonb

from optoclinic.errors import StoreError

if TYPE_CHECKING:
    from collections.abc import Iterable

__all__ = [
    "DocumentNotFoundError",
    "DocumentStoreProtocol",
    "FieldFilter",
    "InMemoryDocumentStore",
    "OrderBy",
    "PostgresDocumentStore",
]

logger = logging.getLogger(__name__)

_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}


class DocumentNotFoundError(StoreError):
    """Update target does not exist."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"{collection}/{doc_id} does not exist")
        self.collection = collection
        self.doc_id = doc_id


@dataclass(frozen=True)
class FieldFilter:
    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in _OPERATORS:
            msg = f"Unsupported operator {self.op!r}"
            raise ValueError(msg)

    def matches(self, data: dict[str, Any]) -> bool:
        if self.field not in data:
            return False
        try:
            return bool(_OPERATORS[self.op](data[self.field], self.value))
        except TypeError:
            # Mismatched types never satisfy a range predicate.
            return False


@dataclass(frozen=True)
class OrderBy:
    field: str
    descending: bool = False


class DocumentStoreProtocol(Protocol):
    """Minimal contract for a document database."""

    def add(self, collection: str, data: dict[str, Any]) -> str:
        """Insert a document and return its generated id."""
        ...

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Fetch one document, or None when it does not exist."""
        ...

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Shallow-merge *fields* into an existing document."""
        ...

    def delete(self, collection: str, doc_id: str) -> None:
        """Remove a document. Deleting a missing document is not an error."""
        ...

    def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: Sequence[OrderBy] = (),
    ) -> list[tuple[str, dict[str, Any]]]:
        """Return ``(doc_id, data)`` pairs matching every filter."""
        ...


# ── In-memory implementation (dev / tests) ──────────────


class InMemoryDocumentStore:
    """Document store backed by nested dicts — no external deps.

    Reads and writes copy their payloads so callers never share state with
    the store, the same as they would with a remote database.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(name, {})

    def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        self._collection(collection)[doc_id] = copy.deepcopy(data)
        return doc_id

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        data = self._collection(collection).get(doc_id)
        return copy.deepcopy(data) if data is not None else None

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise DocumentNotFoundError(collection, doc_id)
        docs[doc_id].update(copy.deepcopy(fields))

    def delete(self, collection: str, doc_id: str) -> None:
        self._collection(collection).pop(doc_id, None)

    def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: Sequence[OrderBy] = (),
    ) -> list[tuple[str, dict[str, Any]]]:
        out = [
            (doc_id, data)
            for doc_id, data in self._collection(collection).items()
            if all(f.matches(data) for f in filters)
            and all(o.field in data for o in order_by)
        ]
        # Stable sorts applied last key first give a multi-key ordering.
        for order in reversed(order_by):
            out.sort(key=lambda item, f=order.field: item[1][f], reverse=order.descending)
        return [(doc_id, copy.deepcopy(data)) for doc_id, data in out]


# ── PostgreSQL implementation ────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    collection TEXT NOT NULL,
    doc_id     TEXT NOT NULL,
    data       JSONB NOT NULL,
    PRIMARY KEY (collection, doc_id)
)
"""


class PostgresDocumentStore:
    """Documents as JSONB rows in a single ``documents`` table.

    String predicates and orderings use the ``C`` collation so results match
    plain code-point comparison (ISO dates, zero-padded times).

    Callers reach the store from worker threads (``asyncio.to_thread``) while
    sharing one connection, so each statement and its commit or rollback run
    under a lock: a transaction never mixes statements from two callers.
    """

    def __init__(self, conn: psycopg.Connection[Any]) -> None:
        self._conn = conn
        self._lock = threading.Lock()

    def _run(
        self, sql: str, params: Iterable[Any] = (), *, fetch: bool = False
    ) -> tuple[list[Any], int]:
        """Execute one statement in its own transaction. Returns (rows, rowcount)."""
        with self._lock:
            try:
                with self._conn.cursor() as cur:
                    cur.execute(sql, list(params))
                    rows = cur.fetchall() if fetch else []
                    rowcount = cur.rowcount
                self._conn.commit()
            except psycopg.Error as e:
                self._rollback()
                raise StoreError(f"Document store unavailable: {e}") from e
        return rows, rowcount

    def _rollback(self) -> None:
        # A connection the server dropped refuses rollback() as well.
        try:
            self._conn.rollback()
        except psycopg.Error:
            logger.warning("Rollback failed; connection is unusable", exc_info=True)

    def ensure_schema(self) -> None:
        self._run(_SCHEMA)

    def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        self._run(
            "INSERT INTO documents (collection, doc_id, data) VALUES (%s, %s, %s)",
            (collection, doc_id, Jsonb(data)),
        )
        return doc_id

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        rows, _ = self._run(
            "SELECT data FROM documents WHERE collection = %s AND doc_id = %s",
            (collection, doc_id),
            fetch=True,
        )
        return rows[0][0] if rows else None

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        _, rowcount = self._run(
            "UPDATE documents SET data = data || %s "
            "WHERE collection = %s AND doc_id = %s",
            (Jsonb(fields), collection, doc_id),
        )
        if rowcount == 0:
            raise DocumentNotFoundError(collection, doc_id)

    def delete(self, collection: str, doc_id: str) -> None:
        self._run(
            "DELETE FROM documents WHERE collection = %s AND doc_id = %s",
            (collection, doc_id),
        )

    def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        order_by: Sequence[OrderBy] = (),
    ) -> list[tuple[str, dict[str, Any]]]:
        clauses = ["collection = %s"]
        params: list[Any] = [collection]

        for f in filters:
            sql, values = _predicate(f)
            clauses.append(sql)
            params.extend(values)
        for o in order_by:
            clauses.append("jsonb_exists(data, %s)")
            params.append(o.field)

        order_sql = ""
        if order_by:
            terms = []
            for o in order_by:
                terms.append(f'(data ->> %s) COLLATE "C" {"DESC" if o.descending else "ASC"}')
                params.append(o.field)
            order_sql = " ORDER BY " + ", ".join(terms)

        rows, _ = self._run(
            "SELECT doc_id, data FROM documents WHERE "  # noqa: S608
            + " AND ".join(clauses)
            + order_sql,
            params,
            fetch=True,
        )
        logger.debug("Query %s matched %d documents", collection, len(rows))
        return [(r[0], r[1]) for r in rows]


def _predicate(f: FieldFilter) -> tuple[str, list[Any]]:
    if f.op in ("==", "!="):
        sql_op = "=" if f.op == "==" else "<>"
        return f"(data -> %s) {sql_op} %s", [f.field, Jsonb(f.value)]
    if isinstance(f.value, int | float) and not isinstance(f.value, bool):
        return f"(data ->> %s)::numeric {f.op} %s", [f.field, f.value]
    return f'(data ->> %s) COLLATE "C" {f.op} %s', [f.field, str(f.value)]
