"""SQLite access helpers and tolerant schema introspection."""

from __future__ import annotations

import logging
import re
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Iterable, Iterator, Mapping

from lexdesk.core.migrations import apply_migrations

LOGGER = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_MISSING_SCHEMA_MARKERS = (
    "no such table",
    "no such column",
    "not authorized",
    "prohibited",
)


def quote_identifier(name: str) -> str:
    """Quote a table or column name that came from schema introspection."""
    if not _IDENTIFIER_RE.match(name):
        raise ValueError(f"Unsafe SQL identifier: {name!r}")
    return f'"{name}"'


def is_missing_schema_error(exc: BaseException) -> bool:
    """Return True for errors caused by absent tables, columns or privileges."""
    if not isinstance(exc, sqlite3.OperationalError):
        return False
    message = str(exc).lower()
    return any(marker in message for marker in _MISSING_SCHEMA_MARKERS)


def _bind(params: Iterable[Any] | Mapping[str, Any]) -> tuple[Any, ...] | dict[str, Any]:
    """Named parameters stay a mapping; positional ones become a tuple."""
    if isinstance(params, Mapping):
        return dict(params)
    return tuple(params)


def row_to_dict(row: sqlite3.Row | None) -> dict[str, Any] | None:
    if row is None:
        return None
    return {key: row[key] for key in row.keys()}


def insert_row(
    connection: sqlite3.Connection, table: str, fields: dict[str, Any]
) -> int:
    """Insert ``fields`` into ``table`` and return the new rowid."""
    columns = ", ".join(quote_identifier(column) for column in fields)
    placeholders = ", ".join("?" for _ in fields)
    cursor = connection.execute(
        f"INSERT INTO {quote_identifier(table)} ({columns}) VALUES ({placeholders})",
        tuple(fields.values()),
    )
    return int(cursor.lastrowid or 0)


def update_row(
    connection: sqlite3.Connection,
    table: str,
    fields: dict[str, Any],
    where: str,
    params: Iterable[Any],
) -> int:
    """Update ``fields`` on rows matching ``where``; returns the affected count."""
    if not fields:
        cursor = connection.execute(
            f"SELECT COUNT(*) FROM {quote_identifier(table)} WHERE {where}", tuple(params)
        )
        return int(cursor.fetchone()[0])
    assignments = ", ".join(f"{quote_identifier(column)} = ?" for column in fields)
    cursor = connection.execute(
        f"UPDATE {quote_identifier(table)} SET {assignments} WHERE {where}",
        (*fields.values(), *params),
    )
    return int(cursor.rowcount)


def require_created(row: dict[str, Any] | None, table: str, row_id: Any) -> dict[str, Any]:
    if row is None:
        raise RuntimeError(f"Inserted {table} row could not be read back: {row_id}")
    return row


class Database:
    """Connection factory over a single SQLite file."""

    def __init__(self, path: Path, *, migrate: bool = True) -> None:
        self._path = path
        if migrate:
            apply_migrations(path)

    @property
    def path(self) -> Path:
        return self._path

    def connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(str(self._path), timeout=10)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON")
        return connection

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection that commits on success and rolls back on error."""
        connection = self.connect()
        try:
            yield connection
            connection.commit()
        except Exception:
            connection.rollback()
            raise
        finally:
            connection.close()

    def fetch_all(
        self, sql: str, params: Iterable[Any] | Mapping[str, Any] = ()
    ) -> list[dict[str, Any]]:
        with self.transaction() as connection:
            rows = connection.execute(sql, _bind(params)).fetchall()
        return [{key: row[key] for key in row.keys()} for row in rows]

    def fetch_one(
        self, sql: str, params: Iterable[Any] | Mapping[str, Any] = ()
    ) -> dict[str, Any] | None:
        with self.transaction() as connection:
            row = connection.execute(sql, _bind(params)).fetchone()
        return row_to_dict(row)


class SchemaInspector:
    """TTL-cached view of table columns, keyed by lower-cased column name.

    A table that does not exist (or cannot be read) reports no columns; callers
    treat that as "feature unavailable" instead of failing the request.
    """

    def __init__(
        self,
        database: Database,
        *,
        ttl_seconds: int = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._database = database
        self._ttl_seconds = max(0, int(ttl_seconds))
        self._clock = clock
        self._lock = Lock()
        self._columns: dict[str, tuple[float, dict[str, str]]] = {}

    def columns(self, table: str) -> dict[str, str]:
        key = table.lower()
        now = self._clock()
        with self._lock:
            cached = self._columns.get(key)
            if cached is not None and now - cached[0] < self._ttl_seconds:
                return cached[1]

        lookup = self._load_columns(table)
        with self._lock:
            self._columns[key] = (now, lookup)
        return lookup

    def has_table(self, table: str) -> bool:
        return bool(self.columns(table))

    def has_column(self, table: str, column: str) -> bool:
        return column.lower() in self.columns(table)

    def resolve_column(self, table: str, candidates: Iterable[str]) -> str | None:
        """Return the actual name of the first candidate column present in ``table``."""
        lookup = self.columns(table)
        for candidate in candidates:
            actual = lookup.get(candidate.lower())
            if actual:
                return actual
        return None

    def invalidate(self, table: str | None = None) -> None:
        with self._lock:
            if table is None:
                self._columns.clear()
            else:
                self._columns.pop(table.lower(), None)

    def _load_columns(self, table: str) -> dict[str, str]:
        try:
            rows = self._database.fetch_all(
                f"PRAGMA table_info({quote_identifier(table)})"
            )
        except (sqlite3.Error, ValueError):
            LOGGER.warning("schema_introspection_failed table=%s", table, exc_info=True)
            return {}
        return {str(row["name"]).lower(): str(row["name"]) for row in rows}
