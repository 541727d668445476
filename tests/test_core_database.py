from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from lexdesk.core.database import (
    Database,
    SchemaInspector,
    insert_row,
    is_missing_schema_error,
    quote_identifier,
    require_created,
    update_row,
)


def _legacy_db(tmp_path: Path) -> Database:
    database = Database(tmp_path / "legacy.db", migrate=False)
    with database.transaction() as connection:
        connection.execute('CREATE TABLE notas ("Id" INTEGER PRIMARY KEY, "Empresa_Id" INTEGER, texto TEXT)')
    return database


def test_quote_identifier_rejects_unsafe_names() -> None:
    assert quote_identifier("oportunidade_parcelas") == '"oportunidade_parcelas"'
    with pytest.raises(ValueError):
        quote_identifier('x"; DROP TABLE usuarios; --')


def test_is_missing_schema_error_only_matches_schema_failures() -> None:
    assert is_missing_schema_error(sqlite3.OperationalError("no such table: agenda"))
    assert is_missing_schema_error(sqlite3.OperationalError("no such column: X"))
    assert not is_missing_schema_error(sqlite3.OperationalError("database is locked"))
    assert not is_missing_schema_error(ValueError("no such table"))


def test_insert_and_update_row_helpers(tmp_path: Path) -> None:
    database = _legacy_db(tmp_path)

    with database.transaction() as connection:
        row_id = insert_row(connection, "notas", {"Empresa_Id": 1, "texto": "a"})
        changed = update_row(connection, "notas", {"texto": "b"}, '"Id" = ?', (row_id,))
        untouched = update_row(connection, "notas", {}, '"Id" = ?', (row_id,))
        missing = update_row(connection, "notas", {}, '"Id" = ?', (999,))

    assert changed == 1
    assert untouched == 1
    assert missing == 0
    assert database.fetch_one('SELECT texto FROM notas WHERE "Id" = :id', {"id": row_id}) == {
        "texto": "b"
    }


def test_transaction_rolls_back_on_error(tmp_path: Path) -> None:
    database = _legacy_db(tmp_path)

    with pytest.raises(RuntimeError):
        with database.transaction() as connection:
            insert_row(connection, "notas", {"texto": "perdida"})
            raise RuntimeError("boom")

    assert database.fetch_all("SELECT * FROM notas") == []


def test_schema_inspector_resolves_actual_column_names(tmp_path: Path) -> None:
    inspector = SchemaInspector(_legacy_db(tmp_path))

    assert inspector.has_table("NOTAS")
    assert inspector.has_column("notas", "empresa_id")
    assert inspector.resolve_column("notas", ["idempresa", "empresa_id"]) == "Empresa_Id"
    assert inspector.resolve_column("notas", ["nope"]) is None
    assert inspector.columns("ausente") == {}
    assert inspector.columns("bad name;") == {}


def test_schema_inspector_cache_expires_and_invalidates(tmp_path: Path) -> None:
    database = _legacy_db(tmp_path)
    now = [0.0]
    inspector = SchemaInspector(database, ttl_seconds=60, clock=lambda: now[0])
    assert not inspector.has_column("notas", "extra")

    with database.transaction() as connection:
        connection.execute("ALTER TABLE notas ADD COLUMN extra TEXT")

    assert not inspector.has_column("notas", "extra")
    now[0] = 61.0
    assert inspector.has_column("notas", "extra")

    assert not inspector.has_table("depois")
    with database.transaction() as connection:
        connection.execute("CREATE TABLE depois (id INTEGER)")
    assert not inspector.has_table("depois")
    inspector.invalidate("depois")
    assert inspector.has_table("depois")


def test_require_created_raises_when_row_is_missing() -> None:
    assert require_created({"id": 4}, "notas", 4) == {"id": 4}
    with pytest.raises(RuntimeError, match="notas"):
        require_created(None, "notas", 4)
