from __future__ import annotations

import sqlite3
from pathlib import Path

from lexdesk.core.migrations import apply_migrations


def test_apply_migrations_creates_crm_tables(tmp_path: Path) -> None:
    db_path = tmp_path / "crm.db"

    apply_migrations(db_path)

    connection = sqlite3.connect(str(db_path))
    try:
        cursor = connection.cursor()
        tables = {
            row[0]
            for row in cursor.execute(
                "SELECT name FROM sqlite_master WHERE type='table'"
            ).fetchall()
        }

        assert "schema_migrations" in tables
        for table in (
            "empresas",
            "usuarios",
            "auth_login_attempts",
            "clientes",
            "oportunidades",
            "oportunidade_parcelas",
            "financial_flows",
            "templates",
            "oportunidade_documentos",
            "agenda",
            "tarefas",
            "blog_posts",
        ):
            assert table in tables

        migration_ids = {
            row[0]
            for row in cursor.execute(
                "SELECT migration_id FROM schema_migrations"
            ).fetchall()
        }
        assert "0001_tenancy.sql" in migration_ids
        assert "0006_financial_flows.sql" in migration_ids
        assert "0009_blog_posts.sql" in migration_ids
    finally:
        connection.close()


def test_apply_migrations_is_idempotent(tmp_path: Path) -> None:
    db_path = tmp_path / "crm.db"

    first = apply_migrations(db_path)
    second = apply_migrations(db_path)

    assert len(first) == 9
    assert second == []
