from __future__ import annotations

from typing import Any

from lexdesk.core.database import Database, insert_row, require_created, update_row

_COLUMNS = "id, title, content, created_at, updated_at"
_OWNER_SCOPE = "idempresa IS ? AND idusuario = ?"


class TemplatesRepository:
    """Templates belong to one user inside one company (the company may be null)."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def list_templates(self, empresa_id: int | None, usuario_id: int) -> list[dict[str, Any]]:
        return self._db.fetch_all(
            f"SELECT {_COLUMNS} FROM templates WHERE {_OWNER_SCOPE} ORDER BY id",
            (empresa_id, usuario_id),
        )

    def get_template(
        self, empresa_id: int | None, usuario_id: int, template_id: int
    ) -> dict[str, Any] | None:
        return self._db.fetch_one(
            f"SELECT {_COLUMNS} FROM templates WHERE id = ? AND {_OWNER_SCOPE}",
            (template_id, empresa_id, usuario_id),
        )

    def create_template(
        self, empresa_id: int, usuario_id: int, title: str, content: str | None
    ) -> dict[str, Any]:
        with self._db.transaction() as connection:
            template_id = insert_row(
                connection,
                "templates",
                {"title": title, "content": content, "idempresa": empresa_id, "idusuario": usuario_id},
            )
        return require_created(
            self.get_template(empresa_id, usuario_id, template_id), "templates", template_id
        )

    def update_template(
        self,
        empresa_id: int | None,
        usuario_id: int,
        template_id: int,
        fields: dict[str, Any],
    ) -> dict[str, Any] | None:
        with self._db.transaction() as connection:
            affected = update_row(
                connection,
                "templates",
                {**fields, "updated_at": connection.execute("SELECT datetime('now')").fetchone()[0]},
                f"id = ? AND {_OWNER_SCOPE}",
                (template_id, empresa_id, usuario_id),
            )
        return self.get_template(empresa_id, usuario_id, template_id) if affected else None

    def delete_template(self, empresa_id: int | None, usuario_id: int, template_id: int) -> bool:
        with self._db.transaction() as connection:
            cursor = connection.execute(
                f"DELETE FROM templates WHERE id = ? AND {_OWNER_SCOPE}",
                (template_id, empresa_id, usuario_id),
            )
        return cursor.rowcount > 0
