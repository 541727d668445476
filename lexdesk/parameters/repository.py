from __future__ import annotations

from typing import Any

from lexdesk.core.database import Database, insert_row, quote_identifier, require_created, update_row
from lexdesk.parameters.registry import ParameterKind


def _map_row(kind: ParameterKind, row: dict[str, Any] | None) -> dict[str, Any] | None:
    if row is None:
        return None
    mapped = {**row, "ativo": bool(row.get("ativo"))}
    for extra in kind.extras:
        if extra.kind == "bool" and extra.name in mapped:
            mapped[extra.name] = bool(mapped[extra.name])
    mapped.pop("idempresa", None)
    return mapped


class ParametersRepository:
    """Company-scoped CRUD over any registered lookup table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def list_items(
        self, kind: ParameterKind, empresa_id: int, *, only_active: bool = False
    ) -> list[dict[str, Any]]:
        sql = f"SELECT * FROM {quote_identifier(kind.table)} WHERE idempresa = ?"
        if only_active:
            sql += " AND ativo = 1"
        sql += f" ORDER BY {kind.order_by}"
        return [_map_row(kind, row) for row in self._db.fetch_all(sql, (empresa_id,))]  # type: ignore[misc]

    def get_item(self, kind: ParameterKind, empresa_id: int, item_id: int) -> dict[str, Any] | None:
        return _map_row(
            kind,
            self._db.fetch_one(
                f"SELECT * FROM {quote_identifier(kind.table)} WHERE id = ? AND idempresa = ?",
                (item_id, empresa_id),
            ),
        )

    def create_item(
        self, kind: ParameterKind, empresa_id: int, fields: dict[str, Any]
    ) -> dict[str, Any]:
        with self._db.transaction() as connection:
            item_id = insert_row(connection, kind.table, {**fields, "idempresa": empresa_id})
        return require_created(self.get_item(kind, empresa_id, item_id), kind.table, item_id)

    def update_item(
        self, kind: ParameterKind, empresa_id: int, item_id: int, fields: dict[str, Any]
    ) -> dict[str, Any] | None:
        with self._db.transaction() as connection:
            affected = update_row(
                connection, kind.table, fields, "id = ? AND idempresa = ?", (item_id, empresa_id)
            )
        return self.get_item(kind, empresa_id, item_id) if affected else None

    def delete_item(self, kind: ParameterKind, empresa_id: int, item_id: int) -> bool:
        with self._db.transaction() as connection:
            cursor = connection.execute(
                f"DELETE FROM {quote_identifier(kind.table)} WHERE id = ? AND idempresa = ?",
                (item_id, empresa_id),
            )
        return cursor.rowcount > 0

    def list_menu_workflows(self, empresa_id: int) -> list[dict[str, Any]]:
        rows = self._db.fetch_all(
            """
            SELECT id, nome, ordem
            FROM fluxo_trabalho
            WHERE idempresa = ? AND ativo = 1 AND exibe_menu = 1
            ORDER BY COALESCE(ordem, 2147483647), nome COLLATE NOCASE
            """,
            (empresa_id,),
        )
        return rows
