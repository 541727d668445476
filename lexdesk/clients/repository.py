"""SQLite persistence for ``clientes``."""

from __future__ import annotations

from typing import Any

from lexdesk.core.database import Database, insert_row, require_created, update_row


def _map_client(row: dict[str, Any] | None) -> dict[str, Any] | None:
    if row is None:
        return None
    return {**row, "ativo": bool(row.get("ativo"))}


class ClientsRepository:
    def __init__(self, database: Database) -> None:
        self._db = database

    def list_clients(self, empresa_id: int, *, query: str = "") -> list[dict[str, Any]]:
        sql = "SELECT * FROM clientes WHERE idempresa = ?"
        params: list[Any] = [empresa_id]
        if query:
            sql += " AND (nome LIKE ? OR documento LIKE ? OR email LIKE ?)"
            like = f"%{query}%"
            params.extend([like, like, like])
        sql += " ORDER BY nome COLLATE NOCASE, id"
        return [_map_client(row) for row in self._db.fetch_all(sql, params)]  # type: ignore[misc]

    def get_client(self, empresa_id: int, cliente_id: int) -> dict[str, Any] | None:
        return _map_client(
            self._db.fetch_one(
                "SELECT * FROM clientes WHERE id = ? AND idempresa = ?",
                (cliente_id, empresa_id),
            )
        )

    def create_client(self, empresa_id: int, fields: dict[str, Any]) -> dict[str, Any]:
        with self._db.transaction() as connection:
            cliente_id = insert_row(connection, "clientes", {**fields, "idempresa": empresa_id})
        return require_created(self.get_client(empresa_id, cliente_id), "clientes", cliente_id)

    def update_client(
        self, empresa_id: int, cliente_id: int, fields: dict[str, Any]
    ) -> dict[str, Any] | None:
        with self._db.transaction() as connection:
            affected = update_row(
                connection,
                "clientes",
                fields,
                "id = ? AND idempresa = ?",
                (cliente_id, empresa_id),
            )
        return self.get_client(empresa_id, cliente_id) if affected else None

    def delete_client(self, empresa_id: int, cliente_id: int) -> bool:
        with self._db.transaction() as connection:
            cursor = connection.execute(
                "DELETE FROM clientes WHERE id = ? AND idempresa = ?",
                (cliente_id, empresa_id),
            )
        return cursor.rowcount > 0

    def count_active(self, empresa_id: int) -> int:
        row = self._db.fetch_one(
            "SELECT COUNT(*) AS total FROM clientes WHERE idempresa = ? AND ativo = 1",
            (empresa_id,),
        )
        return int(row["total"]) if row else 0
