"""SQLite persistence for agenda events and tasks."""

from __future__ import annotations

from typing import Any

from lexdesk.core.database import Database, insert_row, require_created, update_row

_AGENDA_SELECT = """
    SELECT a.id, a.titulo, a.tipo, te.nome AS tipo_evento, a.descricao, a.data,
           a.hora_inicio, a.hora_fim,
           CASE
             WHEN c.nome IS NOT NULL THEN c.nome
             WHEN a.cliente IS NOT NULL THEN CAST(a.cliente AS TEXT)
             ELSE NULL
           END AS cliente,
           a.cliente AS cliente_id,
           c.email AS cliente_email, c.telefone AS cliente_telefone,
           a.tipo_local, a.local, a.lembrete, a.status, a.id_oportunidades,
           a.datacadastro, a.dataatualizacao
    FROM agenda a
    LEFT JOIN tipo_evento te ON te.id = a.tipo
    LEFT JOIN clientes c ON c.id = a.cliente
"""
_AGENDA_SCOPE = "a.idempresa IS ? AND a.idusuario = ?"

_TASK_COLUMNS = (
    "id, id_oportunidades, titulo, descricao, data, hora, dia_inteiro, prioridade, "
    "mostrar_na_agenda, privada, recorrente, repetir_quantas_vezes, repetir_cada_unidade, "
    "repetir_intervalo, concluido, criado_em, atualizado_em"
)
TASK_BOOL_COLUMNS = ("dia_inteiro", "mostrar_na_agenda", "privada", "recorrente", "concluido")


def _map_event(row: dict[str, Any] | None) -> dict[str, Any] | None:
    if row is None:
        return None
    return {**row, "lembrete": bool(row.get("lembrete"))}


def _map_task(row: dict[str, Any] | None) -> dict[str, Any] | None:
    if row is None:
        return None
    return {**row, **{column: bool(row.get(column)) for column in TASK_BOOL_COLUMNS}}


class ScheduleRepository:
    def __init__(self, database: Database) -> None:
        self._db = database

    def list_events(self, empresa_id: int, usuario_id: int) -> list[dict[str, Any]]:
        rows = self._db.fetch_all(
            f"{_AGENDA_SELECT} WHERE {_AGENDA_SCOPE} ORDER BY a.data, a.hora_inicio, a.id",
            (empresa_id, usuario_id),
        )
        return [_map_event(row) for row in rows]  # type: ignore[misc]

    def get_event(self, empresa_id: int, usuario_id: int, event_id: int) -> dict[str, Any] | None:
        return _map_event(
            self._db.fetch_one(
                f"{_AGENDA_SELECT} WHERE a.id = ? AND {_AGENDA_SCOPE}",
                (event_id, empresa_id, usuario_id),
            )
        )

    def count_events_on(self, empresa_id: int, usuario_id: int, day: str) -> int:
        row = self._db.fetch_one(
            """
            SELECT COUNT(*) AS total FROM agenda
            WHERE data = ? AND status <> 0 AND idempresa IS ? AND idusuario = ?
            """,
            (day, empresa_id, usuario_id),
        )
        return int(row["total"]) if row else 0

    def create_event(
        self, empresa_id: int, usuario_id: int, fields: dict[str, Any]
    ) -> dict[str, Any]:
        with self._db.transaction() as connection:
            event_id = insert_row(
                connection, "agenda", {**fields, "idempresa": empresa_id, "idusuario": usuario_id}
            )
        return require_created(
            self.get_event(empresa_id, usuario_id, event_id), "agenda", event_id
        )

    def update_event(
        self, empresa_id: int, usuario_id: int, event_id: int, fields: dict[str, Any]
    ) -> dict[str, Any] | None:
        with self._db.transaction() as connection:
            now = connection.execute("SELECT datetime('now')").fetchone()[0]
            affected = update_row(
                connection,
                "agenda",
                {**fields, "dataatualizacao": now},
                "id = ? AND idempresa IS ? AND idusuario = ?",
                (event_id, empresa_id, usuario_id),
            )
        return self.get_event(empresa_id, usuario_id, event_id) if affected else None

    def delete_event(self, empresa_id: int, usuario_id: int, event_id: int) -> bool:
        with self._db.transaction() as connection:
            cursor = connection.execute(
                "DELETE FROM agenda WHERE id = ? AND idempresa IS ? AND idusuario = ?",
                (event_id, empresa_id, usuario_id),
            )
        return cursor.rowcount > 0

    def list_tasks(
        self, empresa_id: int, *, oportunidade_id: int | None = None
    ) -> list[dict[str, Any]]:
        sql = f"SELECT {_TASK_COLUMNS} FROM tarefas WHERE idempresa = ?"
        params: list[Any] = [empresa_id]
        if oportunidade_id is not None:
            sql += " AND id_oportunidades = ?"
            params.append(oportunidade_id)
        sql += " ORDER BY data, hora IS NULL, hora, id"
        return [_map_task(row) for row in self._db.fetch_all(sql, params)]  # type: ignore[misc]

    def get_task(self, empresa_id: int, task_id: int) -> dict[str, Any] | None:
        return _map_task(
            self._db.fetch_one(
                f"SELECT {_TASK_COLUMNS} FROM tarefas WHERE id = ? AND idempresa = ?",
                (task_id, empresa_id),
            )
        )

    def create_task(
        self, empresa_id: int, usuario_id: int, fields: dict[str, Any]
    ) -> dict[str, Any]:
        with self._db.transaction() as connection:
            task_id = insert_row(
                connection, "tarefas", {**fields, "idempresa": empresa_id, "idusuario": usuario_id}
            )
        return require_created(self.get_task(empresa_id, task_id), "tarefas", task_id)

    def update_task(
        self, empresa_id: int, task_id: int, fields: dict[str, Any]
    ) -> dict[str, Any] | None:
        with self._db.transaction() as connection:
            now = connection.execute("SELECT datetime('now')").fetchone()[0]
            affected = update_row(
                connection,
                "tarefas",
                {**fields, "atualizado_em": now},
                "id = ? AND idempresa = ?",
                (task_id, empresa_id),
            )
        return self.get_task(empresa_id, task_id) if affected else None

    def toggle_task(self, empresa_id: int, task_id: int) -> dict[str, Any] | None:
        with self._db.transaction() as connection:
            cursor = connection.execute(
                """
                UPDATE tarefas
                SET concluido = CASE WHEN concluido = 1 THEN 0 ELSE 1 END,
                    atualizado_em = datetime('now')
                WHERE id = ? AND idempresa = ?
                """,
                (task_id, empresa_id),
            )
        return self.get_task(empresa_id, task_id) if cursor.rowcount else None

    def delete_task(self, empresa_id: int, task_id: int) -> bool:
        with self._db.transaction() as connection:
            cursor = connection.execute(
                "DELETE FROM tarefas WHERE id = ? AND idempresa = ?",
                (task_id, empresa_id),
            )
        return cursor.rowcount > 0
