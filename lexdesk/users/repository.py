"""SQLite persistence for users (``usuarios``) and access profiles (``perfis``)."""

from __future__ import annotations

import json
from typing import Any

from lexdesk.core.database import Database, insert_row, row_to_dict, require_created, update_row
from lexdesk.users.modules import SYSTEM_MODULES

USER_COLUMNS = (
    "nome_completo",
    "cpf",
    "email",
    "perfil",
    "empresa",
    "setor",
    "oab",
    "status",
    "telefone",
    "ultimo_login",
    "observacoes",
)

_USER_SELECT = """
    SELECT u.id, u.nome_completo, u.cpf, u.email, u.perfil, u.empresa, u.setor,
           u.oab, u.status, u.telefone, u.ultimo_login, u.observacoes, u.datacriacao,
           p.nome AS perfil_nome, e.nome_empresa AS empresa_nome, s.nome AS setor_nome
    FROM usuarios u
    LEFT JOIN perfis p ON p.id = u.perfil
    LEFT JOIN empresas e ON e.id = u.empresa
    LEFT JOIN setores s ON s.id = u.setor
"""


def _map_user(row: dict[str, Any] | None) -> dict[str, Any] | None:
    if row is None:
        return None
    return {**row, "status": bool(row.get("status"))}


def _map_profile(row: dict[str, Any] | None) -> dict[str, Any] | None:
    if row is None:
        return None
    try:
        modulos = json.loads(row.get("modulos") or "[]")
    except ValueError:
        modulos = []
    return {
        **row,
        "ativo": bool(row.get("ativo")),
        "modulos": modulos if isinstance(modulos, list) else [],
    }


class UsersRepository:
    """Reads and writes ``usuarios``/``perfis`` rows."""

    def __init__(self, database: Database) -> None:
        self._db = database

    def list_users(self, empresa_id: int | None) -> list[dict[str, Any]]:
        rows = self._db.fetch_all(
            f"{_USER_SELECT} WHERE u.empresa IS ? ORDER BY u.nome_completo COLLATE NOCASE",
            (empresa_id,),
        )
        return [_map_user(row) for row in rows]  # type: ignore[misc]

    def get_user(self, usuario_id: int) -> dict[str, Any] | None:
        return _map_user(self._db.fetch_one(f"{_USER_SELECT} WHERE u.id = ?", (usuario_id,)))

    def empresa_of(self, usuario_id: int) -> int | None:
        row = self._db.fetch_one("SELECT empresa FROM usuarios WHERE id = ?", (usuario_id,))
        return row.get("empresa") if row else None

    def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        return _map_user(
            self._db.fetch_one(
                f"{_USER_SELECT} WHERE u.email = ? COLLATE NOCASE", (email.strip(),)
            )
        )

    def create_user(self, fields: dict[str, Any]) -> dict[str, Any]:
        with self._db.transaction() as connection:
            usuario_id = insert_row(connection, "usuarios", fields)
        return require_created(self.get_user(usuario_id), "usuarios", usuario_id)

    def update_user(self, usuario_id: int, fields: dict[str, Any]) -> dict[str, Any] | None:
        with self._db.transaction() as connection:
            affected = update_row(connection, "usuarios", fields, "id = ?", (usuario_id,))
        return self.get_user(usuario_id) if affected else None

    def delete_user(self, usuario_id: int) -> bool:
        with self._db.transaction() as connection:
            cursor = connection.execute("DELETE FROM usuarios WHERE id = ?", (usuario_id,))
        return cursor.rowcount > 0

    def touch_last_login(self, usuario_id: int) -> None:
        with self._db.transaction() as connection:
            connection.execute(
                "UPDATE usuarios SET ultimo_login = datetime('now') WHERE id = ?",
                (usuario_id,),
            )

    def exists(self, table: str, row_id: int) -> bool:
        if table not in {"empresas", "setores", "perfis"}:
            raise ValueError(f"Unsupported lookup table: {table}")
        return self._db.fetch_one(f"SELECT 1 AS found FROM {table} WHERE id = ?", (row_id,)) is not None

    def list_profiles(self) -> list[dict[str, Any]]:
        rows = self._db.fetch_all("SELECT * FROM perfis ORDER BY nome COLLATE NOCASE")
        return [_map_profile(row) for row in rows]  # type: ignore[misc]

    def get_profile(self, perfil_id: int) -> dict[str, Any] | None:
        return _map_profile(self._db.fetch_one("SELECT * FROM perfis WHERE id = ?", (perfil_id,)))

    def create_profile(self, *, nome: str, ativo: bool, modulos: list[str]) -> dict[str, Any]:
        with self._db.transaction() as connection:
            perfil_id = insert_row(
                connection,
                "perfis",
                {"nome": nome, "ativo": int(ativo), "modulos": json.dumps(modulos)},
            )
        return require_created(self.get_profile(perfil_id), "perfis", perfil_id)

    def update_profile(self, perfil_id: int, fields: dict[str, Any]) -> dict[str, Any] | None:
        values = dict(fields)
        if "modulos" in values:
            values["modulos"] = json.dumps(values["modulos"])
        if "ativo" in values:
            values["ativo"] = int(values["ativo"])
        with self._db.transaction() as connection:
            affected = update_row(connection, "perfis", values, "id = ?", (perfil_id,))
        return self.get_profile(perfil_id) if affected else None

    def delete_profile(self, perfil_id: int) -> bool:
        with self._db.transaction() as connection:
            cursor = connection.execute("DELETE FROM perfis WHERE id = ?", (perfil_id,))
        return cursor.rowcount > 0

    def ensure_admin(self, *, email: str, nome: str, company_name: str) -> int:
        """Create the bootstrap company, admin profile and admin user if missing."""
        with self._db.transaction() as connection:
            existing = connection.execute(
                "SELECT id FROM usuarios WHERE email = ? COLLATE NOCASE", (email,)
            ).fetchone()
            if existing is not None:
                return int(existing["id"])

            empresa = connection.execute("SELECT id FROM empresas ORDER BY id LIMIT 1").fetchone()
            empresa_id = (
                int(empresa["id"])
                if empresa is not None
                else insert_row(connection, "empresas", {"nome_empresa": company_name})
            )
            perfil = row_to_dict(
                connection.execute(
                    "SELECT id FROM perfis WHERE nome = 'Administrador' LIMIT 1"
                ).fetchone()
            )
            perfil_id = (
                int(perfil["id"])
                if perfil is not None
                else insert_row(
                    connection,
                    "perfis",
                    {
                        "nome": "Administrador",
                        "ativo": 1,
                        "modulos": json.dumps([module.id for module in SYSTEM_MODULES]),
                    },
                )
            )
            return insert_row(
                connection,
                "usuarios",
                {
                    "nome_completo": nome,
                    "email": email,
                    "perfil": perfil_id,
                    "empresa": empresa_id,
                    "status": 1,
                },
            )
