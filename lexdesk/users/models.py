"""Request payloads for user and profile administration."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class ProfileRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    nome: str | None = None
    ativo: Any = None
    modulos: Any = None


class UserRequest(BaseModel):
    """Create/update payload; omitted fields are left untouched on update."""

    model_config = ConfigDict(extra="forbid")

    nome_completo: str | None = None
    cpf: str | None = None
    email: str | None = None
    perfil: int | str | None = None
    empresa: int | str | None = None
    setor: int | str | None = None
    oab: str | None = None
    status: Any = None
    telefone: str | None = None
    ultimo_login: str | None = None
    observacoes: str | None = None
    senha: str | None = None

