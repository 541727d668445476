"""Read and edit the caller's company (``empresas`` row)."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict

from lexdesk.api.context import CurrentUser
from lexdesk.api.errors import ApiErrorCode, bad_request, not_found
from lexdesk.core.database import Database, update_row
from lexdesk.core.normalizers import optional_text


class CompanyRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    nome_empresa: str | None = None
    cnpj: str | None = None
    telefone: str | None = None
    email: str | None = None
    plano: str | None = None
    responsavel: str | None = None
    cep: str | None = None
    rua: str | None = None
    numero: str | None = None
    complemento: str | None = None
    bairro: str | None = None
    cidade: str | None = None
    uf: str | None = None


class CompanyRepository:
    def __init__(self, database: Database) -> None:
        self._db = database

    def get(self, empresa_id: int) -> dict[str, Any] | None:
        row = self._db.fetch_one("SELECT * FROM empresas WHERE id = ?", (empresa_id,))
        if row is not None:
            row["ativo"] = bool(row.get("ativo"))
        return row

    def update(self, empresa_id: int, fields: dict[str, Any]) -> dict[str, Any] | None:
        with self._db.transaction() as connection:
            affected = update_row(connection, "empresas", fields, "id = ?", (empresa_id,))
            connection.execute(
                "UPDATE empresas SET atualizacao = datetime('now') WHERE id = ?",
                (empresa_id,),
            )
        return self.get(empresa_id) if affected else None


class CompanyService:
    def __init__(self, *, repo: CompanyRepository) -> None:
        self._repo = repo

    def get_company(self, user: CurrentUser) -> dict[str, Any]:
        empresa_id = user.require_empresa(status_code=404)
        company = self._repo.get(empresa_id)
        if company is None:
            raise not_found(ApiErrorCode.COMPANY_NOT_FOUND, f"Company not found: {empresa_id}")
        return company

    def update_company(self, user: CurrentUser, req: CompanyRequest) -> dict[str, Any]:
        empresa_id = user.require_empresa(status_code=404)
        sent = req.model_dump(exclude_unset=True)
        fields = {key: optional_text(value) for key, value in sent.items()}
        if "nome_empresa" in fields and not fields["nome_empresa"]:
            raise bad_request(ApiErrorCode.VALIDATION_ERROR, "nome_empresa cannot be blank")
        if fields.get("uf"):
            fields["uf"] = str(fields["uf"]).upper()
        updated = self._repo.update(empresa_id, fields)
        if updated is None:
            raise not_found(ApiErrorCode.COMPANY_NOT_FOUND, f"Company not found: {empresa_id}")
        return updated
