"""Client (``clientes``) management and CEP address lookup."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict

from lexdesk.api.context import CurrentUser
from lexdesk.api.errors import ApiError, ApiErrorCode, bad_request, not_found
from lexdesk.clients.cep_lookup import CepLookupError
from lexdesk.core.normalizers import only_digits, optional_text, parse_bool, parse_optional_int

LOGGER = logging.getLogger(__name__)

CLIENT_TYPES = {1: "Pessoa Física", 2: "Pessoa Jurídica"}
_TEXT_FIELDS = ("email", "telefone", "rua", "numero", "complemento", "bairro", "cidade", "foto")


class ClientRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    nome: str | None = None
    tipo: int | str | None = None
    documento: str | None = None
    email: str | None = None
    telefone: str | None = None
    cep: str | None = None
    rua: str | None = None
    numero: str | None = None
    complemento: str | None = None
    bairro: str | None = None
    cidade: str | None = None
    uf: str | None = None
    ativo: Any = None
    foto: str | None = None


class ClientsRepositoryProtocol(Protocol):
    def list_clients(self, empresa_id: int, *, query: str = "") -> list[dict[str, Any]]: ...

    def get_client(self, empresa_id: int, cliente_id: int) -> dict[str, Any] | None: ...

    def create_client(self, empresa_id: int, fields: dict[str, Any]) -> dict[str, Any]: ...

    def update_client(
        self, empresa_id: int, cliente_id: int, fields: dict[str, Any]
    ) -> dict[str, Any] | None: ...

    def delete_client(self, empresa_id: int, cliente_id: int) -> bool: ...

    def count_active(self, empresa_id: int) -> int: ...


class CepLookup(Protocol):
    def lookup(self, cep: str) -> dict[str, Any] | None: ...


def _invalid(message: str) -> ApiError:
    return bad_request(ApiErrorCode.CLIENT_INVALID, message)


class ClientsService:
    def __init__(
        self,
        *,
        repo: ClientsRepositoryProtocol,
        cep_lookup: CepLookup,
        logger: logging.Logger = LOGGER,
    ) -> None:
        self._repo = repo
        self._cep_lookup = cep_lookup
        self._logger = logger

    def list_clients(self, user: CurrentUser, query: str = "") -> list[dict[str, Any]]:
        if user.empresa_id is None:
            return []
        return self._repo.list_clients(user.empresa_id, query=query.strip())

    def count_active(self, user: CurrentUser) -> int:
        if user.empresa_id is None:
            return 0
        return self._repo.count_active(user.empresa_id)

    def get_client(self, user: CurrentUser, cliente_id: int) -> dict[str, Any]:
        client = (
            self._repo.get_client(user.empresa_id, cliente_id)
            if user.empresa_id is not None
            else None
        )
        if client is None:
            raise not_found(ApiErrorCode.CLIENT_NOT_FOUND, f"Client not found: {cliente_id}")
        return client

    def _validated_fields(self, req: ClientRequest, *, partial: bool) -> dict[str, Any]:
        sent = req.model_dump(exclude_unset=True)
        fields: dict[str, Any] = {
            key: optional_text(sent[key]) for key in _TEXT_FIELDS if key in sent
        }
        if "nome" in sent or not partial:
            nome = optional_text(req.nome)
            if not nome:
                raise _invalid("nome is required")
            fields["nome"] = nome
        if "tipo" in sent:
            try:
                tipo = parse_optional_int(req.tipo)
            except ValueError as exc:
                raise _invalid("tipo must be 1 (pessoa física) or 2 (pessoa jurídica)") from exc
            if tipo is not None and tipo not in CLIENT_TYPES:
                raise _invalid("tipo must be 1 (pessoa física) or 2 (pessoa jurídica)")
            fields["tipo"] = tipo
        if "documento" in sent:
            fields["documento"] = only_digits(req.documento)
        if "cep" in sent:
            fields["cep"] = only_digits(req.cep)
        if "uf" in sent:
            uf = optional_text(req.uf)
            fields["uf"] = uf.upper() if uf else None
        if "ativo" in sent or not partial:
            try:
                fields["ativo"] = int(bool(parse_bool(req.ativo, default=True)))
            except ValueError as exc:
                raise _invalid("Invalid ativo value") from exc
        return fields

    def create_client(self, user: CurrentUser, req: ClientRequest) -> dict[str, Any]:
        empresa_id = user.require_empresa()
        created = self._repo.create_client(empresa_id, self._validated_fields(req, partial=False))
        self._logger.info("client_created", extra={"empresa_id": empresa_id})
        return created

    def update_client(
        self, user: CurrentUser, cliente_id: int, req: ClientRequest
    ) -> dict[str, Any]:
        fields = self._validated_fields(req, partial=True)
        updated = (
            self._repo.update_client(user.empresa_id, cliente_id, fields)
            if user.empresa_id is not None
            else None
        )
        if updated is None:
            raise not_found(ApiErrorCode.CLIENT_NOT_FOUND, f"Client not found: {cliente_id}")
        return updated

    def delete_client(self, user: CurrentUser, cliente_id: int) -> None:
        if user.empresa_id is None or not self._repo.delete_client(user.empresa_id, cliente_id):
            raise not_found(ApiErrorCode.CLIENT_NOT_FOUND, f"Client not found: {cliente_id}")

    def lookup_cep(self, cep: str) -> dict[str, Any]:
        digits = only_digits(cep) or ""
        if len(digits) != 8:
            raise bad_request(ApiErrorCode.CEP_INVALID, "CEP must have 8 digits")
        try:
            address = self._cep_lookup.lookup(digits)
        except CepLookupError as exc:
            raise ApiError(
                status_code=502,
                error_code=ApiErrorCode.CEP_LOOKUP_FAILED,
                message="CEP lookup service unavailable",
            ) from exc
        if address is None:
            raise not_found(ApiErrorCode.CEP_NOT_FOUND, f"CEP not found: {digits}")
        return address
