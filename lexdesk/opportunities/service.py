"""Opportunity (case) management, installment schedules and invoicing."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict

from lexdesk.api.context import CurrentUser
from lexdesk.api.errors import ApiError, ApiErrorCode, bad_request, not_found
from lexdesk.core.dates import format_time_string, parse_datetime, to_iso_date
from lexdesk.core.normalizers import (
    optional_text,
    parse_optional_int,
    parse_optional_number,
    parse_positive_int,
)
from lexdesk.opportunities.installments import is_parcelado
from lexdesk.opportunities.repository import InstallmentsUnavailableError

LOGGER = logging.getLogger(__name__)

ID_FIELDS = (
    "tipo_processo_id",
    "area_atuacao_id",
    "responsavel_id",
    "fase_id",
    "etapa_id",
    "status_id",
    "solicitante_id",
    "criado_por",
    "qtde_parcelas",
)
NUMBER_FIELDS = ("valor_causa", "valor_honorarios", "percentual_honorarios")
TEXT_FIELDS = (
    "numero_processo_cnj",
    "numero_protocolo",
    "vara_ou_orgao",
    "comarca",
    "forma_pagamento",
    "contingenciamento",
    "detalhes",
    "audiencia_local",
)
DATE_FIELDS = ("prazo_proximo", "audiencia_data")


class EnvolvidoRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    nome: str | None = None
    documento: str | None = None
    telefone: str | None = None
    endereco: str | None = None
    relacao: str | None = None


class OpportunityRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    tipo_processo_id: Any = None
    area_atuacao_id: Any = None
    responsavel_id: Any = None
    numero_processo_cnj: str | None = None
    numero_protocolo: str | None = None
    vara_ou_orgao: str | None = None
    comarca: str | None = None
    fase_id: Any = None
    etapa_id: Any = None
    prazo_proximo: str | None = None
    status_id: Any = None
    solicitante_id: Any = None
    valor_causa: Any = None
    valor_honorarios: Any = None
    percentual_honorarios: Any = None
    forma_pagamento: str | None = None
    qtde_parcelas: Any = None
    contingenciamento: str | None = None
    detalhes: str | None = None
    documentos_anexados: Any = None
    criado_por: Any = None
    audiencia_data: str | None = None
    audiencia_horario: str | None = None
    audiencia_local: str | None = None
    envolvidos: list[EnvolvidoRequest] | None = None


class InvoiceRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    forma_pagamento: Any = None
    condicao_pagamento: Any = None
    valor: Any = None
    parcelas: Any = None
    observacoes: Any = None
    data_faturamento: Any = None


class OpportunitiesRepositoryProtocol(Protocol):
    def list_opportunities(
        self, empresa_id: int, *, fase_id: int | None = None
    ) -> list[dict[str, Any]]: ...

    def get_opportunity(self, empresa_id: int, oportunidade_id: int) -> dict[str, Any] | None: ...

    def list_envolvidos(self, oportunidade_id: int) -> list[dict[str, Any]]: ...

    def create_opportunity(
        self, empresa_id: int, fields: dict[str, Any], envolvidos: list[dict[str, Any]]
    ) -> dict[str, Any]: ...

    def update_opportunity(
        self,
        empresa_id: int,
        oportunidade_id: int,
        fields: dict[str, Any],
        envolvidos: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any] | None: ...

    def delete_opportunity(self, empresa_id: int, oportunidade_id: int) -> bool: ...

    def list_installments(self, oportunidade_id: int) -> list[dict[str, Any]]: ...

    def list_invoices(self, oportunidade_id: int) -> list[dict[str, Any]]: ...

    def create_invoice(self, empresa_id: int, oportunidade_id: int, **kwargs: Any) -> dict[str, Any] | None: ...


def _invalid(message: str) -> ApiError:
    return bad_request(ApiErrorCode.OPPORTUNITY_INVALID, message)


def _opportunity_fields(req: OpportunityRequest, *, partial: bool) -> dict[str, Any]:
    sent = req.model_dump(exclude_unset=True, exclude={"envolvidos"})
    if not partial:
        sent = {**{name: None for name in OpportunityRequest.model_fields if name != "envolvidos"}, **sent}

    fields: dict[str, Any] = {}
    for name, value in sent.items():
        try:
            if name in ID_FIELDS:
                fields[name] = parse_optional_int(value)
            elif name in NUMBER_FIELDS:
                fields[name] = parse_optional_number(value)
            elif name in TEXT_FIELDS:
                fields[name] = optional_text(value)
            elif name in DATE_FIELDS:
                text = optional_text(value)
                fields[name] = to_iso_date(text) if text else None
                if text and fields[name] is None:
                    raise ValueError(f"Invalid date for {name}: {value!r}")
            elif name == "audiencia_horario":
                text = optional_text(value)
                fields[name] = format_time_string(text) if text else None
                if text and fields[name] is None:
                    raise ValueError(f"Invalid time: {value!r}")
            elif name == "documentos_anexados":
                fields[name] = json.dumps(value, ensure_ascii=False) if value is not None else None
        except ValueError as exc:
            raise _invalid(str(exc)) from exc
    return fields


def _envolvidos(req: OpportunityRequest) -> list[dict[str, Any]] | None:
    if req.envolvidos is None:
        return None
    result = []
    for item in req.envolvidos:
        cleaned = {key: optional_text(value) for key, value in item.model_dump().items()}
        if any(cleaned.values()):
            result.append(cleaned)
    return result


class OpportunitiesService:
    def __init__(
        self,
        *,
        repo: OpportunitiesRepositoryProtocol,
        logger: logging.Logger = LOGGER,
    ) -> None:
        self._repo = repo
        self._logger = logger

    def list_opportunities(
        self, user: CurrentUser, *, fase_id: int | None = None
    ) -> list[dict[str, Any]]:
        if user.empresa_id is None:
            return []
        return self._repo.list_opportunities(user.empresa_id, fase_id=fase_id)

    def get_opportunity(self, user: CurrentUser, oportunidade_id: int) -> dict[str, Any]:
        row = (
            self._repo.get_opportunity(user.empresa_id, oportunidade_id)
            if user.empresa_id is not None
            else None
        )
        if row is None:
            raise not_found(
                ApiErrorCode.OPPORTUNITY_NOT_FOUND, f"Opportunity not found: {oportunidade_id}"
            )
        return row

    def list_envolvidos(self, user: CurrentUser, oportunidade_id: int) -> list[dict[str, Any]]:
        self.get_opportunity(user, oportunidade_id)
        return self._repo.list_envolvidos(oportunidade_id)

    def create_opportunity(self, user: CurrentUser, req: OpportunityRequest) -> dict[str, Any]:
        empresa_id = user.require_empresa()
        fields = _opportunity_fields(req, partial=False)
        if fields.get("criado_por") is None:
            fields["criado_por"] = user.usuario_id
        try:
            created = self._repo.create_opportunity(empresa_id, fields, _envolvidos(req) or [])
        except sqlite3.IntegrityError as exc:
            raise _invalid(f"Invalid reference: {exc}") from exc
        self._logger.info(
            "opportunity_created",
            extra={"empresa_id": empresa_id, "user_id": user.usuario_id},
        )
        return created

    def update_opportunity(
        self, user: CurrentUser, oportunidade_id: int, req: OpportunityRequest
    ) -> dict[str, Any]:
        fields = _opportunity_fields(req, partial=True)
        try:
            updated = (
                self._repo.update_opportunity(
                    user.empresa_id, oportunidade_id, fields, _envolvidos(req)
                )
                if user.empresa_id is not None
                else None
            )
        except sqlite3.IntegrityError as exc:
            raise _invalid(f"Invalid reference: {exc}") from exc
        if updated is None:
            raise not_found(
                ApiErrorCode.OPPORTUNITY_NOT_FOUND, f"Opportunity not found: {oportunidade_id}"
            )
        return updated

    def update_single_field(
        self, user: CurrentUser, oportunidade_id: int, field: str, value: Any
    ) -> dict[str, Any]:
        """Move an opportunity to another status or stage."""
        return self.update_opportunity(
            user, oportunidade_id, OpportunityRequest.model_validate({field: value})
        )

    def delete_opportunity(self, user: CurrentUser, oportunidade_id: int) -> None:
        if user.empresa_id is None or not self._repo.delete_opportunity(
            user.empresa_id, oportunidade_id
        ):
            raise not_found(
                ApiErrorCode.OPPORTUNITY_NOT_FOUND, f"Opportunity not found: {oportunidade_id}"
            )

    def list_installments(self, user: CurrentUser, oportunidade_id: int) -> list[dict[str, Any]]:
        self.get_opportunity(user, oportunidade_id)
        return self._repo.list_installments(oportunidade_id)

    def list_invoices(self, user: CurrentUser, oportunidade_id: int) -> list[dict[str, Any]]:
        self.get_opportunity(user, oportunidade_id)
        return self._repo.list_invoices(oportunidade_id)

    def create_invoice(
        self, user: CurrentUser, oportunidade_id: int, req: InvoiceRequest
    ) -> dict[str, Any]:
        forma = optional_text(req.forma_pagamento) if isinstance(req.forma_pagamento, str) else None
        if not forma:
            raise bad_request(ApiErrorCode.BILLING_INVALID, "forma_pagamento is required")
        try:
            valor = parse_optional_number(req.valor)
        except ValueError as exc:
            raise bad_request(ApiErrorCode.BILLING_INVALID, "Invalid valor") from exc

        condicao = optional_text(req.condicao_pagamento) if isinstance(req.condicao_pagamento, str) else None
        parcelado = is_parcelado(condicao)
        parcelas = None
        if parcelado:
            parcelas = parse_positive_int(req.parcelas)
            if parcelas is None:
                raise bad_request(
                    ApiErrorCode.BILLING_INVALID, "parcelas is required for split payments"
                )

        if req.data_faturamento in (None, ""):
            invoice_date = datetime.now(timezone.utc)
        else:
            invoice_date = parse_datetime(req.data_faturamento)
            if invoice_date is None:
                raise bad_request(ApiErrorCode.BILLING_INVALID, "Invalid data_faturamento")

        empresa_id = user.require_empresa()
        try:
            invoice = self._repo.create_invoice(
                empresa_id,
                oportunidade_id,
                forma_pagamento=forma,
                condicao_pagamento=condicao,
                valor=valor,
                parcelado=parcelado,
                parcelas=parcelas,
                observacoes=optional_text(req.observacoes) if isinstance(req.observacoes, str) else None,
                data_faturamento=invoice_date.isoformat(),
            )
        except InstallmentsUnavailableError as exc:
            raise bad_request(
                ApiErrorCode.BILLING_INVALID, "Not enough pending installments to invoice"
            ) from exc
        if invoice is None:
            raise not_found(
                ApiErrorCode.OPPORTUNITY_NOT_FOUND, f"Opportunity not found: {oportunidade_id}"
            )
        self._logger.info(
            "opportunity_invoiced",
            extra={"empresa_id": empresa_id, "user_id": user.usuario_id},
        )
        return invoice
