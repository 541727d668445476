"""Financial flows: paginated listing with installments, CRUD and settlement."""

from __future__ import annotations

import logging
import sqlite3
from datetime import date
from typing import Any, Callable, Protocol, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from lexdesk.api.context import CurrentUser
from lexdesk.api.errors import ApiError, ApiErrorCode, bad_request, not_found
from lexdesk.core.database import is_missing_schema_error
from lexdesk.core.dates import to_iso_date
from lexdesk.core.normalizers import optional_text, parse_optional_int, parse_optional_number
from lexdesk.financial.mapper import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    normalize_flow_id,
    normalize_flow_row,
    parse_page_param,
)

LOGGER = logging.getLogger(__name__)
EXTERNALLY_MANAGED_PROVIDERS = frozenset({"asaas"})

T = TypeVar("T")


class FlowRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    tipo: Any = None
    descricao: Any = None
    valor: Any = None
    vencimento: Any = None
    pagamento: Any = None
    status: Any = None
    conta_id: Any = Field(default=None, alias="contaId")
    categoria_id: Any = Field(default=None, alias="categoriaId")
    cliente_id: Any = Field(default=None, alias="clienteId")
    fornecedor_id: Any = Field(default=None, alias="fornecedorId")


class SettleRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    pagamento_data: Any = Field(default=None, alias="pagamentoData")


class FinancialFlowsRepositoryProtocol(Protocol):
    def opportunity_tables_available(self) -> bool: ...

    def mark_opportunities_unavailable(self) -> None: ...

    def query_flows(
        self,
        empresa_id: int,
        *,
        cliente_id: str | None,
        limit: int,
        offset: int,
        include_opportunities: bool,
    ) -> tuple[list[dict[str, Any]], int]: ...

    def query_totals(
        self, empresa_id: int, *, cliente_id: str | None, include_opportunities: bool
    ) -> list[dict[str, Any]]: ...

    def get_flow(self, empresa_id: int, flow_id: int | str) -> dict[str, Any] | None: ...

    def create_flow(self, empresa_id: int, fields: dict[str, Any]) -> dict[str, Any]: ...

    def update_flow(
        self, empresa_id: int, flow_id: int | str, fields: dict[str, Any]
    ) -> dict[str, Any] | None: ...

    def delete_flow(self, empresa_id: int, flow_id: int | str) -> bool: ...


def _invalid(message: str) -> ApiError:
    return bad_request(ApiErrorCode.FLOW_INVALID, message)


def _party_id(value: Any, name: str) -> str | None:
    if isinstance(value, (dict, list, bool)):
        raise _invalid(f"Invalid {name}")
    return optional_text(value)


def _flow_not_found(flow_id: Any) -> ApiError:
    return not_found(ApiErrorCode.FLOW_NOT_FOUND, f"Flow not found: {flow_id}")


class FinancialService:
    def __init__(
        self,
        *,
        repo: FinancialFlowsRepositoryProtocol,
        logger: logging.Logger = LOGGER,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._repo = repo
        self._logger = logger
        self._today = today

    def _with_fallback(self, user: CurrentUser, run: Callable[[bool], T]) -> T:
        """Run a combined query, retrying without installments on missing schema."""
        include_opportunities = self._repo.opportunity_tables_available()
        try:
            return run(include_opportunities)
        except sqlite3.OperationalError as exc:
            if not include_opportunities or not is_missing_schema_error(exc):
                raise
            self._repo.mark_opportunities_unavailable()
            self._logger.warning(
                "financial_flows_fallback",
                extra={"empresa_id": user.empresa_id, "user_id": user.usuario_id},
                exc_info=True,
            )
            return run(False)

    def list_flows(
        self, user: CurrentUser, *, page: Any = None, limit: Any = None, cliente_id: Any = None
    ) -> dict[str, Any]:
        effective_page = parse_page_param(page, DEFAULT_PAGE)
        effective_limit = parse_page_param(limit, DEFAULT_LIMIT)
        if user.empresa_id is None:
            return {"items": [], "total": 0, "page": effective_page, "limit": effective_limit}

        empresa_id = user.empresa_id
        cliente_filter = optional_text(cliente_id)
        rows, total = self._with_fallback(
            user,
            lambda include: self._repo.query_flows(
                empresa_id,
                cliente_id=cliente_filter,
                limit=effective_limit,
                offset=(effective_page - 1) * effective_limit,
                include_opportunities=include,
            ),
        )
        return {
            "items": [normalize_flow_row(row, today=self._today) for row in rows],
            "total": total,
            "page": effective_page,
            "limit": effective_limit,
        }

    def summary(self, user: CurrentUser, *, cliente_id: Any = None) -> dict[str, float]:
        totals = {
            "receitas_pagas": 0.0,
            "receitas_pendentes": 0.0,
            "despesas_pagas": 0.0,
            "despesas_pendentes": 0.0,
        }
        if user.empresa_id is not None:
            empresa_id = user.empresa_id
            cliente_filter = optional_text(cliente_id)
            rows = self._with_fallback(
                user,
                lambda include: self._repo.query_totals(
                    empresa_id, cliente_id=cliente_filter, include_opportunities=include
                ),
            )
            for row in rows:
                tipo = "despesas" if row.get("tipo") == "despesa" else "receitas"
                status = "pagas" if row.get("status") == "pago" else "pendentes"
                totals[f"{tipo}_{status}"] += float(row.get("total") or 0)
        rounded = {key: round(value, 2) for key, value in totals.items()}
        saldo = (rounded["receitas_pagas"] - rounded["despesas_pagas"])
        return {**rounded, "saldo": round(saldo, 2)}

    @staticmethod
    def _flow_id(raw: Any) -> int | str:
        flow_id = normalize_flow_id(raw)
        if flow_id is None:
            raise _invalid("Invalid flow id")
        return flow_id

    def _require_flow(self, user: CurrentUser, flow_id: int | str) -> dict[str, Any]:
        row = self._repo.get_flow(user.empresa_id, flow_id) if user.empresa_id is not None else None
        if row is None:
            raise _flow_not_found(flow_id)
        return row

    def get_flow(self, user: CurrentUser, raw_id: Any) -> dict[str, Any]:
        flow_id = self._flow_id(raw_id)
        return normalize_flow_row(self._require_flow(user, flow_id), today=self._today)

    def _validated_fields(
        self, req: FlowRequest, current: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        sent = req.model_dump(exclude_unset=True)
        base = current or {}
        fields: dict[str, Any] = {}

        tipo_source = sent.get("tipo", base.get("tipo"))
        tipo = "despesa" if str(tipo_source or "").strip().lower() == "despesa" else "receita"
        fields["tipo"] = tipo

        if "descricao" in sent or current is None:
            descricao = optional_text(sent.get("descricao"))
            if not descricao:
                raise _invalid("descricao is required")
            fields["descricao"] = descricao
        if "valor" in sent or current is None:
            try:
                valor = parse_optional_number(sent.get("valor"))
            except ValueError as exc:
                raise _invalid("Invalid valor") from exc
            fields["valor"] = valor or 0.0
        for name in ("vencimento", "pagamento"):
            if name not in sent and not (current is None and name == "vencimento"):
                continue
            text = optional_text(sent.get(name))
            parsed = to_iso_date(text) if text else None
            if text and parsed is None:
                raise _invalid(f"Invalid {name}")
            if name == "vencimento" and parsed is None:
                raise _invalid("vencimento is required")
            fields[name] = parsed
        if "status" in sent:
            fields["status"] = "pago" if str(sent["status"] or "").strip().lower() == "pago" else "pendente"
        elif current is None:
            fields["status"] = "pendente"
        for name in ("conta_id", "categoria_id"):
            if name in sent:
                try:
                    fields[name] = parse_optional_int(sent[name])
                except ValueError as exc:
                    raise _invalid(f"Invalid {name}") from exc

        cliente = _party_id(sent["cliente_id"], "clienteId") if "cliente_id" in sent else base.get("cliente_id")
        fornecedor = (
            _party_id(sent["fornecedor_id"], "fornecedorId")
            if "fornecedor_id" in sent
            else base.get("fornecedor_id")
        )
        fields["cliente_id"] = None if tipo == "despesa" else cliente
        fields["fornecedor_id"] = fornecedor if tipo == "despesa" else None
        return fields

    def create_flow(self, user: CurrentUser, req: FlowRequest) -> dict[str, Any]:
        empresa_id = user.require_empresa()
        created = self._repo.create_flow(empresa_id, self._validated_fields(req))
        self._logger.info(
            "financial_flow_created",
            extra={"empresa_id": empresa_id, "user_id": user.usuario_id, "flow_id": str(created.get("id"))},
        )
        return {"flow": normalize_flow_row(created, today=self._today), "charge": None}

    def update_flow(self, user: CurrentUser, raw_id: Any, req: FlowRequest) -> dict[str, Any]:
        flow_id = self._flow_id(raw_id)
        current = normalize_flow_row(self._require_flow(user, flow_id), today=self._today)
        updated = self._repo.update_flow(
            user.empresa_id, flow_id, self._validated_fields(req, current)  # type: ignore[arg-type]
        )
        if updated is None:
            raise _flow_not_found(flow_id)
        return {"flow": normalize_flow_row(updated, today=self._today), "charge": None}

    def delete_flow(self, user: CurrentUser, raw_id: Any) -> int | str:
        flow_id = self._flow_id(raw_id)
        if user.empresa_id is None or not self._repo.delete_flow(user.empresa_id, flow_id):
            raise _flow_not_found(flow_id)
        return flow_id

    def settle_flow(self, user: CurrentUser, raw_id: Any, req: SettleRequest) -> dict[str, Any]:
        flow_id = self._flow_id(raw_id)
        current = self._require_flow(user, flow_id)
        provider = str(current.get("external_provider") or "").strip().lower()
        if provider in EXTERNALLY_MANAGED_PROVIDERS:
            raise ApiError(
                status_code=409,
                error_code=ApiErrorCode.FLOW_EXTERNALLY_MANAGED,
                message=f"Status of this flow is controlled by {provider}",
            )
        text = optional_text(req.pagamento_data)
        pagamento = to_iso_date(text) if text else self._today().isoformat()
        if pagamento is None:
            raise _invalid("Invalid pagamentoData")
        updated = self._repo.update_flow(
            user.empresa_id,  # type: ignore[arg-type]
            flow_id,
            {"pagamento": pagamento, "status": "pago"},
        )
        if updated is None:
            raise _flow_not_found(flow_id)
        self._logger.info(
            "financial_flow_settled",
            extra={"empresa_id": user.empresa_id, "user_id": user.usuario_id, "flow_id": str(flow_id)},
        )
        return {"flow": normalize_flow_row(updated, today=self._today)}
