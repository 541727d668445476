from __future__ import annotations

import logging
import sqlite3
from datetime import date
from pathlib import Path
from typing import Any

import pytest

from lexdesk.api.context import CurrentUser
from lexdesk.api.errors import ApiError
from lexdesk.core.database import Database, SchemaInspector, insert_row
from lexdesk.financial.repository import FinancialFlowsRepository
from lexdesk.financial.service import FinancialService, FlowRequest, SettleRequest

LOGGER = logging.getLogger(__name__)
USER = CurrentUser(usuario_id=1, email="fin@office.local", empresa_id=1)


def _seed(database: Database) -> int:
    with database.transaction() as connection:
        insert_row(connection, "empresas", {"nome_empresa": "Escritório A"})
        insert_row(connection, "empresas", {"nome_empresa": "Escritório B"})
        cliente = insert_row(connection, "clientes", {"nome": "Ana Lima", "idempresa": 1})
        oportunidade = insert_row(
            connection,
            "oportunidades",
            {"idempresa": 1, "sequencial_empresa": 7, "solicitante_id": cliente, "qtde_parcelas": 2},
        )
        insert_row(
            connection,
            "oportunidade_parcelas",
            {
                "oportunidade_id": oportunidade,
                "numero_parcela": 1,
                "valor": 500,
                "status": "quitado",
                "data_prevista": "2026-01-10",
                "quitado_em": "2026-01-09 16:00:00",
                "idempresa": 1,
            },
        )
        insert_row(
            connection,
            "oportunidade_parcelas",
            {
                "oportunidade_id": oportunidade,
                "numero_parcela": 2,
                "valor": 500,
                "data_prevista": "2026-02-10",
                "idempresa": 1,
            },
        )
        insert_row(
            connection,
            "financial_flows",
            {
                "tipo": "despesa",
                "descricao": "Aluguel",
                "valor": 1200,
                "vencimento": "2026-01-15",
                "fornecedor_id": "9",
                "idempresa": 1,
            },
        )
        insert_row(
            connection,
            "financial_flows",
            {"tipo": "receita", "descricao": "Outro escritório", "valor": 99, "vencimento": "2026-01-20", "idempresa": 2},
        )
    return cliente


def _service(tmp_path: Path) -> tuple[FinancialService, FinancialFlowsRepository, Database]:
    database = Database(tmp_path / "crm.db")
    inspector = SchemaInspector(database, ttl_seconds=3600)
    repo = FinancialFlowsRepository(database, inspector, ttl_seconds=3600)
    service = FinancialService(repo=repo, logger=LOGGER, today=lambda: date(2026, 10, 19))
    return service, repo, database


def test_list_flows_merges_installments(tmp_path: Path) -> None:
    service, _repo, database = _service(tmp_path)
    cliente = _seed(database)

    page = service.list_flows(USER)

    assert page["total"] == 3
    assert (page["page"], page["limit"]) == (1, 10)
    assert [item["id"] for item in page["items"]] == [-2, 1, -1]
    pending, rent, paid = page["items"]
    assert pending["descricao"] == "Oportunidade 7 - Ana Lima - Parcela 2/2"
    assert pending["status"] == "pendente"
    assert pending["pagamento"] is None
    assert pending["cliente_id"] == str(cliente)
    assert rent["tipo"] == "despesa"
    assert rent["fornecedor_id"] == "9"
    assert rent["cliente_id"] is None
    assert paid["status"] == "pago"
    assert paid["pagamento"] == "2026-01-09"
    assert paid["valor"] == 500.0


def test_list_flows_pagination_and_client_filter(tmp_path: Path) -> None:
    service, _repo, database = _service(tmp_path)
    cliente = _seed(database)

    second_page = service.list_flows(USER, page="2", limit="2")
    by_client = service.list_flows(USER, cliente_id=str(cliente))
    garbage = service.list_flows(USER, page="abc", limit="-1")

    assert [item["id"] for item in second_page["items"]] == [-1]
    assert second_page["total"] == 3
    assert by_client["total"] == 2
    assert (garbage["page"], garbage["limit"]) == (1, 10)


def test_list_flows_without_company_is_empty(tmp_path: Path) -> None:
    service, _repo, database = _service(tmp_path)
    _seed(database)

    page = service.list_flows(CurrentUser(usuario_id=2, email="x@y", empresa_id=None), page="3")

    assert page == {"items": [], "total": 0, "page": 3, "limit": 10}


def test_list_flows_falls_back_when_installment_schema_disappears(tmp_path: Path) -> None:
    service, repo, database = _service(tmp_path)
    _seed(database)
    assert service.list_flows(USER)["total"] == 3

    with database.transaction() as connection:
        connection.execute("DROP TABLE oportunidade_faturamentos")

    page = service.list_flows(USER)

    assert [item["descricao"] for item in page["items"]] == ["Aluguel"]
    assert repo.opportunity_tables_available() is False


def test_list_flows_propagates_other_database_errors(tmp_path: Path) -> None:
    class _BrokenRepo:
        def opportunity_tables_available(self) -> bool:
            return True

        def mark_opportunities_unavailable(self) -> None:
            raise AssertionError("fallback must not run")

        def query_flows(self, *args: Any, **kwargs: Any) -> tuple[list[dict[str, Any]], int]:
            raise sqlite3.OperationalError("database is locked")

    service = FinancialService(repo=_BrokenRepo(), logger=LOGGER)  # type: ignore[arg-type]

    with pytest.raises(sqlite3.OperationalError):
        service.list_flows(USER)


def test_summary_totals(tmp_path: Path) -> None:
    service, _repo, database = _service(tmp_path)
    _seed(database)

    totals = service.summary(USER)

    assert totals == {
        "receitas_pagas": 500.0,
        "receitas_pendentes": 500.0,
        "despesas_pagas": 0.0,
        "despesas_pendentes": 1200.0,
        "saldo": 500.0,
    }


def test_create_update_settle_and_delete_flow(tmp_path: Path) -> None:
    service, _repo, database = _service(tmp_path)
    _seed(database)

    created = service.create_flow(
        USER,
        FlowRequest.model_validate(
            {
                "tipo": "Despesa",
                "descricao": " Conta de luz ",
                "valor": "1.234,50",
                "vencimento": "10/03/2026",
                "clienteId": "5",
                "fornecedorId": 8,
            }
        ),
    )["flow"]

    assert created["tipo"] == "despesa"
    assert created["descricao"] == "Conta de luz"
    assert created["valor"] == pytest.approx(1234.5)
    assert created["vencimento"] == "2026-03-10"
    assert created["status"] == "pendente"
    assert created["cliente_id"] is None
    assert created["fornecedor_id"] == "8"

    updated = service.update_flow(
        USER, str(created["id"]), FlowRequest.model_validate({"tipo": "receita", "clienteId": 5})
    )["flow"]
    assert updated["tipo"] == "receita"
    assert updated["cliente_id"] == "5"
    assert updated["fornecedor_id"] is None
    assert updated["descricao"] == "Conta de luz"

    settled = service.settle_flow(USER, created["id"], SettleRequest())["flow"]
    assert settled["status"] == "pago"
    assert settled["pagamento"] == "2026-10-19"

    assert service.delete_flow(USER, created["id"]) == created["id"]
    with pytest.raises(ApiError) as exc:
        service.get_flow(USER, created["id"])
    assert exc.value.error_code == "FLOW_NOT_FOUND"


def test_flow_validation_errors(tmp_path: Path) -> None:
    service, _repo, database = _service(tmp_path)
    _seed(database)

    with pytest.raises(ApiError) as missing_description:
        service.create_flow(USER, FlowRequest(valor=10, vencimento="2026-01-01"))
    with pytest.raises(ApiError) as bad_date:
        service.create_flow(USER, FlowRequest(descricao="x", vencimento="nunca"))
    with pytest.raises(ApiError) as bad_id:
        service.get_flow(USER, "not-an-id")
    with pytest.raises(ApiError) as other_company:
        service.get_flow(USER, 2)

    assert missing_description.value.status_code == 400
    assert bad_date.value.error_code == "FLOW_INVALID"
    assert bad_id.value.status_code == 400
    assert other_company.value.status_code == 404


def test_flow_rejects_impossible_dates_and_keeps_text_party_ids(tmp_path: Path) -> None:
    service, _repo, database = _service(tmp_path)
    _seed(database)

    with pytest.raises(ApiError) as bad_due:
        service.create_flow(USER, FlowRequest(descricao="x", valor=1, vencimento="2026-13-45"))
    created = service.create_flow(
        USER,
        FlowRequest.model_validate(
            {"descricao": "Honorários", "valor": 1, "vencimento": "2026-02-10", "clienteId": " c-9f2a "}
        ),
    )["flow"]

    assert bad_due.value.error_code == "FLOW_INVALID"
    assert created["cliente_id"] == "c-9f2a"


def test_settle_refuses_externally_managed_flow(tmp_path: Path) -> None:
    service, _repo, database = _service(tmp_path)
    _seed(database)
    with database.transaction() as connection:
        flow_id = insert_row(
            connection,
            "financial_flows",
            {
                "tipo": "receita",
                "descricao": "Cobrança",
                "valor": 300,
                "vencimento": "2026-05-01",
                "idempresa": 1,
                "external_provider": "Asaas",
            },
        )

    with pytest.raises(ApiError) as exc:
        service.settle_flow(USER, flow_id, SettleRequest(pagamentoData="2026-05-02"))

    assert exc.value.status_code == 409
    assert exc.value.error_code == "FLOW_EXTERNALLY_MANAGED"
