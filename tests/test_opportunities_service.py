from __future__ import annotations

import logging
from pathlib import Path

import pytest

from lexdesk.api.context import CurrentUser
from lexdesk.api.errors import ApiError
from lexdesk.core.database import Database, insert_row
from lexdesk.opportunities.repository import OpportunitiesRepository
from lexdesk.opportunities.service import InvoiceRequest, OpportunitiesService, OpportunityRequest

LOGGER = logging.getLogger(__name__)
USER = CurrentUser(usuario_id=1, email="adv@office.local", empresa_id=1)


def _service(tmp_path: Path) -> tuple[OpportunitiesService, Database]:
    database = Database(tmp_path / "crm.db")
    with database.transaction() as connection:
        insert_row(connection, "empresas", {"nome_empresa": "Escritório"})
        insert_row(connection, "situacao_proposta", {"nome": "Ganha", "idempresa": 1})
    return OpportunitiesService(repo=OpportunitiesRepository(database), logger=LOGGER), database


def _create(service: OpportunitiesService, **values) -> dict:
    payload = {
        "numero_processo_cnj": " 0000123-45.2026.8.26.0001 ",
        "valor_honorarios": "900,00",
        "forma_pagamento": "Parcelado",
        "qtde_parcelas": "3",
        **values,
    }
    return service.create_opportunity(USER, OpportunityRequest.model_validate(payload))


def test_create_assigns_sequence_parties_and_installments(tmp_path: Path) -> None:
    service, _database = _service(tmp_path)

    first = _create(
        service,
        envolvidos=[{"nome": " Rita ", "relacao": "Testemunha"}, {"nome": "  "}],
        documentos_anexados=[{"nome": "rg.pdf"}],
    )
    second = _create(service)

    assert first["sequencial_empresa"] == 1
    assert second["sequencial_empresa"] == 2
    assert first["numero_processo_cnj"] == "0000123-45.2026.8.26.0001"
    assert first["criado_por"] == 1
    assert first["documentos_anexados"] == [{"nome": "rg.pdf"}]
    assert [row["nome"] for row in first["envolvidos"]] == ["Rita"]
    installments = service.list_installments(USER, first["id"])
    assert [row["valor"] for row in installments] == [300.0, 300.0, 300.0]
    assert {row["status"] for row in installments} == {"pendente"}


def test_update_rebuilds_installments_until_one_is_settled(tmp_path: Path) -> None:
    service, _database = _service(tmp_path)
    created = _create(service)

    service.update_opportunity(
        USER, created["id"], OpportunityRequest(valor_honorarios=1000, qtde_parcelas=2)
    )
    assert [row["valor"] for row in service.list_installments(USER, created["id"])] == [500.0, 500.0]

    service.create_invoice(
        USER,
        created["id"],
        InvoiceRequest(forma_pagamento="Pix", condicao_pagamento="Parcelado", parcelas=1),
    )
    service.update_opportunity(USER, created["id"], OpportunityRequest(valor_honorarios=50))

    installments = service.list_installments(USER, created["id"])
    assert [row["valor"] for row in installments] == [500.0, 500.0]
    assert [row["status"] for row in installments] == ["quitado", "pendente"]


def test_invoice_closes_installments_and_reconciles_value(tmp_path: Path) -> None:
    service, _database = _service(tmp_path)
    created = _create(service)

    split = service.create_invoice(
        USER,
        created["id"],
        InvoiceRequest(
            forma_pagamento="Boleto",
            condicao_pagamento="Parcelado",
            parcelas=2,
            valor="100",
            data_faturamento="2026-10-01",
        ),
    )
    rest = service.create_invoice(
        USER,
        created["id"],
        InvoiceRequest(forma_pagamento="Pix", condicao_pagamento="À vista", data_faturamento="2026-10-05"),
    )

    assert split["valor"] == 600.0
    assert split["parcelas"] == 2
    assert rest["valor"] == 300.0
    assert rest["parcelas"] == 1
    installments = service.list_installments(USER, created["id"])
    assert [row["faturamento_id"] for row in installments] == [split["id"], split["id"], rest["id"]]
    assert installments[0]["quitado_em"].startswith("2026-10-01")
    assert installments[0]["valor_pago"] == 300.0
    assert [row["id"] for row in service.list_invoices(USER, created["id"])] == [rest["id"], split["id"]]


def test_invoice_validation(tmp_path: Path) -> None:
    service, _database = _service(tmp_path)
    created = _create(service)

    with pytest.raises(ApiError) as missing_form:
        service.create_invoice(USER, created["id"], InvoiceRequest())
    with pytest.raises(ApiError) as missing_count:
        service.create_invoice(
            USER, created["id"], InvoiceRequest(forma_pagamento="Pix", condicao_pagamento="parcelado")
        )
    with pytest.raises(ApiError) as too_many:
        service.create_invoice(
            USER,
            created["id"],
            InvoiceRequest(forma_pagamento="Pix", condicao_pagamento="parcelado", parcelas=4),
        )
    with pytest.raises(ApiError) as unknown:
        service.create_invoice(USER, 999, InvoiceRequest(forma_pagamento="Pix"))

    assert missing_form.value.error_code == "BILLING_INVALID"
    assert missing_count.value.status_code == 400
    assert too_many.value.status_code == 400
    assert unknown.value.status_code == 404
    assert service.list_invoices(USER, created["id"]) == []


def test_field_validation_and_references(tmp_path: Path) -> None:
    service, _database = _service(tmp_path)

    with pytest.raises(ApiError) as bad_date:
        _create(service, prazo_proximo="amanhã talvez")
    with pytest.raises(ApiError) as bad_reference:
        _create(service, tipo_processo_id=999)
    with pytest.raises(ApiError) as bad_number:
        _create(service, valor_causa="muito")

    assert bad_date.value.error_code == "OPPORTUNITY_INVALID"
    assert bad_reference.value.status_code == 400
    assert bad_number.value.status_code == 400


def test_status_stage_and_phase_listing(tmp_path: Path) -> None:
    service, _database = _service(tmp_path)
    created = _create(service, prazo_proximo="20/11/2026", audiencia_horario="9:05")

    updated = service.update_single_field(USER, created["id"], "status_id", "1")

    assert updated["status_id"] == 1
    assert updated["prazo_proximo"] == "2026-11-20"
    assert updated["valor_honorarios"] == 900.0
    assert service.list_opportunities(USER, fase_id=3) == []
    assert [row["id"] for row in service.list_opportunities(USER)] == [created["id"]]


def test_company_scoping_and_delete(tmp_path: Path) -> None:
    service, _database = _service(tmp_path)
    created = _create(service)
    orphan = CurrentUser(usuario_id=2, email="o@office.local", empresa_id=None)
    stranger = CurrentUser(usuario_id=3, email="s@office.local", empresa_id=2)

    assert service.list_opportunities(orphan) == []
    with pytest.raises(ApiError) as no_company:
        service.create_opportunity(orphan, OpportunityRequest())
    with pytest.raises(ApiError) as other_company:
        service.get_opportunity(stranger, created["id"])

    assert no_company.value.error_code == "COMPANY_REQUIRED"
    assert other_company.value.status_code == 404

    service.delete_opportunity(USER, created["id"])
    with pytest.raises(ApiError):
        service.list_installments(USER, created["id"])
