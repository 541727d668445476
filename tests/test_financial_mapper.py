from __future__ import annotations

from datetime import date

from lexdesk.financial.mapper import normalize_flow_id, normalize_flow_row, parse_page_param


def test_normalize_flow_id_accepts_integers_and_uuids() -> None:
    assert normalize_flow_id(" 12 ") == 12
    assert normalize_flow_id(7) == 7
    assert normalize_flow_id("0F8FAD5B-D9CB-469F-A165-70867728950E") == (
        "0F8FAD5B-D9CB-469F-A165-70867728950E"
    )
    assert normalize_flow_id("abc") is None
    assert normalize_flow_id(True) is None
    assert normalize_flow_id(1.5) is None


def test_parse_page_param_falls_back_on_garbage() -> None:
    assert parse_page_param("3", 1) == 3
    assert parse_page_param(None, 1) == 1
    assert parse_page_param("x", 10) == 10
    assert parse_page_param("0", 10) == 10
    assert parse_page_param("-4", 10) == 10


def test_normalize_flow_row_defaults() -> None:
    row = {
        "id": "15",
        "tipo": "OUTRO",
        "descricao": "  ",
        "valor": "abc",
        "vencimento": None,
        "pagamento": "2026-02-01 12:00:00",
        "status": "PAGO",
        "conta_id": "3",
        "categoria_id": "n/a",
        "cliente_id": " 44 ",
        "fornecedor_id": "",
    }

    flow = normalize_flow_row(row, today=lambda: date(2026, 10, 19))

    assert flow == {
        "id": 15,
        "tipo": "receita",
        "descricao": "Fluxo financeiro",
        "valor": 0.0,
        "vencimento": "2026-10-19",
        "pagamento": "2026-02-01",
        "status": "pago",
        "conta_id": 3,
        "categoria_id": None,
        "cliente_id": "44",
        "fornecedor_id": None,
    }


def test_normalize_flow_row_keeps_uuid_ids_and_omits_absent_parties() -> None:
    flow = normalize_flow_row(
        {"id": "b5f3c1d2-aaaa-4bbb-8ccc-123456789abc", "tipo": "despesa", "valor": 10}
    )

    assert flow["id"] == "b5f3c1d2-aaaa-4bbb-8ccc-123456789abc"
    assert flow["tipo"] == "despesa"
    assert flow["status"] == "pendente"
    assert "cliente_id" not in flow
    assert "fornecedor_id" not in flow
