from __future__ import annotations

import pytest

from lexdesk.opportunities.installments import (
    build_installment_values,
    installment_count,
    is_parcelado,
    plan_installments,
    reconcile_invoice_value,
    select_installments_to_close,
)


def test_installment_count_follows_payment_label() -> None:
    assert installment_count("Parcelado", "4") == 4
    assert installment_count("PARCELADO no boleto", None) == 1
    assert installment_count("À vista", 5) == 1
    assert installment_count("Boleto", 3) == 0
    assert installment_count(None, 3) == 0


def test_build_installment_values_distributes_remainder_cents() -> None:
    values = build_installment_values(1000.0, 3)

    assert values == [333.34, 333.33, 333.33]
    assert round(sum(values), 2) == 1000.0
    assert build_installment_values(0, 3) == []
    assert build_installment_values(100.0, 0) == []
    assert build_installment_values(float("nan"), 2) == []


def test_plan_installments_ignores_non_numeric_fees() -> None:
    assert plan_installments("abc", "parcelado", 2) == []
    assert plan_installments(250, "a vista", None) == [250.0]
    assert plan_installments(100.01, "parcelado", 2) == [50.01, 50.0]


def test_select_installments_to_close() -> None:
    pending = [{"id": 1, "valor": 10}, {"id": 2, "valor": 10}, {"id": 3, "valor": 10}]

    assert select_installments_to_close(pending, parcelado=False, parcelas=None) == pending
    assert select_installments_to_close(pending, parcelado=True, parcelas=2) == pending[:2]
    assert select_installments_to_close(pending, parcelado=True, parcelas=4) is None
    assert select_installments_to_close([], parcelado=True, parcelas=4) == []


def test_reconcile_invoice_value() -> None:
    closed = [{"valor": 333.34}, {"valor": 333.33}]

    assert reconcile_invoice_value(None, closed) == pytest.approx(666.67)
    assert reconcile_invoice_value(666.671, closed) == pytest.approx(666.671)
    assert reconcile_invoice_value(600, closed) == pytest.approx(666.67)
    assert reconcile_invoice_value(50, []) == 50


def test_is_parcelado() -> None:
    assert is_parcelado("Parcelado")
    assert not is_parcelado("à vista")
    assert not is_parcelado(None)
