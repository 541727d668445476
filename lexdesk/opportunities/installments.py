"""Installment schedule rules for opportunity fees."""

from __future__ import annotations

import math
from typing import Any

from lexdesk.core.normalizers import normalize_payment_label, parse_positive_int

PAID_INSTALLMENT_STATUSES = frozenset({"quitado", "quitada", "pago", "paga"})
AMOUNT_TOLERANCE = 0.009


def should_create_installments(payment_label: str | None) -> bool:
    if not payment_label:
        return False
    return "parcel" in payment_label or "vista" in payment_label


def is_parcelado(label: Any) -> bool:
    return "parcel" in normalize_payment_label(label)


def installment_count(forma_pagamento: Any, qtde_parcelas: Any) -> int:
    """Number of installments implied by the payment form (0 for none)."""
    label = normalize_payment_label(forma_pagamento)
    if not should_create_installments(label):
        return 0
    if "parcel" in label:
        return parse_positive_int(qtde_parcelas) or 1
    return 1


def build_installment_values(total: float | None, count: int) -> list[float]:
    """Split ``total`` into ``count`` values in cents.

    The leftover cents go one at a time to the first installments so the
    values always add up to the rounded total.
    """
    if total is None or not math.isfinite(total) or total <= 0 or count <= 0:
        return []
    cents_total = int(round(total * 100))
    base, remainder = divmod(cents_total, count)
    values = []
    for index in range(count):
        cents = base + (1 if index < remainder else 0)
        values.append(cents / 100)
    return values


def plan_installments(
    valor_honorarios: Any, forma_pagamento: Any, qtde_parcelas: Any
) -> list[float]:
    try:
        honorarios = float(valor_honorarios) if valor_honorarios is not None else None
    except (TypeError, ValueError):
        honorarios = None
    return build_installment_values(honorarios, installment_count(forma_pagamento, qtde_parcelas))


def select_installments_to_close(
    pending: list[dict[str, Any]], *, parcelado: bool, parcelas: int | None
) -> list[dict[str, Any]] | None:
    """Return the pending installments an invoice settles.

    ``None`` means a split invoice asked for more installments than are pending.
    """
    if not pending:
        return []
    if not parcelado:
        return list(pending)
    desired = parcelas or 1
    if desired > len(pending):
        return None
    return list(pending[:desired])


def reconcile_invoice_value(
    requested: float | None, installments: list[dict[str, Any]]
) -> float | None:
    """Invoice amount defaults to, or is corrected to, the settled installments' sum."""
    if not installments:
        return requested
    total = round(sum(float(item["valor"] or 0) for item in installments), 2)
    if requested is None or abs(requested - total) > AMOUNT_TOLERANCE:
        return total
    return requested
