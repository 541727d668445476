"""Normalization of financial flow rows and identifiers."""

from __future__ import annotations

import re
from datetime import date
from typing import Any, Callable

from lexdesk.core.dates import to_iso_date
from lexdesk.core.normalizers import coerce_string, parse_optional_int, to_number

UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$", re.IGNORECASE
)
INTEGER_RE = re.compile(r"^-?\d+$")
DEFAULT_DESCRIPTION = "Fluxo financeiro"
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


def normalize_flow_id(value: Any) -> int | str | None:
    """Accept integer ids and UUID strings; everything else is invalid."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if UUID_RE.match(trimmed):
        return trimmed
    if INTEGER_RE.match(trimmed):
        return int(trimmed)
    return None


def parse_page_param(value: Any, default: int) -> int:
    try:
        parsed = int(str(value).strip()) if value is not None else default
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _normalize_row_id(value: Any) -> int | str:
    if value is None:
        return 0
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    text = str(value).strip()
    if not text:
        return 0
    return int(text) if INTEGER_RE.match(text) else text


def _optional_number_id(value: Any) -> int | None:
    try:
        return parse_optional_int(value)
    except ValueError:
        return None


def _optional_party_id(value: Any) -> str | None:
    return coerce_string(value)


def normalize_flow_row(
    row: dict[str, Any], *, today: Callable[[], date] = date.today
) -> dict[str, Any]:
    """Turn a raw flow or installment row into the public flow shape."""
    descricao = coerce_string(row.get("descricao"))
    tipo = str(row.get("tipo") or "").strip().lower()
    status = str(row.get("status") or "").strip().lower()
    flow: dict[str, Any] = {
        "id": _normalize_row_id(row.get("id")),
        "tipo": "despesa" if tipo == "despesa" else "receita",
        "descricao": descricao or DEFAULT_DESCRIPTION,
        "valor": to_number(row.get("valor")),
        "vencimento": to_iso_date(row.get("vencimento")) or today().isoformat(),
        "pagamento": to_iso_date(row.get("pagamento")),
        "status": "pago" if status == "pago" else "pendente",
        "conta_id": _optional_number_id(row.get("conta_id")),
        "categoria_id": _optional_number_id(row.get("categoria_id")),
    }
    if "cliente_id" in row:
        flow["cliente_id"] = _optional_party_id(row.get("cliente_id"))
    if "fornecedor_id" in row:
        flow["fornecedor_id"] = _optional_party_id(row.get("fornecedor_id"))
    return flow
