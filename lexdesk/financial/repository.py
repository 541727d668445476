"""Schema-tolerant SQL for financial flows merged with opportunity installments."""

from __future__ import annotations

import time
from threading import Lock
from typing import Any, Callable

from lexdesk.core.database import (
    Database,
    SchemaInspector,
    insert_row,
    quote_identifier,
    require_created,
    update_row,
)

FLOWS_TABLE = "financial_flows"
EMPRESA_COLUMN_CANDIDATES = ("idempresa", "empresa_id", "empresa")
CLIENTE_COLUMN_CANDIDATES = ("cliente_id", "clienteid", "idcliente", "cliente")
FORNECEDOR_COLUMN_CANDIDATES = ("fornecedor_id", "fornecedorid", "idfornecedor", "fornecedor")
OPPORTUNITY_TABLES = (
    "oportunidade_parcelas",
    "oportunidades",
    "clientes",
    "oportunidade_faturamentos",
)

_INSTALLMENTS_CTE = """
oportunidade_parcelas_enriched AS (
  SELECT
    p.id,
    p.oportunidade_id,
    p.numero_parcela,
    p.valor,
    p.data_prevista,
    p.status,
    p.quitado_em,
    o.sequencial_empresa,
    o.solicitante_id,
    COALESCE(p.idempresa, o.idempresa) AS idempresa,
    c.nome AS cliente_nome,
    f.valor AS faturamento_valor,
    NULLIF(COALESCE(f.parcelas, o.qtde_parcelas), 0) AS total_parcelas,
    f.data_faturamento
  FROM oportunidade_parcelas p
  JOIN oportunidades o ON o.id = p.oportunidade_id
  LEFT JOIN clientes c ON c.id = o.solicitante_id
  LEFT JOIN oportunidade_faturamentos f ON f.id = p.faturamento_id
)"""

_INSTALLMENTS_SELECT = """
  SELECT
    -p.id AS id,
    'receita' AS tipo,
    TRIM(
      'Oportunidade ' || COALESCE(CAST(p.sequencial_empresa AS TEXT), CAST(p.oportunidade_id AS TEXT))
      || CASE WHEN p.cliente_nome IS NOT NULL THEN ' - ' || p.cliente_nome ELSE '' END
      || CASE
           WHEN p.numero_parcela IS NOT NULL THEN
             ' - Parcela ' || p.numero_parcela
             || CASE WHEN p.total_parcelas > 1 THEN '/' || p.total_parcelas ELSE '' END
           ELSE ''
         END
    ) AS descricao,
    COALESCE(
      p.valor,
      CASE
        WHEN p.total_parcelas IS NOT NULL THEN p.faturamento_valor * 1.0 / p.total_parcelas
        ELSE p.faturamento_valor
      END,
      0
    ) AS valor,
    COALESCE(substr(p.data_prevista, 1, 10), substr(p.data_faturamento, 1, 10), date('now')) AS vencimento,
    CASE
      WHEN LOWER(p.status) IN ('quitado', 'quitada', 'pago', 'paga')
        THEN substr(COALESCE(p.quitado_em, p.data_faturamento), 1, 10)
      ELSE NULL
    END AS pagamento,
    CASE
      WHEN LOWER(p.status) IN ('quitado', 'quitada', 'pago', 'paga') THEN 'pago'
      ELSE 'pendente'
    END AS status,
    NULL AS conta_id,
    NULL AS categoria_id,
    CAST(p.solicitante_id AS TEXT) AS cliente_id,
    NULL AS fornecedor_id,
    p.idempresa AS empresa_id
  FROM oportunidade_parcelas_enriched p"""


class FinancialFlowsRepository:
    """Builds the flow listing against whatever columns the flows table has.

    Column names are resolved through the ``SchemaInspector`` cache. The
    opportunity installments join can be switched off for ``ttl_seconds``
    after a query fails on missing schema.
    """

    def __init__(
        self,
        database: Database,
        inspector: SchemaInspector,
        *,
        ttl_seconds: int = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._db = database
        self._inspector = inspector
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = Lock()
        self._opportunities_disabled_until: float | None = None

    def empresa_column(self) -> str | None:
        return self._inspector.resolve_column(FLOWS_TABLE, EMPRESA_COLUMN_CANDIDATES)

    def cliente_column(self) -> str | None:
        return self._inspector.resolve_column(FLOWS_TABLE, CLIENTE_COLUMN_CANDIDATES)

    def fornecedor_column(self) -> str | None:
        return self._inspector.resolve_column(FLOWS_TABLE, FORNECEDOR_COLUMN_CANDIDATES)

    def opportunity_tables_available(self) -> bool:
        with self._lock:
            disabled_until = self._opportunities_disabled_until
        if disabled_until is not None and self._clock() < disabled_until:
            return False
        return all(self._inspector.has_table(table) for table in OPPORTUNITY_TABLES)

    def mark_opportunities_unavailable(self) -> None:
        with self._lock:
            self._opportunities_disabled_until = self._clock() + self._ttl_seconds
        self._inspector.invalidate()

    def _combined_cte(self, include_opportunities: bool) -> str:
        empresa = self.empresa_column()
        cliente = self.cliente_column()
        fornecedor = self.fornecedor_column()
        empresa_expr = f"ff.{quote_identifier(empresa)}" if empresa else ":empresa_id"
        cliente_expr = f"CAST(ff.{quote_identifier(cliente)} AS TEXT)" if cliente else "NULL"
        fornecedor_expr = (
            f"CAST(ff.{quote_identifier(fornecedor)} AS TEXT)" if fornecedor else "NULL"
        )
        flows_select = f"""
  SELECT
    ff.id AS id,
    ff.tipo AS tipo,
    ff.descricao AS descricao,
    ff.valor AS valor,
    ff.vencimento AS vencimento,
    ff.pagamento AS pagamento,
    ff.status AS status,
    ff.conta_id AS conta_id,
    ff.categoria_id AS categoria_id,
    {cliente_expr} AS cliente_id,
    {fornecedor_expr} AS fornecedor_id,
    {empresa_expr} AS empresa_id
  FROM {quote_identifier(FLOWS_TABLE)} ff"""
        if not include_opportunities:
            return f"WITH combined_flows AS ({flows_select}\n)"
        return (
            f"WITH {_INSTALLMENTS_CTE},\ncombined_flows AS ({flows_select}\n  UNION ALL"
            f"{_INSTALLMENTS_SELECT}\n)"
        )

    @staticmethod
    def _filters(empresa_id: int, cliente_id: str | None) -> tuple[str, dict[str, Any]]:
        conditions = ["combined_flows.empresa_id = :empresa_id"]
        params: dict[str, Any] = {"empresa_id": empresa_id}
        if cliente_id:
            conditions.append("combined_flows.cliente_id = :cliente_id")
            params["cliente_id"] = cliente_id
        return "WHERE " + " AND ".join(conditions), params

    def query_flows(
        self,
        empresa_id: int,
        *,
        cliente_id: str | None,
        limit: int,
        offset: int,
        include_opportunities: bool,
    ) -> tuple[list[dict[str, Any]], int]:
        cte = self._combined_cte(include_opportunities)
        where, params = self._filters(empresa_id, cliente_id)
        items = self._db.fetch_all(
            f"""
            {cte}
            SELECT id, tipo, descricao, valor, vencimento, pagamento, status,
                   conta_id, categoria_id, cliente_id, fornecedor_id
            FROM combined_flows
            {where}
            ORDER BY vencimento DESC, id DESC
            LIMIT :limit OFFSET :offset
            """,
            {**params, "limit": limit, "offset": offset},
        )
        total = self._db.fetch_one(
            f"{cte}\nSELECT COUNT(*) AS total FROM combined_flows {where}", params
        )
        return items, int((total or {}).get("total") or 0)

    def query_totals(
        self, empresa_id: int, *, cliente_id: str | None, include_opportunities: bool
    ) -> list[dict[str, Any]]:
        """Sum of ``valor`` per (tipo, status) over the combined listing."""
        cte = self._combined_cte(include_opportunities)
        where, params = self._filters(empresa_id, cliente_id)
        return self._db.fetch_all(
            f"""
            {cte}
            SELECT LOWER(tipo) AS tipo, LOWER(status) AS status, COALESCE(SUM(valor), 0) AS total
            FROM combined_flows
            {where}
            GROUP BY LOWER(tipo), LOWER(status)
            """,
            params,
        )

    def _scope(self, empresa_id: int) -> tuple[str, tuple[Any, ...]]:
        empresa = self.empresa_column()
        if empresa is None:
            return "", ()
        return f" AND {quote_identifier(empresa)} = ?", (empresa_id,)

    def get_flow(self, empresa_id: int, flow_id: int | str) -> dict[str, Any] | None:
        scope, scope_params = self._scope(empresa_id)
        return self._db.fetch_one(
            f"SELECT * FROM {quote_identifier(FLOWS_TABLE)} WHERE id = ?{scope}",
            (flow_id, *scope_params),
        )

    def _column_fields(self, fields: dict[str, Any]) -> dict[str, Any]:
        """Map logical ``cliente_id``/``fornecedor_id`` onto the resolved columns."""
        mapped = {key: value for key, value in fields.items() if key not in {"cliente_id", "fornecedor_id"}}
        for key, column in (
            ("cliente_id", self.cliente_column()),
            ("fornecedor_id", self.fornecedor_column()),
        ):
            if key in fields and column is not None:
                mapped[column] = fields[key]
        return mapped

    def create_flow(self, empresa_id: int, fields: dict[str, Any]) -> dict[str, Any]:
        row = self._column_fields(fields)
        empresa = self.empresa_column()
        if empresa is not None:
            row[empresa] = empresa_id
        with self._db.transaction() as connection:
            flow_id = insert_row(connection, FLOWS_TABLE, row)
        return require_created(self.get_flow(empresa_id, flow_id), FLOWS_TABLE, flow_id)

    def update_flow(
        self, empresa_id: int, flow_id: int | str, fields: dict[str, Any]
    ) -> dict[str, Any] | None:
        scope, scope_params = self._scope(empresa_id)
        row = self._column_fields(fields)
        if self._inspector.has_column(FLOWS_TABLE, "updated_at"):
            row["updated_at"] = time.strftime("%Y-%m-%d %H:%M:%S", time.gmtime())
        with self._db.transaction() as connection:
            affected = update_row(connection, FLOWS_TABLE, row, f"id = ?{scope}", (flow_id, *scope_params))
        return self.get_flow(empresa_id, flow_id) if affected else None

    def delete_flow(self, empresa_id: int, flow_id: int | str) -> bool:
        scope, scope_params = self._scope(empresa_id)
        with self._db.transaction() as connection:
            cursor = connection.execute(
                f"DELETE FROM {quote_identifier(FLOWS_TABLE)} WHERE id = ?{scope}",
                (flow_id, *scope_params),
            )
        return cursor.rowcount > 0
