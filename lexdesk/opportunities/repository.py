"""SQLite persistence for opportunities, their parties, installments and invoices."""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any

from lexdesk.core.database import Database, insert_row, row_to_dict, require_created, update_row
from lexdesk.opportunities.installments import (
    plan_installments,
    reconcile_invoice_value,
    select_installments_to_close,
)

LOGGER = logging.getLogger(__name__)

ENVOLVIDO_FIELDS = ("nome", "documento", "telefone", "endereco", "relacao")
INSTALLMENT_SOURCE_FIELDS = frozenset({"valor_honorarios", "forma_pagamento", "qtde_parcelas"})


class InstallmentsUnavailableError(Exception):
    """A split invoice asked for more installments than are still pending."""


def _map_opportunity(row: dict[str, Any] | None) -> dict[str, Any] | None:
    if row is None:
        return None
    mapped = dict(row)
    raw_docs = mapped.get("documentos_anexados")
    if isinstance(raw_docs, str) and raw_docs:
        try:
            mapped["documentos_anexados"] = json.loads(raw_docs)
        except ValueError:
            pass
    return mapped


def _reset_installments(
    connection: sqlite3.Connection, oportunidade_id: int, empresa_id: int, values: list[float]
) -> None:
    connection.execute(
        "DELETE FROM oportunidade_parcelas WHERE oportunidade_id = ?", (oportunidade_id,)
    )
    for index, valor in enumerate(values, start=1):
        insert_row(
            connection,
            "oportunidade_parcelas",
            {
                "oportunidade_id": oportunidade_id,
                "numero_parcela": index,
                "valor": valor,
                "idempresa": empresa_id,
            },
        )


def _rebuild_installments(
    connection: sqlite3.Connection, oportunidade_id: int, empresa_id: int
) -> None:
    settled = connection.execute(
        "SELECT COUNT(*) FROM oportunidade_parcelas WHERE oportunidade_id = ? AND status <> 'pendente'",
        (oportunidade_id,),
    ).fetchone()[0]
    if settled:
        LOGGER.info(
            "installments_rebuild_skipped oportunidade_id=%s settled=%s", oportunidade_id, settled
        )
        return
    row = connection.execute(
        "SELECT valor_honorarios, forma_pagamento, qtde_parcelas FROM oportunidades WHERE id = ?",
        (oportunidade_id,),
    ).fetchone()
    values = plan_installments(row["valor_honorarios"], row["forma_pagamento"], row["qtde_parcelas"])
    _reset_installments(connection, oportunidade_id, empresa_id, values)


def _ensure_installments(
    connection: sqlite3.Connection, oportunidade_id: int, empresa_id: int
) -> None:
    existing = connection.execute(
        "SELECT id FROM oportunidade_parcelas WHERE oportunidade_id = ? LIMIT 1", (oportunidade_id,)
    ).fetchone()
    if existing is None:
        _rebuild_installments(connection, oportunidade_id, empresa_id)


def _replace_envolvidos(
    connection: sqlite3.Connection, oportunidade_id: int, envolvidos: list[dict[str, Any]]
) -> None:
    connection.execute(
        "DELETE FROM oportunidade_envolvidos WHERE oportunidade_id = ?", (oportunidade_id,)
    )
    for envolvido in envolvidos:
        insert_row(
            connection,
            "oportunidade_envolvidos",
            {
                "oportunidade_id": oportunidade_id,
                **{field: envolvido.get(field) for field in ENVOLVIDO_FIELDS},
            },
        )


class OpportunitiesRepository:
    def __init__(self, database: Database) -> None:
        self._db = database

    def list_opportunities(
        self, empresa_id: int, *, fase_id: int | None = None
    ) -> list[dict[str, Any]]:
        sql = "SELECT * FROM oportunidades WHERE idempresa = ?"
        params: list[Any] = [empresa_id]
        if fase_id is not None:
            sql += " AND fase_id = ?"
            params.append(fase_id)
        sql += " ORDER BY data_criacao DESC, id DESC"
        return [_map_opportunity(row) for row in self._db.fetch_all(sql, params)]  # type: ignore[misc]

    def get_opportunity(self, empresa_id: int, oportunidade_id: int) -> dict[str, Any] | None:
        row = _map_opportunity(
            self._db.fetch_one(
                "SELECT * FROM oportunidades WHERE id = ? AND idempresa = ?",
                (oportunidade_id, empresa_id),
            )
        )
        if row is not None:
            row["envolvidos"] = self.list_envolvidos(oportunidade_id)
        return row

    def list_envolvidos(self, oportunidade_id: int) -> list[dict[str, Any]]:
        return self._db.fetch_all(
            "SELECT * FROM oportunidade_envolvidos WHERE oportunidade_id = ? ORDER BY id",
            (oportunidade_id,),
        )

    def create_opportunity(
        self,
        empresa_id: int,
        fields: dict[str, Any],
        envolvidos: list[dict[str, Any]],
    ) -> dict[str, Any]:
        with self._db.transaction() as connection:
            sequencial = connection.execute(
                "SELECT COALESCE(MAX(sequencial_empresa), 0) + 1 FROM oportunidades WHERE idempresa = ?",
                (empresa_id,),
            ).fetchone()[0]
            oportunidade_id = insert_row(
                connection,
                "oportunidades",
                {**fields, "idempresa": empresa_id, "sequencial_empresa": sequencial},
            )
            _replace_envolvidos(connection, oportunidade_id, envolvidos)
            _rebuild_installments(connection, oportunidade_id, empresa_id)
        return require_created(
            self.get_opportunity(empresa_id, oportunidade_id), "oportunidades", oportunidade_id
        )

    def update_opportunity(
        self,
        empresa_id: int,
        oportunidade_id: int,
        fields: dict[str, Any],
        envolvidos: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any] | None:
        with self._db.transaction() as connection:
            affected = update_row(
                connection,
                "oportunidades",
                {**fields, "ultima_atualizacao": _now_sql(connection)},
                "id = ? AND idempresa = ?",
                (oportunidade_id, empresa_id),
            )
            if not affected:
                return None
            if envolvidos is not None:
                _replace_envolvidos(connection, oportunidade_id, envolvidos)
            if INSTALLMENT_SOURCE_FIELDS & set(fields):
                _rebuild_installments(connection, oportunidade_id, empresa_id)
        return self.get_opportunity(empresa_id, oportunidade_id)

    def delete_opportunity(self, empresa_id: int, oportunidade_id: int) -> bool:
        with self._db.transaction() as connection:
            cursor = connection.execute(
                "DELETE FROM oportunidades WHERE id = ? AND idempresa = ?",
                (oportunidade_id, empresa_id),
            )
        return cursor.rowcount > 0

    def list_installments(self, oportunidade_id: int) -> list[dict[str, Any]]:
        return self._db.fetch_all(
            """
            SELECT id, oportunidade_id, numero_parcela, valor, valor_pago, status, data_prevista,
                   quitado_em, faturamento_id, criado_em, atualizado_em
            FROM oportunidade_parcelas
            WHERE oportunidade_id = ?
            ORDER BY numero_parcela ASC
            """,
            (oportunidade_id,),
        )

    def list_invoices(self, oportunidade_id: int) -> list[dict[str, Any]]:
        return self._db.fetch_all(
            """
            SELECT id, oportunidade_id, forma_pagamento, condicao_pagamento, valor, parcelas,
                   observacoes, data_faturamento, criado_em
            FROM oportunidade_faturamentos
            WHERE oportunidade_id = ?
            ORDER BY data_faturamento IS NULL, data_faturamento DESC, id DESC
            """,
            (oportunidade_id,),
        )

    def create_invoice(
        self,
        empresa_id: int,
        oportunidade_id: int,
        *,
        forma_pagamento: str,
        condicao_pagamento: str | None,
        valor: float | None,
        parcelado: bool,
        parcelas: int | None,
        observacoes: str | None,
        data_faturamento: str,
    ) -> dict[str, Any] | None:
        """Record an invoice and settle the pending installments it covers.

        Returns ``None`` when the opportunity does not exist and raises
        ``InstallmentsUnavailableError`` when too few installments are pending.
        """
        with self._db.transaction() as connection:
            exists = connection.execute(
                "SELECT id FROM oportunidades WHERE id = ? AND idempresa = ?",
                (oportunidade_id, empresa_id),
            ).fetchone()
            if exists is None:
                return None
            _ensure_installments(connection, oportunidade_id, empresa_id)
            pending = [
                {"id": row["id"], "valor": row["valor"]}
                for row in connection.execute(
                    """
                    SELECT id, valor FROM oportunidade_parcelas
                    WHERE oportunidade_id = ? AND status = 'pendente'
                    ORDER BY numero_parcela ASC
                    """,
                    (oportunidade_id,),
                ).fetchall()
            ]
            to_close = select_installments_to_close(pending, parcelado=parcelado, parcelas=parcelas)
            if to_close is None:
                raise InstallmentsUnavailableError(
                    f"{parcelas} installments requested, {len(pending)} pending"
                )

            if parcelado:
                parcelas_value = parcelas or (len(to_close) or None)
            else:
                parcelas_value = len(to_close) or None
            invoice_id = insert_row(
                connection,
                "oportunidade_faturamentos",
                {
                    "oportunidade_id": oportunidade_id,
                    "forma_pagamento": forma_pagamento,
                    "condicao_pagamento": condicao_pagamento,
                    "valor": reconcile_invoice_value(valor, to_close),
                    "parcelas": parcelas_value,
                    "observacoes": observacoes,
                    "data_faturamento": data_faturamento,
                },
            )
            for installment in to_close:
                connection.execute(
                    """
                    UPDATE oportunidade_parcelas
                    SET status = 'quitado', valor_pago = ?, quitado_em = ?,
                        faturamento_id = ?, atualizado_em = datetime('now')
                    WHERE id = ?
                    """,
                    (installment["valor"], data_faturamento, invoice_id, installment["id"]),
                )
            invoice = connection.execute(
                "SELECT * FROM oportunidade_faturamentos WHERE id = ?", (invoice_id,)
            ).fetchone()
        return row_to_dict(invoice)


def _now_sql(connection: sqlite3.Connection) -> str:
    return str(connection.execute("SELECT datetime('now')").fetchone()[0])
