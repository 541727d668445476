"""Reads behind document generation and storage of generated documents."""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any

from lexdesk.core.database import (
    Database,
    SchemaInspector,
    insert_row,
    is_missing_schema_error,
    quote_identifier,
    require_created,
)
from lexdesk.core.normalizers import coerce_string
from lexdesk.documents.variables import Audience, OpportunityData

LOGGER = logging.getLogger(__name__)

EMPRESA_ADDRESS_COLUMNS = (
    "cep",
    "rua",
    "logradouro",
    "numero",
    "complemento",
    "bairro",
    "cidade",
    "municipio",
    "estado",
    "uf",
    "endereco",
)

# label column name -> (lookup table, id column on oportunidades)
LOOKUP_NAMES = {
    "tipo_processo_nome": ("tipo_processo", "tipo_processo_id"),
    "area_atuacao_nome": ("area_atuacao", "area_atuacao_id"),
    "fase_nome": ("fluxo_trabalho", "fase_id"),
    "etapa_nome": ("etiquetas", "etapa_id"),
    "status_nome": ("situacao_proposta", "status_id"),
}

_AUDIENCE_FILTER = """
  (
    (te.nome IS NOT NULL AND LOWER(te.nome) LIKE '%audi%') OR
    (a.titulo IS NOT NULL AND LOWER(a.titulo) LIKE '%audi%') OR
    (a.descricao IS NOT NULL AND LOWER(a.descricao) LIKE '%audi%')
  )
"""


def _agenda_audience_query(link_column: str) -> str:
    return f"""
    SELECT a.data AS data, a.hora_inicio AS hora, a.local AS local
    FROM agenda a
    LEFT JOIN tipo_evento te ON te.id = a.tipo
    WHERE a.{quote_identifier(link_column)} = ?
      AND {_AUDIENCE_FILTER}
    ORDER BY a.data IS NULL, a.data, a.hora_inicio IS NULL, a.hora_inicio, a.id DESC
    LIMIT 1
    """


_TASK_AUDIENCE_QUERY = """
    SELECT t.data AS data, t.hora AS hora, NULL AS local
    FROM tarefas t
    WHERE t.id_oportunidades = ?
      AND (
        (t.titulo IS NOT NULL AND LOWER(t.titulo) LIKE '%audi%') OR
        (t.descricao IS NOT NULL AND LOWER(t.descricao) LIKE '%audi%')
      )
    ORDER BY t.data IS NULL, t.data, t.hora IS NULL, t.hora, t.id DESC
    LIMIT 1
"""

AUDIENCE_QUERIES = (
    _agenda_audience_query("id_oportunidades"),
    _agenda_audience_query("oportunidade_id"),
    _TASK_AUDIENCE_QUERY,
)

_DOCUMENT_COLUMNS = "id, oportunidade_id, template_id, title, content, variables, created_at"


class OpportunityDocumentsRepository:
    def __init__(self, database: Database, inspector: SchemaInspector) -> None:
        self._db = database
        self._inspector = inspector

    def opportunity_exists(self, empresa_id: int, oportunidade_id: int) -> bool:
        row = self._db.fetch_one(
            "SELECT 1 AS found FROM oportunidades WHERE id = ? AND idempresa = ? LIMIT 1",
            (oportunidade_id, empresa_id),
        )
        return row is not None

    def _lookup_name(self, table: str, item_id: Any) -> str | None:
        if item_id is None:
            return None
        row = self._db.fetch_one(f"SELECT nome FROM {quote_identifier(table)} WHERE id = ?", (item_id,))
        return coerce_string(row.get("nome")) if row else None

    def _company_address(self, empresa_id: int) -> dict[str, Any]:
        """Address columns of ``empresas`` that exist in this schema."""
        available = [
            column
            for column in EMPRESA_ADDRESS_COLUMNS
            if self._inspector.has_column("empresas", column)
        ]
        if not available:
            return {}
        select = ", ".join(quote_identifier(column) for column in available)
        try:
            row = self._db.fetch_one(f"SELECT {select} FROM empresas WHERE id = ? LIMIT 1", (empresa_id,))
        except sqlite3.OperationalError as exc:
            if not is_missing_schema_error(exc):
                raise
            self._inspector.invalidate("empresas")
            return {}
        return row or {}

    def _audience(self, oportunidade_id: int) -> Audience | None:
        for query in AUDIENCE_QUERIES:
            try:
                row = self._db.fetch_one(query, (oportunidade_id,))
            except sqlite3.OperationalError as exc:
                if not is_missing_schema_error(exc):
                    raise
                continue
            if row is None:
                continue
            return Audience(
                data=coerce_string(row.get("data")),
                hora=coerce_string(row.get("hora")),
                local=coerce_string(row.get("local")),
            )
        return None

    def fetch_opportunity_data(
        self, empresa_id: int, oportunidade_id: int
    ) -> OpportunityData | None:
        opportunity = self._db.fetch_one(
            "SELECT * FROM oportunidades WHERE id = ? AND idempresa = ?",
            (oportunidade_id, empresa_id),
        )
        if opportunity is None:
            return None
        for label, (table, id_column) in LOOKUP_NAMES.items():
            opportunity[label] = self._lookup_name(table, opportunity.get(id_column))

        envolvidos = self._db.fetch_all(
            """
            SELECT nome, documento, telefone, endereco, relacao
            FROM oportunidade_envolvidos WHERE oportunidade_id = ? ORDER BY id
            """,
            (oportunidade_id,),
        )
        solicitante = None
        if opportunity.get("solicitante_id"):
            solicitante = self._db.fetch_one(
                """
                SELECT id, nome, tipo, documento, email, telefone, cep, rua, numero,
                       complemento, bairro, cidade, uf
                FROM clientes WHERE id = ?
                """,
                (opportunity["solicitante_id"],),
            )
        responsavel = None
        if opportunity.get("responsavel_id"):
            responsavel = self._db.fetch_one(
                """
                SELECT u.id, u.nome_completo, u.email, u.telefone, u.oab, p.nome AS perfil_nome
                FROM usuarios u LEFT JOIN perfis p ON p.id = u.perfil
                WHERE u.id = ?
                """,
                (opportunity["responsavel_id"],),
            )
        empresa = self._db.fetch_one(
            """
            SELECT id, nome_empresa, cnpj, telefone, email, plano, responsavel
            FROM empresas WHERE id = ?
            """,
            (empresa_id,),
        )
        if empresa is not None:
            empresa.update(self._company_address(empresa_id))

        return OpportunityData(
            opportunity=opportunity,
            solicitante=solicitante,
            envolvidos=envolvidos,
            responsavel=responsavel,
            empresa=empresa,
            audiencia=self._audience(oportunidade_id),
        )

    def list_documents(self, oportunidade_id: int) -> list[dict[str, Any]]:
        return self._db.fetch_all(
            f"""
            SELECT {_DOCUMENT_COLUMNS} FROM oportunidade_documentos
            WHERE oportunidade_id = ?
            ORDER BY created_at DESC, id DESC
            """,
            (oportunidade_id,),
        )

    def get_document(self, oportunidade_id: int, documento_id: int) -> dict[str, Any] | None:
        return self._db.fetch_one(
            f"SELECT {_DOCUMENT_COLUMNS} FROM oportunidade_documentos WHERE oportunidade_id = ? AND id = ?",
            (oportunidade_id, documento_id),
        )

    def create_document(
        self,
        oportunidade_id: int,
        template_id: int,
        title: str,
        content: str,
        variables: dict[str, Any],
    ) -> dict[str, Any]:
        with self._db.transaction() as connection:
            documento_id = insert_row(
                connection,
                "oportunidade_documentos",
                {
                    "oportunidade_id": oportunidade_id,
                    "template_id": template_id,
                    "title": title,
                    "content": content,
                    "variables": json.dumps(variables, ensure_ascii=False),
                },
            )
        return require_created(
            self.get_document(oportunidade_id, documento_id), "oportunidade_documentos", documento_id
        )

    def delete_document(self, oportunidade_id: int, documento_id: int) -> bool:
        with self._db.transaction() as connection:
            cursor = connection.execute(
                "DELETE FROM oportunidade_documentos WHERE oportunidade_id = ? AND id = ?",
                (oportunidade_id, documento_id),
            )
        return cursor.rowcount > 0
