from __future__ import annotations

from pathlib import Path

from lexdesk.core.database import Database, SchemaInspector
from lexdesk.financial.repository import FinancialFlowsRepository

_LEGACY_FLOWS = """
CREATE TABLE financial_flows (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  tipo TEXT NOT NULL,
  descricao TEXT,
  valor REAL,
  vencimento TEXT,
  pagamento TEXT,
  status TEXT,
  conta_id INTEGER,
  categoria_id INTEGER,
  {extra_columns}
)
"""


def _legacy_repo(tmp_path: Path, extra_columns: str) -> tuple[FinancialFlowsRepository, Database]:
    database = Database(tmp_path / "legacy.db", migrate=False)
    with database.transaction() as connection:
        connection.execute(_LEGACY_FLOWS.format(extra_columns=extra_columns))
    return FinancialFlowsRepository(database, SchemaInspector(database)), database


def test_repository_resolves_alternative_column_names(tmp_path: Path) -> None:
    repo, _database = _legacy_repo(tmp_path, "Empresa_Id INTEGER, IdCliente TEXT")

    assert repo.empresa_column() == "Empresa_Id"
    assert repo.cliente_column() == "IdCliente"
    assert repo.fornecedor_column() is None
    assert repo.opportunity_tables_available() is False

    created = repo.create_flow(
        4,
        {
            "tipo": "receita",
            "descricao": "Honorários",
            "valor": 800.0,
            "vencimento": "2026-04-01",
            "status": "pendente",
            "cliente_id": "12",
            "fornecedor_id": None,
        },
    )

    assert created["IdCliente"] == "12"
    assert created["Empresa_Id"] == 4
    items, total = repo.query_flows(
        4, cliente_id="12", limit=10, offset=0, include_opportunities=False
    )
    assert total == 1
    assert items[0]["cliente_id"] == "12"
    assert items[0]["fornecedor_id"] is None
    assert repo.query_flows(5, cliente_id=None, limit=10, offset=0, include_opportunities=False)[1] == 0


def test_repository_without_company_column_shares_rows(tmp_path: Path) -> None:
    repo, database = _legacy_repo(tmp_path, "fornecedor TEXT")
    with database.transaction() as connection:
        connection.execute(
            "INSERT INTO financial_flows (tipo, descricao, valor, vencimento, fornecedor) "
            "VALUES ('despesa', 'Cartório', 50, '2026-06-01', 'F1')"
        )

    items, total = repo.query_flows(
        9, cliente_id=None, limit=10, offset=0, include_opportunities=False
    )

    assert repo.empresa_column() is None
    assert total == 1
    assert items[0]["fornecedor_id"] == "F1"
    assert items[0]["cliente_id"] is None
    assert repo.get_flow(9, items[0]["id"]) is not None
    assert repo.delete_flow(9, items[0]["id"]) is True


def test_repository_update_without_updated_at_column(tmp_path: Path) -> None:
    repo, database = _legacy_repo(tmp_path, "idempresa INTEGER")
    created = repo.create_flow(
        1, {"tipo": "despesa", "descricao": "Taxa", "valor": 10, "vencimento": "2026-01-01"}
    )

    updated = repo.update_flow(1, created["id"], {"status": "pago", "pagamento": "2026-01-02"})

    assert updated is not None
    assert updated["status"] == "pago"
    assert repo.update_flow(2, created["id"], {"status": "pago"}) is None
