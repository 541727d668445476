from __future__ import annotations

import json
from pathlib import Path

from lexdesk.core.database import Database, SchemaInspector, insert_row
from lexdesk.documents.repository import OpportunityDocumentsRepository


def _seed(database: Database) -> dict[str, int]:
    with database.transaction() as connection:
        empresa = insert_row(
            connection,
            "empresas",
            {"nome_empresa": "Lima & Souza", "cnpj": "11222333000144", "cidade": "Recife", "uf": "PE"},
        )
        perfil = insert_row(connection, "perfis", {"nome": "Advogado"})
        usuario = insert_row(
            connection,
            "usuarios",
            {"nome_completo": "Carla Lima", "email": "carla@office.local", "perfil": perfil, "empresa": empresa},
        )
        cliente = insert_row(
            connection, "clientes", {"nome": "Pedro Alves", "tipo": 1, "idempresa": empresa}
        )
        tipo = insert_row(
            connection, "tipo_processo", {"nome": "Trabalhista", "idempresa": empresa}
        )
        tipo_evento = insert_row(
            connection, "tipo_evento", {"nome": "Audiência", "idempresa": empresa}
        )
        oportunidade = insert_row(
            connection,
            "oportunidades",
            {
                "idempresa": empresa,
                "sequencial_empresa": 1,
                "tipo_processo_id": tipo,
                "responsavel_id": usuario,
                "solicitante_id": cliente,
                "numero_processo_cnj": "0000001-02.2026.5.06.0001",
            },
        )
        insert_row(
            connection,
            "oportunidade_envolvidos",
            {"oportunidade_id": oportunidade, "nome": "Empresa Ré", "relacao": "Réu"},
        )
        insert_row(
            connection,
            "agenda",
            {
                "titulo": "Conciliação",
                "tipo": tipo_evento,
                "data": "2026-11-20",
                "hora_inicio": "10:30",
                "local": "TRT 6ª Região",
                "id_oportunidades": oportunidade,
                "idempresa": empresa,
                "idusuario": usuario,
            },
        )
    return {"empresa": empresa, "usuario": usuario, "oportunidade": oportunidade}


def _repo(tmp_path: Path) -> tuple[OpportunityDocumentsRepository, Database]:
    database = Database(tmp_path / "crm.db")
    return OpportunityDocumentsRepository(database, SchemaInspector(database)), database


def test_fetch_opportunity_data_collects_related_rows(tmp_path: Path) -> None:
    repo, database = _repo(tmp_path)
    ids = _seed(database)

    data = repo.fetch_opportunity_data(ids["empresa"], ids["oportunidade"])

    assert data is not None
    assert data.opportunity["tipo_processo_nome"] == "Trabalhista"
    assert data.opportunity["fase_nome"] is None
    assert data.solicitante is not None and data.solicitante["nome"] == "Pedro Alves"
    assert data.responsavel is not None and data.responsavel["perfil_nome"] == "Advogado"
    assert data.empresa is not None and data.empresa["cidade"] == "Recife"
    assert [row["relacao"] for row in data.envolvidos] == ["Réu"]
    assert data.audiencia is not None
    assert data.audiencia.data == "2026-11-20"
    assert data.audiencia.local == "TRT 6ª Região"


def test_fetch_opportunity_data_is_scoped_by_company(tmp_path: Path) -> None:
    repo, database = _repo(tmp_path)
    ids = _seed(database)

    assert repo.fetch_opportunity_data(ids["empresa"] + 1, ids["oportunidade"]) is None
    assert repo.opportunity_exists(ids["empresa"], ids["oportunidade"]) is True
    assert repo.opportunity_exists(ids["empresa"] + 1, ids["oportunidade"]) is False


def test_audience_falls_back_to_tasks(tmp_path: Path) -> None:
    repo, database = _repo(tmp_path)
    ids = _seed(database)
    with database.transaction() as connection:
        connection.execute("DELETE FROM agenda")
        insert_row(
            connection,
            "tarefas",
            {
                "titulo": "Preparar audiência de instrução",
                "data": "2026-12-03",
                "hora": "15:00",
                "id_oportunidades": ids["oportunidade"],
                "idempresa": ids["empresa"],
            },
        )

    data = repo.fetch_opportunity_data(ids["empresa"], ids["oportunidade"])

    assert data is not None and data.audiencia is not None
    assert data.audiencia.data == "2026-12-03"
    assert data.audiencia.hora == "15:00"
    assert data.audiencia.local is None


def test_document_storage_round_trip(tmp_path: Path) -> None:
    repo, database = _repo(tmp_path)
    ids = _seed(database)
    opportunity = ids["oportunidade"]

    first = repo.create_document(opportunity, None, "Contrato", "<p>a</p>", {"k": "ação"})
    second = repo.create_document(opportunity, None, "Recibo", "<p>b</p>", {})

    assert json.loads(first["variables"]) == {"k": "ação"}
    assert [row["id"] for row in repo.list_documents(opportunity)] == [second["id"], first["id"]]
    assert repo.get_document(opportunity + 1, first["id"]) is None
    assert repo.delete_document(opportunity, first["id"]) is True
    assert repo.delete_document(opportunity, first["id"]) is False
