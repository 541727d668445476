from __future__ import annotations

from datetime import datetime

from lexdesk.documents.variables import Audience, OpportunityData, build_variables

NOW = datetime(2026, 10, 19, 9, 5)


def _data(**overrides) -> OpportunityData:
    values = {
        "opportunity": {
            "id": 12,
            "numero_processo_cnj": "0801234-56.2026.8.26.0100",
            "vara_ou_orgao": "2ª Vara Cível",
            "comarca": "São Paulo",
            "tipo_processo_id": 3,
            "tipo_processo_nome": "Ação de Cobrança",
            "fase_id": 4,
            "fase_nome": None,
            "valor_honorarios": 1500.0,
            "prazo_proximo": "2026-11-02",
            "audiencia_data": "2026-11-10",
            "audiencia_horario": "14:00:00",
            "detalhes": "   ",
            "data_criacao": "2026-10-01 10:00:00",
        },
        "solicitante": {
            "nome": "Maria da Silva Souza",
            "tipo": 1,
            "documento": "123.456.789-01",
            "email": "maria@example.com",
            "cep": "01310-100",
            "cidade": "São Paulo",
            "uf": "SP",
        },
        "envolvidos": [
            {"nome": "João Souza", "relacao": "Cônjuge", "documento": "12.345.678/0001-90"},
            {"nome": "Sem relação"},
        ],
        "responsavel": {
            "nome_completo": "Dra. Paula",
            "oab": "SP 123456",
            "perfil_nome": "Advogada",
        },
        "empresa": {
            "nome_empresa": "Souza Advogados",
            "cnpj": "11.222.333/0001-44",
            "municipio": "Campinas",
            "uf": "SP",
        },
    }
    values.update(overrides)
    return OpportunityData(**values)


def test_build_variables_process_and_lookup_labels() -> None:
    variables = build_variables(_data(), now=NOW)

    assert variables["processo.numero"] == "0801234-56.2026.8.26.0100"
    assert variables["processo.tipo_acao"] == "Ação de Cobrança"
    assert variables["processo.tipo_acao_id"] == "3"
    assert variables["processo.fase_atual"] == "4"
    assert variables["processo.valor_honorarios"] == "1500"
    assert variables["processo.prazo_proximo"] == "02/11/2026"
    assert variables["processo.audiencia.data"] == "10/11/2026"
    assert variables["processo.audiencia.horario"] == "14:00"
    assert variables["processo.audiencia.local"] == "2ª Vara Cível"
    assert variables["oportunidade.id"] == "12"
    assert variables["oportunidade.data_criacao"] == "01/10/2026"
    assert "processo.detalhes" not in variables


def test_build_variables_client_document_and_names() -> None:
    variables = build_variables(_data(), now=NOW)

    assert variables["cliente.nome_completo"] == "Maria da Silva Souza"
    assert variables["cliente.primeiro_nome"] == "Maria"
    assert variables["cliente.sobrenome"] == "da Silva Souza"
    assert variables["cliente.tipo"] == "Pessoa Física"
    assert variables["cliente.documento"] == "12345678901"
    assert variables["cliente.documento.cpf"] == "12345678901"
    assert "cliente.documento.cnpj" not in variables
    assert variables["cliente.endereco.cep"] == "01310100"
    assert variables["cliente.endereco.estado"] == "SP"


def test_build_variables_envolvidos_by_position_and_relation() -> None:
    variables = build_variables(_data(), now=NOW)

    assert variables["envolvidos.1.nome"] == "João Souza"
    assert variables["envolvidos.conjuge.nome"] == "João Souza"
    assert variables["envolvidos.conjuge.documento"] == "12345678000190"
    assert variables["envolvidos.1.relacao"] == "Cônjuge"
    assert variables["envolvidos.2.nome"] == "Sem relação"
    assert "envolvidos.2.relacao" not in variables


def test_build_variables_office_user_and_system() -> None:
    variables = build_variables(_data(), now=NOW)

    assert variables["usuario.nome"] == "Dra. Paula"
    assert variables["usuario.cargo"] == "Advogada"
    assert variables["escritorio.nome"] == "Souza Advogados"
    assert variables["escritorio.cnpj"] == "11222333000144"
    assert variables["escritorio.endereco.cidade"] == "Campinas"
    assert variables["escritorio.endereco.estado"] == "SP"
    assert variables["sistema.data_atual"] == "19/10/2026"
    assert variables["sistema.hora_atual"] == "09:05"
    assert variables["sistema.data_extenso"] == "segunda-feira, 19 de outubro de 2026"


def test_build_variables_audience_overrides_opportunity_columns() -> None:
    data = _data(audiencia=Audience(data="2026-12-01", hora="9:30", local="Fórum Central"))

    variables = build_variables(data, now=NOW)

    assert variables["processo.audiencia.data"] == "01/12/2026"
    assert variables["processo.audiencia.horario"] == "09:30"
    assert variables["processo.audiencia.local"] == "Fórum Central"


def test_build_variables_skips_missing_sections() -> None:
    variables = build_variables(OpportunityData(opportunity={"id": 1}), now=NOW)

    assert not any(key.startswith(("cliente.", "usuario.", "escritorio.")) for key in variables)
    assert variables["oportunidade.id"] == "1"
