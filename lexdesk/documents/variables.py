"""Flat placeholder map built from an opportunity and its related rows."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from lexdesk.core.dates import format_date_br, format_date_extenso, format_time, format_time_string
from lexdesk.core.normalizers import coerce_string, only_digits, slugify

CLIENT_TYPE_LABELS = {1: "Pessoa Física", 2: "Pessoa Jurídica"}
CPF_LENGTH = 11
CNPJ_LENGTH = 14

# (label variable, id variable, looked-up name, id column)
LOOKUP_VARIABLES = (
    ("tipo_acao", "tipo_acao_id", "tipo_processo_nome", "tipo_processo_id"),
    ("fase_atual", "fase_id", "fase_nome", "fase_id"),
    ("etapa", "etapa_id", "etapa_nome", "etapa_id"),
    ("status", "status_id", "status_nome", "status_id"),
    ("area_atuacao", "area_atuacao_id", "area_atuacao_nome", "area_atuacao_id"),
)


@dataclass
class Audience:
    data: str | None = None
    hora: str | None = None
    local: str | None = None


@dataclass
class OpportunityData:
    """Everything the variable map is built from.

    ``opportunity`` carries the ``oportunidades`` row plus the looked-up
    ``*_nome`` labels of its lookup ids.
    """

    opportunity: dict[str, Any]
    solicitante: dict[str, Any] | None = None
    envolvidos: list[dict[str, Any]] = field(default_factory=list)
    responsavel: dict[str, Any] | None = None
    empresa: dict[str, Any] | None = None
    audiencia: Audience | None = None


def _first_present(*values: Any) -> Any:
    for value in values:
        if coerce_string(value) is not None:
            return value
    return None


class _VariableMap(dict):
    def assign(self, key: str, value: Any) -> None:
        text = coerce_string(value)
        if text is not None:
            self[key] = text


def _assign_process(variables: _VariableMap, opportunity: dict[str, Any]) -> None:
    get = opportunity.get
    variables.assign("processo.numero", get("numero_processo_cnj"))
    variables.assign("processo.numero_protocolo", get("numero_protocolo"))
    variables.assign("processo.vara", get("vara_ou_orgao"))
    variables.assign("processo.comarca", get("comarca"))
    for label_key, id_var, name_column, id_column in LOOKUP_VARIABLES:
        variables.assign(f"processo.{label_key}", _first_present(get(name_column), get(id_column)))
        variables.assign(f"processo.{id_var}", get(id_column))
    for column in (
        "valor_causa",
        "valor_honorarios",
        "percentual_honorarios",
        "forma_pagamento",
        "qtde_parcelas",
        "contingenciamento",
        "detalhes",
    ):
        variables.assign(f"processo.{column}", get(column))
    variables.assign("processo.prazo_proximo", format_date_br(get("prazo_proximo")))
    variables.assign("processo.audiencia.data", format_date_br(get("audiencia_data")))
    variables.assign(
        "processo.audiencia.horario",
        format_time_string(get("audiencia_horario"), get("audiencia_data")),
    )
    variables.assign(
        "processo.audiencia.local", _first_present(get("audiencia_local"), get("vara_ou_orgao"))
    )


def _assign_client(variables: _VariableMap, client: dict[str, Any]) -> None:
    nome = coerce_string(client.get("nome"))
    if nome:
        first, *rest = nome.split()
        variables.assign("cliente.nome_completo", nome)
        variables.assign("cliente.primeiro_nome", first)
        variables.assign("cliente.sobrenome", " ".join(rest))
    try:
        tipo = int(client.get("tipo")) if client.get("tipo") is not None else None
    except (TypeError, ValueError):
        tipo = None
    variables.assign("cliente.tipo", CLIENT_TYPE_LABELS.get(tipo) if tipo is not None else None)

    document = only_digits(client.get("documento"))
    if document:
        variables.assign("cliente.documento", document)
        if len(document) == CPF_LENGTH:
            variables.assign("cliente.documento.cpf", document)
        elif len(document) == CNPJ_LENGTH:
            variables.assign("cliente.documento.cnpj", document)
        else:
            variables.assign("cliente.documento.rg", document)

    variables.assign("cliente.contato.email", client.get("email"))
    variables.assign("cliente.contato.telefone", client.get("telefone"))
    variables.assign("cliente.endereco.cep", only_digits(client.get("cep")))
    for column in ("rua", "numero", "complemento", "bairro", "cidade"):
        variables.assign(f"cliente.endereco.{column}", client.get(column))
    variables.assign("cliente.endereco.estado", client.get("uf"))


def _assign_envolvidos(variables: _VariableMap, envolvidos: list[dict[str, Any]]) -> None:
    for index, envolvido in enumerate(envolvidos, start=1):
        relacao = coerce_string(envolvido.get("relacao"))
        relation_slug = slugify(relacao) if relacao else ""
        bases = [f"envolvidos.{index}"]
        if relation_slug:
            bases.append(f"envolvidos.{relation_slug}")
        for base in bases:
            variables.assign(f"{base}.nome", envolvido.get("nome"))
            variables.assign(f"{base}.documento", only_digits(envolvido.get("documento")))
            variables.assign(f"{base}.telefone", envolvido.get("telefone"))
            variables.assign(f"{base}.endereco", envolvido.get("endereco"))
            if relation_slug:
                variables.assign(f"{base}.relacao", relacao)


def _assign_office(variables: _VariableMap, empresa: dict[str, Any]) -> None:
    get = empresa.get
    variables.assign("escritorio.nome", get("nome_empresa"))
    variables.assign("escritorio.razao_social", get("nome_empresa"))
    variables.assign("escritorio.cnpj", only_digits(get("cnpj")))
    variables.assign("escritorio.telefone", get("telefone"))
    variables.assign("escritorio.email", get("email"))
    variables.assign("escritorio.responsavel", get("responsavel"))
    variables.assign("escritorio.plano", get("plano"))
    variables.assign("escritorio.endereco.cep", only_digits(get("cep")))
    variables.assign(
        "escritorio.endereco.rua", _first_present(get("rua"), get("logradouro"), get("endereco"))
    )
    variables.assign("escritorio.endereco.numero", get("numero"))
    variables.assign("escritorio.endereco.complemento", get("complemento"))
    variables.assign("escritorio.endereco.bairro", get("bairro"))
    variables.assign("escritorio.endereco.cidade", _first_present(get("cidade"), get("municipio")))
    variables.assign("escritorio.endereco.estado", _first_present(get("estado"), get("uf")))


def build_variables(data: OpportunityData, *, now: datetime | None = None) -> dict[str, str]:
    """Return the ``{{ key }}`` substitutions for one opportunity.

    Values that are null or blank are left out so their placeholders stay
    visible in the generated document.
    """
    variables = _VariableMap()
    opportunity = data.opportunity
    _assign_process(variables, opportunity)

    if data.audiencia is not None:
        variables.assign("processo.audiencia.data", format_date_br(data.audiencia.data))
        variables.assign(
            "processo.audiencia.horario",
            format_time_string(data.audiencia.hora, data.audiencia.data),
        )
        variables.assign("processo.audiencia.local", data.audiencia.local)

    variables.assign("oportunidade.id", opportunity.get("id"))
    variables.assign("oportunidade.data_criacao", format_date_br(opportunity.get("data_criacao")))
    variables.assign(
        "oportunidade.ultima_atualizacao", format_date_br(opportunity.get("ultima_atualizacao"))
    )

    if data.solicitante:
        _assign_client(variables, data.solicitante)
    _assign_envolvidos(variables, data.envolvidos)

    if data.responsavel:
        responsavel = data.responsavel
        variables.assign("usuario.nome", responsavel.get("nome_completo"))
        variables.assign("usuario.email", responsavel.get("email"))
        variables.assign("usuario.telefone", responsavel.get("telefone"))
        variables.assign("usuario.oab", responsavel.get("oab"))
        variables.assign("usuario.cargo", responsavel.get("perfil_nome"))

    if data.empresa:
        _assign_office(variables, data.empresa)

    current = now or datetime.now()
    variables.assign("sistema.data_atual", current.strftime("%d/%m/%Y"))
    variables.assign("sistema.hora_atual", format_time(current))
    variables.assign("sistema.data_extenso", format_date_extenso(current.date()))
    return dict(variables)
