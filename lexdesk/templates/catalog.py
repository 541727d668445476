"""Variables the document generator fills, grouped for the editor sidebar."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class TemplateVariable:
    key: str
    label: str


@dataclass(frozen=True)
class VariableGroup:
    id: str
    label: str
    variables: tuple[TemplateVariable, ...]


def _group(group_id: str, label: str, *items: tuple[str, str]) -> VariableGroup:
    return VariableGroup(
        group_id,
        label,
        tuple(TemplateVariable(f"{group_id}.{key}", item_label) for key, item_label in items),
    )


VARIABLE_GROUPS: tuple[VariableGroup, ...] = (
    _group(
        "cliente",
        "Cliente",
        ("primeiro_nome", "Primeiro nome"),
        ("sobrenome", "Sobrenome"),
        ("nome_completo", "Nome completo"),
        ("tipo", "Tipo de pessoa"),
        ("documento", "Documento"),
        ("documento.cpf", "CPF"),
        ("documento.cnpj", "CNPJ"),
        ("documento.rg", "RG"),
        ("contato.email", "E-mail"),
        ("contato.telefone", "Telefone"),
        ("endereco.rua", "Rua"),
        ("endereco.numero", "Número"),
        ("endereco.complemento", "Complemento"),
        ("endereco.bairro", "Bairro"),
        ("endereco.cidade", "Cidade"),
        ("endereco.estado", "Estado"),
        ("endereco.cep", "CEP"),
    ),
    _group(
        "processo",
        "Processo",
        ("numero", "Número"),
        ("numero_protocolo", "Número do protocolo"),
        ("tipo_acao", "Tipo de ação"),
        ("area_atuacao", "Área de atuação"),
        ("vara", "Vara"),
        ("comarca", "Comarca"),
        ("fase_atual", "Fase atual"),
        ("etapa", "Etapa"),
        ("status", "Status"),
        ("valor_causa", "Valor da causa"),
        ("valor_honorarios", "Valor dos honorários"),
        ("percentual_honorarios", "Percentual dos honorários"),
        ("forma_pagamento", "Forma de pagamento"),
        ("qtde_parcelas", "Quantidade de parcelas"),
        ("contingenciamento", "Contingenciamento"),
        ("detalhes", "Detalhes"),
        ("prazo_proximo", "Próximo prazo"),
        ("audiencia.data", "Data da audiência"),
        ("audiencia.horario", "Horário da audiência"),
        ("audiencia.local", "Local da audiência"),
    ),
    _group(
        "oportunidade",
        "Oportunidade",
        ("id", "Código"),
        ("data_criacao", "Data de criação"),
        ("ultima_atualizacao", "Última atualização"),
    ),
    _group(
        "envolvidos",
        "Envolvidos",
        ("1.nome", "Nome do 1º envolvido"),
        ("1.documento", "Documento do 1º envolvido"),
        ("1.telefone", "Telefone do 1º envolvido"),
        ("1.endereco", "Endereço do 1º envolvido"),
        ("1.relacao", "Relação do 1º envolvido"),
    ),
    _group(
        "escritorio",
        "Escritório",
        ("nome", "Nome"),
        ("razao_social", "Razão social"),
        ("cnpj", "CNPJ"),
        ("telefone", "Telefone"),
        ("email", "E-mail"),
        ("responsavel", "Responsável"),
        ("endereco.rua", "Rua"),
        ("endereco.numero", "Número"),
        ("endereco.bairro", "Bairro"),
        ("endereco.cidade", "Cidade"),
        ("endereco.estado", "Estado"),
        ("endereco.cep", "CEP"),
    ),
    _group(
        "usuario",
        "Usuário",
        ("nome", "Nome completo"),
        ("cargo", "Cargo"),
        ("oab", "OAB"),
        ("email", "E-mail"),
        ("telefone", "Telefone"),
    ),
    _group(
        "sistema",
        "Data atual",
        ("data_atual", "Data (DD/MM/AAAA)"),
        ("data_extenso", "Data por extenso"),
        ("hora_atual", "Hora atual"),
    ),
)


def list_variable_groups() -> list[dict[str, Any]]:
    return [
        {
            "id": group.id,
            "label": group.label,
            "variables": [{"key": item.key, "label": item.label} for item in group.variables],
        }
        for group in VARIABLE_GROUPS
    ]
