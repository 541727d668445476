"""Catalog of navigable system modules that profiles can grant."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any

from lexdesk.core.normalizers import strip_accents


@dataclass(frozen=True)
class SystemModule:
    id: str
    nome: str
    categoria: str


_APP = "Aplicação"
_SETTINGS = "Configurações"

SYSTEM_MODULES: tuple[SystemModule, ...] = (
    SystemModule("dashboard", "Dashboard", _APP),
    SystemModule("conversas", "Conversas", _APP),
    SystemModule("clientes", "Clientes", _APP),
    SystemModule("fornecedores", "Fornecedores", _APP),
    SystemModule("pipeline", "Pipeline", _APP),
    SystemModule("agenda", "Agenda", _APP),
    SystemModule("tarefas", "Tarefas", _APP),
    SystemModule("processos", "Processos", _APP),
    SystemModule("intimacoes", "Intimações", _APP),
    SystemModule("documentos", "Documentos", _APP),
    SystemModule("arquivos", "Arquivos", _APP),
    SystemModule("financeiro", "Financeiro", _APP),
    SystemModule("relatorios", "Relatórios", _APP),
    SystemModule("meu-plano", "Meu Plano", _APP),
    SystemModule("suporte", "Suporte", _APP),
    SystemModule("configuracoes", "Configurações", _SETTINGS),
    SystemModule("configuracoes-usuarios", "Configurações - Usuários", _SETTINGS),
    SystemModule("configuracoes-integracoes", "Configurações - Integrações", _SETTINGS),
    SystemModule("configuracoes-parametros", "Configurações - Parâmetros", _SETTINGS),
    SystemModule(
        "configuracoes-conteudo-blog", "Configurações - Conteúdo - Blog", _SETTINGS
    ),
    SystemModule(
        "configuracoes-parametros-perfis", "Configurações - Parâmetros - Perfis", _SETTINGS
    ),
    SystemModule(
        "configuracoes-parametros-escritorios",
        "Configurações - Parâmetros - Escritórios",
        _SETTINGS,
    ),
    SystemModule(
        "configuracoes-parametros-area-atuacao",
        "Configurações - Parâmetros - Área de Atuação",
        _SETTINGS,
    ),
    SystemModule(
        "configuracoes-parametros-situacao-processo",
        "Configurações - Parâmetros - Situação do Processo",
        _SETTINGS,
    ),
    SystemModule(
        "configuracoes-parametros-tipo-processo",
        "Configurações - Parâmetros - Tipo de Processo",
        _SETTINGS,
    ),
    SystemModule(
        "configuracoes-parametros-tipo-evento",
        "Configurações - Parâmetros - Tipo de Evento",
        _SETTINGS,
    ),
    SystemModule(
        "configuracoes-parametros-situacao-cliente",
        "Configurações - Parâmetros - Situação do Cliente",
        _SETTINGS,
    ),
    SystemModule(
        "configuracoes-parametros-situacao-proposta",
        "Configurações - Parâmetros - Situação da Proposta",
        _SETTINGS,
    ),
    SystemModule(
        "configuracoes-parametros-etiquetas",
        "Configurações - Parâmetros - Etiquetas",
        _SETTINGS,
    ),
    SystemModule(
        "configuracoes-parametros-tipos-documento",
        "Configurações - Parâmetros - Tipos de Documento",
        _SETTINGS,
    ),
    SystemModule(
        "configuracoes-parametros-fluxo-trabalho",
        "Configurações - Parâmetros - Fluxo de Trabalho",
        _SETTINGS,
    ),
)

MODULE_INDEX: dict[str, int] = {module.id: index for index, module in enumerate(SYSTEM_MODULES)}


def list_modules() -> list[dict[str, str]]:
    return [asdict(module) for module in SYSTEM_MODULES]


def normalize_module_id(value: Any) -> str | None:
    """Map a user-supplied module name onto a catalog id.

    Tries the exact value, then lower case, then an accent-free dashed slug
    (``"Configurações Usuários"`` -> ``configuracoes-usuarios``).
    """
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    if trimmed in MODULE_INDEX:
        return trimmed
    lowered = trimmed.lower()
    if lowered in MODULE_INDEX:
        return lowered
    sanitized = re.sub(r"[\W_]+", "-", strip_accents(trimmed)).strip("-").lower()
    if sanitized in MODULE_INDEX:
        return sanitized
    return None


def sanitize_module_ids(values: Any) -> list[str]:
    """Validate, dedupe and sort module ids in catalog order.

    Raises ``ValueError`` for non-list input or unknown modules.
    """
    if values is None:
        return []
    if not isinstance(values, list):
        raise ValueError("modulos must be a list of strings")

    unique: set[str] = set()
    for value in values:
        if not isinstance(value, str):
            raise ValueError("modulos must contain only strings")
        normalized = normalize_module_id(value)
        if normalized is None:
            raise ValueError(f"Unknown module: {value}")
        unique.add(normalized)
    return sorted(unique, key=MODULE_INDEX.__getitem__)
