"""Lookup tables editable under ``/api/parametros/{kind}``."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ExtraColumn:
    name: str
    kind: str  # "int" | "bool"
    default: int | bool | None = None


@dataclass(frozen=True)
class ParameterKind:
    slug: str
    table: str
    label: str
    extras: tuple[ExtraColumn, ...] = field(default_factory=tuple)
    order_by: str = "nome COLLATE NOCASE, id"


PARAMETER_KINDS: dict[str, ParameterKind] = {
    kind.slug: kind
    for kind in (
        ParameterKind("area-atuacao", "area_atuacao", "Área de atuação"),
        ParameterKind("tipo-processo", "tipo_processo", "Tipo de processo"),
        ParameterKind(
            "tipo-evento",
            "tipo_evento",
            "Tipo de evento",
            extras=(
                ExtraColumn("agenda", "bool", True),
                ExtraColumn("tarefa", "bool", True),
            ),
        ),
        ParameterKind("situacao-proposta", "situacao_proposta", "Situação da proposta"),
        ParameterKind("situacao-cliente", "situacao_cliente", "Situação do cliente"),
        ParameterKind("tipo-documento", "tipo_documento", "Tipo de documento"),
        ParameterKind("setores", "setores", "Setores"),
        ParameterKind(
            "fluxo-trabalho",
            "fluxo_trabalho",
            "Fluxo de trabalho",
            extras=(
                ExtraColumn("exibe_menu", "bool", True),
                ExtraColumn("ordem", "int"),
            ),
            order_by="COALESCE(ordem, 2147483647), nome COLLATE NOCASE, id",
        ),
        ParameterKind(
            "etiquetas",
            "etiquetas",
            "Etiquetas",
            extras=(
                ExtraColumn("id_fluxo_trabalho", "int"),
                ExtraColumn("ordem", "int"),
            ),
            order_by="COALESCE(ordem, 2147483647), nome COLLATE NOCASE, id",
        ),
    )
}


def get_kind(slug: str) -> ParameterKind | None:
    return PARAMETER_KINDS.get(slug.strip().lower())
