from __future__ import annotations

import sqlite3
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict

from lexdesk.api.context import CurrentUser
from lexdesk.api.errors import ApiErrorCode, bad_request, not_found
from lexdesk.core.normalizers import optional_text, parse_bool, parse_optional_int
from lexdesk.parameters.registry import PARAMETER_KINDS, ParameterKind, get_kind


class ParameterRequest(BaseModel):
    """Union of every lookup-table column; each kind accepts its own subset."""

    model_config = ConfigDict(extra="forbid")

    nome: str | None = None
    ativo: Any = None
    exibe_menu: Any = None
    ordem: Any = None
    id_fluxo_trabalho: Any = None
    agenda: Any = None
    tarefa: Any = None


class ParametersRepositoryProtocol(Protocol):
    def list_items(
        self, kind: ParameterKind, empresa_id: int, *, only_active: bool = False
    ) -> list[dict[str, Any]]: ...

    def get_item(
        self, kind: ParameterKind, empresa_id: int, item_id: int
    ) -> dict[str, Any] | None: ...

    def create_item(
        self, kind: ParameterKind, empresa_id: int, fields: dict[str, Any]
    ) -> dict[str, Any]: ...

    def update_item(
        self, kind: ParameterKind, empresa_id: int, item_id: int, fields: dict[str, Any]
    ) -> dict[str, Any] | None: ...

    def delete_item(self, kind: ParameterKind, empresa_id: int, item_id: int) -> bool: ...

    def list_menu_workflows(self, empresa_id: int) -> list[dict[str, Any]]: ...


class ParametersService:
    def __init__(self, *, repo: ParametersRepositoryProtocol) -> None:
        self._repo = repo

    @staticmethod
    def list_kinds() -> list[dict[str, str]]:
        return [{"kind": kind.slug, "label": kind.label} for kind in PARAMETER_KINDS.values()]

    @staticmethod
    def resolve_kind(slug: str) -> ParameterKind:
        kind = get_kind(slug)
        if kind is None:
            raise not_found(ApiErrorCode.PARAMETER_NOT_FOUND, f"Unknown parameter kind: {slug}")
        return kind

    def _validated_fields(
        self, kind: ParameterKind, req: ParameterRequest, *, partial: bool
    ) -> dict[str, Any]:
        sent = req.model_dump(exclude_unset=True)
        allowed = {"nome", "ativo", *(extra.name for extra in kind.extras)}
        unexpected = sorted(set(sent) - allowed)
        if unexpected:
            raise bad_request(
                ApiErrorCode.PARAMETER_INVALID,
                f"Fields not supported for {kind.slug}: {', '.join(unexpected)}",
            )

        fields: dict[str, Any] = {}
        if "nome" in sent or not partial:
            nome = optional_text(req.nome)
            if not nome:
                raise bad_request(ApiErrorCode.PARAMETER_INVALID, "nome is required")
            fields["nome"] = nome
        try:
            if "ativo" in sent or not partial:
                fields["ativo"] = int(bool(parse_bool(req.ativo, default=True)))
            for extra in kind.extras:
                if extra.name not in sent and partial:
                    continue
                value = sent.get(extra.name)
                if extra.kind == "bool":
                    parsed = parse_bool(value, default=bool(extra.default))
                    fields[extra.name] = int(bool(parsed))
                else:
                    fields[extra.name] = parse_optional_int(value)
        except ValueError as exc:
            raise bad_request(ApiErrorCode.PARAMETER_INVALID, str(exc)) from exc
        return fields

    def list_items(self, user: CurrentUser, slug: str) -> list[dict[str, Any]]:
        kind = self.resolve_kind(slug)
        if user.empresa_id is None:
            return []
        return self._repo.list_items(kind, user.empresa_id)

    def get_item(self, user: CurrentUser, slug: str, item_id: int) -> dict[str, Any]:
        kind = self.resolve_kind(slug)
        item = (
            self._repo.get_item(kind, user.empresa_id, item_id)
            if user.empresa_id is not None
            else None
        )
        if item is None:
            raise not_found(ApiErrorCode.PARAMETER_NOT_FOUND, f"{kind.label} not found: {item_id}")
        return item

    def create_item(self, user: CurrentUser, slug: str, req: ParameterRequest) -> dict[str, Any]:
        kind = self.resolve_kind(slug)
        empresa_id = user.require_empresa()
        fields = self._validated_fields(kind, req, partial=False)
        try:
            return self._repo.create_item(kind, empresa_id, fields)
        except sqlite3.IntegrityError as exc:
            raise bad_request(ApiErrorCode.PARAMETER_INVALID, f"Invalid reference: {exc}") from exc

    def update_item(
        self, user: CurrentUser, slug: str, item_id: int, req: ParameterRequest
    ) -> dict[str, Any]:
        kind = self.resolve_kind(slug)
        fields = self._validated_fields(kind, req, partial=True)
        try:
            updated = (
                self._repo.update_item(kind, user.empresa_id, item_id, fields)
                if user.empresa_id is not None
                else None
            )
        except sqlite3.IntegrityError as exc:
            raise bad_request(ApiErrorCode.PARAMETER_INVALID, f"Invalid reference: {exc}") from exc
        if updated is None:
            raise not_found(ApiErrorCode.PARAMETER_NOT_FOUND, f"{kind.label} not found: {item_id}")
        return updated

    def delete_item(self, user: CurrentUser, slug: str, item_id: int) -> None:
        kind = self.resolve_kind(slug)
        if user.empresa_id is None or not self._repo.delete_item(kind, user.empresa_id, item_id):
            raise not_found(ApiErrorCode.PARAMETER_NOT_FOUND, f"{kind.label} not found: {item_id}")

    def list_menu_workflows(self, user: CurrentUser) -> list[dict[str, Any]]:
        if user.empresa_id is None:
            return []
        return self._repo.list_menu_workflows(user.empresa_id)
