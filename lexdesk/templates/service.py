"""Document templates owned by a user within their company."""

from __future__ import annotations

import json
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict

from lexdesk.api.context import CurrentUser
from lexdesk.api.errors import ApiError, ApiErrorCode, bad_request, not_found
from lexdesk.core.normalizers import optional_text
from lexdesk.templates.catalog import list_variable_groups


class TemplateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    content: str | dict[str, Any] | None = None


class TemplatesRepositoryProtocol(Protocol):
    def list_templates(self, empresa_id: int | None, usuario_id: int) -> list[dict[str, Any]]: ...

    def get_template(
        self, empresa_id: int | None, usuario_id: int, template_id: int
    ) -> dict[str, Any] | None: ...

    def create_template(
        self, empresa_id: int, usuario_id: int, title: str, content: str | None
    ) -> dict[str, Any]: ...

    def update_template(
        self, empresa_id: int | None, usuario_id: int, template_id: int, fields: dict[str, Any]
    ) -> dict[str, Any] | None: ...

    def delete_template(self, empresa_id: int | None, usuario_id: int, template_id: int) -> bool: ...


def _serialize_content(content: str | dict[str, Any] | None) -> str | None:
    """Editor payloads arrive as objects and are stored as JSON text."""
    if isinstance(content, dict):
        return json.dumps(content, ensure_ascii=False)
    return content


def _template_not_found(template_id: int) -> ApiError:
    return not_found(ApiErrorCode.TEMPLATE_NOT_FOUND, f"Template not found: {template_id}")


class TemplatesService:
    def __init__(self, *, repo: TemplatesRepositoryProtocol) -> None:
        self._repo = repo

    @staticmethod
    def list_variables() -> list[dict[str, Any]]:
        return list_variable_groups()

    def list_templates(self, user: CurrentUser) -> list[dict[str, Any]]:
        return self._repo.list_templates(user.empresa_id, user.usuario_id)

    def get_template(self, user: CurrentUser, template_id: int) -> dict[str, Any]:
        row = self._repo.get_template(user.empresa_id, user.usuario_id, template_id)
        if row is None:
            raise _template_not_found(template_id)
        return row

    def create_template(self, user: CurrentUser, req: TemplateRequest) -> dict[str, Any]:
        empresa_id = user.require_empresa()
        title = optional_text(req.title)
        if not title:
            raise bad_request(ApiErrorCode.TEMPLATE_INVALID, "title is required")
        return self._repo.create_template(
            empresa_id, user.usuario_id, title, _serialize_content(req.content)
        )

    def update_template(
        self, user: CurrentUser, template_id: int, req: TemplateRequest
    ) -> dict[str, Any]:
        sent = req.model_dump(exclude_unset=True)
        fields: dict[str, Any] = {}
        if "title" in sent:
            title = optional_text(sent["title"])
            if not title:
                raise bad_request(ApiErrorCode.TEMPLATE_INVALID, "title cannot be blank")
            fields["title"] = title
        if "content" in sent:
            fields["content"] = _serialize_content(sent["content"])
        updated = self._repo.update_template(user.empresa_id, user.usuario_id, template_id, fields)
        if updated is None:
            raise _template_not_found(template_id)
        return updated

    def delete_template(self, user: CurrentUser, template_id: int) -> None:
        if not self._repo.delete_template(user.empresa_id, user.usuario_id, template_id):
            raise _template_not_found(template_id)
