"""Generate, store and render opportunity documents from templates."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Protocol

from pydantic import BaseModel, ConfigDict, Field

from lexdesk.api.context import CurrentUser
from lexdesk.api.errors import ApiError, ApiErrorCode, bad_request, not_found
from lexdesk.core.normalizers import parse_positive_int
from lexdesk.documents.pdf import render_html_pdf
from lexdesk.documents.variables import OpportunityData, build_variables
from lexdesk.templates.engine import (
    fill_editor_nodes,
    normalize_variables,
    parse_stored_document_content,
    parse_template_content,
    replace_variables,
    serialize_document_content,
)

LOGGER = logging.getLogger(__name__)


class GenerateDocumentRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    template_id: Any = Field(default=None, alias="templateId")
    title: Any = None


class DocumentsRepositoryProtocol(Protocol):
    def opportunity_exists(self, empresa_id: int, oportunidade_id: int) -> bool: ...

    def fetch_opportunity_data(
        self, empresa_id: int, oportunidade_id: int
    ) -> OpportunityData | None: ...

    def list_documents(self, oportunidade_id: int) -> list[dict[str, Any]]: ...

    def get_document(self, oportunidade_id: int, documento_id: int) -> dict[str, Any] | None: ...

    def create_document(
        self,
        oportunidade_id: int,
        template_id: int,
        title: str,
        content: str,
        variables: dict[str, Any],
    ) -> dict[str, Any]: ...

    def delete_document(self, oportunidade_id: int, documento_id: int) -> bool: ...


class TemplateLookup(Protocol):
    def get_template(
        self, empresa_id: int | None, usuario_id: int, template_id: int
    ) -> dict[str, Any] | None: ...


def document_payload(row: dict[str, Any]) -> dict[str, Any]:
    """Expand a stored ``oportunidade_documentos`` row for API responses."""
    html, nodes, metadata = parse_stored_document_content(row.get("content"))
    return {
        "id": row["id"],
        "oportunidade_id": row["oportunidade_id"],
        "template_id": row.get("template_id"),
        "title": row["title"],
        "created_at": row["created_at"],
        "variables": normalize_variables(row.get("variables")),
        "content_html": html,
        "content_editor_json": nodes,
        "metadata": metadata,
    }


def _positive_id(value: Any, name: str) -> int:
    parsed = parse_positive_int(value)
    if parsed is None:
        raise bad_request(ApiErrorCode.DOCUMENT_INVALID, f"Invalid {name}")
    return parsed


def _opportunity_not_found(oportunidade_id: int) -> ApiError:
    return not_found(ApiErrorCode.OPPORTUNITY_NOT_FOUND, f"Opportunity not found: {oportunidade_id}")


def _document_not_found(documento_id: int) -> ApiError:
    return not_found(ApiErrorCode.DOCUMENT_NOT_FOUND, f"Document not found: {documento_id}")


class OpportunityDocumentsService:
    """Documents belong to an opportunity of the caller's company."""

    def __init__(
        self,
        *,
        repo: DocumentsRepositoryProtocol,
        templates: TemplateLookup,
        logger: logging.Logger = LOGGER,
        clock: Callable[[], datetime] = datetime.now,
        pdf_renderer: Callable[[str], bytes] = render_html_pdf,
    ) -> None:
        self._repo = repo
        self._templates = templates
        self._logger = logger
        self._clock = clock
        self._pdf_renderer = pdf_renderer

    def _resolve(self, user: CurrentUser, oportunidade_id: Any) -> tuple[int, int]:
        empresa_id = user.require_empresa(status_code=403)
        opportunity = _positive_id(oportunidade_id, "opportunity id")
        if not self._repo.opportunity_exists(empresa_id, opportunity):
            raise _opportunity_not_found(opportunity)
        return empresa_id, opportunity

    def list_documents(self, user: CurrentUser, oportunidade_id: Any) -> list[dict[str, Any]]:
        _, opportunity = self._resolve(user, oportunidade_id)
        return [document_payload(row) for row in self._repo.list_documents(opportunity)]

    def get_document(
        self, user: CurrentUser, oportunidade_id: Any, documento_id: Any
    ) -> dict[str, Any]:
        _, opportunity = self._resolve(user, oportunidade_id)
        documento = _positive_id(documento_id, "document id")
        row = self._repo.get_document(opportunity, documento)
        if row is None:
            raise _document_not_found(documento)
        return document_payload(row)

    def create_document(
        self, user: CurrentUser, oportunidade_id: Any, req: GenerateDocumentRequest
    ) -> dict[str, Any]:
        empresa_id, opportunity = self._resolve(user, oportunidade_id)
        template_id = _positive_id(req.template_id, "templateId")

        title_override: str | None = None
        if "title" in req.model_fields_set and req.title is not None:
            if not isinstance(req.title, str) or not req.title.strip():
                raise bad_request(ApiErrorCode.DOCUMENT_INVALID, "title must be a non-empty string")
            title_override = req.title.strip()

        template = self._templates.get_template(empresa_id, user.usuario_id, template_id)
        if template is None:
            raise not_found(ApiErrorCode.TEMPLATE_NOT_FOUND, f"Template not found: {template_id}")

        data = self._repo.fetch_opportunity_data(empresa_id, opportunity)
        if data is None:
            raise _opportunity_not_found(opportunity)

        variables = build_variables(data, now=self._clock())
        html, nodes, metadata = parse_template_content(template.get("content"))
        filled_html = replace_variables(html, variables)
        filled_nodes = fill_editor_nodes(nodes, variables) if nodes is not None else None

        row = self._repo.create_document(
            opportunity,
            template_id,
            title_override or str(template["title"]),
            serialize_document_content(filled_html, filled_nodes, metadata),
            variables,
        )
        self._logger.info(
            "opportunity_document_created",
            extra={
                "empresa_id": empresa_id,
                "user_id": user.usuario_id,
                "document_id": row["id"],
            },
        )
        return document_payload(row)

    def delete_document(self, user: CurrentUser, oportunidade_id: Any, documento_id: Any) -> None:
        _, opportunity = self._resolve(user, oportunidade_id)
        documento = _positive_id(documento_id, "document id")
        if not self._repo.delete_document(opportunity, documento):
            raise _document_not_found(documento)

    def render_pdf(
        self, user: CurrentUser, oportunidade_id: Any, documento_id: Any
    ) -> tuple[str, bytes]:
        """Return ``(filename, pdf_bytes)`` for a stored document."""
        document = self.get_document(user, oportunidade_id, documento_id)
        return f"documento-{document['id']}.pdf", self._pdf_renderer(document["content_html"])
