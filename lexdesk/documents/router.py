"""FastAPI router for documents generated from an opportunity."""

from __future__ import annotations

from typing import Callable

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from lexdesk.api.context import CurrentUser
from lexdesk.api.contracts import ApiErrorResponse, DeletedResponse, OpportunityDocumentResponse
from lexdesk.documents.service import GenerateDocumentRequest, OpportunityDocumentsService

_BASE = "/api/oportunidades/{oportunidade_id}/documentos"
_ERRORS = {
    400: {"model": ApiErrorResponse},
    403: {"model": ApiErrorResponse},
    404: {"model": ApiErrorResponse},
}


class OpportunityDocumentsRouter:
    def __init__(
        self,
        *,
        service: OpportunityDocumentsService,
        current_user: Callable[..., CurrentUser],
    ) -> None:
        self._service = service
        self._current_user = current_user

    def build(self) -> APIRouter:
        router = APIRouter(tags=["documentos"])
        current_user = Depends(self._current_user)

        @router.get(_BASE, responses=_ERRORS)
        def list_documents(
            oportunidade_id: str, user: CurrentUser = current_user
        ) -> list[OpportunityDocumentResponse]:
            return [
                OpportunityDocumentResponse(**row)
                for row in self._service.list_documents(user, oportunidade_id)
            ]

        @router.post(_BASE, status_code=201, responses=_ERRORS)
        def create_document(
            oportunidade_id: str,
            req: GenerateDocumentRequest,
            user: CurrentUser = current_user,
        ) -> OpportunityDocumentResponse:
            return OpportunityDocumentResponse(
                **self._service.create_document(user, oportunidade_id, req)
            )

        @router.get(_BASE + "/{documento_id}", responses=_ERRORS)
        def get_document(
            oportunidade_id: str, documento_id: str, user: CurrentUser = current_user
        ) -> OpportunityDocumentResponse:
            return OpportunityDocumentResponse(
                **self._service.get_document(user, oportunidade_id, documento_id)
            )

        @router.get(
            _BASE + "/{documento_id}/pdf",
            response_class=Response,
            responses={**_ERRORS, 200: {"content": {"application/pdf": {}}}},
        )
        def get_document_pdf(
            oportunidade_id: str, documento_id: str, user: CurrentUser = current_user
        ) -> Response:
            filename, pdf = self._service.render_pdf(user, oportunidade_id, documento_id)
            return Response(
                content=pdf,
                media_type="application/pdf",
                headers={"Content-Disposition": f'inline; filename="{filename}"'},
            )

        @router.delete(_BASE + "/{documento_id}", responses=_ERRORS)
        def delete_document(
            oportunidade_id: str, documento_id: str, user: CurrentUser = current_user
        ) -> DeletedResponse:
            self._service.delete_document(user, oportunidade_id, documento_id)
            return DeletedResponse(id=int(documento_id), deleted=True)

        return router


def create_opportunity_documents_router(
    *,
    service: OpportunityDocumentsService,
    current_user: Callable[..., CurrentUser],
) -> APIRouter:
    return OpportunityDocumentsRouter(service=service, current_user=current_user).build()
