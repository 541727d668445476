"""FastAPI router for document templates."""

from __future__ import annotations

from typing import Callable

from fastapi import APIRouter, Depends

from lexdesk.api.context import CurrentUser
from lexdesk.api.contracts import ApiErrorResponse, DeletedResponse, ItemsResponse, TemplateResponse
from lexdesk.templates.service import TemplateRequest, TemplatesService

_ERRORS = {400: {"model": ApiErrorResponse}, 404: {"model": ApiErrorResponse}}


class TemplatesRouter:
    def __init__(
        self, *, service: TemplatesService, current_user: Callable[..., CurrentUser]
    ) -> None:
        self._service = service
        self._current_user = current_user

    def build(self) -> APIRouter:
        router = APIRouter(tags=["templates"])
        current_user = Depends(self._current_user)

        @router.get("/api/templates")
        def list_templates(user: CurrentUser = current_user) -> list[TemplateResponse]:
            return [TemplateResponse(**row) for row in self._service.list_templates(user)]

        @router.get("/api/templates/variables")
        def list_template_variables() -> ItemsResponse:
            """Placeholder keys accepted by the document generator."""
            return ItemsResponse(items=self._service.list_variables())

        @router.get("/api/templates/{template_id}", responses=_ERRORS)
        def get_template(template_id: int, user: CurrentUser = current_user) -> TemplateResponse:
            return TemplateResponse(**self._service.get_template(user, template_id))

        @router.post("/api/templates", status_code=201, responses=_ERRORS)
        def create_template(
            req: TemplateRequest, user: CurrentUser = current_user
        ) -> TemplateResponse:
            return TemplateResponse(**self._service.create_template(user, req))

        @router.put("/api/templates/{template_id}", responses=_ERRORS)
        def update_template(
            template_id: int, req: TemplateRequest, user: CurrentUser = current_user
        ) -> TemplateResponse:
            return TemplateResponse(**self._service.update_template(user, template_id, req))

        @router.delete("/api/templates/{template_id}", responses=_ERRORS)
        def delete_template(template_id: int, user: CurrentUser = current_user) -> DeletedResponse:
            self._service.delete_template(user, template_id)
            return DeletedResponse(id=template_id, deleted=True)

        return router


def create_templates_router(
    *, service: TemplatesService, current_user: Callable[..., CurrentUser]
) -> APIRouter:
    return TemplatesRouter(service=service, current_user=current_user).build()
