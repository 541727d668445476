"""FastAPI router for opportunities, installments and invoices."""

from __future__ import annotations

from typing import Any, Callable

from fastapi import APIRouter, Body, Depends

from lexdesk.api.context import CurrentUser
from lexdesk.api.contracts import ApiErrorResponse, DeletedResponse, ItemsResponse
from lexdesk.opportunities.service import (
    InvoiceRequest,
    OpportunitiesService,
    OpportunityRequest,
)

_NOT_FOUND = {404: {"model": ApiErrorResponse}}
_ERRORS = {400: {"model": ApiErrorResponse}, 404: {"model": ApiErrorResponse}}


class OpportunitiesRouter:
    def __init__(
        self, *, service: OpportunitiesService, current_user: Callable[..., CurrentUser]
    ) -> None:
        self._service = service
        self._current_user = current_user

    def build(self) -> APIRouter:
        router = APIRouter(tags=["oportunidades"])
        current_user = Depends(self._current_user)

        @router.get("/api/oportunidades")
        def list_opportunities(user: CurrentUser = current_user) -> ItemsResponse:
            return ItemsResponse(items=self._service.list_opportunities(user))

        @router.get("/api/oportunidades/fase/{fase_id}")
        def list_opportunities_by_phase(
            fase_id: int, user: CurrentUser = current_user
        ) -> ItemsResponse:
            return ItemsResponse(items=self._service.list_opportunities(user, fase_id=fase_id))

        @router.get("/api/oportunidades/{oportunidade_id}", responses=_NOT_FOUND)
        def get_opportunity(
            oportunidade_id: int, user: CurrentUser = current_user
        ) -> dict[str, Any]:
            return self._service.get_opportunity(user, oportunidade_id)

        @router.get("/api/oportunidades/{oportunidade_id}/envolvidos", responses=_NOT_FOUND)
        def list_envolvidos(oportunidade_id: int, user: CurrentUser = current_user) -> ItemsResponse:
            return ItemsResponse(items=self._service.list_envolvidos(user, oportunidade_id))

        @router.post("/api/oportunidades", status_code=201, responses=_ERRORS)
        def create_opportunity(
            req: OpportunityRequest, user: CurrentUser = current_user
        ) -> dict[str, Any]:
            return self._service.create_opportunity(user, req)

        @router.put("/api/oportunidades/{oportunidade_id}", responses=_ERRORS)
        def update_opportunity(
            oportunidade_id: int, req: OpportunityRequest, user: CurrentUser = current_user
        ) -> dict[str, Any]:
            return self._service.update_opportunity(user, oportunidade_id, req)

        @router.patch("/api/oportunidades/{oportunidade_id}/status", responses=_ERRORS)
        def update_opportunity_status(
            oportunidade_id: int,
            status_id: Any = Body(default=None, embed=True),
            user: CurrentUser = current_user,
        ) -> dict[str, Any]:
            return self._service.update_single_field(user, oportunidade_id, "status_id", status_id)

        @router.patch("/api/oportunidades/{oportunidade_id}/etapa", responses=_ERRORS)
        def update_opportunity_stage(
            oportunidade_id: int,
            etapa_id: Any = Body(default=None, embed=True),
            user: CurrentUser = current_user,
        ) -> dict[str, Any]:
            return self._service.update_single_field(user, oportunidade_id, "etapa_id", etapa_id)

        @router.delete("/api/oportunidades/{oportunidade_id}", responses=_NOT_FOUND)
        def delete_opportunity(
            oportunidade_id: int, user: CurrentUser = current_user
        ) -> DeletedResponse:
            self._service.delete_opportunity(user, oportunidade_id)
            return DeletedResponse(id=oportunidade_id, deleted=True)

        @router.get("/api/oportunidades/{oportunidade_id}/parcelas", responses=_NOT_FOUND)
        def list_installments(
            oportunidade_id: int, user: CurrentUser = current_user
        ) -> ItemsResponse:
            return ItemsResponse(items=self._service.list_installments(user, oportunidade_id))

        @router.get("/api/oportunidades/{oportunidade_id}/faturamentos", responses=_NOT_FOUND)
        def list_invoices(oportunidade_id: int, user: CurrentUser = current_user) -> ItemsResponse:
            return ItemsResponse(items=self._service.list_invoices(user, oportunidade_id))

        @router.post(
            "/api/oportunidades/{oportunidade_id}/faturamentos",
            status_code=201,
            responses=_ERRORS,
        )
        def create_invoice(
            oportunidade_id: int, req: InvoiceRequest, user: CurrentUser = current_user
        ) -> dict[str, Any]:
            """Invoice the opportunity, settling its pending installments."""
            return self._service.create_invoice(user, oportunidade_id, req)

        return router


def create_opportunities_router(
    *, service: OpportunitiesService, current_user: Callable[..., CurrentUser]
) -> APIRouter:
    return OpportunitiesRouter(service=service, current_user=current_user).build()
