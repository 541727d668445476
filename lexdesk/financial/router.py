"""FastAPI router for financial flows."""

from __future__ import annotations

from typing import Any, Callable

from fastapi import APIRouter, Depends, Query

from lexdesk.api.context import CurrentUser
from lexdesk.api.contracts import (
    ApiErrorResponse,
    FinancialFlowSaveResponse,
    FinancialFlowsPageResponse,
    FinancialSummaryResponse,
)
from lexdesk.financial.service import FinancialService, FlowRequest, SettleRequest

_ERRORS = {400: {"model": ApiErrorResponse}, 404: {"model": ApiErrorResponse}}


class FinancialRouter:
    def __init__(
        self, *, service: FinancialService, current_user: Callable[..., CurrentUser]
    ) -> None:
        self._service = service
        self._current_user = current_user

    def build(self) -> APIRouter:
        router = APIRouter(tags=["financial"])
        current_user = Depends(self._current_user)

        @router.get("/api/financial/flows")
        def list_flows(
            page: str | None = Query(default=None),
            limit: str | None = Query(default=None),
            cliente_id: str | None = Query(default=None, alias="clienteId"),
            user: CurrentUser = current_user,
        ) -> FinancialFlowsPageResponse:
            """Flows and opportunity installments, newest due date first."""
            payload = self._service.list_flows(
                user, page=page, limit=limit, cliente_id=cliente_id
            )
            return FinancialFlowsPageResponse.model_validate(payload)

        @router.get("/api/financial/summary")
        def flows_summary(
            cliente_id: str | None = Query(default=None, alias="clienteId"),
            user: CurrentUser = current_user,
        ) -> FinancialSummaryResponse:
            return FinancialSummaryResponse(**self._service.summary(user, cliente_id=cliente_id))

        @router.get("/api/financial/flows/{flow_id}", responses=_ERRORS)
        def get_flow(flow_id: str, user: CurrentUser = current_user) -> dict[str, Any]:
            return {"flow": self._service.get_flow(user, flow_id)}

        @router.post("/api/financial/flows", status_code=201, responses=_ERRORS)
        def create_flow(
            req: FlowRequest, user: CurrentUser = current_user
        ) -> FinancialFlowSaveResponse:
            return FinancialFlowSaveResponse.model_validate(self._service.create_flow(user, req))

        @router.put("/api/financial/flows/{flow_id}", responses=_ERRORS)
        def update_flow(
            flow_id: str, req: FlowRequest, user: CurrentUser = current_user
        ) -> FinancialFlowSaveResponse:
            return FinancialFlowSaveResponse.model_validate(
                self._service.update_flow(user, flow_id, req)
            )

        @router.delete("/api/financial/flows/{flow_id}", responses=_ERRORS)
        def delete_flow(flow_id: str, user: CurrentUser = current_user) -> dict[str, Any]:
            return {"id": self._service.delete_flow(user, flow_id), "deleted": True}

        @router.post(
            "/api/financial/flows/{flow_id}/settle",
            responses={**_ERRORS, 409: {"model": ApiErrorResponse}},
        )
        def settle_flow(
            flow_id: str, req: SettleRequest, user: CurrentUser = current_user
        ) -> dict[str, Any]:
            """Mark a flow as paid unless a payment provider controls its status."""
            return self._service.settle_flow(user, flow_id, req)

        return router


def create_financial_router(
    *, service: FinancialService, current_user: Callable[..., CurrentUser]
) -> APIRouter:
    return FinancialRouter(service=service, current_user=current_user).build()
