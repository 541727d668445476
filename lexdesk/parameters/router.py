"""FastAPI router for configurable lookup tables."""

from __future__ import annotations

from typing import Any, Callable

from fastapi import APIRouter, Depends

from lexdesk.api.context import CurrentUser
from lexdesk.api.contracts import ApiErrorResponse, DeletedResponse, ItemsResponse
from lexdesk.parameters.service import ParameterRequest, ParametersService

_ERRORS = {400: {"model": ApiErrorResponse}, 404: {"model": ApiErrorResponse}}


def create_parameters_router(
    *, service: ParametersService, current_user: Callable[..., CurrentUser]
) -> APIRouter:
    router = APIRouter(tags=["parametros"])
    user_dep = Depends(current_user)

    @router.get("/api/parametros")
    def list_parameter_kinds() -> ItemsResponse:
        return ItemsResponse(items=service.list_kinds())

    @router.get("/api/parametros/fluxo-trabalho/menus")
    def list_menu_workflows(user: CurrentUser = user_dep) -> ItemsResponse:
        """Active workflows flagged to appear in the navigation menu."""
        return ItemsResponse(items=service.list_menu_workflows(user))

    @router.get("/api/parametros/{kind}", responses=_ERRORS)
    def list_parameters(kind: str, user: CurrentUser = user_dep) -> ItemsResponse:
        return ItemsResponse(items=service.list_items(user, kind))

    @router.get("/api/parametros/{kind}/{item_id}", responses=_ERRORS)
    def get_parameter(kind: str, item_id: int, user: CurrentUser = user_dep) -> dict[str, Any]:
        return service.get_item(user, kind, item_id)

    @router.post("/api/parametros/{kind}", status_code=201, responses=_ERRORS)
    def create_parameter(
        kind: str, req: ParameterRequest, user: CurrentUser = user_dep
    ) -> dict[str, Any]:
        return service.create_item(user, kind, req)

    @router.put("/api/parametros/{kind}/{item_id}", responses=_ERRORS)
    def update_parameter(
        kind: str, item_id: int, req: ParameterRequest, user: CurrentUser = user_dep
    ) -> dict[str, Any]:
        return service.update_item(user, kind, item_id, req)

    @router.delete("/api/parametros/{kind}/{item_id}", responses=_ERRORS)
    def delete_parameter(kind: str, item_id: int, user: CurrentUser = user_dep) -> DeletedResponse:
        service.delete_item(user, kind, item_id)
        return DeletedResponse(id=item_id, deleted=True)

    return router
