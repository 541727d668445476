"""FastAPI router for client records."""

from __future__ import annotations

from typing import Any, Callable

from fastapi import APIRouter, Depends, Query

from lexdesk.api.context import CurrentUser
from lexdesk.api.contracts import ApiErrorResponse, DeletedResponse, ItemsResponse
from lexdesk.clients.service import ClientRequest, ClientsService

_NOT_FOUND = {404: {"model": ApiErrorResponse}}


class ClientsRouter:
    def __init__(
        self, *, service: ClientsService, current_user: Callable[..., CurrentUser]
    ) -> None:
        self._service = service
        self._current_user = current_user

    def build(self) -> APIRouter:
        router = APIRouter(tags=["clientes"])
        current_user = Depends(self._current_user)

        @router.get("/api/clientes")
        def list_clients(
            query: str = Query(default="", alias="q"),
            user: CurrentUser = current_user,
        ) -> ItemsResponse:
            return ItemsResponse(items=self._service.list_clients(user, query))

        @router.get("/api/clientes/ativos/total")
        def count_active_clients(user: CurrentUser = current_user) -> dict[str, int]:
            """Number of active clients of the caller's company."""
            return {"total_clientes_ativos": self._service.count_active(user)}

        @router.get(
            "/api/clientes/cep/{cep}",
            responses={
                400: {"model": ApiErrorResponse},
                404: {"model": ApiErrorResponse},
                502: {"model": ApiErrorResponse},
            },
        )
        def lookup_cep(cep: str) -> dict[str, Any]:
            """Resolve a postal code into street, district, city and state."""
            return self._service.lookup_cep(cep)

        @router.get("/api/clientes/{cliente_id}", responses=_NOT_FOUND)
        def get_client(cliente_id: int, user: CurrentUser = current_user) -> dict[str, Any]:
            return self._service.get_client(user, cliente_id)

        @router.post(
            "/api/clientes", status_code=201, responses={400: {"model": ApiErrorResponse}}
        )
        def create_client(req: ClientRequest, user: CurrentUser = current_user) -> dict[str, Any]:
            return self._service.create_client(user, req)

        @router.put("/api/clientes/{cliente_id}", responses=_NOT_FOUND)
        def update_client(
            cliente_id: int, req: ClientRequest, user: CurrentUser = current_user
        ) -> dict[str, Any]:
            return self._service.update_client(user, cliente_id, req)

        @router.delete("/api/clientes/{cliente_id}", responses=_NOT_FOUND)
        def delete_client(cliente_id: int, user: CurrentUser = current_user) -> DeletedResponse:
            self._service.delete_client(user, cliente_id)
            return DeletedResponse(id=cliente_id, deleted=True)

        return router


def create_clients_router(
    *, service: ClientsService, current_user: Callable[..., CurrentUser]
) -> APIRouter:
    return ClientsRouter(service=service, current_user=current_user).build()
