"""FastAPI router for users and access profiles."""

from __future__ import annotations

from typing import Any, Callable

from fastapi import APIRouter, Depends

from lexdesk.api.context import CurrentUser
from lexdesk.api.contracts import ApiErrorResponse, DeletedResponse, ItemsResponse
from lexdesk.users.models import ProfileRequest, UserRequest
from lexdesk.users.service import ProfilesService, UsersService

_NOT_FOUND = {404: {"model": ApiErrorResponse}}
_INVALID = {400: {"model": ApiErrorResponse}, 409: {"model": ApiErrorResponse}}


class UsersRouter:
    """Builds ``/api/usuarios`` and ``/api/perfis`` routes."""

    def __init__(
        self,
        *,
        users: UsersService,
        profiles: ProfilesService,
        current_user: Callable[..., CurrentUser],
    ) -> None:
        self._users = users
        self._profiles = profiles
        self._current_user = current_user

    def build(self) -> APIRouter:
        router = APIRouter(tags=["usuarios"])
        current_user = Depends(self._current_user)

        @router.get("/api/perfis/modulos")
        def list_system_modules() -> ItemsResponse:
            return ItemsResponse(items=self._profiles.list_modules())

        @router.get("/api/perfis")
        def list_profiles() -> ItemsResponse:
            return ItemsResponse(items=self._profiles.list_profiles())

        @router.get("/api/perfis/{perfil_id}", responses=_NOT_FOUND)
        def get_profile(perfil_id: int) -> dict[str, Any]:
            return self._profiles.get_profile(perfil_id)

        @router.post("/api/perfis", status_code=201, responses=_INVALID)
        def create_profile(req: ProfileRequest) -> dict[str, Any]:
            return self._profiles.create_profile(req)

        @router.put("/api/perfis/{perfil_id}", responses={**_NOT_FOUND, **_INVALID})
        def update_profile(perfil_id: int, req: ProfileRequest) -> dict[str, Any]:
            return self._profiles.update_profile(perfil_id, req)

        @router.delete("/api/perfis/{perfil_id}", responses=_NOT_FOUND)
        def delete_profile(perfil_id: int) -> DeletedResponse:
            self._profiles.delete_profile(perfil_id)
            return DeletedResponse(id=perfil_id, deleted=True)

        @router.get("/api/usuarios")
        def list_users(user: CurrentUser = current_user) -> ItemsResponse:
            """List users of the caller's company."""
            return ItemsResponse(items=self._users.list_users(user))

        @router.get("/api/usuarios/{usuario_id}", responses=_NOT_FOUND)
        def get_user(usuario_id: int, user: CurrentUser = current_user) -> dict[str, Any]:
            return self._users.get_user(user, usuario_id)

        @router.post("/api/usuarios", status_code=201, responses=_INVALID)
        def create_user(req: UserRequest, user: CurrentUser = current_user) -> dict[str, Any]:
            return self._users.create_user(user, req)

        @router.put("/api/usuarios/{usuario_id}", responses={**_NOT_FOUND, **_INVALID})
        def update_user(
            usuario_id: int, req: UserRequest, user: CurrentUser = current_user
        ) -> dict[str, Any]:
            return self._users.update_user(user, usuario_id, req)

        @router.delete("/api/usuarios/{usuario_id}", responses=_NOT_FOUND)
        def delete_user(usuario_id: int, user: CurrentUser = current_user) -> DeletedResponse:
            self._users.delete_user(user, usuario_id)
            return DeletedResponse(id=usuario_id, deleted=True)

        return router


def create_users_router(
    *,
    users: UsersService,
    profiles: ProfilesService,
    current_user: Callable[..., CurrentUser],
) -> APIRouter:
    return UsersRouter(users=users, profiles=profiles, current_user=current_user).build()
