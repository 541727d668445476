"""FastAPI router for the caller's company profile."""

from __future__ import annotations

from typing import Any, Callable

from fastapi import APIRouter, Depends

from lexdesk.api.context import CurrentUser
from lexdesk.api.contracts import ApiErrorResponse
from lexdesk.company.service import CompanyRequest, CompanyService


def create_company_router(
    *, service: CompanyService, current_user: Callable[..., CurrentUser]
) -> APIRouter:
    router = APIRouter(tags=["empresa"])

    @router.get("/api/empresa", responses={404: {"model": ApiErrorResponse}})
    def get_company(user: CurrentUser = Depends(current_user)) -> dict[str, Any]:
        """Return the authenticated user's company."""
        return service.get_company(user)

    @router.put(
        "/api/empresa",
        responses={400: {"model": ApiErrorResponse}, 404: {"model": ApiErrorResponse}},
    )
    def update_company(
        req: CompanyRequest, user: CurrentUser = Depends(current_user)
    ) -> dict[str, Any]:
        return service.update_company(user, req)

    return router
