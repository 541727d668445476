"""Resolve the authenticated CRM user (and their company) for a request."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol

from fastapi import Request

from lexdesk.api.errors import ApiError, ApiErrorCode


@dataclass(frozen=True)
class CurrentUser:
    """The ``usuarios`` row behind the request, reduced to what handlers need."""

    usuario_id: int
    email: str
    empresa_id: int | None
    role: str = "user"
    nome: str = ""

    def require_empresa(self, *, status_code: int = 400) -> int:
        """Return the company id or fail when the user has no company."""
        if self.empresa_id is None:
            raise ApiError(
                status_code=status_code,
                error_code=ApiErrorCode.COMPANY_REQUIRED,
                message="Authenticated user is not linked to a company.",
            )
        return self.empresa_id


class UserLookup(Protocol):
    def get_user(self, usuario_id: int) -> dict[str, Any] | None:
        """Return a ``usuarios`` row by id."""

    def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        """Return a ``usuarios`` row by e-mail."""


class AuthState(Protocol):
    @property
    def enabled(self) -> bool:
        """Whether bearer tokens are enforced."""

    @property
    def admin_email(self) -> str:
        """Bootstrap admin e-mail used when auth is disabled."""


def create_current_user_dependency(
    *, users: UserLookup, auth: AuthState
) -> Callable[[Request], CurrentUser]:
    """Build a FastAPI dependency returning the request's ``CurrentUser``."""

    def current_user(request: Request) -> CurrentUser:
        claims = getattr(request.state, "user", None)
        if claims:
            usuario_id = claims.get("usuario_id")
            row = users.get_user(int(usuario_id)) if usuario_id is not None else None
            role = str(claims.get("role") or "user")
        elif auth.enabled:
            raise ApiError(
                status_code=401,
                error_code=ApiErrorCode.AUTH_MISSING_TOKEN,
                message="Missing bearer token",
            )
        else:
            row = users.get_user_by_email(auth.admin_email)
            role = "admin"

        if row is None:
            raise ApiError(
                status_code=404,
                error_code=ApiErrorCode.USER_NOT_FOUND,
                message="Authenticated user not found.",
            )
        return CurrentUser(
            usuario_id=int(row["id"]),
            email=str(row.get("email") or ""),
            empresa_id=row.get("empresa"),
            role=role,
            nome=str(row.get("nome_completo") or ""),
        )

    return current_user
