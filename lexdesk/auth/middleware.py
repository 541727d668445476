"""HTTP middleware that enforces auth on protected API routes."""

from __future__ import annotations

from typing import Callable

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

from lexdesk.api.contracts import ApiErrorResponse
from lexdesk.api.errors import ApiErrorCode, to_error_payload
from lexdesk.auth.service import AuthService

PUBLIC_PATHS = frozenset(
    {
        "/api/health",
        "/api/auth/login",
        "/api/auth/refresh",
        "/api/auth/logout",
    }
)
PUBLIC_PREFIXES = ("/api/public/",)


def extract_bearer_token(authorization: str | None) -> str:
    """Return the token part of a ``Bearer <token>`` header, or an empty string."""
    parts = (authorization or "").strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return ""
    return parts[1].strip()


def is_public_path(path: str) -> bool:
    if not path.startswith("/api/"):
        return True
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES)


def create_auth_middleware(service: AuthService) -> Callable:
    """Create middleware that validates access tokens when auth is enabled."""

    async def auth_middleware(request: Request, call_next: Callable):
        if not service.enabled or is_public_path(request.url.path):
            return await call_next(request)

        token = extract_bearer_token(request.headers.get("authorization"))
        if not token:
            return JSONResponse(
                status_code=401,
                content=ApiErrorResponse(
                    error_code=ApiErrorCode.AUTH_MISSING_TOKEN,
                    message="Missing bearer token",
                ).model_dump(),
            )

        try:
            user = service.verify_access_token(token)
        except HTTPException as exc:
            return JSONResponse(
                status_code=exc.status_code,
                content=to_error_payload(exc.detail, exc.status_code),
            )

        request.state.user = user
        return await call_next(request)

    return auth_middleware
