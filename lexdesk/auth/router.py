"""Authentication API router."""

from __future__ import annotations

from typing import Any, Callable

from fastapi import APIRouter, Header, Request

from lexdesk.api.contracts import (
    ApiErrorResponse,
    AuthMeResponse,
    AuthSessionResponse,
    LogoutResponse,
)
from lexdesk.api.errors import ApiError, ApiErrorCode
from lexdesk.auth.middleware import extract_bearer_token
from lexdesk.auth.models import (
    ChangePasswordRequest,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
)
from lexdesk.auth.rate_limiter import LoginRateLimiter
from lexdesk.auth.service import AuthService


def create_auth_router(
    service: AuthService,
    rate_limiter: LoginRateLimiter,
    *,
    on_login: Callable[[int], None] | None = None,
) -> APIRouter:
    """Build authentication router with login/refresh/logout/me endpoints."""
    router = APIRouter(tags=["auth"])

    def claims_from_header(authorization: str | None) -> dict[str, Any]:
        token = extract_bearer_token(authorization)
        if not token:
            raise ApiError(
                status_code=401,
                error_code=ApiErrorCode.AUTH_MISSING_TOKEN,
                message="Missing bearer token",
            )
        return service.verify_access_token(token)

    @router.post(
        "/api/auth/login",
        response_model=AuthSessionResponse,
        responses={401: {"model": ApiErrorResponse}, 429: {"model": ApiErrorResponse}},
    )
    def login(req: LoginRequest, request: Request) -> AuthSessionResponse:
        """Authenticate user and return token pair."""
        client_ip = (request.client.host if request.client else "") or "unknown"
        normalized_email = req.email.strip().lower()
        rate_limiter.assert_allowed(email=normalized_email, client_ip=client_ip)
        try:
            session = service.login(req.email, req.password)
        except ApiError:
            rate_limiter.record_failure(email=normalized_email, client_ip=client_ip)
            raise
        rate_limiter.record_success(email=normalized_email, client_ip=client_ip)
        usuario_id = session.user.get("usuario_id")
        if on_login is not None and isinstance(usuario_id, int):
            on_login(usuario_id)
        return AuthSessionResponse(**session.model_dump())

    @router.post(
        "/api/auth/refresh",
        response_model=AuthSessionResponse,
        responses={401: {"model": ApiErrorResponse}},
    )
    def refresh(req: RefreshRequest) -> AuthSessionResponse:
        """Rotate refresh token and issue new session tokens."""
        session = service.refresh(req.refresh_token)
        return AuthSessionResponse(**session.model_dump())

    @router.post("/api/auth/logout", response_model=LogoutResponse)
    def logout(req: LogoutRequest) -> LogoutResponse:
        service.logout(req.refresh_token)
        return LogoutResponse(status="ok")

    @router.get(
        "/api/auth/me",
        response_model=AuthMeResponse,
        responses={401: {"model": ApiErrorResponse}},
    )
    def me(authorization: str | None = Header(default=None)) -> AuthMeResponse:
        """Return current authenticated user claims from access token."""
        return AuthMeResponse(user=claims_from_header(authorization))

    @router.post(
        "/api/auth/change-password",
        response_model=LogoutResponse,
        responses={401: {"model": ApiErrorResponse}},
    )
    def change_password(
        req: ChangePasswordRequest,
        authorization: str | None = Header(default=None),
    ) -> LogoutResponse:
        claims = claims_from_header(authorization)
        service.change_password(
            email=str(claims["email"]),
            current_password=req.current_password,
            new_password=req.new_password,
        )
        return LogoutResponse(status="ok")

    return router
