from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from lexdesk.api.context import create_current_user_dependency
from lexdesk.api.errors import ApiError, ApiErrorCode
from lexdesk.auth.middleware import create_auth_middleware, extract_bearer_token, is_public_path

ADMIN_ROW = {"id": 1, "email": "admin@local", "empresa": 3, "nome_completo": "Admin"}


class _Users:
    def get_user(self, usuario_id: int):
        return ADMIN_ROW if usuario_id == 1 else None

    def get_user_by_email(self, email: str):
        return ADMIN_ROW if email == "admin@local" else None


class _Auth:
    def __init__(self, enabled: bool) -> None:
        self.enabled = enabled
        self.admin_email = "admin@local"

    def verify_access_token(self, token: str) -> dict:
        if token != "good":
            raise ApiError(
                status_code=401, error_code=ApiErrorCode.AUTH_TOKEN_INVALID, message="bad token"
            )
        return {"usuario_id": 1, "role": "admin", "empresa_id": 3}


def _request(path: str = "/api/clientes", authorization: str | None = None, user=None):
    headers = {"authorization": authorization} if authorization else {}
    return SimpleNamespace(
        url=SimpleNamespace(path=path), headers=headers, state=SimpleNamespace(user=user)
    )


async def _call_next(request):
    return "passed"


def test_extract_bearer_token() -> None:
    assert extract_bearer_token("Bearer abc ") == "abc"
    assert extract_bearer_token("bearer abc") == "abc"
    assert extract_bearer_token("Basic abc") == ""
    assert extract_bearer_token(None) == ""


def test_public_paths() -> None:
    assert is_public_path("/docs")
    assert is_public_path("/api/health")
    assert is_public_path("/api/public/blog-posts")
    assert not is_public_path("/api/financial/flows")


def test_middleware_rejects_missing_and_invalid_tokens() -> None:
    middleware = create_auth_middleware(_Auth(enabled=True))

    missing = asyncio.run(middleware(_request(), _call_next))
    invalid = asyncio.run(middleware(_request(authorization="Bearer nope"), _call_next))

    assert missing.status_code == 401
    assert b"AUTH_MISSING_TOKEN" in missing.body
    assert invalid.status_code == 401
    assert b"AUTH_TOKEN_INVALID" in invalid.body


def test_middleware_attaches_claims_and_skips_public_paths() -> None:
    middleware = create_auth_middleware(_Auth(enabled=True))
    request = _request(authorization="Bearer good")

    assert asyncio.run(middleware(request, _call_next)) == "passed"
    assert request.state.user["empresa_id"] == 3
    assert asyncio.run(middleware(_request("/api/health"), _call_next)) == "passed"


def test_current_user_from_claims() -> None:
    dependency = create_current_user_dependency(users=_Users(), auth=_Auth(enabled=True))

    user = dependency(_request(user={"usuario_id": 1, "role": "admin"}))

    assert user.usuario_id == 1
    assert user.empresa_id == 3
    assert user.role == "admin"
    assert user.nome == "Admin"


def test_current_user_without_auth_runs_as_admin() -> None:
    dependency = create_current_user_dependency(users=_Users(), auth=_Auth(enabled=False))

    user = dependency(_request())

    assert user.email == "admin@local"
    assert user.role == "admin"


def test_current_user_errors() -> None:
    dependency = create_current_user_dependency(users=_Users(), auth=_Auth(enabled=True))

    with pytest.raises(ApiError) as missing:
        dependency(_request())
    with pytest.raises(ApiError) as unknown:
        dependency(_request(user={"usuario_id": 99}))

    assert missing.value.status_code == 401
    assert unknown.value.error_code == "USER_NOT_FOUND"
