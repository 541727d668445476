from __future__ import annotations

from dataclasses import dataclass

import pytest

from lexdesk.api.errors import ApiError
from lexdesk.auth.models import AuthUser, RefreshTokenRecord
from lexdesk.auth.service import AuthService
from lexdesk.core.config import AuthConfig


@dataclass
class _Repo:
    users: dict[str, AuthUser]
    refresh_tokens: dict[str, RefreshTokenRecord]

    def get_user_by_email(self, email: str) -> AuthUser | None:
        return self.users.get(email)

    def get_user_by_usuario_id(self, usuario_id: int) -> AuthUser | None:
        return next((u for u in self.users.values() if u.usuario_id == usuario_id), None)

    def upsert_user(self, user: AuthUser) -> None:
        for email, existing in list(self.users.items()):
            if user.usuario_id is not None and existing.usuario_id == user.usuario_id:
                del self.users[email]
        self.users[user.email] = user

    def deactivate_user(self, usuario_id: int) -> None:
        for email, user in list(self.users.items()):
            if user.usuario_id == usuario_id:
                self.users[email] = user.model_copy(update={"is_active": False})

    def save_refresh_token(self, record: RefreshTokenRecord) -> None:
        self.refresh_tokens[record.jti] = record

    def get_refresh_token(self, jti: str) -> RefreshTokenRecord | None:
        return self.refresh_tokens.get(jti)

    def revoke_refresh_token(self, jti: str) -> None:
        token = self.refresh_tokens.get(jti)
        if token is None:
            return
        token.revoked = True


def _build_service(empresa_of=None) -> AuthService:
    config = AuthConfig(
        enabled=True,
        secret_key="test-secret",
        access_token_ttl_seconds=300,
        refresh_token_ttl_seconds=1200,
        issuer="lexdesk-test",
        admin_email="admin@local",
        admin_password="admin123",
        admin_name="Administrador",
        admin_company="Escritório",
    )
    repo = _Repo(users={}, refresh_tokens={})
    service = AuthService(repo=repo, config=config, empresa_of=empresa_of)
    service.bootstrap_admin_user(1)
    return service


def test_auth_service_login_and_verify_access_token() -> None:
    service = _build_service()

    session = service.login("admin@local", "admin123")
    claims = service.verify_access_token(session.access_token)

    assert claims["email"] == "admin@local"
    assert claims["usuario_id"] == 1
    assert claims["role"] == "admin"
    assert session.token_type == "bearer"


def test_auth_service_login_carries_company_claim() -> None:
    service = _build_service(empresa_of=lambda usuario_id: 7)

    session = service.login("admin@local", "admin123")
    claims = service.verify_access_token(session.access_token)

    assert claims["empresa_id"] == 7
    assert session.user["empresa_id"] == 7


def test_auth_service_login_invalid_credentials_raises_api_error() -> None:
    service = _build_service()

    with pytest.raises(ApiError) as exc:
        service.login("admin@local", "bad")

    assert exc.value.status_code == 401
    assert exc.value.error_code == "AUTH_INVALID_CREDENTIALS"


def test_auth_service_refresh_rotates_token() -> None:
    service = _build_service()
    session = service.login("admin@local", "admin123")

    rotated = service.refresh(session.refresh_token)

    assert rotated.access_token
    assert rotated.refresh_token != session.refresh_token
    with pytest.raises(ApiError):
        service.refresh(session.refresh_token)


def test_auth_service_rejects_refresh_token_as_access_token() -> None:
    service = _build_service()
    session = service.login("admin@local", "admin123")

    with pytest.raises(ApiError) as exc:
        service.verify_access_token(session.refresh_token)

    assert exc.value.status_code == 401


def test_auth_service_register_credentials_and_revoke() -> None:
    service = _build_service()

    service.register_credentials(email="Ana@Office.Local", password="secret1", usuario_id=5)
    session = service.login("ana@office.local", "secret1")
    assert session.user["usuario_id"] == 5

    service.revoke_credentials(5)
    with pytest.raises(ApiError):
        service.login("ana@office.local", "secret1")


def test_auth_service_register_credentials_rejects_foreign_email() -> None:
    service = _build_service()

    with pytest.raises(ApiError) as exc:
        service.register_credentials(email="admin@local", password="x", usuario_id=9)

    assert exc.value.status_code == 409


def test_auth_service_change_password() -> None:
    service = _build_service()

    service.change_password(
        email="admin@local", current_password="admin123", new_password="novaSenha"
    )

    assert service.login("admin@local", "novaSenha").access_token
    with pytest.raises(ApiError):
        service.login("admin@local", "admin123")


def test_auth_service_register_credentials_takes_over_revoked_login() -> None:
    service = _build_service()
    service.register_credentials(email="caio@x.com", password="antiga", usuario_id=5)
    service.revoke_credentials(5)

    service.register_credentials(email="caio@x.com", password="nova", usuario_id=6)

    assert service.login("caio@x.com", "nova").user["usuario_id"] == 6


def test_auth_service_change_email_moves_login() -> None:
    service = _build_service()
    service.register_credentials(email="bia@old.com", password="s3nha", usuario_id=5)

    service.change_email(5, "Bia@New.com")

    assert service.login("bia@new.com", "s3nha").user["usuario_id"] == 5
    with pytest.raises(ApiError):
        service.login("bia@old.com", "s3nha")
    with pytest.raises(ApiError) as exc:
        service.change_email(5, "admin@local")
    assert exc.value.status_code == 409
