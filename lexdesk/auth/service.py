"""Authentication service for login, refresh and token verification."""

from __future__ import annotations

import hashlib
import time
import uuid
from typing import Any, Callable

from lexdesk.api.errors import ApiError, ApiErrorCode
from lexdesk.auth.models import AuthSession, AuthUser, RefreshTokenRecord
from lexdesk.auth.repository import AuthRepository
from lexdesk.core.config import AuthConfig
from lexdesk.core.security import (
    build_signed_token,
    decode_signed_token,
    hash_password,
    verify_password,
)


def _unauthorized(message: str, code: ApiErrorCode = ApiErrorCode.AUTH_TOKEN_INVALID) -> ApiError:
    return ApiError(status_code=401, error_code=code, message=message)


class AuthService:
    """Issues and validates session tokens for CRM users."""

    def __init__(
        self,
        repo: AuthRepository,
        config: AuthConfig,
        *,
        empresa_of: Callable[[int], int | None] | None = None,
    ) -> None:
        self._repo = repo
        self._config = config
        self._empresa_of = empresa_of

    @property
    def enabled(self) -> bool:
        """Return whether auth checks should be enforced."""
        return self._config.enabled

    @property
    def admin_email(self) -> str:
        return self._config.admin_email

    def bootstrap_admin_user(self, usuario_id: int) -> None:
        """Ensure the configured admin can log in as ``usuario_id``."""
        existing = self._repo.get_user_by_email(self._config.admin_email)
        if existing is not None:
            if existing.usuario_id != usuario_id:
                self._repo.upsert_user(existing.model_copy(update={"usuario_id": usuario_id}))
            return

        self._repo.upsert_user(
            AuthUser(
                user_id=uuid.uuid4().hex,
                email=self._config.admin_email,
                password_hash=hash_password(self._config.admin_password),
                usuario_id=usuario_id,
                role="admin",
                is_active=True,
            )
        )

    def check_email_available(self, email: str, usuario_id: int | None = None) -> None:
        """Raise 409 when ``email`` logs in an active account of another user."""
        normalized_email = email.strip().lower()
        existing = self._repo.get_user_by_email(normalized_email)
        if (
            existing is not None
            and existing.is_active
            and existing.usuario_id not in (None, usuario_id)
        ):
            raise ApiError(
                status_code=409,
                error_code=ApiErrorCode.USER_CONFLICT,
                message=f"E-mail already has credentials: {normalized_email}",
            )

    def register_credentials(
        self, *, email: str, password: str, usuario_id: int, role: str = "user"
    ) -> None:
        """Create or reset login credentials for a CRM user.

        Revoked credentials left behind by a deleted user are taken over.
        """
        normalized_email = email.strip().lower()
        self.check_email_available(normalized_email, usuario_id)
        existing = self._repo.get_user_by_email(normalized_email)
        if existing is not None and not (existing.is_active and existing.usuario_id == usuario_id):
            existing = None
        self._repo.upsert_user(
            AuthUser(
                user_id=existing.user_id if existing else uuid.uuid4().hex,
                email=normalized_email,
                password_hash=hash_password(password),
                usuario_id=usuario_id,
                role=existing.role if existing else role,
                is_active=True,
            )
        )

    def change_email(self, usuario_id: int, email: str) -> None:
        """Move the login of ``usuario_id`` to ``email``, keeping its password."""
        normalized_email = email.strip().lower()
        current = self._repo.get_user_by_usuario_id(usuario_id)
        if current is None or current.email == normalized_email:
            return
        self.check_email_available(normalized_email, usuario_id)
        self._repo.upsert_user(current.model_copy(update={"email": normalized_email}))

    def revoke_credentials(self, usuario_id: int) -> None:
        self._repo.deactivate_user(usuario_id)

    def login(self, email: str, password: str) -> AuthSession:
        """Authenticate credentials and issue access/refresh token pair."""
        user = self._repo.get_user_by_email(email.strip().lower())
        if user is None or not user.is_active:
            raise _unauthorized("Invalid credentials", ApiErrorCode.AUTH_INVALID_CREDENTIALS)
        if not verify_password(password, user.password_hash):
            raise _unauthorized("Invalid credentials", ApiErrorCode.AUTH_INVALID_CREDENTIALS)
        return self._issue_session_for_user(user)

    def change_password(
        self, *, email: str, current_password: str, new_password: str
    ) -> None:
        user = self._repo.get_user_by_email(email)
        if user is None or not verify_password(current_password, user.password_hash):
            raise _unauthorized("Invalid credentials", ApiErrorCode.AUTH_INVALID_CREDENTIALS)
        self._repo.upsert_user(
            user.model_copy(update={"password_hash": hash_password(new_password)})
        )

    def _empresa_id(self, user: AuthUser) -> int | None:
        if self._empresa_of is None or user.usuario_id is None:
            return None
        return self._empresa_of(user.usuario_id)

    def _issue_session_for_user(self, user: AuthUser) -> AuthSession:
        now_ts = int(time.time())
        claims = {
            "iss": self._config.issuer,
            "sub": user.user_id,
            "usuario_id": user.usuario_id,
            "empresa_id": self._empresa_id(user),
            "email": user.email,
            "role": user.role,
            "iat": now_ts,
        }
        access_payload = {
            **claims,
            "type": "access",
            "exp": now_ts + self._config.access_token_ttl_seconds,
            "jti": uuid.uuid4().hex,
        }
        refresh_payload = {
            **claims,
            "type": "refresh",
            "exp": now_ts + self._config.refresh_token_ttl_seconds,
            "jti": uuid.uuid4().hex,
        }

        access_token = build_signed_token(access_payload, self._config.secret_key)
        refresh_token = build_signed_token(refresh_payload, self._config.secret_key)

        self._repo.save_refresh_token(
            RefreshTokenRecord(
                jti=refresh_payload["jti"],
                user_id=user.user_id,
                token_hash=self._hash_token(refresh_token),
                expires_at=refresh_payload["exp"],
                revoked=False,
            )
        )

        return AuthSession(
            access_token=access_token,
            refresh_token=refresh_token,
            token_type="bearer",
            expires_in=self._config.access_token_ttl_seconds,
            user={
                "user_id": user.user_id,
                "usuario_id": user.usuario_id,
                "empresa_id": claims["empresa_id"],
                "email": user.email,
                "role": user.role,
            },
        )

    def refresh(self, refresh_token: str) -> AuthSession:
        """Validate refresh token and rotate token pair."""
        payload = self._decode_token(refresh_token, expected_type="refresh")
        jti = str(payload.get("jti") or "")
        record = self._repo.get_refresh_token(jti)
        if record is None or record.revoked:
            raise _unauthorized("Invalid refresh token")
        if record.expires_at < int(time.time()):
            self._repo.revoke_refresh_token(jti)
            raise _unauthorized("Refresh token expired")
        if record.token_hash != self._hash_token(refresh_token):
            self._repo.revoke_refresh_token(jti)
            raise _unauthorized("Refresh token mismatch")

        self._repo.revoke_refresh_token(jti)
        email = str(payload.get("email") or "").strip().lower()
        user = self._repo.get_user_by_email(email)
        if user is None or not user.is_active:
            raise _unauthorized("User not found")
        return self._issue_session_for_user(user)

    def logout(self, refresh_token: str | None) -> None:
        """Revoke provided refresh token when available."""
        if not refresh_token:
            return
        try:
            payload = self._decode_token(refresh_token, expected_type="refresh")
        except ApiError:
            return
        jti = str(payload.get("jti") or "")
        if jti:
            self._repo.revoke_refresh_token(jti)

    def verify_access_token(self, token: str) -> dict[str, Any]:
        """Validate access token and return normalized user claims."""
        payload = self._decode_token(token, expected_type="access")
        usuario_id = payload.get("usuario_id")
        empresa_id = payload.get("empresa_id")
        return {
            "user_id": str(payload.get("sub") or ""),
            "usuario_id": int(usuario_id) if isinstance(usuario_id, int) else None,
            "empresa_id": empresa_id if isinstance(empresa_id, int) else None,
            "email": str(payload.get("email") or ""),
            "role": str(payload.get("role") or "user"),
        }

    def _decode_token(self, token: str, *, expected_type: str) -> dict[str, Any]:
        try:
            payload = decode_signed_token(token, self._config.secret_key)
        except ValueError as exc:
            raise _unauthorized(str(exc)) from exc

        if str(payload.get("iss") or "") != self._config.issuer:
            raise _unauthorized("Invalid token issuer")
        if str(payload.get("type") or "") != expected_type:
            raise _unauthorized("Invalid token type")
        return payload

    @staticmethod
    def _hash_token(token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()
