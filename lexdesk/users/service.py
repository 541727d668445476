"""User and access-profile administration."""

from __future__ import annotations

import logging
import sqlite3
from typing import Any, Protocol

from lexdesk.api.context import CurrentUser
from lexdesk.api.errors import ApiError, ApiErrorCode, bad_request, not_found
from lexdesk.core.normalizers import optional_text, parse_bool, parse_optional_int
from lexdesk.users.models import ProfileRequest, UserRequest
from lexdesk.users.modules import list_modules, sanitize_module_ids

LOGGER = logging.getLogger(__name__)


class UsersRepositoryProtocol(Protocol):
    def list_users(self, empresa_id: int | None) -> list[dict[str, Any]]: ...

    def get_user(self, usuario_id: int) -> dict[str, Any] | None: ...

    def get_user_by_email(self, email: str) -> dict[str, Any] | None: ...

    def create_user(self, fields: dict[str, Any]) -> dict[str, Any]: ...

    def update_user(self, usuario_id: int, fields: dict[str, Any]) -> dict[str, Any] | None: ...

    def delete_user(self, usuario_id: int) -> bool: ...

    def exists(self, table: str, row_id: int) -> bool: ...

    def list_profiles(self) -> list[dict[str, Any]]: ...

    def get_profile(self, perfil_id: int) -> dict[str, Any] | None: ...

    def create_profile(self, *, nome: str, ativo: bool, modulos: list[str]) -> dict[str, Any]: ...

    def update_profile(self, perfil_id: int, fields: dict[str, Any]) -> dict[str, Any] | None: ...

    def delete_profile(self, perfil_id: int) -> bool: ...


class CredentialsStore(Protocol):
    def register_credentials(
        self, *, email: str, password: str, usuario_id: int, role: str = "user"
    ) -> None: ...

    def check_email_available(self, email: str, usuario_id: int | None = None) -> None: ...

    def change_email(self, usuario_id: int, email: str) -> None: ...

    def revoke_credentials(self, usuario_id: int) -> None: ...


def _user_invalid(message: str) -> ApiError:
    return bad_request(ApiErrorCode.USER_INVALID, message)


class ProfilesService:
    """CRUD for ``perfis`` with module-id normalization."""

    def __init__(self, *, repo: UsersRepositoryProtocol) -> None:
        self._repo = repo

    def list_modules(self) -> list[dict[str, str]]:
        return list_modules()

    def list_profiles(self) -> list[dict[str, Any]]:
        return self._repo.list_profiles()

    def get_profile(self, perfil_id: int) -> dict[str, Any]:
        profile = self._repo.get_profile(perfil_id)
        if profile is None:
            raise not_found(ApiErrorCode.PROFILE_NOT_FOUND, f"Profile not found: {perfil_id}")
        return profile

    def _validated_fields(self, req: ProfileRequest, *, partial: bool) -> dict[str, Any]:
        sent = req.model_dump(exclude_unset=True)
        fields: dict[str, Any] = {}
        if "nome" in sent or not partial:
            nome = optional_text(req.nome)
            if not nome:
                raise bad_request(ApiErrorCode.PROFILE_INVALID, "nome is required")
            fields["nome"] = nome
        if "ativo" in sent or not partial:
            try:
                fields["ativo"] = parse_bool(req.ativo, default=True)
            except ValueError as exc:
                raise bad_request(ApiErrorCode.PROFILE_INVALID, str(exc)) from exc
        if "modulos" in sent or not partial:
            try:
                fields["modulos"] = sanitize_module_ids(req.modulos)
            except ValueError as exc:
                raise bad_request(ApiErrorCode.PROFILE_INVALID, str(exc)) from exc
        return fields

    def create_profile(self, req: ProfileRequest) -> dict[str, Any]:
        fields = self._validated_fields(req, partial=False)
        return self._repo.create_profile(**fields)

    def update_profile(self, perfil_id: int, req: ProfileRequest) -> dict[str, Any]:
        fields = self._validated_fields(req, partial=True)
        updated = self._repo.update_profile(perfil_id, fields)
        if updated is None:
            raise not_found(ApiErrorCode.PROFILE_NOT_FOUND, f"Profile not found: {perfil_id}")
        return updated

    def delete_profile(self, perfil_id: int) -> None:
        if not self._repo.delete_profile(perfil_id):
            raise not_found(ApiErrorCode.PROFILE_NOT_FOUND, f"Profile not found: {perfil_id}")


class UsersService:
    """CRUD for ``usuarios`` scoped to the caller's company."""

    def __init__(
        self,
        *,
        repo: UsersRepositoryProtocol,
        credentials: CredentialsStore,
        logger: logging.Logger = LOGGER,
    ) -> None:
        self._repo = repo
        self._credentials = credentials
        self._logger = logger

    def list_users(self, user: CurrentUser) -> list[dict[str, Any]]:
        if user.empresa_id is None:
            return []
        return self._repo.list_users(user.empresa_id)

    def get_user(self, user: CurrentUser, usuario_id: int) -> dict[str, Any]:
        row = self._repo.get_user(usuario_id)
        if row is None or (row.get("empresa") != user.empresa_id and row["id"] != user.usuario_id):
            raise not_found(ApiErrorCode.USER_NOT_FOUND, f"User not found: {usuario_id}")
        return row

    def _reference(self, table: str, field: str, value: Any) -> int | None:
        try:
            parsed = parse_optional_int(value)
        except ValueError as exc:
            raise _user_invalid(f"Invalid {field} id") from exc
        if parsed is not None and not self._repo.exists(table, parsed):
            raise _user_invalid(f"{field} not found: {parsed}")
        return parsed

    def _validated_fields(
        self, req: UserRequest, *, partial: bool
    ) -> dict[str, Any]:
        sent = req.model_dump(exclude_unset=True)
        sent.pop("senha", None)
        fields: dict[str, Any] = {}

        for key in ("cpf", "oab", "telefone", "ultimo_login", "observacoes"):
            if key in sent:
                fields[key] = optional_text(sent[key])

        if "nome_completo" in sent or not partial:
            nome = optional_text(req.nome_completo)
            if not nome:
                raise _user_invalid("nome_completo is required")
            fields["nome_completo"] = nome

        if "email" in sent or not partial:
            email = (optional_text(req.email) or "").lower()
            if "@" not in email:
                raise _user_invalid("A valid email is required")
            fields["email"] = email

        if "status" in sent or not partial:
            try:
                fields["status"] = int(bool(parse_bool(req.status, default=True)))
            except ValueError as exc:
                raise _user_invalid("Invalid status value") from exc

        if "perfil" in sent:
            fields["perfil"] = self._reference("perfis", "perfil", req.perfil)
        if "empresa" in sent:
            fields["empresa"] = self._reference("empresas", "empresa", req.empresa)
        if "setor" in sent:
            fields["setor"] = self._reference("setores", "setor", req.setor)
        return fields

    def _assert_email_free(self, email: str, usuario_id: int | None = None) -> None:
        existing = self._repo.get_user_by_email(email)
        if existing is not None and existing["id"] != usuario_id:
            raise ApiError(
                status_code=409,
                error_code=ApiErrorCode.USER_CONFLICT,
                message=f"E-mail already in use: {email}",
            )

    def create_user(self, user: CurrentUser, req: UserRequest) -> dict[str, Any]:
        fields = self._validated_fields(req, partial=False)
        fields.setdefault("empresa", user.empresa_id)
        self._assert_email_free(fields["email"])
        if req.senha:
            self._credentials.check_email_available(fields["email"])
        try:
            created = self._repo.create_user(fields)
        except sqlite3.IntegrityError as exc:
            raise ApiError(
                status_code=409,
                error_code=ApiErrorCode.USER_CONFLICT,
                message="User conflicts with an existing record",
            ) from exc
        if req.senha:
            try:
                self._credentials.register_credentials(
                    email=created["email"], password=req.senha, usuario_id=created["id"]
                )
            except ApiError:
                self._repo.delete_user(created["id"])
                raise
        self._logger.info(
            "user_created",
            extra={"user_id": created["id"], "empresa_id": created.get("empresa")},
        )
        return created

    def update_user(
        self, user: CurrentUser, usuario_id: int, req: UserRequest
    ) -> dict[str, Any]:
        self.get_user(user, usuario_id)
        fields = self._validated_fields(req, partial=True)
        if "email" in fields:
            self._assert_email_free(fields["email"], usuario_id)
            self._credentials.check_email_available(fields["email"], usuario_id)
        updated = self._repo.update_user(usuario_id, fields)
        if updated is None:
            raise not_found(ApiErrorCode.USER_NOT_FOUND, f"User not found: {usuario_id}")
        if req.senha:
            self._credentials.register_credentials(
                email=updated["email"], password=req.senha, usuario_id=usuario_id
            )
        elif "email" in fields:
            self._credentials.change_email(usuario_id, updated["email"])
        return updated

    def delete_user(self, user: CurrentUser, usuario_id: int) -> None:
        if usuario_id == user.usuario_id:
            raise _user_invalid("Users cannot delete themselves")
        self.get_user(user, usuario_id)
        if not self._repo.delete_user(usuario_id):
            raise not_found(ApiErrorCode.USER_NOT_FOUND, f"User not found: {usuario_id}")
        self._credentials.revoke_credentials(usuario_id)
