"""Repository for login credentials and refresh token persistence."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any

from pymongo import MongoClient
from pymongo.errors import PyMongoError

from lexdesk.auth.models import AuthUser, RefreshTokenRecord

LOGGER = logging.getLogger(__name__)


class AuthRepository:
    """Auth repository with MongoDB primary and file-store fallback."""

    def __init__(
        self,
        storage_dir: Path,
        *,
        mongodb_uri: str = "",
        mongodb_db: str = "lexdesk",
    ) -> None:
        self._fallback_dir = storage_dir
        self._fallback_dir.mkdir(parents=True, exist_ok=True)
        self._users_file = self._fallback_dir / "users.json"
        self._refresh_file = self._fallback_dir / "refresh_tokens.json"
        self._file_lock = Lock()

        self._mongo_users: Any = None
        self._mongo_refresh: Any = None

        if mongodb_uri:
            try:
                client: Any = MongoClient(mongodb_uri, serverSelectionTimeoutMS=3000)
                client.admin.command("ping")
                db = client[mongodb_db]
                self._mongo_users = db["auth_users"]
                self._mongo_refresh = db["auth_refresh_tokens"]
            except PyMongoError:
                LOGGER.warning("auth_mongo_unavailable_using_file_store", exc_info=True)
                self._mongo_users = None
                self._mongo_refresh = None

    def _read_json_file(self, path: Path) -> list[dict[str, Any]]:
        if not path.exists():
            return []
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            LOGGER.warning("auth_store_unreadable path=%s", path, exc_info=True)
            return []
        return payload if isinstance(payload, list) else []

    def _write_json_file(self, path: Path, items: list[dict[str, Any]]) -> None:
        path.write_text(json.dumps(items, ensure_ascii=False, indent=2), encoding="utf-8")

    def _find_user(self, field: str, value: Any) -> AuthUser | None:
        if self._mongo_users is not None:
            doc = self._mongo_users.find_one({field: value}, {"_id": 0})
            return AuthUser.model_validate(doc) if doc else None

        for row in self._read_json_file(self._users_file):
            if row.get(field) == value:
                return AuthUser.model_validate(row)
        return None

    def get_user_by_email(self, email: str) -> AuthUser | None:
        return self._find_user("email", email.strip().lower())

    def get_user_by_usuario_id(self, usuario_id: int) -> AuthUser | None:
        return self._find_user("usuario_id", usuario_id)

    def upsert_user(self, user: AuthUser) -> None:
        """Create or replace credentials, keyed by e-mail.

        Any other record held by the same ``usuario_id`` is dropped, so a user
        never keeps two logins.
        """
        doc = user.model_dump()
        doc["email"] = user.email.strip().lower()
        if self._mongo_users is not None:
            if user.usuario_id is not None:
                self._mongo_users.delete_many(
                    {"usuario_id": user.usuario_id, "email": {"$ne": doc["email"]}}
                )
            self._mongo_users.update_one({"email": doc["email"]}, {"$set": doc}, upsert=True)
            return

        with self._file_lock:
            items = self._read_json_file(self._users_file)
            next_items = [
                row
                for row in items
                if str(row.get("email", "")).strip().lower() != doc["email"]
                and (user.usuario_id is None or row.get("usuario_id") != user.usuario_id)
            ]
            next_items.append(doc)
            self._write_json_file(self._users_file, next_items)

    def deactivate_user(self, usuario_id: int) -> None:
        if self._mongo_users is not None:
            self._mongo_users.update_one(
                {"usuario_id": usuario_id}, {"$set": {"is_active": False}}
            )
            return

        with self._file_lock:
            items = self._read_json_file(self._users_file)
            for row in items:
                if row.get("usuario_id") == usuario_id:
                    row["is_active"] = False
            self._write_json_file(self._users_file, items)

    def save_refresh_token(self, record: RefreshTokenRecord) -> None:
        doc = record.model_dump()
        if self._mongo_refresh is not None:
            doc["expires_at_dt"] = datetime.fromtimestamp(record.expires_at, tz=timezone.utc)
            self._mongo_refresh.update_one({"jti": record.jti}, {"$set": doc}, upsert=True)
            return

        with self._file_lock:
            items = self._read_json_file(self._refresh_file)
            next_items = [row for row in items if str(row.get("jti", "")) != record.jti]
            next_items.append(doc)
            self._write_json_file(self._refresh_file, next_items)

    def get_refresh_token(self, jti: str) -> RefreshTokenRecord | None:
        if self._mongo_refresh is not None:
            doc = self._mongo_refresh.find_one({"jti": jti}, {"_id": 0})
            return RefreshTokenRecord.model_validate(doc) if doc else None

        for row in self._read_json_file(self._refresh_file):
            if str(row.get("jti", "")) == jti:
                return RefreshTokenRecord.model_validate(row)
        return None

    def revoke_refresh_token(self, jti: str) -> None:
        if self._mongo_refresh is not None:
            self._mongo_refresh.update_one({"jti": jti}, {"$set": {"revoked": True}})
            return

        with self._file_lock:
            items = self._read_json_file(self._refresh_file)
            for row in items:
                if str(row.get("jti", "")) == jti:
                    row["revoked"] = True
            self._write_json_file(self._refresh_file, items)
