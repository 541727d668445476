"""Blog posts: admin CRUD plus the public read used by the marketing site."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, Protocol

from lexdesk.api.errors import ApiError, ApiErrorCode, bad_request, not_found
from lexdesk.core.dates import parse_datetime

LOGGER = logging.getLogger(__name__)

REQUIRED_TEXT_FIELDS = (
    ("title", ("title",)),
    ("description", ("description",)),
    ("author", ("author",)),
    ("read_time", ("readTime", "read_time")),
    ("category", ("category",)),
    ("slug", ("slug",)),
)
DATE_KEYS = ("date", "publishedAt", "published_at")


class BlogPostsRepositoryProtocol(Protocol):
    def list_posts(self, *, slug: str | None = None) -> list[dict[str, Any]]: ...

    def get_post(self, post_id: int) -> dict[str, Any] | None: ...

    def create_post(self, fields: dict[str, Any]) -> dict[str, Any]: ...

    def update_post(self, post_id: int, fields: dict[str, Any]) -> dict[str, Any] | None: ...

    def delete_post(self, post_id: int) -> bool: ...


def _invalid(message: str) -> ApiError:
    return bad_request(ApiErrorCode.BLOG_POST_INVALID, message)


def _first_key(data: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _required_text(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise _invalid(f'Field "{name}" is required.')
    return value.strip()


def _optional_text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _parse_tags(value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(tag, str) for tag in value):
        raise _invalid('Field "tags" must be an array of strings.')
    return [tag.strip() for tag in value if tag.strip()]


def _parse_featured(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return False


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso_timestamp(value: Any) -> str | None:
    """``2026-01-31T12:00:00.000Z`` for stored timestamps (naive means UTC)."""
    parsed = parse_datetime(value)
    if parsed is None:
        return None
    return _as_utc(parsed).strftime("%Y-%m-%dT%H:%M:%S.") + f"{parsed.microsecond // 1000:03d}Z"


def build_post_fields(data: Any) -> dict[str, Any]:
    """Validate an admin payload (camelCase or snake_case keys) into columns."""
    if not isinstance(data, dict):
        raise _invalid("Invalid request body.")
    fields: dict[str, Any] = {
        column: _required_text(_first_key(data, keys), keys[0])
        for column, keys in REQUIRED_TEXT_FIELDS
    }
    raw_date = _first_key(data, DATE_KEYS)
    if not isinstance(raw_date, str):
        raise _invalid('Field "date" is required.')
    published = parse_datetime(raw_date)
    if published is None:
        raise _invalid('Field "date" is invalid.')
    fields["published_at"] = _as_utc(published).isoformat()
    fields["tags"] = _parse_tags(data.get("tags"))
    fields["content"] = _optional_text(data.get("content"))
    fields["image"] = _optional_text(data.get("image"))
    fields["featured"] = int(_parse_featured(data.get("featured")))
    return fields


def map_post(row: dict[str, Any]) -> dict[str, Any]:
    try:
        tags = json.loads(row.get("tags") or "[]")
    except ValueError:
        tags = []
    return {
        "id": row["id"],
        "title": row["title"],
        "description": row["description"],
        "content": row.get("content"),
        "author": row["author"],
        "date": to_iso_timestamp(row.get("published_at")),
        "readTime": row["read_time"],
        "category": row["category"],
        "image": row.get("image"),
        "slug": row["slug"],
        "tags": tags if isinstance(tags, list) else [],
        "featured": bool(row.get("featured")),
        "createdAt": to_iso_timestamp(row.get("created_at")),
        "updatedAt": to_iso_timestamp(row.get("updated_at")),
    }


def _post_not_found(post_id: int) -> ApiError:
    return not_found(ApiErrorCode.BLOG_POST_NOT_FOUND, f"Blog post not found: {post_id}")


def _slug_conflict() -> ApiError:
    return ApiError(
        status_code=409,
        error_code=ApiErrorCode.BLOG_POST_CONFLICT,
        message="A blog post with the same slug already exists.",
    )


class BlogPostsService:
    def __init__(
        self, *, repo: BlogPostsRepositoryProtocol, logger: logging.Logger = LOGGER
    ) -> None:
        self._repo = repo
        self._logger = logger

    def list_posts(self, slug: str | None = None) -> list[dict[str, Any]]:
        return [map_post(row) for row in self._repo.list_posts(slug=(slug or "").strip() or None)]

    def get_post(self, post_id: int) -> dict[str, Any]:
        row = self._repo.get_post(post_id)
        if row is None:
            raise _post_not_found(post_id)
        return map_post(row)

    def create_post(self, data: Any) -> dict[str, Any]:
        fields = build_post_fields(data)
        try:
            row = self._repo.create_post(fields)
        except sqlite3.IntegrityError as exc:
            raise _slug_conflict() from exc
        self._logger.info("blog_post_created")
        return map_post(row)

    def update_post(self, post_id: int, data: Any) -> dict[str, Any]:
        fields = build_post_fields(data)
        try:
            row = self._repo.update_post(post_id, fields)
        except sqlite3.IntegrityError as exc:
            raise _slug_conflict() from exc
        if row is None:
            raise _post_not_found(post_id)
        return map_post(row)

    def delete_post(self, post_id: int) -> None:
        if not self._repo.delete_post(post_id):
            raise _post_not_found(post_id)
