"""SQLite persistence for ``blog_posts``."""

from __future__ import annotations

import json
from typing import Any

from lexdesk.core.database import Database, insert_row, require_created, update_row

_COLUMNS = (
    "id, title, description, content, author, published_at, read_time, category, "
    "image, slug, tags, featured, created_at, updated_at"
)
_ORDER = "ORDER BY published_at IS NULL, published_at DESC, created_at DESC, id DESC"


def _to_row(fields: dict[str, Any]) -> dict[str, Any]:
    return {**fields, "tags": json.dumps(fields.get("tags") or [], ensure_ascii=False)}


class BlogPostsRepository:
    def __init__(self, database: Database) -> None:
        self._db = database

    def list_posts(self, *, slug: str | None = None) -> list[dict[str, Any]]:
        if slug:
            return self._db.fetch_all(
                f"SELECT {_COLUMNS} FROM blog_posts WHERE slug = ? {_ORDER}", (slug,)
            )
        return self._db.fetch_all(f"SELECT {_COLUMNS} FROM blog_posts {_ORDER}")

    def get_post(self, post_id: int) -> dict[str, Any] | None:
        return self._db.fetch_one(f"SELECT {_COLUMNS} FROM blog_posts WHERE id = ?", (post_id,))

    def create_post(self, fields: dict[str, Any]) -> dict[str, Any]:
        with self._db.transaction() as connection:
            post_id = insert_row(connection, "blog_posts", _to_row(fields))
        return require_created(self.get_post(post_id), "blog_posts", post_id)

    def update_post(self, post_id: int, fields: dict[str, Any]) -> dict[str, Any] | None:
        with self._db.transaction() as connection:
            now = connection.execute("SELECT datetime('now')").fetchone()[0]
            affected = update_row(
                connection, "blog_posts", {**_to_row(fields), "updated_at": now}, "id = ?", (post_id,)
            )
        return self.get_post(post_id) if affected else None

    def delete_post(self, post_id: int) -> bool:
        with self._db.transaction() as connection:
            cursor = connection.execute("DELETE FROM blog_posts WHERE id = ?", (post_id,))
        return cursor.rowcount > 0
