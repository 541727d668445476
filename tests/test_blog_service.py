from __future__ import annotations

from pathlib import Path

import pytest

from lexdesk.api.errors import ApiError
from lexdesk.blog.repository import BlogPostsRepository
from lexdesk.blog.service import (
    BlogPostsService,
    build_post_fields,
    map_post,
    to_iso_timestamp,
)
from lexdesk.core.database import Database


def _payload(**overrides) -> dict:
    payload = {
        "title": "Guarda compartilhada",
        "description": "O que muda em 2026",
        "author": "Ana Lima",
        "readTime": "5 min",
        "category": "Família",
        "slug": "guarda-compartilhada",
        "date": "2026-01-31T09:00:00-03:00",
        "tags": ["família", " guarda "],
        "featured": "true",
    }
    payload.update(overrides)
    return payload


def _service(tmp_path: Path) -> BlogPostsService:
    return BlogPostsService(repo=BlogPostsRepository(Database(tmp_path / "crm.db")))


def test_build_post_fields_accepts_camel_and_snake_case() -> None:
    fields = build_post_fields(_payload())
    snake = build_post_fields(
        _payload(readTime=None, read_time="7 min", date=None, published_at="2026-02-01")
    )

    assert fields["read_time"] == "5 min"
    assert fields["published_at"] == "2026-01-31T12:00:00+00:00"
    assert fields["tags"] == ["família", "guarda"]
    assert fields["featured"] == 1
    assert fields["content"] is None
    assert snake["read_time"] == "7 min"
    assert snake["published_at"] == "2026-02-01T00:00:00+00:00"


@pytest.mark.parametrize(
    ("data", "message"),
    [
        ([], "Invalid request body."),
        (_payload(title="  "), 'Field "title" is required.'),
        (_payload(readTime=None), 'Field "readTime" is required.'),
        (_payload(date=None), 'Field "date" is required.'),
        (_payload(date="ontem"), 'Field "date" is invalid.'),
        (_payload(tags="direito"), 'Field "tags" must be an array of strings.'),
    ],
)
def test_build_post_fields_validation(data, message: str) -> None:
    with pytest.raises(ApiError) as exc:
        build_post_fields(data)

    assert exc.value.status_code == 400
    assert exc.value.error_code == "BLOG_POST_INVALID"
    assert exc.value.detail["message"] == message


def test_featured_only_accepts_boolean_words() -> None:
    assert build_post_fields(_payload(featured=True))["featured"] == 1
    assert build_post_fields(_payload(featured="FALSE"))["featured"] == 0
    assert build_post_fields(_payload(featured=1))["featured"] == 0


def test_map_post_uses_camel_case_and_iso_timestamps() -> None:
    mapped = map_post(
        {
            "id": 3,
            "title": "T",
            "description": "D",
            "author": "A",
            "published_at": "2026-01-31T12:00:00+00:00",
            "read_time": "3 min",
            "category": "C",
            "slug": "t",
            "tags": "not json",
            "featured": 0,
            "created_at": "2026-01-30 10:00:00",
            "updated_at": None,
        }
    )

    assert mapped["readTime"] == "3 min"
    assert mapped["date"] == "2026-01-31T12:00:00.000Z"
    assert mapped["createdAt"] == "2026-01-30T10:00:00.000Z"
    assert mapped["updatedAt"] is None
    assert mapped["tags"] == []
    assert mapped["featured"] is False
    assert to_iso_timestamp("") is None


def test_create_list_and_filter_by_slug(tmp_path: Path) -> None:
    service = _service(tmp_path)
    older = service.create_post(_payload(slug="antigo", date="2025-12-01"))
    newer = service.create_post(_payload())

    listed = service.list_posts()
    filtered = service.list_posts(" antigo ")

    assert [post["id"] for post in listed] == [newer["id"], older["id"]]
    assert [post["slug"] for post in filtered] == ["antigo"]
    assert newer["tags"] == ["família", "guarda"]
    assert newer["featured"] is True


def test_duplicate_slug_is_conflict(tmp_path: Path) -> None:
    service = _service(tmp_path)
    service.create_post(_payload())
    other = service.create_post(_payload(slug="outro"))

    with pytest.raises(ApiError) as create_exc:
        service.create_post(_payload())
    with pytest.raises(ApiError) as update_exc:
        service.update_post(other["id"], _payload())

    assert create_exc.value.status_code == 409
    assert update_exc.value.error_code == "BLOG_POST_CONFLICT"


def test_update_and_delete_post(tmp_path: Path) -> None:
    service = _service(tmp_path)
    created = service.create_post(_payload())

    updated = service.update_post(created["id"], _payload(title="Novo título"))
    service.delete_post(created["id"])

    assert updated["title"] == "Novo título"
    with pytest.raises(ApiError) as exc:
        service.get_post(created["id"])
    assert exc.value.status_code == 404
    with pytest.raises(ApiError):
        service.update_post(created["id"], _payload())
