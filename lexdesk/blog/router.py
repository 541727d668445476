"""FastAPI routers for blog posts (admin and public)."""

from __future__ import annotations

from typing import Any, Callable

from fastapi import APIRouter, Body, Depends, Query

from lexdesk.api.context import CurrentUser
from lexdesk.api.contracts import ApiErrorResponse, DeletedResponse
from lexdesk.blog.service import BlogPostsService

_NOT_FOUND = {404: {"model": ApiErrorResponse}}
_ERRORS = {
    400: {"model": ApiErrorResponse},
    404: {"model": ApiErrorResponse},
    409: {"model": ApiErrorResponse},
}


class BlogPostsRouter:
    def __init__(
        self, *, service: BlogPostsService, current_user: Callable[..., CurrentUser]
    ) -> None:
        self._service = service
        self._current_user = current_user

    def build(self) -> APIRouter:
        router = APIRouter(tags=["blog"])
        current_user = Depends(self._current_user)

        @router.get("/api/public/blog-posts")
        def list_public_posts(slug: str | None = Query(default=None)) -> list[dict[str, Any]]:
            return self._service.list_posts(slug)

        @router.get("/api/blog-posts")
        def list_posts(
            slug: str | None = Query(default=None), user: CurrentUser = current_user
        ) -> list[dict[str, Any]]:
            return self._service.list_posts(slug)

        @router.get("/api/blog-posts/{post_id}", responses=_NOT_FOUND)
        def get_post(post_id: int, user: CurrentUser = current_user) -> dict[str, Any]:
            return self._service.get_post(post_id)

        @router.post("/api/blog-posts", status_code=201, responses=_ERRORS)
        def create_post(
            payload: Any = Body(default=None), user: CurrentUser = current_user
        ) -> dict[str, Any]:
            return self._service.create_post(payload)

        @router.put("/api/blog-posts/{post_id}", responses=_ERRORS)
        def update_post(
            post_id: int, payload: Any = Body(default=None), user: CurrentUser = current_user
        ) -> dict[str, Any]:
            return self._service.update_post(post_id, payload)

        @router.delete("/api/blog-posts/{post_id}", responses=_NOT_FOUND)
        def delete_post(post_id: int, user: CurrentUser = current_user) -> DeletedResponse:
            self._service.delete_post(post_id)
            return DeletedResponse(id=post_id, deleted=True)

        return router


def create_blog_posts_router(
    *, service: BlogPostsService, current_user: Callable[..., CurrentUser]
) -> APIRouter:
    return BlogPostsRouter(service=service, current_user=current_user).build()
