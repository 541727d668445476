"""FastAPI router for agenda events and tasks."""

from __future__ import annotations

from typing import Any, Callable

from fastapi import APIRouter, Depends, Query

from lexdesk.api.context import CurrentUser
from lexdesk.api.contracts import ApiErrorResponse, DeletedResponse, ItemsResponse
from lexdesk.schedule.service import EventRequest, ScheduleService, TaskRequest

_NOT_FOUND = {404: {"model": ApiErrorResponse}}
_ERRORS = {400: {"model": ApiErrorResponse}, 404: {"model": ApiErrorResponse}}


class ScheduleRouter:
    def __init__(
        self, *, service: ScheduleService, current_user: Callable[..., CurrentUser]
    ) -> None:
        self._service = service
        self._current_user = current_user

    def build(self) -> APIRouter:
        router = APIRouter(tags=["agenda"])
        current_user = Depends(self._current_user)

        @router.get("/api/agendas")
        def list_events(user: CurrentUser = current_user) -> ItemsResponse:
            return ItemsResponse(items=self._service.list_events(user))

        @router.get("/api/agendas/total-hoje")
        def count_events_today(user: CurrentUser = current_user) -> dict[str, int]:
            return {"total_compromissos_hoje": self._service.count_today(user)}

        @router.get("/api/agendas/{event_id}", responses=_NOT_FOUND)
        def get_event(event_id: int, user: CurrentUser = current_user) -> dict[str, Any]:
            return self._service.get_event(user, event_id)

        @router.post("/api/agendas", status_code=201, responses=_ERRORS)
        def create_event(req: EventRequest, user: CurrentUser = current_user) -> dict[str, Any]:
            return self._service.create_event(user, req)

        @router.put("/api/agendas/{event_id}", responses=_ERRORS)
        def update_event(
            event_id: int, req: EventRequest, user: CurrentUser = current_user
        ) -> dict[str, Any]:
            return self._service.update_event(user, event_id, req)

        @router.delete("/api/agendas/{event_id}", responses=_NOT_FOUND)
        def delete_event(event_id: int, user: CurrentUser = current_user) -> DeletedResponse:
            self._service.delete_event(user, event_id)
            return DeletedResponse(id=event_id, deleted=True)

        @router.get("/api/tarefas", tags=["tarefas"])
        def list_tasks(
            oportunidade: int | None = Query(default=None),
            user: CurrentUser = current_user,
        ) -> ItemsResponse:
            return ItemsResponse(items=self._service.list_tasks(user, oportunidade_id=oportunidade))

        @router.get("/api/tarefas/{task_id}", tags=["tarefas"], responses=_NOT_FOUND)
        def get_task(task_id: int, user: CurrentUser = current_user) -> dict[str, Any]:
            return self._service.get_task(user, task_id)

        @router.post("/api/tarefas", tags=["tarefas"], status_code=201, responses=_ERRORS)
        def create_task(req: TaskRequest, user: CurrentUser = current_user) -> dict[str, Any]:
            return self._service.create_task(user, req)

        @router.put("/api/tarefas/{task_id}", tags=["tarefas"], responses=_ERRORS)
        def update_task(
            task_id: int, req: TaskRequest, user: CurrentUser = current_user
        ) -> dict[str, Any]:
            return self._service.update_task(user, task_id, req)

        @router.post("/api/tarefas/{task_id}/concluir", tags=["tarefas"], responses=_NOT_FOUND)
        def toggle_task(task_id: int, user: CurrentUser = current_user) -> dict[str, Any]:
            return self._service.toggle_task(user, task_id)

        @router.delete("/api/tarefas/{task_id}", tags=["tarefas"], responses=_NOT_FOUND)
        def delete_task(task_id: int, user: CurrentUser = current_user) -> DeletedResponse:
            self._service.delete_task(user, task_id)
            return DeletedResponse(id=task_id, deleted=True)

        return router


def create_schedule_router(
    *, service: ScheduleService, current_user: Callable[..., CurrentUser]
) -> APIRouter:
    return ScheduleRouter(service=service, current_user=current_user).build()
