"""Agenda events (per user) and tasks (per company)."""

from __future__ import annotations

import logging
import sqlite3
from datetime import date
from typing import Any, Callable, Protocol

from pydantic import BaseModel, ConfigDict

from lexdesk.api.context import CurrentUser
from lexdesk.api.errors import ApiError, ApiErrorCode, bad_request, not_found
from lexdesk.core.dates import format_time_string, to_iso_date
from lexdesk.core.normalizers import optional_text, parse_bool, parse_optional_int

LOGGER = logging.getLogger(__name__)

# column -> default applied when the field is omitted
TASK_BOOL_DEFAULTS = {
    "dia_inteiro": False,
    "mostrar_na_agenda": True,
    "privada": True,
    "recorrente": False,
    "concluido": False,
}
TASK_INT_DEFAULTS = {"repetir_quantas_vezes": 1, "repetir_intervalo": 1}


class EventRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    titulo: Any = None
    tipo: Any = None
    descricao: Any = None
    data: Any = None
    hora_inicio: Any = None
    hora_fim: Any = None
    cliente: Any = None
    tipo_local: Any = None
    local: Any = None
    lembrete: Any = None
    status: Any = None
    id_oportunidades: Any = None


class TaskRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id_oportunidades: Any = None
    titulo: Any = None
    descricao: Any = None
    data: Any = None
    hora: Any = None
    dia_inteiro: Any = None
    prioridade: Any = None
    mostrar_na_agenda: Any = None
    privada: Any = None
    recorrente: Any = None
    repetir_quantas_vezes: Any = None
    repetir_cada_unidade: Any = None
    repetir_intervalo: Any = None
    concluido: Any = None


class ScheduleRepositoryProtocol(Protocol):
    def list_events(self, empresa_id: int, usuario_id: int) -> list[dict[str, Any]]: ...

    def get_event(self, empresa_id: int, usuario_id: int, event_id: int) -> dict[str, Any] | None: ...

    def count_events_on(self, empresa_id: int, usuario_id: int, day: str) -> int: ...

    def create_event(self, empresa_id: int, usuario_id: int, fields: dict[str, Any]) -> dict[str, Any]: ...

    def update_event(
        self, empresa_id: int, usuario_id: int, event_id: int, fields: dict[str, Any]
    ) -> dict[str, Any] | None: ...

    def delete_event(self, empresa_id: int, usuario_id: int, event_id: int) -> bool: ...

    def list_tasks(
        self, empresa_id: int, *, oportunidade_id: int | None = None
    ) -> list[dict[str, Any]]: ...

    def get_task(self, empresa_id: int, task_id: int) -> dict[str, Any] | None: ...

    def create_task(self, empresa_id: int, usuario_id: int, fields: dict[str, Any]) -> dict[str, Any]: ...

    def update_task(self, empresa_id: int, task_id: int, fields: dict[str, Any]) -> dict[str, Any] | None: ...

    def toggle_task(self, empresa_id: int, task_id: int) -> dict[str, Any] | None: ...

    def delete_task(self, empresa_id: int, task_id: int) -> bool: ...


def _required_date(value: Any, code: ApiErrorCode) -> str:
    parsed = to_iso_date(value)
    if parsed is None:
        raise bad_request(code, "data is required and must be a valid date")
    return parsed


def _optional_time(value: Any, name: str, code: ApiErrorCode) -> str | None:
    if optional_text(value) is None:
        return None
    parsed = format_time_string(value)
    if parsed is None:
        raise bad_request(code, f"Invalid {name}")
    return parsed


def _int_field(value: Any, name: str, code: ApiErrorCode, default: int | None = None) -> int | None:
    try:
        parsed = parse_optional_int(value)
    except ValueError as exc:
        raise bad_request(code, f"Invalid {name}") from exc
    return default if parsed is None else parsed


def _bool_field(value: Any, name: str, code: ApiErrorCode, default: bool) -> int:
    try:
        return int(bool(parse_bool(value, default=default)))
    except ValueError as exc:
        raise bad_request(code, f"Invalid {name}") from exc


def _event_fields(req: EventRequest) -> dict[str, Any]:
    code = ApiErrorCode.EVENT_INVALID
    titulo = optional_text(req.titulo)
    if not titulo:
        raise bad_request(code, "titulo is required")
    hora_inicio = _optional_time(req.hora_inicio, "hora_inicio", code)
    if hora_inicio is None:
        raise bad_request(code, "hora_inicio is required")
    return {
        "titulo": titulo,
        "tipo": _int_field(req.tipo, "tipo", code),
        "descricao": optional_text(req.descricao),
        "data": _required_date(req.data, code),
        "hora_inicio": hora_inicio,
        "hora_fim": _optional_time(req.hora_fim, "hora_fim", code),
        "cliente": _int_field(req.cliente, "cliente", code),
        "tipo_local": optional_text(req.tipo_local),
        "local": optional_text(req.local),
        "lembrete": _bool_field(req.lembrete, "lembrete", code, False),
        "status": _int_field(req.status, "status", code, default=1),
        "id_oportunidades": _int_field(req.id_oportunidades, "id_oportunidades", code),
    }


def _task_fields(req: TaskRequest) -> dict[str, Any]:
    code = ApiErrorCode.TASK_INVALID
    titulo = optional_text(req.titulo)
    if not titulo:
        raise bad_request(code, "titulo is required")
    fields: dict[str, Any] = {
        "titulo": titulo,
        "descricao": optional_text(req.descricao),
        "data": _required_date(req.data, code),
        "hora": _optional_time(req.hora, "hora", code),
        "prioridade": _int_field(req.prioridade, "prioridade", code),
        "repetir_cada_unidade": optional_text(req.repetir_cada_unidade),
        "id_oportunidades": _int_field(req.id_oportunidades, "id_oportunidades", code),
    }
    for column, default in TASK_BOOL_DEFAULTS.items():
        fields[column] = _bool_field(getattr(req, column), column, code, default)
    for column, default in TASK_INT_DEFAULTS.items():
        fields[column] = _int_field(getattr(req, column), column, code, default=default)
    return fields


def _event_not_found(event_id: int) -> ApiError:
    return not_found(ApiErrorCode.EVENT_NOT_FOUND, f"Agenda event not found: {event_id}")


def _task_not_found(task_id: int) -> ApiError:
    return not_found(ApiErrorCode.TASK_NOT_FOUND, f"Task not found: {task_id}")


class ScheduleService:
    def __init__(
        self,
        *,
        repo: ScheduleRepositoryProtocol,
        logger: logging.Logger = LOGGER,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._repo = repo
        self._logger = logger
        self._today = today

    def list_events(self, user: CurrentUser) -> list[dict[str, Any]]:
        if user.empresa_id is None:
            return []
        return self._repo.list_events(user.empresa_id, user.usuario_id)

    def count_today(self, user: CurrentUser) -> int:
        if user.empresa_id is None:
            return 0
        return self._repo.count_events_on(
            user.empresa_id, user.usuario_id, self._today().isoformat()
        )

    def get_event(self, user: CurrentUser, event_id: int) -> dict[str, Any]:
        event = (
            self._repo.get_event(user.empresa_id, user.usuario_id, event_id)
            if user.empresa_id is not None
            else None
        )
        if event is None:
            raise _event_not_found(event_id)
        return event

    def create_event(self, user: CurrentUser, req: EventRequest) -> dict[str, Any]:
        empresa_id = user.require_empresa()
        fields = _event_fields(req)
        try:
            created = self._repo.create_event(empresa_id, user.usuario_id, fields)
        except sqlite3.IntegrityError as exc:
            raise bad_request(ApiErrorCode.EVENT_INVALID, f"Invalid reference: {exc}") from exc
        self._logger.info(
            "agenda_event_created", extra={"empresa_id": empresa_id, "user_id": user.usuario_id}
        )
        return created

    def update_event(self, user: CurrentUser, event_id: int, req: EventRequest) -> dict[str, Any]:
        if user.empresa_id is None:
            raise _event_not_found(event_id)
        fields = _event_fields(req)
        try:
            updated = self._repo.update_event(user.empresa_id, user.usuario_id, event_id, fields)
        except sqlite3.IntegrityError as exc:
            raise bad_request(ApiErrorCode.EVENT_INVALID, f"Invalid reference: {exc}") from exc
        if updated is None:
            raise _event_not_found(event_id)
        return updated

    def delete_event(self, user: CurrentUser, event_id: int) -> None:
        if user.empresa_id is None or not self._repo.delete_event(
            user.empresa_id, user.usuario_id, event_id
        ):
            raise _event_not_found(event_id)

    def list_tasks(
        self, user: CurrentUser, *, oportunidade_id: int | None = None
    ) -> list[dict[str, Any]]:
        if user.empresa_id is None:
            return []
        return self._repo.list_tasks(user.empresa_id, oportunidade_id=oportunidade_id)

    def get_task(self, user: CurrentUser, task_id: int) -> dict[str, Any]:
        task = self._repo.get_task(user.empresa_id, task_id) if user.empresa_id is not None else None
        if task is None:
            raise _task_not_found(task_id)
        return task

    def create_task(self, user: CurrentUser, req: TaskRequest) -> dict[str, Any]:
        empresa_id = user.require_empresa()
        fields = _task_fields(req)
        try:
            created = self._repo.create_task(empresa_id, user.usuario_id, fields)
        except sqlite3.IntegrityError as exc:
            raise bad_request(ApiErrorCode.TASK_INVALID, f"Invalid reference: {exc}") from exc
        self._logger.info(
            "task_created", extra={"empresa_id": empresa_id, "user_id": user.usuario_id}
        )
        return created

    def update_task(self, user: CurrentUser, task_id: int, req: TaskRequest) -> dict[str, Any]:
        if user.empresa_id is None:
            raise _task_not_found(task_id)
        fields = _task_fields(req)
        try:
            updated = self._repo.update_task(user.empresa_id, task_id, fields)
        except sqlite3.IntegrityError as exc:
            raise bad_request(ApiErrorCode.TASK_INVALID, f"Invalid reference: {exc}") from exc
        if updated is None:
            raise _task_not_found(task_id)
        return updated

    def toggle_task(self, user: CurrentUser, task_id: int) -> dict[str, Any]:
        toggled = (
            self._repo.toggle_task(user.empresa_id, task_id) if user.empresa_id is not None else None
        )
        if toggled is None:
            raise _task_not_found(task_id)
        return toggled

    def delete_task(self, user: CurrentUser, task_id: int) -> None:
        if user.empresa_id is None or not self._repo.delete_task(user.empresa_id, task_id):
            raise _task_not_found(task_id)
