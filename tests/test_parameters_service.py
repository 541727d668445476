from __future__ import annotations

from pathlib import Path

import pytest

from lexdesk.api.context import CurrentUser
from lexdesk.api.errors import ApiError
from lexdesk.core.database import Database
from lexdesk.parameters.registry import PARAMETER_KINDS, get_kind
from lexdesk.parameters.repository import ParametersRepository
from lexdesk.parameters.service import ParameterRequest, ParametersService

USER = CurrentUser(usuario_id=1, email="admin@local", empresa_id=1)
OTHER = CurrentUser(usuario_id=2, email="b@local", empresa_id=2)


def _service(tmp_path: Path) -> ParametersService:
    database = Database(tmp_path / "crm.db")
    with database.transaction() as connection:
        connection.execute("INSERT INTO empresas (id, nome_empresa) VALUES (1, 'A')")
        connection.execute("INSERT INTO empresas (id, nome_empresa) VALUES (2, 'B')")
    return ParametersService(repo=ParametersRepository(database))


def test_registry_lookup_is_case_insensitive() -> None:
    assert get_kind(" Tipo-Evento ") is PARAMETER_KINDS["tipo-evento"]
    assert get_kind("perfis") is None
    assert {"kind": "etiquetas", "label": "Etiquetas"} in ParametersService.list_kinds()


def test_unknown_kind_is_not_found(tmp_path: Path) -> None:
    service = _service(tmp_path)

    with pytest.raises(ApiError) as exc:
        service.list_items(USER, "nao-existe")

    assert exc.value.status_code == 404
    assert exc.value.error_code == "PARAMETER_NOT_FOUND"


def test_create_item_applies_extra_defaults(tmp_path: Path) -> None:
    service = _service(tmp_path)

    created = service.create_item(
        USER, "tipo-evento", ParameterRequest(nome="Audiência", tarefa="não")
    )

    assert created["nome"] == "Audiência"
    assert created["ativo"] is True
    assert created["agenda"] is True
    assert created["tarefa"] is False
    assert "idempresa" not in created


def test_create_item_rejects_fields_of_other_kinds(tmp_path: Path) -> None:
    service = _service(tmp_path)

    with pytest.raises(ApiError) as exc:
        service.create_item(USER, "area-atuacao", ParameterRequest(nome="Cível", ordem=1))

    assert exc.value.status_code == 400
    assert "ordem" in str(exc.value.detail)


@pytest.mark.parametrize(
    "req",
    [
        ParameterRequest(nome="  "),
        ParameterRequest(nome="Fluxo", ordem="primeiro"),
        ParameterRequest(nome="Fluxo", exibe_menu="talvez"),
    ],
)
def test_create_item_validation_errors(tmp_path: Path, req: ParameterRequest) -> None:
    service = _service(tmp_path)

    with pytest.raises(ApiError) as exc:
        service.create_item(USER, "fluxo-trabalho", req)

    assert exc.value.error_code == "PARAMETER_INVALID"


def test_workflows_sorted_by_order_and_menu_listing(tmp_path: Path) -> None:
    service = _service(tmp_path)
    service.create_item(USER, "fluxo-trabalho", ParameterRequest(nome="Sem ordem"))
    service.create_item(USER, "fluxo-trabalho", ParameterRequest(nome="Segundo", ordem=2))
    service.create_item(USER, "fluxo-trabalho", ParameterRequest(nome="Primeiro", ordem="1"))
    service.create_item(
        USER, "fluxo-trabalho", ParameterRequest(nome="Oculto", ordem=0, exibe_menu=False)
    )

    listed = [row["nome"] for row in service.list_items(USER, "fluxo-trabalho")]
    menu = [row["nome"] for row in service.list_menu_workflows(USER)]

    assert listed == ["Oculto", "Primeiro", "Segundo", "Sem ordem"]
    assert menu == ["Primeiro", "Segundo", "Sem ordem"]


def test_items_are_company_scoped(tmp_path: Path) -> None:
    service = _service(tmp_path)
    created = service.create_item(USER, "situacao-cliente", ParameterRequest(nome="Ativo"))

    assert service.list_items(OTHER, "situacao-cliente") == []
    with pytest.raises(ApiError):
        service.get_item(OTHER, "situacao-cliente", created["id"])
    with pytest.raises(ApiError):
        service.delete_item(OTHER, "situacao-cliente", created["id"])


def test_update_is_partial_and_delete_removes(tmp_path: Path) -> None:
    service = _service(tmp_path)
    created = service.create_item(USER, "etiquetas", ParameterRequest(nome="Urgente", ordem=3))

    updated = service.update_item(USER, "etiquetas", created["id"], ParameterRequest(ativo=False))
    service.delete_item(USER, "etiquetas", created["id"])

    assert updated["nome"] == "Urgente"
    assert updated["ordem"] == 3
    assert updated["ativo"] is False
    with pytest.raises(ApiError) as exc:
        service.get_item(USER, "etiquetas", created["id"])
    assert exc.value.status_code == 404


def test_label_with_unknown_workflow_is_rejected(tmp_path: Path) -> None:
    service = _service(tmp_path)
    fluxo = service.create_item(USER, "fluxo-trabalho", ParameterRequest(nome="Inicial"))
    label = service.create_item(
        USER, "etiquetas", ParameterRequest(nome="Urgente", id_fluxo_trabalho=fluxo["id"])
    )

    with pytest.raises(ApiError) as on_create:
        service.create_item(USER, "etiquetas", ParameterRequest(nome="X", id_fluxo_trabalho=999))
    with pytest.raises(ApiError) as on_update:
        service.update_item(USER, "etiquetas", label["id"], ParameterRequest(id_fluxo_trabalho=999))

    assert on_create.value.status_code == 400
    assert on_create.value.error_code == "PARAMETER_INVALID"
    assert on_update.value.error_code == "PARAMETER_INVALID"
    assert service.get_item(USER, "etiquetas", label["id"])["id_fluxo_trabalho"] == fluxo["id"]
