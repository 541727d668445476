from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.routing import APIRoute

from lexdesk.api.runtime_routes import register_runtime_routes
from lexdesk.core.database import Database, SchemaInspector

LOGGER = logging.getLogger(__name__)


def _route(app: FastAPI, path: str) -> APIRoute:
    for route in app.routes:
        if isinstance(route, APIRoute) and route.path == path:
            return route
    raise AssertionError(f"Route {path!r} not found")


def test_runtime_routes_health_payload(tmp_path: Path) -> None:
    app = FastAPI()
    inspector = SchemaInspector(Database(tmp_path / "crm.db"))
    register_runtime_routes(app, inspector=inspector, logger=LOGGER)

    payload = _route(app, "/api/health").endpoint()

    assert payload.model_dump() == {"status": "ok"}


def test_runtime_routes_shutdown_drops_schema_cache(tmp_path: Path) -> None:
    app = FastAPI()
    database = Database(tmp_path / "crm.db")
    inspector = SchemaInspector(database, ttl_seconds=3600)
    register_runtime_routes(app, inspector=inspector, logger=LOGGER)

    assert inspector.has_table("late_table") is False
    with database.transaction() as connection:
        connection.execute("CREATE TABLE late_table (id INTEGER PRIMARY KEY)")
    assert inspector.has_table("late_table") is False

    for handler in app.router.on_shutdown:
        asyncio.run(handler())

    assert inspector.has_table("late_table") is True
