"""Process-level routes: health check and lifecycle hooks."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from lexdesk.api.contracts import HealthResponse
from lexdesk.core.database import SchemaInspector


def register_runtime_routes(
    app: FastAPI, *, inspector: SchemaInspector, logger: logging.Logger
) -> None:
    """Register ``/api/health`` and drop cached schema on shutdown."""

    @app.on_event("shutdown")
    async def clear_schema_cache() -> None:
        inspector.invalidate()
        logger.info("app_shutdown")

    @app.get("/api/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok")
